import json
import logging
import unittest
from datetime import datetime, timezone

from config.logging_config import JsonFormatter


def _record(msg="insights computed", **extra):
    record = logging.LogRecord("services.portfolio", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class JsonFormatterTests(unittest.TestCase):
    def test_base_keys(self):
        out = json.loads(JsonFormatter().format(_record()))
        self.assertEqual(out["level"], "INFO")
        self.assertEqual(out["logger"], "services.portfolio")
        self.assertEqual(out["message"], "insights computed")
        self.assertTrue(out["ts"].endswith("Z"))

    def test_structured_fields_are_merged(self):
        as_of = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
        fields = {"score": 72, "live": False, "as_of": as_of, "skipped": None, "level": "spoofed"}
        out = json.loads(JsonFormatter().format(_record(fields=fields)))
        self.assertEqual(out["score"], 72)
        self.assertFalse(out["live"])
        self.assertEqual(out["as_of"], "2023-11-14T22:13:20+00:00")
        self.assertNotIn("skipped", out)
        self.assertEqual(out["level"], "INFO")


if __name__ == "__main__":
    unittest.main()
