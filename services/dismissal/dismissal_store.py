# services/dismissal/dismissal_store.py
"""
Persistence for dismissed insight ids.

The engine only ever receives a plain list of ids; this module owns where
that list lives. A record is `{"dismissed": [...], "lastUpdated": <epoch ms>}`
stored under DISMISSAL_STORAGE_KEY. Missing or corrupt records read as empty.
"""
from __future__ import annotations

import json
import logging
import math
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from config.insights_config import (
    DISMISSAL_STORAGE_KEY,
    DISMISSAL_STORE_BACKEND,
    DISMISSAL_STORE_PATH,
)
from models.insight_dismissal import InsightDismissal
from schemas.portfolio_insights import DismissalRecord

logger = logging.getLogger(__name__)


class DismissalStoreError(Exception):
    pass


class DismissalStore(Protocol):
    def load(self) -> DismissalRecord: ...

    def append(self, insight_id: str) -> DismissalRecord: ...

    def clear(self) -> None: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


def parse_record(raw: Any) -> Optional[DismissalRecord]:
    """Return None when `raw` is not a well-formed record."""
    if not isinstance(raw, dict):
        return None
    ids = raw.get("dismissed", [])
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        return None
    last = raw.get("lastUpdated")
    if last is not None and (
        isinstance(last, bool) or not isinstance(last, (int, float)) or not math.isfinite(last)
    ):
        last = None

    seen: set[str] = set()
    ordered: List[str] = []
    for i in ids:
        if i not in seen:
            seen.add(i)
            ordered.append(i)
    return DismissalRecord(dismissed=ordered, last_updated=int(last) if last is not None else None)


def dump_record(record: DismissalRecord) -> Dict[str, Any]:
    return {"dismissed": list(record.dismissed), "lastUpdated": record.last_updated}


def _with_id(record: DismissalRecord, insight_id: str) -> DismissalRecord:
    ids = list(record.dismissed)
    if insight_id not in ids:
        ids.append(insight_id)
    return DismissalRecord(dismissed=ids, last_updated=_now_ms())


# -------------------------
# JSON file backend
# -------------------------

class JsonFileDismissalStore:
    """
    A JSON object on disk used as a small key-value map.

    Writes are serialized by a process-wide lock, so concurrent appends are
    safe within one server process only. Multi-worker deployments use the
    db backend.
    """

    _lock = threading.Lock()

    def __init__(self, path: str | os.PathLike, key: str = DISMISSAL_STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    def _read_all(self) -> Dict[str, Any]:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError:
            logger.warning("dismissal store file is not valid UTF-8; treating as empty")
            return {}
        except OSError as e:
            raise DismissalStoreError(f"cannot read dismissal store: {e}") from e

        try:
            data = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError:
            logger.warning("dismissal store file is not valid JSON; treating as empty")
            return {}
        if not isinstance(data, dict):
            logger.warning("dismissal store file has unexpected shape; treating as empty")
            return {}
        return data

    def _write_all(self, data: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".dismissed-", suffix=".json")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise DismissalStoreError(f"cannot write dismissal store: {e}") from e

    def load(self) -> DismissalRecord:
        raw = self._read_all().get(self.key)
        if raw is None:
            return DismissalRecord()
        record = parse_record(raw)
        if record is None:
            logger.warning("corrupt dismissal record under %s; treating as empty", self.key)
            return DismissalRecord()
        return record

    def append(self, insight_id: str) -> DismissalRecord:
        with self._lock:
            data = self._read_all()
            current = parse_record(data.get(self.key)) or DismissalRecord()
            record = _with_id(current, insight_id)
            data[self.key] = dump_record(record)
            self._write_all(data)
        return record

    def clear(self) -> None:
        with self._lock:
            data = self._read_all()
            if self.key not in data:
                return
            data.pop(self.key)
            self._write_all(data)


# -------------------------
# SQL backend
# -------------------------

class SqlDismissalStore:
    def __init__(self, db: Session, scope: str = "default", key: str = DISMISSAL_STORAGE_KEY):
        self.db = db
        self.row_key = f"{key}:{scope}"

    def _get_row(self, for_update: bool = False) -> Optional[InsightDismissal]:
        try:
            if for_update:
                # row lock held until commit; plain read on sqlite
                return self.db.get(
                    InsightDismissal,
                    self.row_key,
                    with_for_update=True,
                    populate_existing=True,
                )
            return self.db.get(InsightDismissal, self.row_key)
        except SQLAlchemyError as e:
            raise DismissalStoreError(f"cannot read dismissal store: {e}") from e

    def load(self) -> DismissalRecord:
        row = self._get_row()
        if row is None:
            return DismissalRecord()
        record = parse_record(row.data)
        if record is None:
            logger.warning("corrupt dismissal row; treating as empty")
            return DismissalRecord()
        return record

    def _append_once(self, insight_id: str) -> DismissalRecord:
        row = self._get_row(for_update=True)
        current = (parse_record(row.data) if row is not None else None) or DismissalRecord()
        record = _with_id(current, insight_id)
        if row is None:
            self.db.add(InsightDismissal(key=self.row_key, data=dump_record(record)))
        else:
            # reassign so the JSON column is flagged dirty
            row.data = dump_record(record)
        self.db.commit()
        return record

    def append(self, insight_id: str) -> DismissalRecord:
        try:
            return self._append_once(insight_id)
        except IntegrityError:
            # another writer inserted the first row; retry as an update
            self.db.rollback()
            logger.info("dismissal row created concurrently, retrying append")
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DismissalStoreError(f"cannot write dismissal store: {e}") from e

        try:
            return self._append_once(insight_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DismissalStoreError(f"cannot write dismissal store: {e}") from e

    def clear(self) -> None:
        row = self._get_row()
        if row is None:
            return
        try:
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise DismissalStoreError(f"cannot clear dismissal store: {e}") from e


# -------------------------
# Helpers
# -------------------------

def load_dismissed_ids(store: DismissalStore) -> List[str]:
    """Read the dismissal set; any store failure degrades to an empty set."""
    try:
        return list(store.load().dismissed)
    except (DismissalStoreError, OSError) as e:
        logger.warning("dismissal store unavailable, using empty set: %s", e)
        return []


def get_dismissal_store(scope: str = "default", db: Optional[Session] = None) -> DismissalStore:
    if DISMISSAL_STORE_BACKEND == "db":
        if db is None:
            raise ValueError("db session required for the db dismissal backend")
        return SqlDismissalStore(db, scope=scope)

    if DISMISSAL_STORE_BACKEND != "file":
        logger.warning("unknown DISMISSAL_STORE_BACKEND=%s, using file", DISMISSAL_STORE_BACKEND)
    key = DISMISSAL_STORAGE_KEY if scope == "default" else f"{DISMISSAL_STORAGE_KEY}:{scope}"
    return JsonFileDismissalStore(DISMISSAL_STORE_PATH, key=key)
