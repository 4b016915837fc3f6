from decimal import Decimal
import math
from typing import Any, Optional


def to_float(x: Any) -> float:
    if x is None:
        return 0.0
    if isinstance(x, Decimal):
        return float(x)
    try:
        v = float(x)
    except (TypeError, ValueError):
        return 0.0
    return v if math.isfinite(v) else 0.0


def safe_float(x: Any) -> Optional[float]:
    try:
        if x is None or (isinstance(x, float) and math.isnan(x)):
            return None
        return float(x)
    except (TypeError, ValueError):
        return None


def pct(n: float, d: float) -> float:
    """n as a percentage of d; 0 when d is not positive or the ratio overflows."""
    if not d > 0:
        return 0.0
    v = n / d * 100.0
    return v if math.isfinite(v) else 0.0


def js_round(x: float) -> int:
    # half-up, so 12.5 -> 13 and -12.5 -> -12
    if not math.isfinite(x):
        return 0
    return int(math.floor(x + 0.5))


def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, x))


def normalize_symbol(value: Optional[str]) -> str:
    return (value or "").strip().upper()
