import math
from typing import Any


def require_non_empty(v: str, name: str = "value") -> str:
    v = (v or "").strip()
    if not v:
        raise ValueError(f"{name} is required")
    return v


def require_positive_number(v: float, name: str = "value") -> None:
    if not math.isfinite(v) or v <= 0:
        raise ValueError(f"{name} must be > 0")


def coerce_quantity(v: Any) -> float:
    """Best-effort kg value: accepts numbers and strings like "1,5"; anything unusable is 0."""
    if isinstance(v, str):
        v = v.strip().replace(",", ".")
    try:
        q = float(v)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(q) or q < 0:
        return 0.0
    return q
