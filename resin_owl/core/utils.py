"""Lenient value coercion shared by the backend adapters."""

from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional

_NUMERIC_CLEANUP_RE = re.compile(r"[^0-9+\-.]")


def parse_int(value: Any) -> Optional[int]:
    """Coerce ints, floats and numeric strings; anything else is ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def parse_float(value: Any) -> Optional[float]:
    """Coerce numbers, stripping unit suffixes such as ``24.85°C``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        cleaned = _NUMERIC_CLEANUP_RE.sub("", value)
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def parse_bool(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "t", "yes"}:
            return True
        numeric = parse_int(lowered)
        return numeric is not None and numeric != 0
    return False


def first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    """Return the first non-``None`` value among ``keys``."""
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None
