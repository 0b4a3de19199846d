"""Print-time codec.

Engines report ``print_time`` either as a number of seconds or as a
``H:MM:SS`` string, optionally followed by fractional seconds
(``0:38:50.000000``). Both decode to the same integer seconds. Encoding always
emits the zero-padded ``HH:MM:SS`` form.
"""

from __future__ import annotations

import math
import re
from typing import Optional, Union

_DURATION_RE = re.compile(r"^~?(\d+):([0-5]?\d):([0-5]?\d)(?:\.(\d+))?$")
_SECONDS_RE = re.compile(r"^\d+(?:\.\d*)?$")

PrintTimeValue = Union[int, float, str, None]


def decode_print_time(value: PrintTimeValue) -> Optional[int]:
    """Return the number of whole seconds represented by ``value``.

    Returns ``None`` when the value is absent or cannot be interpreted.
    Fractional seconds are truncated.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _DURATION_RE.match(text)
    if match:
        hours, minutes, seconds = (int(match.group(i)) for i in (1, 2, 3))
        return hours * 3600 + minutes * 60 + seconds

    if _SECONDS_RE.match(text):
        return int(float(text))
    return None


def encode_print_time(seconds: Union[int, float, None]) -> Optional[str]:
    """Format ``seconds`` as a zero-padded ``HH:MM:SS`` string."""

    if seconds is None:
        return None
    total = max(0, int(seconds))
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


__all__ = ["decode_print_time", "encode_print_time"]
