"""Value coercion helpers shared by conditions, validation and progress.

Answers arrive from browser widgets, so comparisons follow the loose
string/number conversions those widgets produce: booleans print as
``true``/``false``, whole floats print without a fractional part and blank
text converts to zero.
"""

import math
import re
from typing import Any

_NUMERIC_RE = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


def to_text(value: Any) -> str:
    """Convert an answer value to its display string."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple)):
        return ",".join(to_text(item) for item in value)
    return str(value)


def to_number(value: Any) -> float:
    """Convert an answer value to a float; unconvertible values give NaN."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, (list, tuple)):
        if not value:
            return 0.0
        if len(value) == 1:
            return to_number(value[0])
        return math.nan
    text = str(value).strip()
    if text == "":
        return 0.0
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    if not _NUMERIC_RE.fullmatch(text):
        return math.nan
    return float(text)


def is_blank(value: Any) -> bool:
    """True for values that count as "no answer" in a scalar slot."""
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def has_answer(value: Any) -> bool:
    """True when ``value`` holds a usable answer (non-blank scalar or non-empty list)."""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return not is_blank(value)


def is_falsy(value: Any) -> bool:
    """Loose falsiness used by the emptiness operators: blank, zero or NaN."""
    if is_blank(value):
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0
    return False
