"""
Loose value coercion shared by comparisons and placeholder rendering.

exists() and is_truthy() disagree about 0 and "0" on purpose: the first
treats them as present values, the second as false.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from typing import Any

_NUMERIC_RE = re.compile(
    r"^[ \t\n\r\v\f]*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?[ \t\n\r\v\f]*$"
)


def is_scalar(value: Any) -> bool:
    """Strings, numbers and booleans are scalars; None and containers are not."""
    return isinstance(value, (str, int, float, bool))


def stringify(value: Any) -> str:
    """Render a value the way equality comparisons see it.

    Booleans become "1"/"", integral floats drop their fraction, and
    None or any non-scalar becomes the empty string.
    """
    if isinstance(value, bool):
        return "1" if value else ""
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    return ""


def is_numeric(value: Any) -> bool:
    """True for ints, floats and numeric strings. Booleans are not numeric."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, str):
        return _NUMERIC_RE.match(value) is not None
    return False


def is_truthy(value: Any) -> bool:
    """Boolean cast used by IS / IS NOT. "0" is false here."""
    if value is None:
        return False
    if isinstance(value, str):
        return value not in ("", "0")
    if isinstance(value, (Mapping, Sequence)):
        return len(value) > 0
    return bool(value)


def exists(value: Any) -> bool:
    """Existence test used by EXISTS / NOT EXISTS.

    Integer 0 and the string "0" exist; empty string, None, False,
    empty containers and 0.0 do not.
    """
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, int):
        return True
    if isinstance(value, float):
        return value != 0.0
    if isinstance(value, (Mapping, Sequence)):
        return len(value) > 0
    return True
