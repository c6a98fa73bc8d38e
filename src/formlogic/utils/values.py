"""
Value coercion utilities for formlogic.

Snapshot values arrive from the rendering surface untyped: strings typed by a
respondent, numbers from sliders, lists from multi-selects, numpy scalars when
a caller feeds a DataFrame row. These helpers normalize them so operators can
compare by the field's declared type.
"""

import math
import re
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Union

import numpy as np

_NUMBER_NOISE = re.compile(r"[\s,]")
_CURRENCY_PREFIX = re.compile(r"^[-+]?[$€£¥]")


def is_missing(value: Any) -> bool:
    """Return True for None and NaN (the respondent never entered a value)."""
    if value is None:
        return True
    if isinstance(value, (float, np.floating)):
        return bool(np.isnan(value))
    return False


def is_empty_value(value: Any) -> bool:
    """
    Check emptiness the way is_empty / is_not_empty define it.

    Empty means None, NaN, the empty string, or an empty collection.

    Example:
        >>> is_empty_value("")
        True
        >>> is_empty_value([])
        True
        >>> is_empty_value(0)
        False
    """
    if is_missing(value):
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, np.ndarray):
        return value.size == 0
    if isinstance(value, (list, tuple, set, frozenset, dict)):
        return len(value) == 0
    return False


def is_multi_value(value: Any) -> bool:
    """Return True for collection values (multi-select, checkbox groups)."""
    return isinstance(value, (list, tuple, set, frozenset, np.ndarray))


def as_list(value: Any) -> List[Any]:
    """Normalize a collection value to a plain Python list."""
    if value is None:
        return []
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def to_number(value: Any) -> Optional[float]:
    """
    Coerce a value to float, or None if it is not numeric.

    Booleans are not numbers. Strings are stripped of whitespace, thousands
    separators and one leading currency symbol before parsing.

    Example:
        >>> to_number("$1,200.50")
        1200.5
        >>> to_number(np.int64(3))
        3.0
        >>> to_number("abc") is None
        True
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, float, Decimal, np.integer, np.floating)):
        number = float(value)
        return None if math.isnan(number) or math.isinf(number) else number
    if isinstance(value, str):
        text = _NUMBER_NOISE.sub("", value)
        sign = ""
        if text[:1] in ("-", "+"):
            sign, text = text[0], text[1:]
        text = _CURRENCY_PREFIX.sub("", text)
        if not text:
            return None
        try:
            number = float(Decimal(sign + text))
        except (InvalidOperation, ValueError):
            return None
        return None if math.isnan(number) or math.isinf(number) else number
    return None


def to_bool(value: Any) -> Optional[bool]:
    """Coerce True/False and their common string forms, else None."""
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
    return None


def to_temporal(value: Any) -> Optional[Union[datetime, date, time]]:
    """Parse an ISO date, time or datetime (or pass through the parsed type)."""
    if isinstance(value, (datetime, date, time)):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    for parser in (date.fromisoformat, datetime.fromisoformat, time.fromisoformat):
        try:
            return parser(text)
        except ValueError:
            continue
    return None


def as_text(value: Any) -> str:
    """String form of a value, with integral floats rendered without '.0'."""
    if isinstance(value, (float, np.floating)) and float(value).is_integer():
        return str(int(value))
    if isinstance(value, np.generic):
        return str(value.item())
    return str(value)


__all__ = [
    "is_missing",
    "is_empty_value",
    "is_multi_value",
    "as_list",
    "to_number",
    "to_bool",
    "to_temporal",
    "as_text",
]
