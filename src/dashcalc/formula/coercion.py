"""Value coercions shared by the evaluator and the built-in functions.

Row values are loosely typed (numbers, strings, booleans, date strings or
missing), so operators and functions coerce instead of failing:
``to_number("abc")`` is 0, never NaN.
"""

import math
import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from dateutil import parser as date_parser

_NUMERIC_PREFIX_RE = re.compile(
    r"[+-]?(?:Infinity|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)"
)
_NUMBER_NOISE_RE = re.compile(r"[$,%\s]")
_FALSE_STRINGS = frozenset({"", "false", "0", "no"})

# Fields missing from a partial date string come from here, never from the clock.
_DATE_DEFAULT = datetime(1970, 1, 1)


def is_number(value: Any) -> bool:
    """Check for a real number; booleans do not count."""
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """
    Coerce a value to a float.

    Strips currency symbols, thousands separators, percent signs and
    whitespace from strings, then parses the longest numeric prefix.

    Args:
        value: Any row or intermediate value

    Returns:
        The numeric value, or 0.0 when nothing numeric is found
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if is_number(value):
        number = float(value)
        return 0.0 if math.isnan(number) else number

    text = _NUMBER_NOISE_RE.sub("", str(value))
    match = _NUMERIC_PREFIX_RE.match(text)
    if not match:
        return 0.0
    literal = match.group()
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def to_bool(value: Any) -> bool:
    """Coerce a value to a truth value."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if is_number(value):
        return value != 0
    if isinstance(value, str):
        return value.lower() not in _FALSE_STRINGS
    return bool(value)


def to_text(value: Any) -> str:
    """
    Coerce a value to its display string.

    Integral floats render without a fractional part, so ``3.0`` becomes
    ``"3"`` and ``"Q" & 3`` reads ``"Q3"``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def to_date(value: Any) -> datetime | None:
    """
    Leniently coerce a value to a naive datetime.

    Accepts datetimes, dates and date strings in ISO or common human
    formats. Aware datetimes are converted to UTC before the zone is dropped.

    Args:
        value: Value to interpret as a date

    Returns:
        Parsed datetime, or None if the value is not a date
    """
    if value is None or isinstance(value, bool) or is_number(value):
        return None
    if isinstance(value, datetime):
        return naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())

    text = str(value).strip()
    if not text:
        return None
    try:
        return naive_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass
    try:
        return naive_utc(date_parser.parse(text, default=_DATE_DEFAULT))
    except (ValueError, OverflowError, TypeError):
        return None


def naive_utc(moment: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def values_equal(left: Any, right: Any) -> bool:
    """
    Equality used by ``=``, ``<>`` and SWITCH.

    Numeric when either side is a number (so ``5 = "5.0"`` holds), otherwise
    a case-sensitive comparison of the text forms.
    """
    if is_number(left) or is_number(right) or isinstance(left, bool) or isinstance(right, bool):
        return to_number(left) == to_number(right)
    return to_text(left) == to_text(right)
