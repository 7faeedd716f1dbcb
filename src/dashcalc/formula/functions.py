"""Formula functions for DashCalc.

The registry is a closed table: ``FUNCTION_CATEGORIES`` lists every name the
language recognizes, and the implementations below are bound to those names
at import time. The tokenizer consults the table to tell function names from
bare column names; the evaluator dispatches through ``FORMULA_FUNCTIONS``.

Eager functions receive evaluated argument values. Lazy functions receive
``(evaluator, args, context)`` and evaluate argument nodes themselves, which
aggregates need to re-evaluate their argument once per table row.
"""

import calendar
import math
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Any

from dashcalc.core.exceptions import FormulaEvaluationError
from dashcalc.formula.coercion import (
    naive_utc,
    to_bool,
    to_date,
    to_number,
    to_text,
    values_equal,
)

if TYPE_CHECKING:
    from dashcalc.formula.evaluator import EvalContext, FormulaEvaluator
    from dashcalc.formula.parser import Node


FUNCTION_CATEGORIES: dict[str, tuple[str, ...]] = {
    "aggregation": ("SUM", "AVG", "COUNT", "MIN", "MAX", "DISTINCT"),
    "conditional": ("IF", "SWITCH", "COALESCE"),
    "text": (
        "CONCATENATE",
        "CONCAT",
        "LEFT",
        "RIGHT",
        "MID",
        "LEN",
        "UPPER",
        "LOWER",
        "TRIM",
        "REPLACE",
        "SUBSTITUTE",
    ),
    "math": (
        "ROUND",
        "FLOOR",
        "CEIL",
        "CEILING",
        "ABS",
        "POWER",
        "POW",
        "SQRT",
        "MOD",
        "LOG",
        "LOG10",
        "EXP",
    ),
    "date": ("YEAR", "MONTH", "DAY", "TODAY", "NOW", "DATEDIFF", "DATEADD"),
    "conversion": ("TEXT", "VALUE", "INT", "FLOAT"),
    "logical": ("AND", "OR", "NOT", "TRUE", "FALSE"),
}

_CATEGORY_BY_NAME: dict[str, str] = {
    name: category for category, names in FUNCTION_CATEGORIES.items() for name in names
}

FUNCTION_NAMES: frozenset[str] = frozenset(_CATEGORY_BY_NAME)

# Parsed into Conditional / UnaryOp nodes, never dispatched as calls.
SYNTAX_FUNCTIONS: frozenset[str] = frozenset({"IF", "NOT"})


def is_function_name(name: str) -> bool:
    """Check whether an upper-cased identifier names a registry function."""
    return name in FUNCTION_NAMES


def function_category(name: str) -> str | None:
    """Get the category a function name belongs to."""
    return _CATEGORY_BY_NAME.get(name.upper())


@dataclass(frozen=True)
class FormulaFunction:
    """A dispatchable registry entry."""

    name: str
    category: str
    impl: Callable[..., Any]
    lazy: bool = False


# Registry of dispatchable formula functions
FORMULA_FUNCTIONS: dict[str, FormulaFunction] = {}


def register_function(name: str, lazy: bool = False) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Decorator binding an implementation to a registry name."""
    upper = name.upper()
    category = _CATEGORY_BY_NAME.get(upper)
    if category is None or upper in SYNTAX_FUNCTIONS:
        raise ValueError(f"{upper} is not a dispatchable registry function")

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        FORMULA_FUNCTIONS[upper] = FormulaFunction(upper, category, func, lazy)
        return func

    return decorator


def _arg(args: Sequence["Node"], index: int, name: str) -> "Node":
    """Fetch a required argument node or fail the evaluation."""
    if index >= len(args):
        raise FormulaEvaluationError(
            f"{name} expects at least {index + 1} argument(s), got {len(args)}",
            details={"function": name, "arguments": len(args)},
        )
    return args[index]


# =============================================================================
# Aggregation Functions
# =============================================================================
#
# Without a table (``context.all_rows`` is None) the aggregates degrade to the
# current row: SUM, AVG, MIN and MAX return their argument's value unchanged,
# COUNT and DISTINCT return 1.


def _per_row(
    evaluator: "FormulaEvaluator",
    node: "Node",
    context: "EvalContext",
) -> Iterator[Any]:
    """Re-evaluate ``node`` once for every row of the table."""
    for row in context.all_rows:
        yield evaluator.evaluate(node, context.with_row(row))


@register_function("SUM", lazy=True)
def func_sum(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> Any:
    """Sum of the argument over all rows."""
    node = _arg(args, 0, "SUM")
    if context.all_rows is None:
        return evaluator.evaluate(node, context)
    return sum((to_number(v) for v in _per_row(evaluator, node, context)), 0.0)


@register_function("AVG", lazy=True)
def func_avg(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> Any:
    """Mean of the argument over all rows."""
    node = _arg(args, 0, "AVG")
    if context.all_rows is None:
        return evaluator.evaluate(node, context)
    values = [to_number(v) for v in _per_row(evaluator, node, context)]
    if not values:
        raise FormulaEvaluationError("AVG over an empty row set")
    return sum(values) / len(values)


@register_function("COUNT", lazy=True)
def func_count(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> int:
    """Row count, or the number of rows where the argument is not blank."""
    if context.all_rows is None:
        return 1
    if not args:
        return len(context.all_rows)
    return sum(
        1 for v in _per_row(evaluator, args[0], context) if v is not None and v != ""
    )


@register_function("MIN", lazy=True)
def func_min(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> Any:
    """Smallest numeric value of the argument over all rows."""
    node = _arg(args, 0, "MIN")
    if context.all_rows is None:
        return evaluator.evaluate(node, context)
    values = [to_number(v) for v in _per_row(evaluator, node, context)]
    if not values:
        raise FormulaEvaluationError("MIN over an empty row set")
    return min(values)


@register_function("MAX", lazy=True)
def func_max(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> Any:
    """Largest numeric value of the argument over all rows."""
    node = _arg(args, 0, "MAX")
    if context.all_rows is None:
        return evaluator.evaluate(node, context)
    values = [to_number(v) for v in _per_row(evaluator, node, context)]
    if not values:
        raise FormulaEvaluationError("MAX over an empty row set")
    return max(values)


@register_function("DISTINCT", lazy=True)
def func_distinct(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> int:
    """Number of distinct values (compared as text) of the argument."""
    if context.all_rows is None:
        return 1
    node = _arg(args, 0, "DISTINCT")
    return len({to_text(v) for v in _per_row(evaluator, node, context)})


# =============================================================================
# Conditional Functions
# =============================================================================


@register_function("SWITCH", lazy=True)
def func_switch(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> Any:
    """SWITCH(expr, case1, result1, case2, result2, ..., [default])."""
    subject = evaluator.evaluate(_arg(args, 0, "SWITCH"), context)
    for i in range(1, len(args) - 1, 2):
        if values_equal(subject, evaluator.evaluate(args[i], context)):
            return evaluator.evaluate(args[i + 1], context)
    # subject + pairs + default gives an even argument count
    if len(args) > 1 and len(args) % 2 == 0:
        return evaluator.evaluate(args[-1], context)
    return None


@register_function("COALESCE", lazy=True)
def func_coalesce(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> Any:
    """First argument that is neither null nor an empty string."""
    for node in args:
        value = evaluator.evaluate(node, context)
        if value is not None and value != "":
            return value
    return None


# =============================================================================
# Text Functions
# =============================================================================


@register_function("CONCAT")
@register_function("CONCATENATE")
def func_concat(*values: Any) -> str:
    """Concatenate values into a string."""
    return "".join(to_text(v) for v in values)


@register_function("LEFT")
def func_left(text: Any, count: Any = 1) -> str:
    """Return leftmost characters."""
    return to_text(text)[: int(to_number(count))]


@register_function("RIGHT")
def func_right(text: Any, count: Any = 1) -> str:
    """Return rightmost characters."""
    n = int(to_number(count))
    return to_text(text)[-n:] if n > 0 else ""


@register_function("MID")
def func_mid(text: Any, start: Any, count: Any) -> str:
    """Return ``count`` characters from the 1-based ``start``."""
    begin = max(0, int(to_number(start)) - 1)
    return to_text(text)[begin : begin + max(0, int(to_number(count)))]


@register_function("LEN")
def func_len(text: Any) -> int:
    return len(to_text(text))


@register_function("UPPER")
def func_upper(text: Any) -> str:
    return to_text(text).upper()


@register_function("LOWER")
def func_lower(text: Any) -> str:
    return to_text(text).lower()


@register_function("TRIM")
def func_trim(text: Any) -> str:
    return to_text(text).strip()


@register_function("REPLACE")
def func_replace(text: Any, start: Any, count: Any, replacement: Any) -> str:
    """Replace ``count`` characters at the 1-based ``start``."""
    s = to_text(text)
    begin = max(0, int(to_number(start)) - 1)
    end = begin + max(0, int(to_number(count)))
    return s[:begin] + to_text(replacement) + s[end:]


@register_function("SUBSTITUTE")
def func_substitute(text: Any, old: Any, new: Any) -> str:
    """Replace every occurrence of ``old`` with ``new``."""
    s, find, replacement = to_text(text), to_text(old), to_text(new)
    if not find:
        # An empty search string lands between every pair of characters.
        return replacement.join(s)
    return s.replace(find, replacement)


# =============================================================================
# Math Functions
# =============================================================================


def _scaled(rounder: Callable[[float], float], value: Any, decimals: Any) -> float:
    factor = math.pow(10, to_number(decimals))
    return rounder(to_number(value) * factor) / factor


@register_function("ROUND")
def func_round(value: Any, decimals: Any = 0) -> float:
    """Round half up to ``decimals`` places."""
    return _scaled(lambda v: math.floor(v + 0.5), value, decimals)


@register_function("FLOOR")
def func_floor(value: Any, decimals: Any = 0) -> float:
    """Round down to ``decimals`` places."""
    return _scaled(math.floor, value, decimals)


@register_function("CEIL")
@register_function("CEILING")
def func_ceil(value: Any, decimals: Any = 0) -> float:
    """Round up to ``decimals`` places."""
    return _scaled(math.ceil, value, decimals)


@register_function("ABS")
def func_abs(value: Any) -> float:
    return abs(to_number(value))


@register_function("POW")
@register_function("POWER")
def func_power(base: Any, exponent: Any) -> float:
    return math.pow(to_number(base), to_number(exponent))


@register_function("SQRT")
def func_sqrt(value: Any) -> float:
    return math.sqrt(to_number(value))


@register_function("MOD")
def func_mod(value: Any, divisor: Any) -> float:
    """Remainder carrying the sign of the dividend."""
    return math.fmod(to_number(value), to_number(divisor))


@register_function("LOG")
def func_log(value: Any) -> float:
    """Natural logarithm."""
    return math.log(to_number(value))


@register_function("LOG10")
def func_log10(value: Any) -> float:
    return math.log10(to_number(value))


@register_function("EXP")
def func_exp(value: Any) -> float:
    return math.exp(to_number(value))


# =============================================================================
# Date Functions
# =============================================================================


@register_function("YEAR")
def func_year(value: Any) -> int | None:
    """Extract year from date."""
    d = to_date(value)
    return d.year if d else None


@register_function("MONTH")
def func_month(value: Any) -> int | None:
    """Extract month from date."""
    d = to_date(value)
    return d.month if d else None


@register_function("DAY")
def func_day(value: Any) -> int | None:
    """Extract day of month from date."""
    d = to_date(value)
    return d.day if d else None


@register_function("TODAY", lazy=True)
def func_today(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> str:
    """Current UTC date as YYYY-MM-DD."""
    return naive_utc(evaluator.clock.now()).date().isoformat()


@register_function("NOW", lazy=True)
def func_now(evaluator: "FormulaEvaluator", args: Sequence["Node"], context: "EvalContext") -> str:
    """Current UTC timestamp, ISO 8601 with milliseconds."""
    return naive_utc(evaluator.clock.now()).isoformat(timespec="milliseconds") + "Z"


@register_function("DATEDIFF")
def func_datediff(start: Any, end: Any) -> int | None:
    """Whole days from ``start`` to ``end``, floored."""
    d1 = to_date(start)
    d2 = to_date(end)
    if d1 is None or d2 is None:
        return None
    return math.floor((d2 - d1).total_seconds() / 86400)


@register_function("DATEADD")
def func_dateadd(value: Any, count: Any, unit: Any = "days") -> str | None:
    """Add time to date: DATEADD(date, count, 'days'|'weeks'|'months'|'years')."""
    moment = to_date(value)
    if moment is None:
        return None

    d = moment.date()
    amount = int(to_number(count))
    unit = to_text(unit).lower()

    if unit in ("day", "days", "d"):
        return (d + timedelta(days=amount)).isoformat()
    if unit in ("week", "weeks", "w"):
        return (d + timedelta(weeks=amount)).isoformat()
    if unit in ("month", "months", "m"):
        return _add_months(d, amount).isoformat()
    if unit in ("year", "years", "y"):
        return _add_months(d, amount * 12).isoformat()

    raise FormulaEvaluationError(f"Unknown DATEADD unit: {unit}", details={"unit": unit})


def _add_months(d: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


# =============================================================================
# Type Conversion Functions
# =============================================================================


@register_function("TEXT")
def func_text(value: Any) -> str:
    return to_text(value)


@register_function("FLOAT")
@register_function("VALUE")
def func_value(value: Any) -> float:
    return to_number(value)


@register_function("INT")
def func_int(value: Any) -> int:
    """Floor to an integer."""
    return math.floor(to_number(value))


# =============================================================================
# Logical Functions
# =============================================================================


@register_function("AND")
def func_and(*values: Any) -> float:
    """Logical AND; every argument has already been evaluated."""
    return 1.0 if all(to_bool(v) for v in values) else 0.0


@register_function("OR")
def func_or(*values: Any) -> float:
    """Logical OR; every argument has already been evaluated."""
    return 1.0 if any(to_bool(v) for v in values) else 0.0


@register_function("TRUE")
def func_true() -> float:
    return 1.0


@register_function("FALSE")
def func_false() -> float:
    return 0.0
