"""Result type inference for computed columns.

Evaluates a formula against a few sample rows and classifies the results.
Detection order: number, boolean, date, string. Because the numeric check
runs first, a formula that only ever yields 0 and 1 is reported as a number.
"""

from collections.abc import Callable, Sequence
from datetime import date
from typing import Any

from dashcalc.formula.coercion import is_number, to_date
from dashcalc.schemas.formula import FormulaType


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool) or (is_number(value) and value in (0, 1))


def _is_date(value: Any) -> bool:
    if isinstance(value, date):
        return True
    return isinstance(value, str) and to_date(value) is not None


_DETECTORS: tuple[tuple[FormulaType, Callable[[Any], bool]], ...] = (
    (FormulaType.NUMBER, is_number),
    (FormulaType.BOOLEAN, _is_boolean),
    (FormulaType.DATE, _is_date),
)


def classify_values(values: Sequence[Any]) -> FormulaType:
    """
    Classify sample results.

    Args:
        values: Evaluated sample results; None entries are ignored

    Returns:
        The first type every non-null value satisfies, else STRING
    """
    present = [v for v in values if v is not None]
    if not present:
        return FormulaType.STRING

    for formula_type, detector in _DETECTORS:
        if all(detector(v) for v in present):
            return formula_type
    return FormulaType.STRING
