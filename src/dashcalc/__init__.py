"""
DashCalc - formula engine for computed dashboard columns.

Compiles spreadsheet-like formulas such as
``IF([Revenue]>1000,"High",SUM([Cost])*1.1)`` and evaluates them per row,
with whole-table aggregates when the full row set is available.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from dashcalc.formula import (
    compile_formula,
    compute_column,
    evaluate_formula,
    evaluate_formula_string,
    infer_formula_type,
    validate_formula,
)
from dashcalc.schemas import Column, ColumnType, FormulaType

__all__ = [
    "Column",
    "ColumnType",
    "FormulaType",
    "__version__",
    "compile_formula",
    "compute_column",
    "evaluate_formula",
    "evaluate_formula_string",
    "infer_formula_type",
    "validate_formula",
]
