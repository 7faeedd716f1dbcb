"""Schemas for the DashCalc formula API."""

from dashcalc.schemas.column import Column, ColumnType, coerce_columns
from dashcalc.schemas.formula import (
    CompileResult,
    ComputedColumn,
    FormulaType,
    ValidationResult,
)

__all__ = [
    "Column",
    "ColumnType",
    "CompileResult",
    "ComputedColumn",
    "FormulaType",
    "ValidationResult",
    "coerce_columns",
]
