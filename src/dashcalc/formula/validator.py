"""Structural formula validation.

Checks that a formula parses and that every column it references exists,
without evaluating anything. Function arity is not checked here; only IF
has a fixed arity, and the parser already enforces it.
"""

from collections.abc import Sequence

from dashcalc.formula.columns import resolve_column
from dashcalc.formula.parser import Node, iter_column_refs
from dashcalc.schemas.column import Column
from dashcalc.schemas.formula import ValidationResult


def validate_ast(ast: Node, columns: Sequence[Column]) -> ValidationResult:
    """
    Check every column reference of a parsed formula.

    Args:
        ast: Parsed formula
        columns: Column metadata to resolve against

    Returns:
        ValidationResult naming the first unknown column, if any
    """
    for ref in iter_column_refs(ast):
        if resolve_column(columns, ref.name) is None:
            return ValidationResult(valid=False, error=f"Unknown column: {ref.name}")
    return ValidationResult(valid=True)
