"""Public entry points of the formula engine.

Every function here is total: syntax errors come back as an ``error``
string and evaluation failures as ``None``, so a broken formula renders as
empty cells instead of breaking the table that uses it.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from dashcalc.core.config import settings
from dashcalc.core.exceptions import FormulaSyntaxError
from dashcalc.core.logging import get_logger
from dashcalc.formula.evaluator import Clock, EvalContext, FormulaEvaluator, Row
from dashcalc.formula.inference import classify_values
from dashcalc.formula.parser import Node, NumberLiteral, parse
from dashcalc.formula.validator import validate_ast
from dashcalc.schemas.column import Column, coerce_columns
from dashcalc.schemas.formula import (
    CompileResult,
    ComputedColumn,
    FormulaType,
    ValidationResult,
)

logger = get_logger(__name__)

ColumnsArg = Iterable[Column | Mapping[str, Any]]


def _debug_enabled(debug: bool | None) -> bool:
    return settings.formula_debug if debug is None else debug


def compile_formula(source: str, *, debug: bool | None = None) -> CompileResult:
    """
    Parse a formula into an AST.

    Args:
        source: Formula source text
        debug: Log the syntax error (defaults to settings.formula_debug)

    Returns:
        CompileResult with the AST, or a literal-zero AST and the error message
    """
    try:
        return CompileResult(ast=parse(source))
    except FormulaSyntaxError as e:
        error = e.message
    except RecursionError:
        error = "Formula is nested too deeply to parse"

    if _debug_enabled(debug):
        logger.debug("Formula compilation failed", extra={"formula": source, "error": error})
    return CompileResult(ast=NumberLiteral(0.0), error=error)


def _evaluate_safely(
    evaluator: FormulaEvaluator,
    ast: Node,
    context: EvalContext,
    debug: bool,
    row_index: int | None = None,
) -> Any:
    """Evaluate one row, turning any failure into None."""
    try:
        return evaluator.evaluate(ast, context)
    except Exception as e:
        if debug:
            logger.debug(
                "Formula evaluation failed",
                extra={"row_index": row_index, "error": str(e)},
                exc_info=True,
            )
        return None


def evaluate_formula(
    ast: Node,
    row: Row,
    columns: ColumnsArg,
    all_rows: Sequence[Row] | None = None,
    *,
    clock: Clock | None = None,
    debug: bool | None = None,
) -> Any:
    """
    Evaluate a compiled formula for a single row.

    Args:
        ast: Compiled formula
        row: Current row, keyed by column id
        columns: Column metadata
        all_rows: Full table, enabling whole-table aggregates
        clock: Time source for TODAY/NOW
        debug: Log evaluation failures (defaults to settings.formula_debug)

    Returns:
        The result value, or None if evaluation failed
    """
    context = EvalContext(row=row, columns=coerce_columns(columns), all_rows=all_rows)
    return _evaluate_safely(FormulaEvaluator(clock=clock), ast, context, _debug_enabled(debug))


def evaluate_formula_string(
    source: str,
    row: Row,
    columns: ColumnsArg,
    all_rows: Sequence[Row] | None = None,
    *,
    clock: Clock | None = None,
    debug: bool | None = None,
) -> Any:
    """Compile and evaluate a formula for a single row; None on any error."""
    compiled = compile_formula(source, debug=debug)
    if compiled.error:
        return None
    return evaluate_formula(compiled.ast, row, columns, all_rows, clock=clock, debug=debug)


def compute_column(
    source: str,
    rows: Sequence[Row],
    columns: ColumnsArg,
    *,
    clock: Clock | None = None,
    debug: bool | None = None,
) -> ComputedColumn:
    """
    Evaluate a formula for every row of a table.

    Each row is evaluated with the whole table available to aggregates.
    A failing row yields None without affecting the others.

    Args:
        source: Formula source text
        rows: Table rows
        columns: Column metadata
        clock: Time source for TODAY/NOW
        debug: Log failures (defaults to settings.formula_debug)

    Returns:
        ComputedColumn with exactly one value per row
    """
    compiled = compile_formula(source, debug=debug)
    if compiled.error:
        return ComputedColumn(values=[None] * len(rows), error=compiled.error)

    debug_on = _debug_enabled(debug)
    evaluator = FormulaEvaluator(clock=clock)
    resolved = coerce_columns(columns)
    values = [
        _evaluate_safely(
            evaluator,
            compiled.ast,
            EvalContext(row=row, columns=resolved, all_rows=rows),
            debug_on,
            row_index=index,
        )
        for index, row in enumerate(rows)
    ]
    return ComputedColumn(values=values)


def validate_formula(source: str, columns: ColumnsArg) -> ValidationResult:
    """
    Validate a formula without evaluating it.

    Args:
        source: Formula source text
        columns: Column metadata

    Returns:
        ValidationResult; invalid on syntax errors and unknown columns
    """
    compiled = compile_formula(source)
    if compiled.error:
        return ValidationResult(valid=False, error=compiled.error)
    return validate_ast(compiled.ast, coerce_columns(columns))


def infer_formula_type(
    source: str,
    columns: ColumnsArg,
    sample_rows: Sequence[Row],
    *,
    sample_size: int | None = None,
    clock: Clock | None = None,
) -> FormulaType:
    """
    Suggest a column type for a formula's results.

    Args:
        source: Formula source text
        columns: Column metadata
        sample_rows: Rows to sample; only the first few are evaluated
        sample_size: Rows to evaluate (defaults to settings)
        clock: Time source for TODAY/NOW

    Returns:
        FormulaType; STRING when there is nothing to go on
    """
    if not sample_rows:
        return FormulaType.STRING

    compiled = compile_formula(source)
    if compiled.error:
        return FormulaType.STRING

    limit = sample_size or settings.formula_inference_sample_size
    evaluator = FormulaEvaluator(clock=clock)
    resolved = coerce_columns(columns)
    values = [
        _evaluate_safely(evaluator, compiled.ast, EvalContext(row=row, columns=resolved), False)
        for row in sample_rows[:limit]
    ]
    return classify_values(values)
