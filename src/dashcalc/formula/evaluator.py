"""Formula evaluator for DashCalc.

Walks a parsed AST against one row of data. Column references resolve
through the column metadata in the context; aggregate functions re-evaluate
their argument for every row of ``all_rows`` when a full table is present.

Failures raise: unknown columns, missing arguments, math domain errors.
The public API in ``dashcalc.formula.api`` turns any of them into ``None``.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Protocol

from dashcalc.core.config import settings
from dashcalc.core.exceptions import (
    EvaluationDepthError,
    FormulaEvaluationError,
    UnknownColumnError,
    UnknownFunctionError,
)
from dashcalc.formula.coercion import to_bool, to_number, to_text, values_equal
from dashcalc.formula.columns import resolve_column
from dashcalc.formula.functions import FORMULA_FUNCTIONS
from dashcalc.formula.parser import (
    BinaryOp,
    ColumnRef,
    Conditional,
    FunctionCall,
    Node,
    NumberLiteral,
    StringLiteral,
    UnaryOp,
)
from dashcalc.schemas.column import Column

Row = Mapping[str, Any]


class Clock(Protocol):
    """Source of the current time for TODAY() and NOW()."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock frozen at one moment, for deterministic evaluation."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


@dataclass(frozen=True)
class EvalContext:
    """
    What a formula is evaluated against.

    Attributes:
        row: Current row, keyed by column id
        columns: Column metadata used to resolve references
        all_rows: Full table for aggregates; None when only the row is known
        depth: Nesting depth of the node being evaluated
    """

    row: Row
    columns: Sequence[Column]
    all_rows: Sequence[Row] | None = None
    depth: int = 0

    def with_row(self, row: Row) -> "EvalContext":
        """Same columns and table, different current row."""
        return replace(self, row=row)


class FormulaEvaluator:
    """
    Evaluates formula ASTs against an evaluation context.

    The evaluator holds no per-evaluation state; nesting depth travels in the
    context, so one instance can evaluate many rows, concurrently if needed.
    """

    def __init__(self, clock: Clock | None = None, max_depth: int | None = None):
        """
        Initialize evaluator.

        Args:
            clock: Time source for TODAY/NOW (defaults to the UTC wall clock)
            max_depth: Maximum nesting depth (defaults to settings)
        """
        self.clock = clock or SystemClock()
        self.max_depth = max_depth or settings.formula_max_depth

    def evaluate(self, node: Node, context: EvalContext) -> Any:
        """
        Evaluate an AST node.

        Args:
            node: AST node to evaluate
            context: Row, columns and optional table

        Returns:
            A number, a string or None

        Raises:
            FormulaEvaluationError: If a column or function cannot be resolved,
                arguments are missing, or nesting is too deep
            ArithmeticError, ValueError: On math domain errors
        """
        depth = context.depth + 1
        if depth > self.max_depth:
            raise EvaluationDepthError(self.max_depth)
        return self._eval(node, replace(context, depth=depth))

    def _eval(self, node: Node, context: EvalContext) -> Any:
        if isinstance(node, (NumberLiteral, StringLiteral)):
            return node.value

        if isinstance(node, ColumnRef):
            column = resolve_column(context.columns, node.name)
            if column is None:
                raise UnknownColumnError(node.name)
            return context.row.get(column.id)

        if isinstance(node, BinaryOp):
            return self._eval_binary(node, context)

        if isinstance(node, UnaryOp):
            return self._eval_unary(node, context)

        if isinstance(node, Conditional):
            # Only the taken branch is evaluated.
            if to_bool(self.evaluate(node.condition, context)):
                return self.evaluate(node.when_true, context)
            return self.evaluate(node.when_false, context)

        if isinstance(node, FunctionCall):
            return self._eval_function(node, context)

        raise FormulaEvaluationError(f"Unknown node type: {type(node).__name__}")

    def _eval_function(self, node: FunctionCall, context: EvalContext) -> Any:
        """Dispatch a function call through the registry."""
        func = FORMULA_FUNCTIONS.get(node.name)
        if func is None:
            raise UnknownFunctionError(node.name)

        if func.lazy:
            return func.impl(self, node.args, context)

        args = [self.evaluate(arg, context) for arg in node.args]
        try:
            return func.impl(*args)
        except TypeError as e:
            raise FormulaEvaluationError(
                f"Invalid arguments for {node.name}: {e}",
                details={"function": node.name, "arguments": len(args)},
            ) from e

    def _eval_binary(self, node: BinaryOp, context: EvalContext) -> Any:
        """Evaluate a binary operation."""
        left = self.evaluate(node.left, context)
        right = self.evaluate(node.right, context)
        op = node.operator

        # String concatenation
        if op == "&":
            return to_text(left) + to_text(right)

        # Equality compares numbers or text depending on the operands
        if op == "=":
            return 1.0 if values_equal(left, right) else 0.0
        if op == "<>":
            return 0.0 if values_equal(left, right) else 1.0

        a = to_number(left)
        b = to_number(right)

        # Arithmetic operators
        if op == "+":
            return a + b
        if op == "-":
            return a - b
        if op == "*":
            return a * b
        if op == "/":
            return a / b
        if op == "%":
            return math.fmod(a, b)
        if op == "^":
            return math.pow(a, b)

        # Ordering operators are always numeric
        if op == "<":
            return 1.0 if a < b else 0.0
        if op == ">":
            return 1.0 if a > b else 0.0
        if op == "<=":
            return 1.0 if a <= b else 0.0
        if op == ">=":
            return 1.0 if a >= b else 0.0

        raise FormulaEvaluationError(f"Unknown operator: {op}")

    def _eval_unary(self, node: UnaryOp, context: EvalContext) -> Any:
        """Evaluate a unary operation."""
        operand = self.evaluate(node.operand, context)

        if node.operator == "-":
            return -to_number(operand)
        if node.operator == "NOT":
            return 0.0 if to_bool(operand) else 1.0

        raise FormulaEvaluationError(f"Unknown unary operator: {node.operator}")
