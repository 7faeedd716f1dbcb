"""
Custom exceptions for DashCalc.

Provides a hierarchy of exceptions that carry a machine-readable code
and structured error details.
"""

from typing import Any


class DashCalcException(Exception):
    """
    Base exception for all DashCalc errors.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a serializable dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Formula Errors
# =============================================================================


class FormulaError(DashCalcException):
    """Formula parsing or execution error."""


class FormulaSyntaxError(FormulaError):
    """The parser met a token it did not expect."""

    def __init__(self, message: str, token_kind: str, position: int) -> None:
        super().__init__(
            message=message,
            code="FORMULA_SYNTAX_ERROR",
            details={"token_kind": token_kind, "position": position},
        )
        self.token_kind = token_kind
        self.position = position


class FormulaEvaluationError(FormulaError):
    """Evaluation of a well-formed formula failed."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            message=message,
            code="FORMULA_EVALUATION_ERROR",
            details=details,
        )


class UnknownColumnError(FormulaEvaluationError):
    """A column reference does not resolve against the column metadata."""

    def __init__(self, column_name: str) -> None:
        super().__init__(
            message=f"Unknown column: {column_name}",
            details={"column_name": column_name},
        )
        self.code = "UNKNOWN_COLUMN"
        self.column_name = column_name


class UnknownFunctionError(FormulaEvaluationError):
    """A function call names no dispatchable function."""

    def __init__(self, function_name: str) -> None:
        super().__init__(
            message=f"Unknown function: {function_name}",
            details={"function_name": function_name},
        )
        self.code = "UNKNOWN_FUNCTION"


class EvaluationDepthError(FormulaEvaluationError):
    """The AST is nested deeper than the evaluator is allowed to walk."""

    def __init__(self, max_depth: int) -> None:
        super().__init__(
            message=f"Formula nesting exceeds maximum depth of {max_depth}",
            details={"max_depth": max_depth},
        )
        self.code = "EVALUATION_DEPTH_EXCEEDED"
