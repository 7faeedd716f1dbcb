"""Result schemas returned by the formula API."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class FormulaType(str, Enum):
    """Result type suggested for a computed column."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class CompileResult(BaseModel):
    """Compiled formula: the AST, plus the syntax error when compilation failed."""

    ast: Any = Field(..., description="Root AST node; a literal zero when compilation failed")
    error: str | None = Field(None, description="Syntax error message")

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        """Whether the formula compiled cleanly."""
        return self.error is None


class ComputedColumn(BaseModel):
    """Values of a computed column, one slot per input row."""

    values: list[Any] = Field(default_factory=list, description="Per-row results")
    error: str | None = Field(None, description="Compile error, if any")


class ValidationResult(BaseModel):
    """Outcome of validating a formula against column metadata."""

    valid: bool
    error: str | None = None
