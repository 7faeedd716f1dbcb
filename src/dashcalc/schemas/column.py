"""Column metadata schemas."""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ColumnType(str, Enum):
    """Declared column types. Advisory only; values are never checked against them."""

    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"


class Column(BaseModel):
    """A column of the tabular data a formula is evaluated over."""

    id: str = Field(..., description="Column ID, the key used in row mappings")
    name: str = Field(..., description="Display name")
    type: ColumnType = Field(default=ColumnType.STRING, description="Declared value type")

    model_config = {"frozen": True}


def coerce_columns(columns: Iterable[Column | Mapping[str, Any]]) -> list[Column]:
    """Accept columns as models or plain mappings and return models."""
    return [c if isinstance(c, Column) else Column.model_validate(c) for c in columns]
