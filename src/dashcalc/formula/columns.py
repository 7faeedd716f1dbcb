"""Column reference resolution shared by the evaluator and the validator."""

from collections.abc import Sequence

from dashcalc.schemas.column import Column


def resolve_column(columns: Sequence[Column], name: str) -> Column | None:
    """
    Resolve a column reference against column metadata.

    Tries an exact id match, then an exact name match, then a
    case-insensitive match on name or id. The first hit wins.

    Args:
        columns: Column metadata
        name: Column name or id as written in the formula

    Returns:
        Matching column, or None if nothing matches
    """
    for column in columns:
        if column.id == name:
            return column
    for column in columns:
        if column.name == name:
            return column

    lowered = name.lower()
    for column in columns:
        if column.name.lower() == lowered or column.id.lower() == lowered:
            return column
    return None
