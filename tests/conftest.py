"""
Pytest configuration and fixtures for DashCalc tests.
"""

from datetime import datetime, timezone
from typing import Any

import pytest

from dashcalc.formula.evaluator import FixedClock
from dashcalc.schemas.column import Column, ColumnType


@pytest.fixture
def columns() -> list[Column]:
    """Column metadata for a small sales table."""
    return [
        Column(id="col_region", name="Region", type=ColumnType.STRING),
        Column(id="col_revenue", name="Revenue", type=ColumnType.NUMBER),
        Column(id="col_cost", name="Cost", type=ColumnType.NUMBER),
        Column(id="col_date", name="Order Date", type=ColumnType.DATE),
        Column(id="x", name="x", type=ColumnType.NUMBER),
        Column(id="y", name="y", type=ColumnType.NUMBER),
    ]


@pytest.fixture
def rows() -> list[dict[str, Any]]:
    """Rows of the sales table, keyed by column id."""
    return [
        {"col_region": "North", "col_revenue": 1200, "col_cost": 800, "col_date": "2024-01-15"},
        {"col_region": "South", "col_revenue": 500, "col_cost": 450, "col_date": "2024-02-01"},
        {"col_region": "North", "col_revenue": "$2,300", "col_cost": 1000, "col_date": "2024-03-10"},
    ]


@pytest.fixture
def fixed_clock() -> FixedClock:
    """Clock frozen at 2024-06-15 12:30:45 UTC."""
    return FixedClock(datetime(2024, 6, 15, 12, 30, 45, tzinfo=timezone.utc))
