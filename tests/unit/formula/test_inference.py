"""Unit tests for result type inference."""

from datetime import date

from dashcalc.formula.inference import classify_values
from dashcalc.schemas.formula import FormulaType


class TestClassifyValues:
    """Tests for classify_values()."""

    def test_numbers(self):
        """Test numeric results."""
        assert classify_values([1.0, 2.5, -3]) == FormulaType.NUMBER

    def test_zero_one_is_number(self):
        """Test 0/1 results stay numbers because numbers are checked first."""
        assert classify_values([0.0, 1.0]) == FormulaType.NUMBER

    def test_booleans(self):
        """Test real booleans."""
        assert classify_values([True, False]) == FormulaType.BOOLEAN

    def test_dates(self):
        """Test date strings and date objects."""
        assert classify_values(["2024-01-15", "2024-02-01"]) == FormulaType.DATE
        assert classify_values([date(2024, 1, 1)]) == FormulaType.DATE

    def test_strings(self):
        """Test free text."""
        assert classify_values(["North", "South"]) == FormulaType.STRING

    def test_mixed_falls_back_to_string(self):
        """Test values of different kinds."""
        assert classify_values([1.0, "North"]) == FormulaType.STRING

    def test_nulls_are_ignored(self):
        """Test failed evaluations do not influence the result."""
        assert classify_values([None, 4.0, None]) == FormulaType.NUMBER

    def test_nothing_to_classify(self):
        """Test empty and all-null samples."""
        assert classify_values([]) == FormulaType.STRING
        assert classify_values([None, None]) == FormulaType.STRING
