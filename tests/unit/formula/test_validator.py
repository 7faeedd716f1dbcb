"""Unit tests for formula validation."""

from dashcalc.formula.columns import resolve_column
from dashcalc.formula.parser import parse
from dashcalc.formula.validator import validate_ast


class TestValidateAst:
    """Tests for validate_ast()."""

    def test_known_columns(self, columns):
        """Test a formula referencing existing columns."""
        result = validate_ast(parse("[Revenue] - [Cost]"), columns)
        assert result.valid
        assert result.error is None

    def test_unknown_column(self, columns):
        """Test the error names the unresolved column."""
        result = validate_ast(parse("[NoSuchCol]+1"), columns)
        assert not result.valid
        assert result.error == "Unknown column: NoSuchCol"

    def test_first_unknown_column_is_reported(self, columns):
        """Test only the first unresolved reference is named."""
        result = validate_ast(parse("[Nope1] + [Revenue] + [Nope2]"), columns)
        assert result.error == "Unknown column: Nope1"

    def test_references_inside_untaken_branches(self, columns):
        """Test validation inspects every branch."""
        result = validate_ast(parse("IF(1, [Revenue], [Missing])"), columns)
        assert not result.valid

    def test_function_arity_not_checked(self, columns):
        """Test calls with odd argument counts still validate."""
        assert validate_ast(parse("LEN()"), columns).valid


class TestResolveColumn:
    """Tests for resolve_column()."""

    def test_id_before_name(self, columns):
        """Test an exact id match wins."""
        assert resolve_column(columns, "col_cost").name == "Cost"

    def test_exact_name(self, columns):
        """Test an exact name match."""
        assert resolve_column(columns, "Order Date").id == "col_date"

    def test_case_insensitive_fallback(self, columns):
        """Test the case-insensitive pass covers names and ids."""
        assert resolve_column(columns, "order date").id == "col_date"
        assert resolve_column(columns, "COL_REGION").name == "Region"

    def test_no_match(self, columns):
        """Test an unknown name."""
        assert resolve_column(columns, "Profit") is None
