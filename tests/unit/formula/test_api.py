"""Unit tests for the public formula API."""

import logging

import pytest

from dashcalc import (
    FormulaType,
    compile_formula,
    compute_column,
    evaluate_formula,
    evaluate_formula_string,
    infer_formula_type,
    validate_formula,
)
from dashcalc.formula.parser import NumberLiteral

XY = [{"id": "x", "name": "x"}, {"id": "y", "name": "y"}]


class TestCompileFormula:
    """Tests for compile_formula()."""

    def test_success(self):
        """Test a valid formula compiles without error."""
        result = compile_formula('IF([Revenue]>1000,"High",SUM([Cost])*1.1)')
        assert result.ok
        assert result.error is None

    def test_syntax_error_returns_zero_ast(self):
        """Test a syntax error yields a literal zero and a message."""
        result = compile_formula("1 + * 2")
        assert not result.ok
        assert result.ast == NumberLiteral(0.0)
        assert result.error == "Unexpected token OPERATOR at position 4"

    def test_deep_nesting_is_reported(self):
        """Test runaway nesting is a compile error, not a crash."""
        source = "(" * 5000 + "1" + ")" * 5000
        result = compile_formula(source)
        assert result.error == "Formula is nested too deeply to parse"

    def test_compile_is_deterministic(self, columns, rows):
        """Test compiling twice evaluates identically."""
        source = "[Revenue] / SUM([Revenue])"
        first = compile_formula(source).ast
        second = compile_formula(source).ast
        assert first == second
        assert evaluate_formula(first, rows[0], columns, rows) == evaluate_formula(
            second, rows[0], columns, rows
        )

    def test_debug_logs_compile_failure(self, caplog):
        """Test debug mode logs syntax errors."""
        caplog.set_level(logging.DEBUG, logger="dashcalc.formula.api")
        compile_formula("SUM(", debug=True)
        assert "Formula compilation failed" in caplog.text


class TestEvaluateFormulaString:
    """Tests for evaluate_formula_string()."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("2+3*4", 14.0),
            ("(2+3)*4", 20.0),
            ("2^3^2", 64.0),
            ("5=5.0", 1.0),
            ("'a'<>'b'", 1.0),
            ('CONCATENATE("foo","bar")', "foobar"),
            ('"foo"&"bar"', "foobar"),
            ("ROUND(3.14159,2)", 3.14),
            ("FLOOR(3.7)", 3.0),
            ("ABS(-5)", 5.0),
            ('"abc"+1', 1.0),
        ],
    )
    def test_expressions(self, source, expected):
        """Test literal-only formulas."""
        assert evaluate_formula_string(source, {}, []) == expected

    def test_if_with_columns(self):
        """Test IF picks a branch per row."""
        assert evaluate_formula_string("IF([x]>5,10,1)", {"x": 7}, XY) == 10.0
        assert evaluate_formula_string("IF([x]>5,10,1)", {"x": 2}, XY) == 1.0

    def test_if_with_text_branches(self):
        """Test IF returns string branches unchanged."""
        source = 'IF([x]>5,"big","small")'
        assert evaluate_formula_string(source, {"x": 10}, XY) == "big"
        assert evaluate_formula_string(source, {"x": 1}, XY) == "small"

    def test_sum_with_table(self):
        """Test SUM ranges over all_rows."""
        table = [{"y": 1}, {"y": 2}, {"y": 3}]
        assert evaluate_formula_string("SUM([y])", table[0], XY, table) == 6.0

    def test_sum_without_table(self):
        """Test SUM falls back to the current row."""
        assert evaluate_formula_string("SUM([y])", {"y": 5}, XY) == 5.0

    def test_aggregates_without_table_keep_row_value(self):
        """Test the single-row fallback neither coerces nor skips blanks."""
        columns = [{"id": "r", "name": "Region"}, {"id": "b", "name": "B"}]
        assert evaluate_formula_string("SUM([Region])", {"r": "North"}, columns) == "North"
        assert evaluate_formula_string("COUNT([B])", {"b": None}, columns) == 1

    def test_syntax_error_is_none(self):
        """Test a formula that does not compile evaluates to None."""
        assert evaluate_formula_string("1 +", {}, []) is None

    def test_runtime_errors_are_none(self, columns):
        """Test evaluation failures become None."""
        assert evaluate_formula_string("1/0", {}, []) is None
        assert evaluate_formula_string("SQRT(-1)", {}, []) is None
        assert evaluate_formula_string("[NoSuchCol]", {}, columns) is None

    def test_today_with_clock(self, fixed_clock):
        """Test the clock is threaded through."""
        assert evaluate_formula_string("TODAY()", {}, [], clock=fixed_clock) == "2024-06-15"

    def test_debug_logs_evaluation_failure(self, caplog):
        """Test debug mode logs evaluation failures."""
        caplog.set_level(logging.DEBUG, logger="dashcalc.formula.api")
        assert evaluate_formula_string("1/0", {}, [], debug=True) is None
        assert "Formula evaluation failed" in caplog.text

    def test_no_logging_without_debug(self, caplog):
        """Test failures are silent when debug is off."""
        caplog.set_level(logging.DEBUG, logger="dashcalc.formula.api")
        assert evaluate_formula_string("1/0", {}, [], debug=False) is None
        assert "Formula evaluation failed" not in caplog.text


class TestComputeColumn:
    """Tests for compute_column()."""

    def test_one_value_per_row(self, columns, rows):
        """Test a column of results with aggregates over the table."""
        result = compute_column("[Revenue] / SUM([Revenue])", rows, columns)
        assert result.error is None
        assert result.values == pytest.approx([0.3, 0.125, 0.575])

    def test_syntax_error_keeps_length(self, columns, rows):
        """Test a compile failure still returns one slot per row."""
        result = compute_column("SUM([Revenue]", rows, columns)
        assert result.values == [None, None, None]
        assert result.error.startswith("Expected RPAREN")

    def test_failing_row_is_isolated(self):
        """Test a row that fails does not affect the others."""
        table = [{"x": 2}, {"x": 0}, {"x": 4}]
        result = compute_column("8 / [x]", table, XY)
        assert result.values == [4.0, None, 2.0]

    def test_empty_table(self, columns):
        """Test an empty table yields an empty column."""
        assert compute_column("[Revenue]", [], columns).values == []

    def test_columns_as_mappings(self, rows):
        """Test column metadata may be plain mappings."""
        columns = [{"id": "col_region", "name": "Region", "type": "string"}]
        result = compute_column('UPPER(LEFT([Region], 1)) & "!"', rows, columns)
        assert result.values == ["N!", "S!", "N!"]


class TestValidateFormula:
    """Tests for validate_formula()."""

    def test_valid(self, columns):
        """Test a formula over known columns."""
        assert validate_formula("[Revenue] - [Cost]", columns).valid

    def test_unknown_column(self, columns):
        """Test an unknown column invalidates the formula."""
        result = validate_formula("[NoSuchCol]+1", columns)
        assert not result.valid
        assert "NoSuchCol" in result.error

    def test_syntax_error(self, columns):
        """Test a syntax error invalidates the formula."""
        result = validate_formula("IF(1, 2)", columns)
        assert not result.valid
        assert result.error == "Expected COMMA but got RPAREN at position 7"


class TestInferFormulaType:
    """Tests for infer_formula_type()."""

    def test_number(self, columns, rows):
        """Test arithmetic over numeric columns."""
        assert infer_formula_type("[Revenue] * 2", columns, rows) == FormulaType.NUMBER

    def test_comparison_is_number(self, columns, rows):
        """Test comparisons yield numbers, which are checked first."""
        assert infer_formula_type("[Revenue] > 1000", columns, rows) == FormulaType.NUMBER

    def test_string(self, columns, rows):
        """Test text results."""
        assert infer_formula_type("[Region]", columns, rows) == FormulaType.STRING

    def test_date(self, columns, rows, fixed_clock):
        """Test date columns and date functions."""
        assert infer_formula_type("[Order Date]", columns, rows) == FormulaType.DATE
        assert (
            infer_formula_type('DATEADD([Order Date], 1, "months")', columns, rows)
            == FormulaType.DATE
        )
        assert infer_formula_type("TODAY()", columns, rows, clock=fixed_clock) == FormulaType.DATE

    def test_no_sample_rows(self, columns):
        """Test an empty sample."""
        assert infer_formula_type("[Revenue] * 2", columns, []) == FormulaType.STRING

    def test_syntax_error(self, columns, rows):
        """Test a formula that does not compile."""
        assert infer_formula_type("1 +", columns, rows) == FormulaType.STRING

    def test_every_row_fails(self, columns, rows):
        """Test all-null results fall back to string."""
        assert infer_formula_type("[Nope]", columns, rows) == FormulaType.STRING

    def test_sample_size_limits_rows(self, columns):
        """Test only the first rows are sampled."""
        sample = [{"col_region": "2024-01-01"}, {"col_region": "North"}]
        assert infer_formula_type("[Region]", columns, sample, sample_size=1) == FormulaType.DATE
        assert infer_formula_type("[Region]", columns, sample) == FormulaType.STRING
