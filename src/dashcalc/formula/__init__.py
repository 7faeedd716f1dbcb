"""Formula engine for DashCalc.

This module provides a complete formula evaluation system supporting:
- Arithmetic operations (+, -, *, /, %, ^)
- Comparison operations (=, <>, <, >, <=, >=)
- String concatenation (&)
- Logical operations (AND, OR, NOT)
- Aggregations over the whole table (SUM, AVG, COUNT, MIN, MAX, DISTINCT)
- Conditional, text, math, date and conversion functions
- Column references ([Column Name] or a bare identifier)
"""

from dashcalc.formula.api import (
    compile_formula,
    compute_column,
    evaluate_formula,
    evaluate_formula_string,
    infer_formula_type,
    validate_formula,
)
from dashcalc.formula.evaluator import EvalContext, FixedClock, FormulaEvaluator, SystemClock
from dashcalc.formula.functions import FORMULA_FUNCTIONS, FUNCTION_CATEGORIES
from dashcalc.formula.lexer import Token, TokenKind, tokenize
from dashcalc.formula.parser import Parser, iter_column_refs, parse

__all__ = [
    "EvalContext",
    "FORMULA_FUNCTIONS",
    "FUNCTION_CATEGORIES",
    "FixedClock",
    "FormulaEvaluator",
    "Parser",
    "SystemClock",
    "Token",
    "TokenKind",
    "compile_formula",
    "compute_column",
    "evaluate_formula",
    "evaluate_formula_string",
    "infer_formula_type",
    "iter_column_refs",
    "parse",
    "tokenize",
    "validate_formula",
]
