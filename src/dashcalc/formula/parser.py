"""Formula parser for DashCalc.

Parses a token list into an immutable AST with precedence-climbing
recursive descent. Levels, lowest precedence first:

    or_expr     and_expr ( OR( expr, ... ) )*
    and_expr    comparison ( AND( expr, ... ) )*
    comparison  add_sub ( (= | <> | < | > | <= | >=) add_sub )*
    add_sub     mul_div ( (+ | - | &) mul_div )*
    mul_div     power ( (* | / | %) power )*
    power       unary ( ^ unary )*            left-associative
    unary       - unary | NOT( expr ) | primary
    primary     number | string | column | IF(c, t, f) | NAME( args ) | ( expr )

``x AND(y)`` is infix sugar: it becomes ``FunctionCall("AND", (x, y))``,
the same shape as a direct ``AND(x, y)`` call.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from dashcalc.core.exceptions import FormulaSyntaxError
from dashcalc.formula.lexer import Token, TokenKind, tokenize


# AST Node types
@dataclass(frozen=True)
class NumberLiteral:
    value: float


@dataclass(frozen=True)
class StringLiteral:
    value: str


@dataclass(frozen=True)
class ColumnRef:
    """Column name or id as written; resolved only at evaluation time."""

    name: str


@dataclass(frozen=True)
class BinaryOp:
    operator: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class UnaryOp:
    operator: str
    operand: "Node"


@dataclass(frozen=True)
class FunctionCall:
    name: str
    args: tuple["Node", ...]


@dataclass(frozen=True)
class Conditional:
    """IF(condition, when_true, when_false)."""

    condition: "Node"
    when_true: "Node"
    when_false: "Node"


Node = NumberLiteral | StringLiteral | ColumnRef | BinaryOp | UnaryOp | FunctionCall | Conditional

COMPARISON_OPERATORS = frozenset({"=", "<>", "<", ">", "<=", ">="})
ADDITIVE_OPERATORS = frozenset({"+", "-", "&"})
MULTIPLICATIVE_OPERATORS = frozenset({"*", "/", "%"})
POWER_OPERATORS = frozenset({"^"})
NEGATION_OPERATORS = frozenset({"-"})


class Parser:
    """
    Recursive-descent parser over a token list.

    A parser instance is single-use: construct it with the tokens of one
    formula and call ``parse`` once.
    """

    def __init__(self, tokens: list[Token]):
        if not tokens or tokens[-1].kind is not TokenKind.EOF:
            raise ValueError("Token list must end with an EOF token")
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> Node:
        """
        Parse the tokens into an AST.

        Tokens left over after one complete expression are ignored.

        Returns:
            AST root node

        Raises:
            FormulaSyntaxError: If an expected token is missing
        """
        return self._expression()

    # ==========================================================================
    # Token cursor
    # ==========================================================================

    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._current()
        # EOF is sticky
        if token.kind is not TokenKind.EOF:
            self._pos += 1
        return token

    def _expect(self, kind: TokenKind) -> Token:
        token = self._current()
        if token.kind is not kind:
            raise FormulaSyntaxError(
                f"Expected {kind.value} but got {token.kind.value} at position {token.position}",
                token_kind=token.kind.value,
                position=token.position,
            )
        return self._advance()

    def _at_operator(self, operators: frozenset[str]) -> bool:
        token = self._current()
        return token.kind is TokenKind.OPERATOR and token.value in operators

    def _at_function(self, name: str) -> bool:
        token = self._current()
        return token.kind is TokenKind.FUNCTION and token.value == name

    # ==========================================================================
    # Grammar
    # ==========================================================================

    def _expression(self) -> Node:
        return self._or()

    def _or(self) -> Node:
        left = self._and()
        while self._at_function("OR"):
            left = self._infix_call(left)
        return left

    def _and(self) -> Node:
        left = self._comparison()
        while self._at_function("AND"):
            left = self._infix_call(left)
        return left

    def _infix_call(self, left: Node) -> FunctionCall:
        """Fold ``left NAME(a, b, ...)`` into ``NAME(left, a, b, ...)``."""
        name = str(self._advance().value)
        self._expect(TokenKind.LPAREN)
        args = [left, self._expression()]
        while self._current().kind is TokenKind.COMMA:
            self._advance()
            args.append(self._expression())
        self._expect(TokenKind.RPAREN)
        return FunctionCall(name, tuple(args))

    def _comparison(self) -> Node:
        left = self._add_sub()
        while self._at_operator(COMPARISON_OPERATORS):
            op = str(self._advance().value)
            left = BinaryOp(op, left, self._add_sub())
        return left

    def _add_sub(self) -> Node:
        left = self._mul_div()
        while self._at_operator(ADDITIVE_OPERATORS):
            op = str(self._advance().value)
            left = BinaryOp(op, left, self._mul_div())
        return left

    def _mul_div(self) -> Node:
        left = self._power()
        while self._at_operator(MULTIPLICATIVE_OPERATORS):
            op = str(self._advance().value)
            left = BinaryOp(op, left, self._power())
        return left

    def _power(self) -> Node:
        left = self._unary()
        while self._at_operator(POWER_OPERATORS):
            self._advance()
            left = BinaryOp("^", left, self._unary())
        return left

    def _unary(self) -> Node:
        if self._at_operator(NEGATION_OPERATORS):
            self._advance()
            return UnaryOp("-", self._unary())
        if self._at_function("NOT"):
            self._advance()
            self._expect(TokenKind.LPAREN)
            operand = self._expression()
            self._expect(TokenKind.RPAREN)
            return UnaryOp("NOT", operand)
        return self._primary()

    def _primary(self) -> Node:
        token = self._current()

        if token.kind is TokenKind.NUMBER:
            self._advance()
            return NumberLiteral(float(token.value))

        if token.kind is TokenKind.STRING:
            self._advance()
            return StringLiteral(str(token.value))

        if token.kind in (TokenKind.COLUMN_REF, TokenKind.IDENTIFIER):
            self._advance()
            return ColumnRef(str(token.value))

        if token.kind is TokenKind.FUNCTION:
            name = str(self._advance().value)
            if name == "IF":
                return self._conditional()
            return self._call(name)

        if token.kind is TokenKind.LPAREN:
            self._advance()
            expr = self._expression()
            self._expect(TokenKind.RPAREN)
            return expr

        raise FormulaSyntaxError(
            f"Unexpected token {token.kind.value} at position {token.position}",
            token_kind=token.kind.value,
            position=token.position,
        )

    def _conditional(self) -> Conditional:
        """IF always takes exactly three arguments."""
        self._expect(TokenKind.LPAREN)
        condition = self._expression()
        self._expect(TokenKind.COMMA)
        when_true = self._expression()
        self._expect(TokenKind.COMMA)
        when_false = self._expression()
        self._expect(TokenKind.RPAREN)
        return Conditional(condition, when_true, when_false)

    def _call(self, name: str) -> FunctionCall:
        self._expect(TokenKind.LPAREN)
        args: list[Node] = []
        if self._current().kind is not TokenKind.RPAREN:
            args.append(self._expression())
            while self._current().kind is TokenKind.COMMA:
                self._advance()
                args.append(self._expression())
        self._expect(TokenKind.RPAREN)
        return FunctionCall(name, tuple(args))


def parse(source: str) -> Node:
    """
    Tokenize and parse a formula string.

    Args:
        source: Formula source text

    Returns:
        AST root node

    Raises:
        FormulaSyntaxError: If the formula is malformed
    """
    return Parser(tokenize(source)).parse()


def iter_column_refs(node: Node) -> Iterator[ColumnRef]:
    """Yield every column reference in the tree, depth-first, left to right."""
    if isinstance(node, ColumnRef):
        yield node
    elif isinstance(node, BinaryOp):
        yield from iter_column_refs(node.left)
        yield from iter_column_refs(node.right)
    elif isinstance(node, UnaryOp):
        yield from iter_column_refs(node.operand)
    elif isinstance(node, FunctionCall):
        for arg in node.args:
            yield from iter_column_refs(arg)
    elif isinstance(node, Conditional):
        yield from iter_column_refs(node.condition)
        yield from iter_column_refs(node.when_true)
        yield from iter_column_refs(node.when_false)
