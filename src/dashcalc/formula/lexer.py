"""Tokenizer for DashCalc formulas.

Turns formula source into a flat token list. Tokenizing never fails:
characters that start no token are dropped, so a partially typed formula
still produces something the parser can look at.

Lexical forms:
- Numbers: 12, 3.5, .5 (sign is a unary operator, not part of the literal)
- Strings: "text" or 'text', backslash escapes the next character
- Column references: [Column Name] or a bare identifier such as Revenue
- Functions: registry names, matched case-insensitively
- Booleans: TRUE / FALSE, folded into the numbers 1 / 0
- Operators: + - * / % ^ & = <> < > <= >=
"""

import re
from dataclasses import dataclass
from enum import Enum

from dashcalc.formula.functions import is_function_name


class TokenKind(str, Enum):
    """Token classifications."""

    NUMBER = "NUMBER"
    STRING = "STRING"
    IDENTIFIER = "IDENTIFIER"
    FUNCTION = "FUNCTION"
    OPERATOR = "OPERATOR"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    COMMA = "COMMA"
    COLUMN_REF = "COLUMN_REF"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: float | str
    position: int


TWO_CHAR_OPERATORS = ("<>", "<=", ">=")
SINGLE_CHAR_OPERATORS = frozenset("+-*/%^&=<>")

_NUMBER_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?|\.[0-9]+")
_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_BOOLEAN_LITERALS = {"TRUE": 1.0, "FALSE": 0.0}
_PUNCTUATION = {"(": TokenKind.LPAREN, ")": TokenKind.RPAREN, ",": TokenKind.COMMA}


def tokenize(source: str) -> list[Token]:
    """
    Convert a formula string into tokens.

    Args:
        source: Formula source text

    Returns:
        Tokens in source order, always terminated by a single EOF token
    """
    tokens: list[Token] = []
    pos = 0
    length = len(source)

    while pos < length:
        char = source[pos]

        if char.isspace():
            pos += 1
            continue

        match = _NUMBER_RE.match(source, pos)
        if match:
            tokens.append(Token(TokenKind.NUMBER, float(match.group()), pos))
            pos = match.end()
            continue

        if char in ('"', "'"):
            value, end = _read_string(source, pos)
            tokens.append(Token(TokenKind.STRING, value, pos))
            pos = end
            continue

        if char == "[":
            close = source.find("]", pos + 1)
            end = length if close == -1 else close
            tokens.append(Token(TokenKind.COLUMN_REF, source[pos + 1 : end], pos))
            pos = end + 1
            continue

        if char in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[char], char, pos))
            pos += 1
            continue

        two_char = source[pos : pos + 2]
        if two_char in TWO_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, two_char, pos))
            pos += 2
            continue

        if char in SINGLE_CHAR_OPERATORS:
            tokens.append(Token(TokenKind.OPERATOR, char, pos))
            pos += 1
            continue

        match = _IDENTIFIER_RE.match(source, pos)
        if match:
            tokens.append(_classify_identifier(source, match))
            pos = match.end()
            continue

        # Unknown character: dropped without a token.
        pos += 1

    tokens.append(Token(TokenKind.EOF, "", length))
    return tokens


def _read_string(source: str, start: int) -> tuple[str, int]:
    """Read a quoted literal starting at ``start``; return (value, end offset)."""
    quote = source[start]
    chars: list[str] = []
    pos = start + 1
    while pos < len(source) and source[pos] != quote:
        if source[pos] == "\\" and pos + 1 < len(source):
            pos += 1
        chars.append(source[pos])
        pos += 1
    # Skip the closing quote; an unterminated literal simply runs to the end.
    return "".join(chars), pos + 1


def _classify_identifier(source: str, match: re.Match[str]) -> Token:
    ident = match.group()
    upper = ident.upper()
    position = match.start()

    # TRUE() and FALSE() are registry functions; a bare TRUE/FALSE is a literal.
    if upper in _BOOLEAN_LITERALS and not _followed_by_paren(source, match.end()):
        return Token(TokenKind.NUMBER, _BOOLEAN_LITERALS[upper], position)
    if is_function_name(upper):
        return Token(TokenKind.FUNCTION, upper, position)
    return Token(TokenKind.IDENTIFIER, ident, position)


def _followed_by_paren(source: str, pos: int) -> bool:
    while pos < len(source) and source[pos].isspace():
        pos += 1
    return pos < len(source) and source[pos] == "("
