"""Token definitions for Boron lexical analysis."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from boron.spans import SourceSpan


class TokenType(Enum):
    """Finite token categories used by lexer and parser."""

    IDENT = auto()
    INT = auto()
    FLOAT = auto()
    CHAR = auto()

    LET = auto()
    RETURN = auto()
    STRUCT = auto()
    IF = auto()
    ELSE = auto()
    WHILE = auto()
    TRUE = auto()
    FALSE = auto()
    MAIN = auto()
    IMPORT = auto()

    COLON = auto()  # :
    SEMICOLON = auto()
    COMMA = auto()
    DOT = auto()
    ARROW = auto()  # ->
    QUESTION = auto()  # ? ternary then-marker
    PIPE = auto()  # | ternary else-marker

    LPAR = auto()
    RPAR = auto()
    LBRACE = auto()
    RBRACE = auto()

    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()

    EQ = auto()  # ==
    NE = auto()  # !=
    LT = auto()
    LE = auto()
    GT = auto()
    GE = auto()
    NOT = auto()  # !

    EOF = auto()


KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "return": TokenType.RETURN,
    "struct": TokenType.STRUCT,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
    "main": TokenType.MAIN,
    "import": TokenType.IMPORT,
}


@dataclass(frozen=True)
class Token:
    """A single lexical token; `value` is the exact lexeme from the source."""

    token_type: TokenType
    value: str
    span: SourceSpan

    def __str__(self) -> str:
        return f"{self.token_type.name}({self.value!r})@{self.span.line}:{self.span.column}"


def describe(token: Token) -> str:
    """Human-facing rendering of a token for diagnostics."""
    if token.token_type == TokenType.EOF:
        return "end of input"
    return repr(token.value)
