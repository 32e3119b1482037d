"""Boron lexical analyzer."""

from __future__ import annotations

import logging
from typing import Final

from boron.errors import LexError
from boron.spans import SourceSpan
from boron.tokens import KEYWORDS, Token, TokenType


logger = logging.getLogger(__name__)

_SINGLE_CHAR_TOKENS: Final[dict[str, TokenType]] = {
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    "?": TokenType.QUESTION,
    "|": TokenType.PIPE,
    "(": TokenType.LPAR,
    ")": TokenType.RPAR,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "!": TokenType.NOT,
}

_MULTI_CHAR_TOKENS: Final[dict[str, TokenType]] = {
    "->": TokenType.ARROW,
    "==": TokenType.EQ,
    "!=": TokenType.NE,
    "<=": TokenType.LE,
    ">=": TokenType.GE,
}

# `|` is reserved for the ternary else-marker; these spellings must not lex as
# one or two PIPE tokens.
_RESERVED_PAIRS: Final[frozenset[str]] = frozenset({"||", "|="})

_CHAR_ESCAPES: Final[dict[str, str]] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "0": "\0",
    "\\": "\\",
    "'": "'",
}


class Lexer:
    """Converts Boron source text into a token stream."""

    def __init__(self, source: str, filename: str = "<input>") -> None:
        self.source = source
        self.filename = filename
        self.index = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> list[Token]:
        """Tokenize full source and return the token stream."""
        tokens: list[Token] = []

        while not self._is_eof():
            ch = self._peek()
            if ch in " \t\r\n":
                self._consume_whitespace()
                continue

            if ch == "#":
                self._consume_comment()
                continue

            if _is_ident_start(ch):
                tokens.append(self._lex_identifier())
                continue

            if _is_digit(ch):
                tokens.append(self._lex_number())
                continue

            if ch == "'":
                tokens.append(self._lex_char())
                continue

            multi = self._lex_multi_char_operator()
            if multi is not None:
                tokens.append(multi)
                continue

            token_type = _SINGLE_CHAR_TOKENS.get(ch)
            if token_type is not None:
                start_line, start_col = self.line, self.column
                self._advance()
                span = self._span(start_line, start_col, self.line, self.column)
                tokens.append(Token(token_type=token_type, value=ch, span=span))
                continue

            raise LexError(
                code="LEX001",
                message=f"Unexpected character {ch!r}.",
                span=self._span(self.line, self.column, self.line, self.column + 1),
                hint="Remove the character; it is not part of the Boron alphabet.",
                char=ch,
            )

        eof_span = self._span(self.line, self.column, self.line, self.column)
        tokens.append(Token(token_type=TokenType.EOF, value="", span=eof_span))
        logger.debug("%s: %d tokens", self.filename, len(tokens))
        return tokens

    def _lex_multi_char_operator(self) -> Token | None:
        start_line, start_col = self.line, self.column
        pair = self._peek() + self._peek(1)
        if pair in _RESERVED_PAIRS:
            raise LexError(
                code="LEX003",
                message=f"Operator {pair!r} is not supported; '|' only separates ternary branches.",
                span=self._span(start_line, start_col, start_line, start_col + 2),
                hint="Write the ternary as 'cond ? then | else'.",
                char=pair,
            )
        token_type = _MULTI_CHAR_TOKENS.get(pair)
        if token_type is None:
            return None
        self._advance()
        self._advance()
        span = self._span(start_line, start_col, self.line, self.column)
        return Token(token_type=token_type, value=pair, span=span)

    def _lex_identifier(self) -> Token:
        start_line, start_col = self.line, self.column
        value_chars: list[str] = []
        while not self._is_eof() and _is_ident_char(self._peek()):
            value_chars.append(self._advance())
        value = "".join(value_chars)
        token_type = KEYWORDS.get(value, TokenType.IDENT)
        span = self._span(start_line, start_col, self.line, self.column)
        return Token(token_type=token_type, value=value, span=span)

    def _lex_number(self) -> Token:
        start_line, start_col = self.line, self.column
        value_chars: list[str] = []
        token_type = TokenType.INT

        while not self._is_eof() and _is_digit(self._peek()):
            value_chars.append(self._advance())

        follower = self._peek(1)
        if self._peek() == "." and not _is_ident_start(follower):
            token_type = TokenType.FLOAT
            value_chars.append(self._advance())
            while not self._is_eof() and _is_digit(self._peek()):
                value_chars.append(self._advance())

        value = "".join(value_chars)
        span = self._span(start_line, start_col, self.line, self.column)
        return Token(token_type=token_type, value=value, span=span)

    def _lex_char(self) -> Token:
        start_line, start_col = self.line, self.column
        start_index = self.index
        self._advance()  # opening quote

        if self._is_eof() or self._peek() in "\n'":
            raise LexError(
                code="LEX002",
                message="Malformed character literal.",
                span=self._span(start_line, start_col, self.line, self.column),
                hint="A character literal holds exactly one character, e.g. 'a' or '\\n'.",
                char="'",
            )

        ch = self._advance()
        if ch == "\\":
            esc = self._peek()
            if esc not in _CHAR_ESCAPES:
                raise LexError(
                    code="LEX002",
                    message=f"Unknown escape sequence '\\{esc}' in character literal.",
                    span=self._span(start_line, start_col, self.line, self.column + 1),
                    hint="Supported escapes: \\n \\t \\r \\0 \\\\ \\'.",
                    char=esc,
                )
            self._advance()

        if self._peek() != "'":
            raise LexError(
                code="LEX002",
                message="Unterminated character literal.",
                span=self._span(start_line, start_col, self.line, self.column),
                hint="Close the character literal with a single quote.",
                char=self._peek(),
            )
        self._advance()  # closing quote

        value = self.source[start_index : self.index]
        span = self._span(start_line, start_col, self.line, self.column)
        return Token(token_type=TokenType.CHAR, value=value, span=span)

    def _consume_whitespace(self) -> None:
        while not self._is_eof() and self._peek() in " \t\r\n":
            self._advance()

    def _consume_comment(self) -> None:
        while not self._is_eof() and self._peek() != "\n":
            self._advance()

    def _peek(self, offset: int = 0) -> str:
        idx = self.index + offset
        if idx >= len(self.source):
            return "\0"
        return self.source[idx]

    def _advance(self) -> str:
        ch = self.source[self.index]
        self.index += 1
        if ch == "\n":
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _is_eof(self) -> bool:
        return self.index >= len(self.source)

    def _span(
        self,
        start_line: int,
        start_col: int,
        end_line: int,
        end_col: int,
    ) -> SourceSpan:
        return SourceSpan(
            file=self.filename,
            line=start_line,
            column=start_col,
            end_line=end_line,
            end_column=end_col,
        )


def decode_char(lexeme: str) -> str:
    """Return the character denoted by a CHAR token lexeme such as `'\\n'`."""
    body = lexeme[1:-1]
    if body.startswith("\\"):
        return _CHAR_ESCAPES[body[1]]
    return body


# Identifiers and numbers are ASCII-only; anything else is LEX001.
def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_ident_start(ch: str) -> bool:
    return ch.isascii() and (ch.isalpha() or ch == "_")


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")
