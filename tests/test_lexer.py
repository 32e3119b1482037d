from __future__ import annotations

import unittest

from boron.errors import LexError
from boron.lexer import Lexer, decode_char
from boron.tokens import TokenType


def kinds(source: str) -> list[TokenType]:
    return [token.token_type for token in Lexer(source).tokenize()]


class LexerTests(unittest.TestCase):
    def test_tokenizes_let_binding_and_call(self) -> None:
        self.assertEqual(
            kinds('let int x: add(1, 2);'),
            [
                TokenType.LET,
                TokenType.IDENT,
                TokenType.IDENT,
                TokenType.COLON,
                TokenType.IDENT,
                TokenType.LPAR,
                TokenType.INT,
                TokenType.COMMA,
                TokenType.INT,
                TokenType.RPAR,
                TokenType.SEMICOLON,
                TokenType.EOF,
            ],
        )

    def test_keywords_and_multi_char_operators(self) -> None:
        self.assertEqual(
            kinds('main() -> int { while a <= b != c >= d == e {} }')[:6],
            [
                TokenType.MAIN,
                TokenType.LPAR,
                TokenType.RPAR,
                TokenType.ARROW,
                TokenType.IDENT,
                TokenType.LBRACE,
            ],
        )
        ops = [t for t in kinds('a <= b != c >= d == e') if t is not TokenType.IDENT]
        self.assertEqual(ops, [TokenType.LE, TokenType.NE, TokenType.GE, TokenType.EQ, TokenType.EOF])

    def test_ternary_markers_are_separate_tokens(self) -> None:
        self.assertEqual(
            kinds('x ? 1 | 2'),
            [TokenType.IDENT, TokenType.QUESTION, TokenType.INT, TokenType.PIPE, TokenType.INT, TokenType.EOF],
        )

    def test_rejects_double_pipe_and_pipe_assign(self) -> None:
        for source in ('a || b', 'a |= b'):
            with self.subTest(source=source):
                with self.assertRaises(LexError) as ctx:
                    Lexer(source).tokenize()
                self.assertEqual(ctx.exception.code, 'LEX003')

    def test_numbers(self) -> None:
        tokens = Lexer('12 3.5 4. 7.x').tokenize()
        self.assertEqual(
            [(t.token_type, t.value) for t in tokens[:6]],
            [
                (TokenType.INT, '12'),
                (TokenType.FLOAT, '3.5'),
                (TokenType.FLOAT, '4.'),
                (TokenType.INT, '7'),
                (TokenType.DOT, '.'),
                (TokenType.IDENT, 'x'),
            ],
        )

    def test_char_literals_keep_quotes_in_lexeme(self) -> None:
        tokens = Lexer("'a' '\\n' '\\''").tokenize()
        self.assertEqual([t.value for t in tokens[:3]], ["'a'", "'\\n'", "'\\''"])
        self.assertEqual(decode_char(tokens[1].value), '\n')
        self.assertEqual(decode_char(tokens[2].value), "'")

    def test_malformed_char_literal(self) -> None:
        for source in ("''", "'ab'", "'\\q'", "'a"):
            with self.subTest(source=source):
                with self.assertRaises(LexError) as ctx:
                    Lexer(source).tokenize()
                self.assertEqual(ctx.exception.code, 'LEX002')

    def test_comments_are_skipped(self) -> None:
        tokens = Lexer('# header\nlet x: 1; # trailing\n').tokenize()
        self.assertEqual(tokens[0].token_type, TokenType.LET)
        self.assertEqual(tokens[0].span.line, 2)
        self.assertEqual(tokens[-1].token_type, TokenType.EOF)

    def test_rejects_unexpected_character(self) -> None:
        with self.assertRaises(LexError) as ctx:
            Lexer('let x: 1 $ 2;', filename='bad.brn').tokenize()
        err = ctx.exception
        self.assertEqual(err.code, 'LEX001')
        self.assertEqual(err.char, '$')
        self.assertEqual((err.span.file, err.span.line, err.span.column), ('bad.brn', 1, 10))

    def test_non_ascii_digits_and_letters_are_rejected(self) -> None:
        for source, char, column in (
            ('print(²);', '²', 7),
            ('print(١);', '١', 7),
            ('let café: 1;', 'é', 8),
        ):
            with self.subTest(char=char):
                with self.assertRaises(LexError) as ctx:
                    Lexer(source).tokenize()
                err = ctx.exception
                self.assertEqual((err.code, err.char), ('LEX001', char))
                self.assertEqual(err.span.column, column)

    def test_lexemes_reconstruct_from_spans(self) -> None:
        source = (
            'struct Point {\n'
            '    int x,\n'
            '    int y,\n'
            '}\n'
            '\n'
            'main() {\n'
            "    let c: '\\t';\n"
            '    Point p: { x: 1, y: -2 };\n'
            '    print(p.x >= 3.25 ? c | \'z\');\n'
            '}\n'
        )
        for token in Lexer(source).tokenize()[:-1]:
            with self.subTest(token=token.value):
                self.assertEqual(token.span.excerpt(source), token.value)

    def test_carriage_return_does_not_shift_lines(self) -> None:
        unix = Lexer('let a: 1;\nlet b: 2;\n').tokenize()
        windows = Lexer('let a: 1;\r\nlet b: 2;\r\n').tokenize()
        self.assertEqual([t.span.line for t in unix], [t.span.line for t in windows])


if __name__ == '__main__':
    unittest.main()
