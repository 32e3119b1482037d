"""Boron parser producing a typed AST."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from boron.ast import (
    Assignment,
    BinaryExpr,
    Expr,
    ExpressionStmt,
    Field,
    FieldAccess,
    FieldInit,
    FunctionCall,
    FunctionDecl,
    IdentifierExpr,
    If,
    Import,
    Item,
    LiteralExpr,
    MethodCall,
    Param,
    Program,
    Reassignment,
    Return,
    Stmt,
    StructDecl,
    StructInit,
    TernaryExpr,
    UnaryExpr,
    While,
)
from boron.errors import ParseError
from boron.lexer import decode_char
from boron.spans import SourceSpan, merge_spans
from boron.tokens import Token, TokenType, describe


logger = logging.getLogger(__name__)

# Binary levels between ternary and unary; higher binds tighter, all left-associative.
_PRECEDENCE: dict[TokenType, int] = {
    TokenType.EQ: 1,
    TokenType.NE: 1,
    TokenType.LT: 1,
    TokenType.LE: 1,
    TokenType.GT: 1,
    TokenType.GE: 1,
    TokenType.PLUS: 2,
    TokenType.MINUS: 2,
    TokenType.STAR: 3,
    TokenType.SLASH: 3,
}


@dataclass
class Parser:
    """Recursive-descent parser for Boron; stops at the first error."""

    tokens: list[Token]

    def __post_init__(self) -> None:
        self.pos = 0
        self._allow_struct_init = True

    def parse_program(self) -> Program:
        """Parse full token stream into a program AST."""
        items: list[Item] = []
        while not self._is_at_end():
            items.append(self._parse_item())

        if items:
            span = merge_spans(items[0].span, items[-1].span)
        else:
            span = self._peek().span
        logger.debug("%s: parsed %d top-level items", span.file, len(items))
        return Program(span=span, items=items)

    def parse_statement(self) -> Stmt:
        """Parse exactly one statement followed by end of input."""
        stmt = self._parse_statement()
        self._consume(TokenType.EOF, "end of input")
        return stmt

    def parse_expression(self) -> Expr:
        """Parse exactly one expression followed by end of input."""
        expr = self._parse_expression()
        self._consume(TokenType.EOF, "end of input")
        return expr

    def _parse_item(self) -> Item:
        if self._match(TokenType.IMPORT):
            return self._parse_import(self._previous())
        if self._match(TokenType.STRUCT):
            item = self._parse_struct_decl(self._previous())
            self._reject_trailing_semicolon()
            return item
        if self._match(TokenType.MAIN):
            item = self._parse_function_decl(self._previous(), is_main=True)
            self._reject_trailing_semicolon()
            return item
        if self._check(TokenType.IDENT) and self._peek(1).token_type == TokenType.LPAR:
            item = self._parse_function_decl(self._advance(), is_main=False)
            self._reject_trailing_semicolon()
            return item

        tok = self._peek()
        raise ParseError(
            code="PAR003",
            message=f"Expected a top-level declaration, found {describe(tok)}.",
            span=tok.span,
            hint="Only imports, structs and functions may appear at module level.",
            expected="import, struct or function declaration",
            found=tok.value,
        )

    def _parse_import(self, import_token: Token) -> Import:
        segments = [self._consume(TokenType.IDENT, "module name after 'import'").value]
        while self._match(TokenType.DOT):
            segments.append(self._consume(TokenType.IDENT, "module name segment after '.'").value)

        symbols: list[str] | None = None
        if self._match(TokenType.LBRACE):
            symbols = []
            while not self._check(TokenType.RBRACE):
                symbols.append(self._consume(TokenType.IDENT, "imported symbol name").value)
                if not self._match(TokenType.COMMA):
                    break
            self._consume(TokenType.RBRACE, "'}' to close the import list")

        end_tok = self._consume(TokenType.SEMICOLON, "';' after import")
        span = merge_spans(import_token.span, end_tok.span)
        return Import(span=span, path=".".join(segments), symbols=symbols)

    def _parse_struct_decl(self, struct_token: Token) -> StructDecl:
        name_tok = self._consume(TokenType.IDENT, "struct name after 'struct'")
        self._consume(TokenType.LBRACE, "'{' to start struct body")
        fields: list[Field] = []
        while not self._check(TokenType.RBRACE):
            type_tok = self._consume(TokenType.IDENT, "field type")
            field_tok = self._consume(TokenType.IDENT, "field name")
            fields.append(
                Field(
                    name=field_tok.value,
                    type_name=type_tok.value,
                    span=merge_spans(type_tok.span, field_tok.span),
                )
            )
            if not self._match(TokenType.COMMA):
                break
        rbrace = self._consume(TokenType.RBRACE, "'}' to close struct body")
        return StructDecl(span=merge_spans(struct_token.span, rbrace.span), name=name_tok.value, fields=fields)

    def _parse_function_decl(self, name_token: Token, *, is_main: bool) -> FunctionDecl:
        self._consume(TokenType.LPAR, "'(' after function name")
        params: list[Param] = []
        while not self._check(TokenType.RPAR):
            type_tok = self._consume(TokenType.IDENT, "parameter type")
            name_tok = self._consume(TokenType.IDENT, "parameter name")
            params.append(
                Param(
                    name=name_tok.value,
                    type_name=type_tok.value,
                    span=merge_spans(type_tok.span, name_tok.span),
                )
            )
            if not self._match(TokenType.COMMA):
                break
        self._consume(TokenType.RPAR, "')' after function parameters")

        return_type: str | None = None
        if self._match(TokenType.ARROW):
            return_type = self._consume(TokenType.IDENT, "return type after '->'").value

        body, block_span = self._parse_block()
        return FunctionDecl(
            span=merge_spans(name_token.span, block_span),
            name=name_token.value,
            params=params,
            body=body,
            return_type=return_type,
            is_main=is_main,
        )

    def _parse_block(self) -> tuple[list[Stmt], SourceSpan]:
        lbrace = self._consume(TokenType.LBRACE, "'{' to start block")
        statements: list[Stmt] = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            statements.append(self._parse_statement())
        rbrace = self._consume(TokenType.RBRACE, "'}' to close block")
        return statements, merge_spans(lbrace.span, rbrace.span)

    def _parse_statement(self) -> Stmt:
        if self._match(TokenType.LET):
            return self._parse_let(self._previous())
        if self._match(TokenType.IF):
            stmt = self._parse_if(self._previous())
            self._reject_trailing_semicolon()
            return stmt
        if self._match(TokenType.WHILE):
            stmt = self._parse_while(self._previous())
            self._reject_trailing_semicolon()
            return stmt
        if self._match(TokenType.RETURN):
            return self._parse_return(self._previous())
        if self._is_typed_binding_start():
            return self._parse_typed_binding()

        expr = self._parse_expression()
        if self._match(TokenType.COLON):
            if not isinstance(expr, (IdentifierExpr, FieldAccess)):
                colon = self._previous()
                raise ParseError(
                    code="PAR004",
                    message="Only variables and struct fields can be assigned.",
                    span=expr.span,
                    hint="Use 'let name: value;' to declare a new variable.",
                    expected="variable or field",
                    found=colon.value,
                )
            value = self._parse_expression()
            end_tok = self._consume(TokenType.SEMICOLON, "';' after assignment")
            return Reassignment(span=merge_spans(expr.span, end_tok.span), target=expr, value=value)

        end_tok = self._consume(TokenType.SEMICOLON, "';' after expression")
        return ExpressionStmt(span=merge_spans(expr.span, end_tok.span), expr=expr)

    def _parse_let(self, let_token: Token) -> Assignment:
        declared_type: str | None = None
        if self._check(TokenType.IDENT) and self._peek(1).token_type == TokenType.IDENT:
            declared_type = self._advance().value
        name_tok = self._consume(TokenType.IDENT, "variable name after 'let'")
        self._consume(TokenType.COLON, "':' after variable name")

        if declared_type is not None and self._check(TokenType.LBRACE):
            value: Expr = self._parse_struct_init_body(declared_type, self._peek().span)
        else:
            value = self._parse_expression()

        end_tok = self._consume(TokenType.SEMICOLON, "';' after let binding")
        return Assignment(
            span=merge_spans(let_token.span, end_tok.span),
            name=name_tok.value,
            value=value,
            declared_type=declared_type,
        )

    def _parse_typed_binding(self) -> Assignment:
        type_tok = self._advance()
        name_tok = self._advance()
        self._advance()  # ':'
        if self._check(TokenType.LBRACE):
            value: Expr = self._parse_struct_init_body(type_tok.value, self._peek().span)
        else:
            value = self._parse_expression()
        end_tok = self._consume(TokenType.SEMICOLON, "';' after typed binding")
        return Assignment(
            span=merge_spans(type_tok.span, end_tok.span),
            name=name_tok.value,
            value=value,
            declared_type=type_tok.value,
        )

    def _parse_struct_init_body(self, type_name: str, start: SourceSpan) -> StructInit:
        self._consume(TokenType.LBRACE, "'{' to start struct initializer")
        fields: list[FieldInit] = []
        while not self._check(TokenType.RBRACE):
            name_tok = self._consume(TokenType.IDENT, "field name in struct initializer")
            self._consume(TokenType.COLON, "':' after field name")
            value = self._parse_expression()
            fields.append(FieldInit(name=name_tok.value, value=value, span=merge_spans(name_tok.span, value.span)))
            if not self._match(TokenType.COMMA):
                break
        rbrace = self._consume(TokenType.RBRACE, "'}' to close struct initializer")
        return StructInit(span=merge_spans(start, rbrace.span), type_name=type_name, fields=fields)

    def _parse_if(self, if_token: Token) -> If:
        condition = self._parse_expression(allow_struct_init=False)
        then_block, end_span = self._parse_block()

        else_block: list[Stmt] | None = None
        if self._match(TokenType.ELSE):
            if self._match(TokenType.IF):
                nested = self._parse_if(self._previous())
                else_block = [nested]
                end_span = nested.span
            else:
                else_block, end_span = self._parse_block()

        return If(
            span=merge_spans(if_token.span, end_span),
            condition=condition,
            then_block=then_block,
            else_block=else_block,
        )

    def _parse_while(self, while_token: Token) -> While:
        condition = self._parse_expression(allow_struct_init=False)
        body, body_span = self._parse_block()
        return While(span=merge_spans(while_token.span, body_span), condition=condition, body=body)

    def _parse_return(self, return_token: Token) -> Return:
        if self._match(TokenType.SEMICOLON):
            return Return(span=merge_spans(return_token.span, self._previous().span), value=None)
        value = self._parse_expression()
        end_tok = self._consume(TokenType.SEMICOLON, "';' after return value")
        return Return(span=merge_spans(return_token.span, end_tok.span), value=value)

    def _parse_expression(self, allow_struct_init: bool = True) -> Expr:
        saved = self._allow_struct_init
        self._allow_struct_init = allow_struct_init
        try:
            return self._parse_ternary()
        finally:
            self._allow_struct_init = saved

    def _parse_ternary(self) -> Expr:
        condition = self._parse_binary(1)
        if not self._match(TokenType.QUESTION):
            return condition
        then = self._parse_ternary()
        self._consume(TokenType.PIPE, "'|' between ternary branches")
        otherwise = self._parse_ternary()
        return TernaryExpr(
            span=merge_spans(condition.span, otherwise.span),
            condition=condition,
            then=then,
            otherwise=otherwise,
        )

    def _parse_binary(self, min_prec: int) -> Expr:
        expr = self._parse_unary()

        while True:
            tok = self._peek()
            prec = _PRECEDENCE.get(tok.token_type)
            if prec is None or prec < min_prec:
                break

            op = self._advance()
            right = self._parse_binary(prec + 1)
            expr = BinaryExpr(span=merge_spans(expr.span, right.span), left=expr, operator=op.value, right=right)

        return expr

    def _parse_unary(self) -> Expr:
        if self._match(TokenType.NOT, TokenType.MINUS):
            op = self._previous()
            operand = self._parse_unary()
            return UnaryExpr(span=merge_spans(op.span, operand.span), operator=op.value, operand=operand)
        return self._parse_postfix()

    def _parse_postfix(self) -> Expr:
        expr = self._parse_primary()
        while self._match(TokenType.DOT):
            name_tok = self._consume(TokenType.IDENT, "field or method name after '.'")
            if self._match(TokenType.LPAR):
                args, rpar = self._parse_arguments()
                expr = MethodCall(
                    span=merge_spans(expr.span, rpar.span),
                    receiver=expr,
                    method=name_tok.value,
                    args=args,
                )
            else:
                expr = FieldAccess(span=merge_spans(expr.span, name_tok.span), receiver=expr, field=name_tok.value)
        return expr

    def _parse_arguments(self) -> tuple[list[Expr], Token]:
        args: list[Expr] = []
        while not self._check(TokenType.RPAR):
            args.append(self._parse_expression())
            if not self._match(TokenType.COMMA):
                break
        rpar = self._consume(TokenType.RPAR, "')' after call arguments")
        return args, rpar

    def _parse_primary(self) -> Expr:
        if self._match(TokenType.INT):
            tok = self._previous()
            return LiteralExpr(span=tok.span, kind="int", value=int(tok.value), text=tok.value)

        if self._match(TokenType.FLOAT):
            tok = self._previous()
            return LiteralExpr(span=tok.span, kind="float", value=float(tok.value), text=tok.value)

        if self._match(TokenType.CHAR):
            tok = self._previous()
            return LiteralExpr(span=tok.span, kind="char", value=decode_char(tok.value), text=tok.value)

        if self._match(TokenType.TRUE, TokenType.FALSE):
            tok = self._previous()
            return LiteralExpr(span=tok.span, kind="bool", value=tok.token_type == TokenType.TRUE, text=tok.value)

        if self._match(TokenType.IDENT):
            tok = self._previous()
            if self._match(TokenType.LPAR):
                args, rpar = self._parse_arguments()
                return FunctionCall(span=merge_spans(tok.span, rpar.span), name=tok.value, args=args)
            if self._allow_struct_init and self._check(TokenType.LBRACE):
                return self._parse_struct_init_body(tok.value, tok.span)
            return IdentifierExpr(span=tok.span, name=tok.value)

        if self._match(TokenType.LPAR):
            expr = self._parse_expression()
            self._consume(TokenType.RPAR, "')' to close grouped expression")
            return expr

        tok = self._peek()
        raise ParseError(
            code="PAR001",
            message=f"Unexpected {describe(tok)} in expression.",
            span=tok.span,
            hint="Use literals, identifiers, calls, struct initializers or parenthesized expressions.",
            expected="expression",
            found=tok.value,
        )

    def _is_typed_binding_start(self) -> bool:
        return (
            self._check(TokenType.IDENT)
            and self._peek(1).token_type == TokenType.IDENT
            and self._peek(2).token_type == TokenType.COLON
        )

    def _reject_trailing_semicolon(self) -> None:
        if self._check(TokenType.SEMICOLON):
            tok = self._peek()
            raise ParseError(
                code="PAR004",
                message="Unexpected ';' after closing brace.",
                span=tok.span,
                hint="Blocks end at '}' and take no terminator.",
                expected="statement or '}'",
                found=tok.value,
            )

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        if self._check(token_type):
            return self._advance()
        tok = self._peek()
        raise ParseError(
            code="PAR002",
            message=f"Expected {expected}, found {describe(tok)}.",
            span=tok.span,
            hint="Adjust token order to match grammar.",
            expected=expected,
            found=tok.value,
        )

    def _match(self, *token_types: TokenType) -> bool:
        for token_type in token_types:
            if self._check(token_type):
                self._advance()
                return True
        return False

    def _check(self, token_type: TokenType) -> bool:
        return self._peek().token_type == token_type

    def _advance(self) -> Token:
        if not self._is_at_end():
            self.pos += 1
        return self._previous()

    def _peek(self, offset: int = 0) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[idx]

    def _previous(self) -> Token:
        return self.tokens[self.pos - 1]

    def _is_at_end(self) -> bool:
        return self._peek().token_type == TokenType.EOF
