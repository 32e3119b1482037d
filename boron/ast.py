"""AST model for Boron source programs."""

from __future__ import annotations

from dataclasses import dataclass, field

from boron.spans import SourceSpan


@dataclass(eq=False)
class AstNode:
    """Base class for AST nodes with provenance span.

    Nodes compare by identity: later stages key annotations on `id(node)`.
    """

    span: SourceSpan


@dataclass(eq=False)
class Expr(AstNode):
    """Base class for expression nodes."""


@dataclass(eq=False)
class Stmt(AstNode):
    """Base class for statement nodes."""


@dataclass(eq=False)
class Item(AstNode):
    """Base class for top-level declarations."""


@dataclass
class Param:
    """Typed function parameter."""

    name: str
    type_name: str
    span: SourceSpan


@dataclass
class Field:
    """Typed struct field; declaration order is significant."""

    name: str
    type_name: str
    span: SourceSpan


@dataclass
class FieldInit:
    """`name: value` entry of a struct initializer, in source order."""

    name: str
    value: Expr
    span: SourceSpan


@dataclass(eq=False)
class Program(AstNode):
    """Root AST node representing one Boron module."""

    items: list[Item] = field(default_factory=list)


@dataclass(eq=False)
class Import(Item):
    """`import a.b { x, y };`. `symbols` is None when everything is imported."""

    path: str
    symbols: list[str] | None = None


@dataclass(eq=False)
class StructDecl(Item):
    """Struct declaration with ordered fields."""

    name: str
    fields: list[Field] = field(default_factory=list)


@dataclass(eq=False)
class FunctionDecl(Item):
    """Function declaration; `main` is flagged because it maps to the C entry point."""

    name: str
    params: list[Param]
    body: list[Stmt]
    return_type: str | None = None
    is_main: bool = False


@dataclass(eq=False)
class Assignment(Stmt):
    """`let` binding with optional declared type."""

    name: str
    value: Expr
    declared_type: str | None = None


@dataclass(eq=False)
class Reassignment(Stmt):
    """Update of an existing variable or struct field."""

    target: Expr
    value: Expr


@dataclass(eq=False)
class ExpressionStmt(Stmt):
    """Expression used as a statement."""

    expr: Expr


@dataclass(eq=False)
class Return(Stmt):
    """Return statement, optionally returning a value."""

    value: Expr | None = None


@dataclass(eq=False)
class If(Stmt):
    """Conditional statement; `else_block` is None when there is no else."""

    condition: Expr
    then_block: list[Stmt]
    else_block: list[Stmt] | None = None


@dataclass(eq=False)
class While(Stmt):
    """Pre-tested loop."""

    condition: Expr
    body: list[Stmt]


@dataclass(eq=False)
class LiteralExpr(Expr):
    """Literal value; `kind` is one of int, float, bool, char and `text` the lexeme."""

    kind: str
    value: int | float | bool | str
    text: str


@dataclass(eq=False)
class IdentifierExpr(Expr):
    """Identifier reference expression."""

    name: str


@dataclass(eq=False)
class UnaryExpr(Expr):
    """Unary operator expression."""

    operator: str
    operand: Expr


@dataclass(eq=False)
class BinaryExpr(Expr):
    """Binary operator expression."""

    left: Expr
    operator: str
    right: Expr


@dataclass(eq=False)
class TernaryExpr(Expr):
    """`condition ? then | otherwise`."""

    condition: Expr
    then: Expr
    otherwise: Expr


@dataclass(eq=False)
class FunctionCall(Expr):
    """Call of a named function."""

    name: str
    args: list[Expr]


@dataclass(eq=False)
class MethodCall(Expr):
    """`receiver.method(args)`; sugar for `method(receiver, args)`."""

    receiver: Expr
    method: str
    args: list[Expr]


@dataclass(eq=False)
class FieldAccess(Expr):
    """`receiver.field`."""

    receiver: Expr
    field: str


@dataclass(eq=False)
class StructInit(Expr):
    """Struct value built from named fields, kept in source order."""

    type_name: str
    fields: list[FieldInit] = field(default_factory=list)
