"""Semantic resolution for Boron modules.

The resolver walks one module's AST with an explicit scope stack, binds every
name to its declaration, validates struct initializers, call arities and
declared types, and records the annotations the C backend needs. Imports are
delegated to a callback supplied by the module linker, so a dependency is fully
resolved before the importing module continues.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from boron.ast import (
    Assignment,
    BinaryExpr,
    Expr,
    ExpressionStmt,
    FieldAccess,
    FunctionCall,
    FunctionDecl,
    IdentifierExpr,
    If,
    Import,
    LiteralExpr,
    MethodCall,
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
from boron.errors import (
    ArityError,
    FieldMismatchError,
    MissingMainError,
    ModuleNotFoundError,
    RecursiveStructError,
    RedefinitionError,
    ResolveError,
    TypeMismatchError,
    UnresolvedImportError,
    UnresolvedNameError,
)
from boron.spans import SourceSpan
from boron.symbols import (
    BLN,
    CHR,
    FLT,
    INT,
    SCALAR_TYPES,
    VOID,
    Binding,
    FunctionDef,
    ModuleSymbols,
    ScalarType,
    ScopeStack,
    StructDef,
    Type,
    type_name,
)


logger = logging.getLogger(__name__)

EXECUTABLE = "executable"
LIBRARY = "library"

BUILTIN_PRINT = "print"

ImportResolver = Callable[[Import], ModuleSymbols]

_ARITHMETIC = {"+", "-", "*", "/"}
_COMPARISON = {"==", "!=", "<", "<=", ">", ">="}
_LITERAL_TYPES: dict[str, ScalarType] = {"int": INT, "float": FLT, "bool": BLN, "char": CHR}


@dataclass
class ResolvedModule:
    """Annotated module produced by the resolver and consumed by the emitter."""

    name: str
    mode: str
    program: Program
    symbols: ModuleSymbols
    dependencies: list[str] = field(default_factory=list)
    struct_order: list[StructDef] = field(default_factory=list)
    expr_types: dict[int, Type] = field(default_factory=dict)
    bindings: dict[int, Binding] = field(default_factory=dict)
    call_targets: dict[int, FunctionDef] = field(default_factory=dict)
    struct_inits: dict[int, list[tuple[str, Expr]]] = field(default_factory=dict)
    decl_types: dict[int, Type] = field(default_factory=dict)

    @property
    def importable(self) -> bool:
        return self.mode == LIBRARY

    def type_of(self, expr: Expr) -> Type:
        return self.expr_types[id(expr)]

    def binding_of(self, node: Expr | Assignment) -> Binding:
        return self.bindings[id(node)]

    def target_of(self, call: FunctionCall | MethodCall) -> FunctionDef:
        return self.call_targets[id(call)]

    def function(self, decl: FunctionDecl) -> FunctionDef:
        return self.symbols.functions[decl.name]


class Resolver:
    """Resolves one module; holds all per-compilation naming state explicitly."""

    def __init__(
        self,
        module_name: str,
        *,
        mode: str = EXECUTABLE,
        import_resolver: ImportResolver | None = None,
    ) -> None:
        self.module_name = module_name
        self.mode = mode
        self._import_resolver = import_resolver
        self._scopes = ScopeStack()
        self._current: FunctionDef | None = None
        self._result: ResolvedModule | None = None

    def resolve(self, program: Program) -> ResolvedModule:
        """Run resolution for a full module AST."""
        symbols = ModuleSymbols(name=self.module_name)
        result = ResolvedModule(name=self.module_name, mode=self.mode, program=program, symbols=symbols)
        self._result = result

        self._scopes.push()
        self._define_builtins()

        for item in program.items:
            if isinstance(item, Import):
                self._resolve_import(item, symbols, result)

        structs = [item for item in program.items if isinstance(item, StructDecl)]
        functions = [item for item in program.items if isinstance(item, FunctionDecl)]

        for decl in structs:
            self._register_struct(decl, symbols)
        for decl in structs:
            self._resolve_struct_fields(decl, symbols)
        result.struct_order = self._order_structs(symbols)

        for decl in functions:
            self._register_function(decl, symbols)

        self._scopes.push()
        for name, struct in {**symbols.imported_structs, **symbols.structs}.items():
            self._scopes.declare(Binding(name=name, kind="struct", type=struct, span=struct.span, struct=struct))
        for name, fn in {**symbols.imported_functions, **symbols.functions}.items():
            self._scopes.declare(Binding(name=name, kind="function", type=fn.return_type, span=fn.span, function=fn))

        for decl in functions:
            self._resolve_function_body(decl, symbols.functions[decl.name])

        self._scopes.pop()
        self._scopes.pop()
        self._check_main(program, symbols)
        logger.debug(
            "resolved module %s (%d structs, %d functions, %d imports)",
            self.module_name,
            len(symbols.structs),
            len(symbols.functions),
            len(result.dependencies),
        )
        return result

    def _define_builtins(self) -> None:
        printer = FunctionDef(
            name=BUILTIN_PRINT,
            module="<builtin>",
            span=SourceSpan(file="<builtin>", line=0, column=0, end_line=0, end_column=0),
            params=[("value", INT)],
            return_type=VOID,
            builtin=True,
        )
        self._scopes.declare(Binding(name=BUILTIN_PRINT, kind="function", type=VOID, function=printer))

    # -- imports -----------------------------------------------------------

    def _resolve_import(self, node: Import, symbols: ModuleSymbols, result: ResolvedModule) -> None:
        if self._import_resolver is None:
            raise ModuleNotFoundError(node.path, span=node.span)
        dependency = self._import_resolver(node)
        if node.path not in result.dependencies:
            result.dependencies.append(node.path)

        exports = dependency.exports()
        if node.symbols is None:
            selected = list(exports.items())
        else:
            selected = []
            for name in node.symbols:
                if name not in exports:
                    raise UnresolvedImportError(node.path, name, span=node.span)
                selected.append((name, exports[name]))

        for name, exported in selected:
            if name == BUILTIN_PRINT:
                raise RedefinitionError(name, span=node.span, hint="'print' is a builtin.")
            if isinstance(exported, StructDef):
                table: dict = symbols.imported_structs
                other: dict = symbols.imported_functions
            else:
                table = symbols.imported_functions
                other = symbols.imported_structs
            previous = table.get(name)
            if (previous is not None and previous is not exported) or name in other:
                raise RedefinitionError(
                    name,
                    span=node.span,
                    hint=f"'{name}' is imported from more than one module.",
                )
            table[name] = exported

    # -- structs -----------------------------------------------------------

    def _register_struct(self, decl: StructDecl, symbols: ModuleSymbols) -> None:
        self._check_top_level_name(decl.name, decl.span, symbols)
        if decl.name in SCALAR_TYPES:
            raise RedefinitionError(decl.name, span=decl.span, hint="Built-in type names cannot be redefined.")
        symbols.structs[decl.name] = StructDef(name=decl.name, module=self.module_name, span=decl.span)

    def _resolve_struct_fields(self, decl: StructDecl, symbols: ModuleSymbols) -> None:
        struct = symbols.structs[decl.name]
        seen: set[str] = set()
        for item in decl.fields:
            if item.name in seen:
                raise RedefinitionError(item.name, span=item.span, hint=f"Struct '{decl.name}' repeats a field.")
            seen.add(item.name)
            struct.fields.append((item.name, self._resolve_type(item.type_name, item.span, symbols)))

    def _order_structs(self, symbols: ModuleSymbols) -> list[StructDef]:
        order: list[StructDef] = []
        state: dict[str, str] = {}

        def visit(struct: StructDef) -> None:
            mark = state.get(struct.name)
            if mark == "done":
                return
            if mark == "active":
                raise RecursiveStructError(struct.name, span=struct.span)
            state[struct.name] = "active"
            for _, field_type in struct.fields:
                if isinstance(field_type, StructDef) and field_type.module == self.module_name:
                    visit(field_type)
            state[struct.name] = "done"
            order.append(struct)

        for struct in symbols.structs.values():
            visit(struct)
        return order

    # -- functions ---------------------------------------------------------

    def _register_function(self, decl: FunctionDecl, symbols: ModuleSymbols) -> None:
        self._check_top_level_name(decl.name, decl.span, symbols)

        params: list[tuple[str, Type]] = []
        seen: set[str] = set()
        for param in decl.params:
            if param.name in seen:
                raise RedefinitionError(param.name, span=param.span)
            seen.add(param.name)
            params.append((param.name, self._resolve_type(param.type_name, param.span, symbols)))

        return_type: Type = VOID
        if decl.return_type is not None:
            return_type = self._resolve_type(decl.return_type, decl.span, symbols)

        if decl.is_main:
            if params:
                raise ArityError("main", 0, len(params), span=decl.span)
            if return_type not in (VOID, INT):
                raise TypeMismatchError("int", type_name(return_type), "'main' must return int.", span=decl.span)

        fn = FunctionDef(
            name=decl.name,
            module=self.module_name,
            span=decl.span,
            params=params,
            return_type=return_type,
            is_main=decl.is_main,
        )
        symbols.functions[decl.name] = fn

        receiver = fn.receiver_type
        if isinstance(receiver, StructDef) and receiver.module == self.module_name:
            receiver.methods[fn.name] = fn

    def _check_main(self, program: Program, symbols: ModuleSymbols) -> None:
        main = symbols.functions.get("main")
        if self.mode == EXECUTABLE and main is None:
            raise MissingMainError(self.module_name, span=program.span)
        if self.mode == LIBRARY and main is not None:
            raise RedefinitionError(
                "main",
                span=main.span,
                hint="Only the entry module of an executable may define 'main'.",
            )

    def _check_top_level_name(self, name: str, span: SourceSpan, symbols: ModuleSymbols) -> None:
        if name == BUILTIN_PRINT:
            raise RedefinitionError(name, span=span, hint="'print' is a builtin.")
        if (
            name in symbols.structs
            or name in symbols.functions
            or name in symbols.imported_structs
            or name in symbols.imported_functions
        ):
            raise RedefinitionError(name, span=span)

    def _resolve_type(self, name: str, span: SourceSpan, symbols: ModuleSymbols) -> Type:
        scalar = SCALAR_TYPES.get(name)
        if scalar is not None:
            return scalar
        struct = symbols.lookup_struct(name)
        if struct is None:
            raise UnresolvedNameError(name, span=span, what="type")
        return struct

    def _resolve_function_body(self, decl: FunctionDecl, fn: FunctionDef) -> None:
        self._current = fn
        self._scopes.push()
        for param, (name, param_type) in zip(decl.params, fn.params):
            self._declare(Binding(name=name, kind="parameter", type=param_type, span=param.span))
        for stmt in decl.body:
            self._resolve_stmt(stmt)
        self._scopes.pop()
        self._current = None

    # -- statements --------------------------------------------------------

    def _resolve_stmt(self, stmt: Stmt) -> None:
        result = self._require_result()

        if isinstance(stmt, Assignment):
            value_type = self._resolve_expr(stmt.value)
            if stmt.declared_type is not None:
                target_type = self._resolve_type(stmt.declared_type, stmt.span, result.symbols)
                self._check_assignable(target_type, value_type, stmt.value.span, f"binding '{stmt.name}'")
            else:
                if value_type is VOID:
                    raise TypeMismatchError(
                        "value",
                        "void",
                        f"Cannot bind '{stmt.name}' to an expression without a value.",
                        span=stmt.value.span,
                    )
                target_type = value_type
            binding = Binding(name=stmt.name, kind="variable", type=target_type, span=stmt.span)
            self._declare(binding)
            result.bindings[id(stmt)] = binding
            result.decl_types[id(stmt)] = target_type
            return

        if isinstance(stmt, Reassignment):
            target_type = self._resolve_expr(stmt.target)
            root = stmt.target
            while isinstance(root, FieldAccess):
                root = root.receiver
            if not isinstance(root, IdentifierExpr):
                raise TypeMismatchError(
                    "variable",
                    type_name(result.expr_types.get(id(root))),
                    "Only variables and their fields can be assigned.",
                    span=stmt.target.span,
                )
            value_type = self._resolve_expr(stmt.value)
            self._check_assignable(target_type, value_type, stmt.value.span, "assignment")
            return

        if isinstance(stmt, ExpressionStmt):
            self._resolve_expr(stmt.expr)
            return

        if isinstance(stmt, Return):
            fn = self._current
            assert fn is not None
            if stmt.value is None:
                if fn.return_type is not VOID and not fn.is_main:
                    raise TypeMismatchError(
                        type_name(fn.return_type),
                        "void",
                        f"Function '{fn.name}' must return a value.",
                        span=stmt.span,
                    )
                return
            value_type = self._resolve_expr(stmt.value)
            if fn.return_type is VOID:
                raise TypeMismatchError(
                    "void",
                    type_name(value_type),
                    f"Function '{fn.name}' does not declare a return type.",
                    span=stmt.value.span,
                )
            self._check_assignable(fn.return_type, value_type, stmt.value.span, f"return of '{fn.name}'")
            return

        if isinstance(stmt, If):
            self._check_condition(stmt.condition)
            self._resolve_block(stmt.then_block)
            if stmt.else_block is not None:
                self._resolve_block(stmt.else_block)
            return

        if isinstance(stmt, While):
            self._check_condition(stmt.condition)
            self._resolve_block(stmt.body)
            return

        raise ResolveError(
            code="RES099",
            message=f"Unsupported statement type '{type(stmt).__name__}'.",
            span=stmt.span,
            hint="Extend the resolver for this statement kind.",
        )

    def _resolve_block(self, block: list[Stmt]) -> None:
        self._scopes.push()
        for stmt in block:
            self._resolve_stmt(stmt)
        self._scopes.pop()

    def _check_condition(self, condition: Expr) -> None:
        cond_type = self._resolve_expr(condition)
        if not isinstance(cond_type, ScalarType) or cond_type is VOID:
            raise TypeMismatchError(
                "bln",
                type_name(cond_type),
                "Conditions must be scalar values.",
                span=condition.span,
            )

    # -- expressions -------------------------------------------------------

    def _resolve_expr(self, expr: Expr) -> Type:
        result = self._require_result()

        if isinstance(expr, LiteralExpr):
            return self._record(expr, _LITERAL_TYPES[expr.kind])

        if isinstance(expr, IdentifierExpr):
            binding = self._scopes.lookup(expr.name)
            if binding is None:
                raise UnresolvedNameError(expr.name, span=expr.span)
            if binding.kind in {"function", "struct"}:
                raise TypeMismatchError(
                    "value",
                    binding.kind,
                    f"'{expr.name}' is a {binding.kind}, not a value.",
                    span=expr.span,
                )
            result.bindings[id(expr)] = binding
            assert binding.type is not None
            return self._record(expr, binding.type)

        if isinstance(expr, UnaryExpr):
            operand = self._require_scalar(self._resolve_expr(expr.operand), expr.operand, f"unary '{expr.operator}'")
            if expr.operator == "!":
                return self._record(expr, BLN)
            return self._record(expr, FLT if operand is FLT else INT)

        if isinstance(expr, BinaryExpr):
            left = self._require_scalar(self._resolve_expr(expr.left), expr.left, f"operator '{expr.operator}'")
            right = self._require_scalar(self._resolve_expr(expr.right), expr.right, f"operator '{expr.operator}'")
            if expr.operator in _COMPARISON:
                return self._record(expr, BLN)
            if expr.operator in _ARITHMETIC:
                return self._record(expr, FLT if FLT in (left, right) else INT)
            raise ResolveError(
                code="RES098",
                message=f"Unsupported operator '{expr.operator}'.",
                span=expr.span,
            )

        if isinstance(expr, TernaryExpr):
            self._check_condition(expr.condition)
            then_type = self._resolve_expr(expr.then)
            else_type = self._resolve_expr(expr.otherwise)
            return self._record(expr, self._join(then_type, else_type, expr))

        if isinstance(expr, FunctionCall):
            binding = self._scopes.lookup(expr.name)
            if binding is None:
                raise UnresolvedNameError(expr.name, span=expr.span, what="function")
            if binding.kind != "function" or binding.function is None:
                raise TypeMismatchError(
                    "function",
                    binding.kind,
                    f"'{expr.name}' is not callable.",
                    span=expr.span,
                )
            fn = binding.function
            if fn.builtin:
                self._resolve_print(expr)
            else:
                self._check_arguments(fn, expr.args, expr.span, implicit=0)
            result.call_targets[id(expr)] = fn
            return self._record(expr, fn.return_type)

        if isinstance(expr, MethodCall):
            receiver_type = self._resolve_expr(expr.receiver)
            if not isinstance(receiver_type, StructDef):
                raise TypeMismatchError(
                    "struct",
                    type_name(receiver_type),
                    f"Method '{expr.method}' called on a non-struct value.",
                    span=expr.receiver.span,
                )
            binding = self._scopes.lookup(expr.method)
            fn = binding.function if binding is not None else None
            if fn is None or fn.builtin or fn.receiver_type is not receiver_type:
                raise UnresolvedNameError(
                    f"{receiver_type.name}.{expr.method}",
                    span=expr.span,
                    what="method",
                    hint=f"Declare '{expr.method}({receiver_type.name} self, ...)' or import it.",
                )
            self._check_arguments(fn, expr.args, expr.span, implicit=1)
            result.call_targets[id(expr)] = fn
            return self._record(expr, fn.return_type)

        if isinstance(expr, FieldAccess):
            receiver_type = self._resolve_expr(expr.receiver)
            if not isinstance(receiver_type, StructDef):
                raise FieldMismatchError(
                    type_name(receiver_type),
                    expr.field,
                    f"Cannot read field '{expr.field}' of non-struct type '{type_name(receiver_type)}'.",
                    span=expr.span,
                )
            field_type = receiver_type.field_type(expr.field)
            if field_type is None:
                raise FieldMismatchError(
                    receiver_type.name,
                    expr.field,
                    f"Struct '{receiver_type.name}' has no field '{expr.field}'.",
                    span=expr.span,
                )
            return self._record(expr, field_type)

        if isinstance(expr, StructInit):
            return self._record(expr, self._resolve_struct_init(expr))

        raise ResolveError(
            code="RES099",
            message=f"Unsupported expression type '{type(expr).__name__}'.",
            span=getattr(expr, "span", None),
            hint="Extend the resolver for this expression kind.",
        )

    def _resolve_struct_init(self, expr: StructInit) -> StructDef:
        result = self._require_result()
        binding = self._scopes.lookup(expr.type_name)
        if binding is None or binding.struct is None:
            raise UnresolvedNameError(expr.type_name, span=expr.span, what="struct")
        struct = binding.struct

        given: dict[str, Expr] = {}
        for init in expr.fields:
            if init.name in given:
                raise FieldMismatchError(
                    struct.name,
                    init.name,
                    f"Field '{init.name}' of '{struct.name}' is initialized twice.",
                    span=init.span,
                )
            field_type = struct.field_type(init.name)
            if field_type is None:
                raise FieldMismatchError(
                    struct.name,
                    init.name,
                    f"Struct '{struct.name}' has no field '{init.name}'.",
                    span=init.span,
                )
            value_type = self._resolve_expr(init.value)
            self._check_assignable(field_type, value_type, init.value.span, f"field '{struct.name}.{init.name}'")
            given[init.name] = init.value

        for name in struct.field_names():
            if name not in given:
                raise FieldMismatchError(
                    struct.name,
                    name,
                    f"Missing field '{name}' in initializer of '{struct.name}'.",
                    span=expr.span,
                )

        result.struct_inits[id(expr)] = [(name, given[name]) for name in struct.field_names()]
        return struct

    def _resolve_print(self, call: FunctionCall) -> None:
        if len(call.args) != 1:
            raise ArityError(BUILTIN_PRINT, 1, len(call.args), span=call.span)
        self._require_scalar(self._resolve_expr(call.args[0]), call.args[0], "print")

    def _check_arguments(self, fn: FunctionDef, args: list[Expr], span: SourceSpan, *, implicit: int) -> None:
        found = len(args) + implicit
        if found != fn.arity:
            raise ArityError(fn.name, fn.arity, found, span=span)
        for (param_name, param_type), arg in zip(fn.params[implicit:], args):
            arg_type = self._resolve_expr(arg)
            self._check_assignable(param_type, arg_type, arg.span, f"argument '{param_name}' of '{fn.name}'")

    # -- helpers -----------------------------------------------------------

    def _declare(self, binding: Binding) -> None:
        existing = self._scopes.declare(binding)
        if existing is not None:
            raise RedefinitionError(binding.name, span=binding.span)

    def _record(self, expr: Expr, inferred: Type) -> Type:
        self._require_result().expr_types[id(expr)] = inferred
        return inferred

    def _require_result(self) -> ResolvedModule:
        assert self._result is not None
        return self._result

    @staticmethod
    def _require_scalar(found: Type, expr: Expr, where: str) -> ScalarType:
        if not isinstance(found, ScalarType) or found is VOID:
            raise TypeMismatchError(
                "scalar",
                type_name(found),
                f"{where} expects a scalar operand.",
                span=expr.span,
            )
        return found

    @staticmethod
    def _check_assignable(expected: Type, found: Type, span: SourceSpan, where: str) -> None:
        if isinstance(expected, StructDef):
            ok = found is expected
        else:
            ok = isinstance(found, ScalarType) and found is not VOID
        if not ok:
            raise TypeMismatchError(
                type_name(expected),
                type_name(found),
                f"Type mismatch in {where}: expected '{type_name(expected)}', found '{type_name(found)}'.",
                span=span,
            )

    @staticmethod
    def _join(left: Type, right: Type, expr: TernaryExpr) -> Type:
        if isinstance(left, StructDef) or isinstance(right, StructDef):
            if left is right:
                return left
        elif left is not VOID and right is not VOID:
            if left is right:
                return left
            return FLT if FLT in (left, right) else INT
        raise TypeMismatchError(
            type_name(left),
            type_name(right),
            "Ternary branches have incompatible types.",
            span=expr.span,
        )
