"""C backend emitter for resolved Boron modules."""

from __future__ import annotations

import hashlib
import logging
import re

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
    LiteralExpr,
    MethodCall,
    Reassignment,
    Return,
    Stmt,
    StructInit,
    TernaryExpr,
    UnaryExpr,
    While,
)
from boron.errors import EmitError
from boron.expanders.base import BackendEmitter, EmissionContext, EmittedModule
from boron.resolver import ResolvedModule
from boron.symbols import BLN, VOID, FunctionDef, StructDef, Type


logger = logging.getLogger(__name__)

OUT_PARAM = "_brn_out"
TEMP_PREFIX = "_brn_t"
RESERVED_PREFIX = "_brn_"

C_KEYWORDS = frozenset(
    {
        "auto", "break", "case", "char", "const", "continue", "default", "do",
        "double", "else", "enum", "extern", "float", "for", "goto", "if",
        "inline", "int", "long", "register", "restrict", "return", "short",
        "signed", "sizeof", "static", "struct", "switch", "typedef", "union",
        "unsigned", "void", "volatile", "while", "_Bool", "_Complex",
        "_Imaginary",
    }
)

# Names declared by the headers every generated file includes.
HEADER_NAMES = frozenset(
    {
        # stdbool.h
        "bool", "true", "false",
        # stdio.h (C99 plus the POSIX names glibc exposes by default)
        "FILE", "fpos_t", "size_t", "va_list", "off_t", "ssize_t", "NULL",
        "EOF", "BUFSIZ", "FILENAME_MAX", "FOPEN_MAX", "L_tmpnam", "TMP_MAX",
        "SEEK_SET", "SEEK_CUR", "SEEK_END", "stdin", "stdout", "stderr",
        "remove", "rename", "tmpfile", "tmpnam", "fclose", "fflush", "fopen",
        "freopen", "setbuf", "setvbuf", "fprintf", "fscanf", "printf", "scanf",
        "snprintf", "sprintf", "sscanf", "vfprintf", "vfscanf", "vprintf",
        "vscanf", "vsnprintf", "vsprintf", "vsscanf", "fgetc", "fgets", "fputc",
        "fputs", "getc", "getchar", "gets", "putc", "putchar", "puts", "ungetc",
        "fread", "fwrite", "fgetpos", "fseek", "fsetpos", "ftell", "rewind",
        "clearerr", "feof", "ferror", "perror", "fileno", "fdopen", "popen",
        "pclose", "getline", "getdelim", "dprintf", "ctermid",
    }
)

RESERVED_NAMES = C_KEYWORDS | HEADER_NAMES


def c_ident(name: str) -> str:
    """Spell a Boron identifier so it cannot collide with C or generated names.

    Reserved names, the same names with trailing underscores, and anything in
    the `_brn_` namespace get one more `_`, which keeps the mapping one-to-one.
    """
    if name.rstrip("_") in RESERVED_NAMES or name.startswith(RESERVED_PREFIX):
        return f"{name}_"
    return name


def module_prefix(module: str) -> str:
    """`std.math` -> `std_math`; C symbols of importable modules start with it."""
    return "_".join(module.split("."))


def check_module_prefixes(modules: list[ResolvedModule]) -> None:
    """Reject importable modules whose C prefixes coincide, e.g. `a.b` and `a_b`."""
    seen: dict[str, str] = {}
    for module in modules:
        if not module.importable:
            continue
        prefix = module_prefix(module.name)
        other = seen.setdefault(prefix, module.name)
        if other != module.name:
            raise EmitError(
                code="EMT003",
                message=f"Modules '{other}' and '{module.name}' share the C prefix '{prefix}'.",
                span=module.program.span,
                hint="Rename one of the modules.",
            )


def module_paths(module: str) -> tuple[str, str]:
    """`std.math` -> (`std/math.c`, `std/math.h`)."""
    base = "/".join(module.split("."))
    return f"{base}.c", f"{base}.h"


def header_guard(module: str, prefix: str = "BORON") -> str:
    """Include guard that is stable per module name and distinct across names."""
    sanitized = re.sub(r"[^A-Za-z0-9]", "_", module).upper()
    digest = hashlib.sha1(module.encode("utf-8")).hexdigest()[:8].upper()
    return f"{prefix}_{sanitized}_{digest}_H"


class CBackend(BackendEmitter):
    """Expands a resolved module into C99 source and, when importable, a header."""

    @property
    def name(self) -> str:
        return "c"

    def emit_module(self, module: ResolvedModule, context: EmissionContext) -> EmittedModule:
        self._module = module
        self._fn: FunctionDef | None = None
        self._temp_counter = 0
        self._pending: list[str] = []

        source_path, header_path = module_paths(module.name)
        banner = self._banner(context)
        dep_includes = [f'#include "{module_paths(dep)[1]}"' for dep in module.dependencies]
        structs = self._emit_structs(module)
        prototypes = [
            f"{self._signature(fn)};" for fn in module.symbols.functions.values() if not fn.is_main
        ]
        definitions: list[str] = []
        for item in module.program.items:
            if isinstance(item, FunctionDecl):
                if definitions:
                    definitions.append("")
                definitions.extend(self._emit_function(item))

        if not context.importable:
            source = _join_sections(
                banner,
                ["#include <stdbool.h>", "#include <stdio.h>", *dep_includes],
                structs,
                prototypes,
                definitions,
            )
            logger.debug("emitted %s", source_path)
            return EmittedModule(module=module.name, source_path=source_path, source=source)

        guard = header_guard(module.name, context.guard_prefix)
        header = _join_sections(
            banner,
            [f"#ifndef {guard}", f"#define {guard}"],
            ["#include <stdbool.h>", *dep_includes],
            structs,
            prototypes,
            [f"#endif /* {guard} */"],
        )
        source = _join_sections(
            banner,
            ["#include <stdbool.h>", "#include <stdio.h>", *dep_includes, f'#include "{header_path}"'],
            definitions,
        )
        logger.debug("emitted %s and %s (guard %s)", source_path, header_path, guard)
        return EmittedModule(
            module=module.name,
            source_path=source_path,
            source=source,
            header_path=header_path,
            header=header,
        )

    def _banner(self, context: EmissionContext) -> list[str]:
        lines = [f"/* Generated by boron {context.version} from module '{context.module}'. Do not edit. */"]
        if context.build_date is not None:
            lines.append(f"/* Build date: {context.build_date.isoformat()} */")
        return lines

    def _emit_structs(self, module: ResolvedModule) -> list[str]:
        if not module.struct_order:
            return []
        lines = [f"typedef struct {self._global(s)} {self._global(s)};" for s in module.struct_order]
        for struct in module.struct_order:
            lines.append("")
            lines.append(f"struct {self._global(struct)} {{")
            for field_name, field_type in struct.fields:
                lines.append(self.indent(f"{self._ctype(field_type)} {c_ident(field_name)};", 1))
            if not struct.fields:
                lines.append(self.indent("char _brn_unused;", 1))
            lines.append("};")
        return lines

    def _signature(self, fn: FunctionDef) -> str:
        if fn.is_main:
            return "int main(void)"
        params = []
        for name, param_type in fn.params:
            if isinstance(param_type, StructDef):
                params.append(f"{self._ctype(param_type)} *{c_ident(name)}")
            else:
                params.append(f"{self._ctype(param_type)} {c_ident(name)}")
        if isinstance(fn.return_type, StructDef):
            params.append(f"{self._ctype(fn.return_type)} *{OUT_PARAM}")
            returns = "void"
        else:
            returns = self._ctype(fn.return_type)
        return f"{returns} {self._global(fn)}({', '.join(params) or 'void'})"

    def _emit_function(self, decl: FunctionDecl) -> list[str]:
        fn = self._module.function(decl)
        self._fn = fn
        self._temp_counter = 0
        lines = [f"{self._signature(fn)} {{"]
        for stmt in decl.body:
            lines.extend(self._emit_stmt(stmt, 1))
        ends_in_return = bool(decl.body) and isinstance(decl.body[-1], Return)
        if fn.is_main and fn.return_type is VOID and not ends_in_return:
            lines.append(self.indent("return 0;", 1))
        lines.append("}")
        self._fn = None
        return lines

    def _emit_stmt(self, stmt: Stmt, level: int) -> list[str]:
        saved = self._pending
        self._pending = []
        lines = self._emit_stmt_lines(stmt, level)
        hoisted = [self.indent(decl, level) for decl in self._pending]
        self._pending = saved
        return hoisted + lines

    def _emit_stmt_lines(self, stmt: Stmt, level: int) -> list[str]:
        module = self._module

        if isinstance(stmt, Assignment):
            decl_type = module.decl_types[id(stmt)]
            value_src = self._expr(stmt.value)
            return [self.indent(f"{self._ctype(decl_type)} {c_ident(stmt.name)} = {value_src};", level)]

        if isinstance(stmt, Reassignment):
            if isinstance(stmt.target, FieldAccess):
                target_src = self._field(stmt.target)
            else:
                target_src = self._expr(stmt.target)
            return [self.indent(f"{target_src} = {self._expr(stmt.value)};", level)]

        if isinstance(stmt, ExpressionStmt):
            return [self.indent(f"{self._expr(stmt.expr)};", level)]

        if isinstance(stmt, Return):
            fn = self._fn
            assert fn is not None
            if stmt.value is None:
                return [self.indent("return 0;" if fn.is_main else "return;", level)]
            value_src = self._expr(stmt.value)
            if isinstance(fn.return_type, StructDef):
                return [
                    self.indent(f"*{OUT_PARAM} = {value_src};", level),
                    self.indent("return;", level),
                ]
            return [self.indent(f"return {value_src};", level)]

        if isinstance(stmt, If):
            cond_src = self._expr(stmt.condition)
            lines = [self.indent(f"if ({cond_src}) {{", level)]
            lines.extend(self._emit_block(stmt.then_block, level + 1))
            lines.append(self.indent("}", level))
            if stmt.else_block is not None:
                lines[-1] = self.indent("} else {", level)
                lines.extend(self._emit_block(stmt.else_block, level + 1))
                lines.append(self.indent("}", level))
            return lines

        if isinstance(stmt, While):
            cond_src = self._expr(stmt.condition)
            lines = [self.indent(f"while ({cond_src}) {{", level)]
            lines.extend(self._emit_block(stmt.body, level + 1))
            lines.append(self.indent("}", level))
            return lines

        raise EmitError(
            code="EMT001",
            message=f"Unsupported statement type '{type(stmt).__name__}'.",
            span=stmt.span,
        )

    def _emit_block(self, block: list[Stmt], level: int) -> list[str]:
        lines: list[str] = []
        for stmt in block:
            lines.extend(self._emit_stmt(stmt, level))
        return lines

    def _expr(self, expr: Expr) -> str:
        module = self._module

        if isinstance(expr, LiteralExpr):
            return self._literal(expr)

        if isinstance(expr, IdentifierExpr):
            name = c_ident(expr.name)
            return f"(*{name})" if module.binding_of(expr).by_reference else name

        if isinstance(expr, UnaryExpr):
            return f"({expr.operator}{self._expr(expr.operand)})"

        if isinstance(expr, BinaryExpr):
            return f"({self._expr(expr.left)} {expr.operator} {self._expr(expr.right)})"

        if isinstance(expr, TernaryExpr):
            return f"({self._expr(expr.condition)} ? {self._expr(expr.then)} : {self._expr(expr.otherwise)})"

        if isinstance(expr, FunctionCall):
            fn = module.target_of(expr)
            if fn.builtin:
                return self._print(expr.args[0])
            return self._call(fn, expr.args)

        if isinstance(expr, MethodCall):
            return self._call(module.target_of(expr), [expr.receiver, *expr.args])

        if isinstance(expr, FieldAccess):
            return self._field(expr)

        if isinstance(expr, StructInit):
            return self._compound(expr)

        raise EmitError(
            code="EMT002",
            message=f"Unsupported expression type '{type(expr).__name__}'.",
            span=expr.span,
        )

    def _address(self, expr: Expr) -> str:
        """Pointer to a struct-typed expression, used for by-reference arguments."""
        module = self._module

        if isinstance(expr, IdentifierExpr):
            name = c_ident(expr.name)
            return name if module.binding_of(expr).by_reference else f"&{name}"

        if isinstance(expr, FieldAccess) and _is_lvalue(expr):
            return f"&{self._field(expr)}"

        if isinstance(expr, StructInit):
            return f"&{self._compound(expr)}"

        if isinstance(expr, FunctionCall):
            return self._call(module.target_of(expr), expr.args, address=True)

        if isinstance(expr, MethodCall):
            return self._call(module.target_of(expr), [expr.receiver, *expr.args], address=True)

        if isinstance(expr, TernaryExpr):
            return (
                f"({self._expr(expr.condition)} ? {self._address(expr.then)} : {self._address(expr.otherwise)})"
            )

        temp = self._temp(module.type_of(expr))
        return f"({temp} = {self._expr(expr)}, &{temp})"

    def _call(self, fn: FunctionDef, args: list[Expr], *, address: bool = False) -> str:
        parts = []
        for (_, param_type), arg in zip(fn.params, args):
            if isinstance(param_type, StructDef):
                parts.append(self._address(arg))
            else:
                parts.append(self._expr(arg))

        name = self._global(fn)
        if not isinstance(fn.return_type, StructDef):
            return f"{name}({', '.join(parts)})"

        temp = self._temp(fn.return_type)
        parts.append(f"&{temp}")
        result = f"&{temp}" if address else temp
        return f"({name}({', '.join(parts)}), {result})"

    def _field(self, expr: FieldAccess) -> str:
        receiver = expr.receiver
        field = c_ident(expr.field)
        if isinstance(receiver, IdentifierExpr) and self._module.binding_of(receiver).by_reference:
            return f"{c_ident(receiver.name)}->{field}"
        return f"{self._expr(receiver)}.{field}"

    def _compound(self, expr: StructInit) -> str:
        ctype = self._ctype(self._module.type_of(expr))
        inits = self._module.struct_inits[id(expr)]
        if not inits:
            return f"({ctype}){{ 0 }}"
        body = ", ".join(f".{c_ident(name)} = {self._expr(value)}" for name, value in inits)
        return f"({ctype}){{ {body} }}"

    def _print(self, arg: Expr) -> str:
        arg_type = self._module.type_of(arg)
        value_src = self._expr(arg)
        if arg_type is BLN:
            return f'printf("%s\\n", {value_src} ? "true" : "false")'
        assert not isinstance(arg_type, StructDef)
        return f'printf("{arg_type.printf_format}\\n", {value_src})'

    def _literal(self, expr: LiteralExpr) -> str:
        if expr.kind == "bool":
            return "true" if expr.value else "false"
        if expr.kind == "float":
            text = expr.text if not expr.text.endswith(".") else f"{expr.text}0"
            return f"{text}f"
        return expr.text

    def _temp(self, temp_type: Type) -> str:
        self._temp_counter += 1
        name = f"{TEMP_PREFIX}{self._temp_counter}"
        self._pending.append(f"{self._ctype(temp_type)} {name};")
        return name

    def _ctype(self, value_type: Type) -> str:
        if isinstance(value_type, StructDef):
            return self._global(value_type)
        return value_type.c_name

    def _global(self, symbol: StructDef | FunctionDef) -> str:
        """C name of a top-level struct or function.

        Symbols of importable modules carry their module prefix (`util__helper`)
        so names a module keeps out of scope never meet in C. The executable
        entry module, and `main`, keep their own spelling.
        """
        owner = self._module
        if symbol.module == owner.name and not owner.importable:
            return c_ident(symbol.name)
        return f"{module_prefix(symbol.module)}__{symbol.name}"


def _is_lvalue(expr: Expr) -> bool:
    if isinstance(expr, IdentifierExpr):
        return True
    if isinstance(expr, FieldAccess):
        return _is_lvalue(expr.receiver)
    return False


def _join_sections(*sections: list[str]) -> str:
    lines: list[str] = []
    for section in sections:
        if not section:
            continue
        if lines:
            lines.append("")
        lines.extend(section)
    return "\n".join(lines) + "\n"
