"""Structured compiler diagnostics and exception hierarchy for Boron."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from boron.spans import SourceSpan


@dataclass(frozen=True)
class Diagnostic:
    """Machine-readable diagnostic emitted by compiler phases."""

    code: str
    message: str
    span: SourceSpan | None = None
    hint: str = ""
    context: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the diagnostic for JSON output."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "hint": self.hint,
        }
        if self.span is not None:
            payload["span"] = self.span.to_dict()
        if self.context:
            payload["context"] = dict(self.context)
        return payload


class CompilerError(Exception):
    """Base compiler error carrying a code and optional source span."""

    def __init__(self, code: str, message: str, span: SourceSpan | None = None, hint: str = "") -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.span = span
        self.hint = hint

    def context(self) -> dict[str, Any]:
        """Structured fields specific to the error kind."""
        return {}

    def to_diagnostic(self) -> Diagnostic:
        """Convert exception into serializable diagnostic."""
        return Diagnostic(
            code=self.code,
            message=self.message,
            span=self.span,
            hint=self.hint,
            context=self.context(),
        )

    def __str__(self) -> str:
        if self.span is None:
            return f"[{self.code}] {self.message}"
        return (
            f"[{self.code}] {self.message} "
            f"({self.span.file}:{self.span.line}:{self.span.column})"
        )


class LexError(CompilerError):
    """Raised by lexical analysis failures."""

    def __init__(self, code: str, message: str, span: SourceSpan | None = None, hint: str = "", char: str = "") -> None:
        super().__init__(code, message, span, hint)
        self.char = char

    def context(self) -> dict[str, Any]:
        return {"char": self.char}


class ParseError(CompilerError):
    """Raised by parser failures; the first mismatch aborts the module."""

    def __init__(
        self,
        code: str,
        message: str,
        span: SourceSpan | None = None,
        hint: str = "",
        expected: str = "",
        found: str = "",
    ) -> None:
        super().__init__(code, message, span, hint)
        self.expected = expected
        self.found = found

    def context(self) -> dict[str, Any]:
        return {"expected": self.expected, "found": self.found}


class ResolveError(CompilerError):
    """Base class for semantic resolution failures."""


class UnresolvedNameError(ResolveError):
    """A name (variable, function, type or method) has no visible binding."""

    def __init__(self, name: str, span: SourceSpan | None = None, what: str = "symbol", hint: str = "") -> None:
        super().__init__(
            "RES001",
            f"Unresolved {what} '{name}'.",
            span,
            hint or "Declare it before use, or import it from the module that defines it.",
        )
        self.name = name

    def context(self) -> dict[str, Any]:
        return {"name": self.name}


class FieldMismatchError(ResolveError):
    """Struct initializer or field access does not match the struct declaration."""

    def __init__(self, struct_name: str, field_name: str, message: str, span: SourceSpan | None = None) -> None:
        super().__init__("RES002", message, span, f"Check the field list of struct '{struct_name}'.")
        self.struct_name = struct_name
        self.field = field_name

    def context(self) -> dict[str, Any]:
        return {"struct": self.struct_name, "field": self.field}


class ArityError(ResolveError):
    """Call argument count does not match the declaration."""

    def __init__(self, name: str, expected: int, found: int, span: SourceSpan | None = None) -> None:
        super().__init__(
            "RES003",
            f"Function '{name}' expects {expected} argument(s), got {found}.",
            span,
            "Adjust call argument count.",
        )
        self.name = name
        self.expected = expected
        self.found = found

    def context(self) -> dict[str, Any]:
        return {"name": self.name, "expected": self.expected, "found": self.found}


class MissingMainError(ResolveError):
    """Entry module compiled as an executable has no `main`."""

    def __init__(self, module: str, span: SourceSpan | None = None) -> None:
        super().__init__(
            "RES004",
            f"Module '{module}' has no 'main' function.",
            span,
            "Add 'main() { ... }' or compile the module as a library.",
        )
        self.module = module

    def context(self) -> dict[str, Any]:
        return {"module": self.module}


class RedefinitionError(ResolveError):
    """A name is declared twice in the same scope."""

    def __init__(self, name: str, span: SourceSpan | None = None, hint: str = "") -> None:
        super().__init__(
            "RES005",
            f"'{name}' is already defined in this scope.",
            span,
            hint or "Use a unique name or rename the existing declaration.",
        )
        self.name = name

    def context(self) -> dict[str, Any]:
        return {"name": self.name}


class TypeMismatchError(ResolveError):
    """A value's declared type cannot be used where it appears."""

    def __init__(self, expected: str, found: str, message: str, span: SourceSpan | None = None) -> None:
        super().__init__("RES006", message, span, f"Expected '{expected}', found '{found}'.")
        self.expected = expected
        self.found = found

    def context(self) -> dict[str, Any]:
        return {"expected": self.expected, "found": self.found}


class RecursiveStructError(ResolveError):
    """A struct contains itself by value."""

    def __init__(self, name: str, span: SourceSpan | None = None) -> None:
        super().__init__(
            "RES007",
            f"Struct '{name}' contains itself by value.",
            span,
            "Break the cycle; struct fields are stored by value.",
        )
        self.name = name

    def context(self) -> dict[str, Any]:
        return {"name": self.name}


class LinkError(CompilerError):
    """Base class for import graph failures."""


class CyclicImportError(LinkError):
    """A module already being resolved was imported again."""

    def __init__(self, cycle: list[str], span: SourceSpan | None = None) -> None:
        super().__init__(
            "LNK001",
            f"Cyclic import: {' -> '.join(cycle)}.",
            span,
            "Move shared declarations into a module both sides can import.",
        )
        self.cycle = list(cycle)

    def context(self) -> dict[str, Any]:
        return {"cycle": list(self.cycle)}


class UnresolvedImportError(LinkError):
    """A named import is not exported by the target module."""

    def __init__(self, module: str, name: str, span: SourceSpan | None = None) -> None:
        super().__init__(
            "LNK002",
            f"Module '{module}' does not export '{name}'.",
            span,
            "Only top-level structs and functions are exported.",
        )
        self.module = module
        self.name = name

    def context(self) -> dict[str, Any]:
        return {"module": self.module, "name": self.name}


class ModuleNotFoundError(LinkError):
    """The module locator has no source for an import path."""

    def __init__(self, path: str, span: SourceSpan | None = None) -> None:
        super().__init__(
            "LNK003",
            f"Module '{path}' could not be found.",
            span,
            "Check the import path or add its directory to the search path.",
        )
        self.path = path

    def context(self) -> dict[str, Any]:
        return {"path": self.path}


class EmitError(CompilerError):
    """Raised by backend emission failures."""


class CLIError(CompilerError):
    """Raised by CLI usage or orchestration failures."""


def format_diagnostic(diag: Diagnostic) -> str:
    """Format diagnostic into a stable human-readable line."""
    if diag.span is None:
        suffix = ""
    else:
        suffix = f" {diag.span.file}:{diag.span.line}:{diag.span.column}"
    hint = f" Hint: {diag.hint}" if diag.hint else ""
    return f"{diag.code}{suffix}: {diag.message}{hint}"
