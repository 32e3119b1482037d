"""Symbol tables, types and the lexical scope stack used by the resolver."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from boron.spans import SourceSpan


@dataclass(frozen=True)
class ScalarType:
    """Built-in value type with its C spelling and `printf` conversion."""

    name: str
    c_name: str
    printf_format: str = ""

    def __str__(self) -> str:
        return self.name


INT = ScalarType("int", "int", "%d")
FLT = ScalarType("flt", "float", "%f")
BLN = ScalarType("bln", "bool", "%s")
CHR = ScalarType("chr", "char", "%c")
VOID = ScalarType("void", "void")

SCALAR_TYPES: dict[str, ScalarType] = {t.name: t for t in (INT, FLT, BLN, CHR)}


@dataclass(eq=False)
class StructDef:
    """Resolved struct; `fields` keeps declaration order verbatim."""

    name: str
    module: str
    span: SourceSpan
    fields: list[tuple[str, "Type"]] = field(default_factory=list)
    methods: dict[str, "FunctionDef"] = field(default_factory=dict)

    def field_type(self, name: str) -> "Type | None":
        for field_name, field_type in self.fields:
            if field_name == name:
                return field_type
        return None

    def field_names(self) -> list[str]:
        return [name for name, _ in self.fields]

    def __str__(self) -> str:
        return self.name


Type = Union[ScalarType, StructDef]


@dataclass(eq=False)
class FunctionDef:
    """Resolved function signature."""

    name: str
    module: str
    span: SourceSpan
    params: list[tuple[str, Type]] = field(default_factory=list)
    return_type: Type = VOID
    is_main: bool = False
    builtin: bool = False

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def receiver_type(self) -> Type | None:
        """Type of the first parameter, which makes the function a method of that struct."""
        if not self.params:
            return None
        return self.params[0][1]


@dataclass(eq=False)
class Binding:
    """Resolved association of a name to its declaration."""

    name: str
    kind: str  # variable | parameter | function | struct
    type: Type | None
    span: SourceSpan | None = None
    function: FunctionDef | None = None
    struct: StructDef | None = None

    @property
    def by_reference(self) -> bool:
        """Struct-typed parameters are pointers in generated C."""
        return self.kind == "parameter" and isinstance(self.type, StructDef)


class ScopeStack:
    """Stack of lexical frames; lookup walks innermost to outermost."""

    def __init__(self) -> None:
        self._frames: list[dict[str, Binding]] = []

    def push(self) -> None:
        self._frames.append({})

    def pop(self) -> None:
        self._frames.pop()

    @property
    def depth(self) -> int:
        return len(self._frames)

    def declare(self, binding: Binding) -> Binding | None:
        """Add a binding to the innermost frame; returns the clashing binding if any."""
        frame = self._frames[-1]
        existing = frame.get(binding.name)
        if existing is not None:
            return existing
        frame[binding.name] = binding
        return None

    def lookup(self, name: str) -> Binding | None:
        for frame in reversed(self._frames):
            found = frame.get(name)
            if found is not None:
                return found
        return None


@dataclass
class ModuleSymbols:
    """Per-module symbol table; dicts preserve declaration order."""

    name: str
    structs: dict[str, StructDef] = field(default_factory=dict)
    functions: dict[str, FunctionDef] = field(default_factory=dict)
    imported_structs: dict[str, StructDef] = field(default_factory=dict)
    imported_functions: dict[str, FunctionDef] = field(default_factory=dict)

    def exports(self) -> dict[str, StructDef | FunctionDef]:
        """Own top-level structs and functions, excluding `main` and imports."""
        exported: dict[str, StructDef | FunctionDef] = {}
        exported.update(self.structs)
        exported.update({name: fn for name, fn in self.functions.items() if not fn.is_main})
        return exported

    def lookup_struct(self, name: str) -> StructDef | None:
        return self.structs.get(name) or self.imported_structs.get(name)

    def lookup_function(self, name: str) -> FunctionDef | None:
        return self.functions.get(name) or self.imported_functions.get(name)

    def to_dict(self) -> dict[str, object]:
        """Serialize the table for `explain` output."""
        return {
            "module": self.name,
            "structs": {
                name: [{"name": f, "type": str(t)} for f, t in struct.fields]
                for name, struct in self.structs.items()
            },
            "functions": {
                name: {
                    "params": [{"name": p, "type": str(t)} for p, t in fn.params],
                    "return_type": str(fn.return_type),
                }
                for name, fn in self.functions.items()
            },
            "imports": sorted([*self.imported_structs, *self.imported_functions]),
        }


def type_name(type_: Type | None) -> str:
    return "?" if type_ is None else str(type_)
