"""Top-level compiler orchestration for Boron."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from pathlib import Path
from typing import Any

from boron import __version__
from boron.expanders.base import EmissionContext, EmittedModule
from boron.expanders.c_backend import CBackend, check_module_prefixes
from boron.lexer import Lexer
from boron.linker import ChainLocator, LinkedProgram, ModuleLinker, ModuleLocator, StdlibLocator
from boron.resolver import EXECUTABLE, LIBRARY, ResolvedModule
from boron.tokens import Token


MODES = (EXECUTABLE, LIBRARY)


@dataclass
class CompileOptions:
    """Knobs for one compilation; CLI flags map onto these fields."""

    module_name: str = "main"
    mode: str = EXECUTABLE
    build_date: date | None = None
    guard_prefix: str = "BORON"
    filename: str | None = None


@dataclass
class ModuleArtifacts:
    """Resolved and emitted output of one module."""

    resolved: ResolvedModule
    emitted: EmittedModule

    @property
    def name(self) -> str:
        return self.resolved.name


@dataclass
class CompileArtifacts:
    """Full compiler artifacts; `files` maps relative paths to generated text."""

    entry: str
    linked: LinkedProgram
    modules: list[ModuleArtifacts]
    files: dict[str, str] = field(default_factory=dict)

    @property
    def code(self) -> str:
        """Generated C source of the entry module."""
        for module in self.modules:
            if module.name == self.entry:
                return module.emitted.source
        raise KeyError(self.entry)

    @property
    def header(self) -> str | None:
        for module in self.modules:
            if module.name == self.entry:
                return module.emitted.header
        raise KeyError(self.entry)


def default_locator(locator: ModuleLocator | None = None) -> ModuleLocator:
    """User locator first, then the bundled `std.*` modules."""
    if locator is None:
        return StdlibLocator()
    return ChainLocator(locator, StdlibLocator())


def link_source(
    source: str,
    *,
    locator: ModuleLocator | None = None,
    options: CompileOptions | None = None,
) -> LinkedProgram:
    """Lex, parse and resolve an entry module and all of its imports."""
    options = options or CompileOptions()
    if options.mode not in MODES:
        raise ValueError(f"Unknown compile mode '{options.mode}'.")
    return ModuleLinker(default_locator(locator)).link(
        source,
        module_name=options.module_name,
        mode=options.mode,
        filename=options.filename,
    )


def compile_source(
    source: str,
    *,
    locator: ModuleLocator | None = None,
    options: CompileOptions | None = None,
) -> CompileArtifacts:
    """Compile entry source (and its imports) into C sources and headers."""
    options = options or CompileOptions()
    linked = link_source(source, locator=locator, options=options)
    check_module_prefixes(linked.modules)

    backend = CBackend()
    modules: list[ModuleArtifacts] = []
    files: dict[str, str] = {}
    for resolved in linked.modules:
        emitted = backend.emit_module(
            resolved,
            EmissionContext(
                module=resolved.name,
                version=__version__,
                importable=resolved.importable,
                build_date=options.build_date,
                guard_prefix=options.guard_prefix,
            ),
        )
        modules.append(ModuleArtifacts(resolved=resolved, emitted=emitted))
        files.update(emitted.files())

    return CompileArtifacts(entry=linked.entry, linked=linked, modules=modules, files=files)


def compile_file(
    input_path: str | Path,
    *,
    locator: ModuleLocator | None = None,
    options: CompileOptions | None = None,
) -> CompileArtifacts:
    """Compile a `.brn` file; the module name defaults to the file stem."""
    path = Path(input_path)
    source = path.read_text(encoding="utf-8")
    options = options or CompileOptions(module_name=path.stem)
    if options.filename is None:
        options = replace(options, filename=str(path))
    return compile_source(source, locator=locator, options=options)


def compile_library(
    paths: list[str],
    *,
    locator: ModuleLocator | None = None,
    options: CompileOptions | None = None,
) -> dict[str, str]:
    """Compile each module path in library mode; every path is resolved independently."""
    options = options or CompileOptions()
    search = default_locator(locator)
    files: dict[str, str] = {}
    for path in paths:
        artifacts = compile_source(
            search(path),
            locator=locator,
            options=CompileOptions(
                module_name=path,
                mode=LIBRARY,
                build_date=options.build_date,
                guard_prefix=options.guard_prefix,
            ),
        )
        files.update(artifacts.files)
    return files


def check_source(
    source: str,
    *,
    locator: ModuleLocator | None = None,
    options: CompileOptions | None = None,
) -> LinkedProgram:
    """Run the pipeline through resolution without emitting C."""
    return link_source(source, locator=locator, options=options)


def tokenize_source(source: str, *, filename: str = "<input>") -> list[Token]:
    return Lexer(source, filename=filename).tokenize()


def explain_source(
    source: str,
    *,
    locator: ModuleLocator | None = None,
    options: CompileOptions | None = None,
) -> dict[str, Any]:
    """Return a JSON-compatible explanation payload with tokens, AST and symbols."""
    options = options or CompileOptions()
    linked = link_source(source, locator=locator, options=options)
    entry = linked.entry_module
    tokens = tokenize_source(source, filename=options.filename or options.module_name)
    return {
        "entry": linked.entry,
        "tokens": len(tokens),
        "ast": ast_to_dict(entry.program),
        "symbols": entry.symbols.to_dict(),
        "modules": [module.name for module in linked.modules],
        "imports": linked.graph,
    }


def ast_to_dict(node: Any) -> Any:
    """Serialize AST dataclasses recursively into JSON-compatible dicts."""
    if isinstance(node, list):
        return [ast_to_dict(item) for item in node]
    if hasattr(node, "__dataclass_fields__"):
        payload: dict[str, Any] = {"node_type": type(node).__name__}
        for name in node.__dataclass_fields__:
            value = getattr(node, name)
            if name == "span":
                payload[name] = value.to_dict()
            else:
                payload[name] = ast_to_dict(value)
        return payload
    return node


if __name__ == "__main__":
    from boron.cli import run

    raise SystemExit(run())
