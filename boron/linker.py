"""Import graph resolution for multi-module Boron programs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Mapping

from boron.ast import Import
from boron.errors import CyclicImportError, ModuleNotFoundError
from boron.lexer import Lexer
from boron.parser import Parser
from boron.resolver import EXECUTABLE, LIBRARY, ResolvedModule, Resolver
from boron.spans import SourceSpan
from boron.symbols import ModuleSymbols


logger = logging.getLogger(__name__)

STDLIB_PREFIX = "std."

ModuleLocator = Callable[[str], str]


class MappingLocator:
    """Serves module sources from an in-memory `path -> source` mapping."""

    def __init__(self, modules: Mapping[str, str]) -> None:
        self.modules = dict(modules)

    def __call__(self, path: str) -> str:
        try:
            return self.modules[path]
        except KeyError:
            raise ModuleNotFoundError(path) from None


class StdlibLocator:
    """Serves `std.*` modules bundled as package data under `boron/stdlib`."""

    root = Path(__file__).resolve().parent / "stdlib"

    def __call__(self, path: str) -> str:
        if not path.startswith(STDLIB_PREFIX):
            raise ModuleNotFoundError(path)
        relative = path[len(STDLIB_PREFIX) :].split(".")
        source_path = self.root.joinpath(*relative[:-1], f"{relative[-1]}.brn")
        if not source_path.is_file():
            raise ModuleNotFoundError(path)
        return source_path.read_text(encoding="utf-8")

    def available(self) -> list[str]:
        return sorted(STDLIB_PREFIX + entry.stem for entry in self.root.glob("*.brn"))


class ChainLocator:
    """Tries each locator in order; the first one that knows the path wins."""

    def __init__(self, *locators: ModuleLocator) -> None:
        self.locators = [locator for locator in locators if locator is not None]

    def __call__(self, path: str) -> str:
        for locator in self.locators:
            try:
                return locator(path)
            except ModuleNotFoundError:
                continue
        raise ModuleNotFoundError(path)


class _Mark(Enum):
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass
class ModuleGraph:
    """Per-link bookkeeping: visit marks, the active import chain and results."""

    marks: dict[str, _Mark] = field(default_factory=dict)
    stack: list[str] = field(default_factory=list)
    edges: dict[str, list[str]] = field(default_factory=dict)
    resolved: dict[str, ResolvedModule] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def enter(self, name: str) -> None:
        self.marks[name] = _Mark.IN_PROGRESS
        self.stack.append(name)
        self.edges.setdefault(name, [])

    def finish(self, name: str, module: ResolvedModule) -> None:
        self.stack.pop()
        self.marks[name] = _Mark.DONE
        self.resolved[name] = module
        self.order.append(name)

    def add_edge(self, importer: str, imported: str) -> None:
        targets = self.edges.setdefault(importer, [])
        if imported not in targets:
            targets.append(imported)

    def cycle_to(self, name: str) -> list[str]:
        start = self.stack.index(name)
        return [*self.stack[start:], name]


@dataclass
class LinkedProgram:
    """All modules of one compilation; dependencies precede their importers."""

    entry: str
    modules: list[ResolvedModule]
    graph: dict[str, list[str]]

    def module(self, name: str) -> ResolvedModule:
        for module in self.modules:
            if module.name == name:
                return module
        raise KeyError(name)

    @property
    def entry_module(self) -> ResolvedModule:
        return self.module(self.entry)


class ModuleLinker:
    """Resolves an entry module together with everything it transitively imports."""

    def __init__(self, locator: ModuleLocator | None = None) -> None:
        self.locator = locator

    def link(
        self,
        source: str,
        *,
        module_name: str = "main",
        mode: str = EXECUTABLE,
        filename: str | None = None,
    ) -> LinkedProgram:
        graph = ModuleGraph()
        self._resolve_module(module_name, source, mode, graph, filename or module_name)
        logger.debug("linked %s: %s", module_name, " ".join(graph.order))
        return LinkedProgram(
            entry=module_name,
            modules=[graph.resolved[name] for name in graph.order],
            graph={name: list(targets) for name, targets in graph.edges.items()},
        )

    def _resolve_module(self, name: str, source: str, mode: str, graph: ModuleGraph, filename: str) -> None:
        graph.enter(name)
        tokens = Lexer(source, filename=filename).tokenize()
        program = Parser(tokens).parse_program()
        resolver = Resolver(
            name,
            mode=mode,
            import_resolver=lambda node: self._import(node, name, graph),
        )
        graph.finish(name, resolver.resolve(program))

    def _import(self, node: Import, importer: str, graph: ModuleGraph) -> ModuleSymbols:
        path = node.path
        graph.add_edge(importer, path)

        mark = graph.marks.get(path)
        if mark is _Mark.IN_PROGRESS:
            raise CyclicImportError(graph.cycle_to(path), span=node.span)
        if mark is _Mark.DONE:
            return graph.resolved[path].symbols

        source = self._locate(path, node.span)
        logger.debug("resolving %s (imported by %s)", path, importer)
        self._resolve_module(path, source, LIBRARY, graph, path)
        return graph.resolved[path].symbols

    def _locate(self, path: str, span: SourceSpan) -> str:
        if self.locator is None:
            raise ModuleNotFoundError(path, span=span)
        try:
            return self.locator(path)
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError(path, span=span) from exc
