"""Base abstractions for target language emitters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date

from boron.resolver import ResolvedModule


@dataclass
class EmissionContext:
    """Per-module settings passed into backend emitters."""

    module: str
    version: str
    importable: bool = False
    build_date: date | None = None
    guard_prefix: str = "BORON"


@dataclass
class EmittedModule:
    """Generated text for one module; `header` is None for executables."""

    module: str
    source_path: str
    source: str
    header_path: str | None = None
    header: str | None = None

    def files(self) -> dict[str, str]:
        out = {self.source_path: self.source}
        if self.header_path is not None and self.header is not None:
            out[self.header_path] = self.header
        return out


class BackendEmitter(ABC):
    """Abstract target language backend contract."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend target name."""

    @abstractmethod
    def emit_module(self, module: ResolvedModule, context: EmissionContext) -> EmittedModule:
        """Emit source text (and header, for importable modules) for one module."""

    @staticmethod
    def indent(text: str, level: int, unit: str = "    ") -> str:
        """Indent all non-empty lines by level."""
        prefix = unit * level
        lines = text.splitlines()
        return "\n".join((prefix + line) if line.strip() else line for line in lines)
