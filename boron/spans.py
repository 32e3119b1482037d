"""Source location utilities shared by tokens, AST nodes and diagnostics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SourceSpan:
    """Represents a source range in 1-based coordinates (end column exclusive)."""

    file: str
    line: int
    column: int
    end_line: int
    end_column: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize the span to a JSON-compatible mapping."""
        return {
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }

    def excerpt(self, source: str) -> str:
        """Return the exact source text covered by this span."""
        lines = source.split("\n")
        if self.line == self.end_line:
            return lines[self.line - 1][self.column - 1 : self.end_column - 1]
        parts = [lines[self.line - 1][self.column - 1 :]]
        parts.extend(lines[self.line : self.end_line - 1])
        parts.append(lines[self.end_line - 1][: self.end_column - 1])
        return "\n".join(parts)


def merge_spans(start: SourceSpan, end: SourceSpan) -> SourceSpan:
    """Build a span running from the start of `start` to the end of `end`."""
    return SourceSpan(
        file=start.file,
        line=start.line,
        column=start.column,
        end_line=end.end_line,
        end_column=end.end_column,
    )
