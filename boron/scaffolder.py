"""Output scaffolding stage: writes generated files to disk."""

from __future__ import annotations

import logging
from pathlib import Path

from boron.errors import CLIError


logger = logging.getLogger(__name__)


def write_files(files: dict[str, str], output_dir: str | Path) -> list[Path]:
    """Write `relative path -> text` entries under `output_dir` and return written paths."""
    output = Path(output_dir)
    if output.exists() and not output.is_dir():
        raise CLIError(
            code="CLI010",
            message=f"Output path '{output}' must be a directory.",
            span=None,
            hint="Use -o <directory>; one compilation emits several .c/.h files.",
        )

    written: list[Path] = []
    for relative_path, body in files.items():
        file_path = output / relative_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(body, encoding="utf-8")
        written.append(file_path)
        logger.debug("wrote %s", file_path)
    return written
