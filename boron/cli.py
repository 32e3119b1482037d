"""Command-line interface for the Boron compiler."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path

from boron.errors import CompilerError, Diagnostic, ModuleNotFoundError, format_diagnostic
from boron.linker import StdlibLocator
from boron.main import (
    CompileOptions,
    check_source,
    compile_library,
    compile_source,
    explain_source,
)
from boron.resolver import EXECUTABLE, LIBRARY
from boron.scaffolder import write_files


logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".brn"


class DirectoryLocator:
    """Finds `a.b` as `<dir>/a/b.brn` in each search directory, in order."""

    def __init__(self, directories: list[str | Path]) -> None:
        self.directories = [Path(directory) for directory in directories]

    def __call__(self, path: str) -> str:
        relative = Path(*path.split(".")).with_suffix(SOURCE_SUFFIX)
        for directory in self.directories:
            candidate = directory / relative
            if candidate.is_file():
                logger.debug("found %s at %s", path, candidate)
                return candidate.read_text(encoding="utf-8")
        raise ModuleNotFoundError(path)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date '{value}'; expected YYYY-MM-DD.") from None


def build_parser() -> argparse.ArgumentParser:
    """Build argparse command tree for the Boron CLI."""
    parser = argparse.ArgumentParser(prog="boron", description="Boron to C compiler")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log compiler stages to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    compile_parser = subparsers.add_parser("compile", help="Compile a Boron module and its imports to C")
    _add_source_arguments(compile_parser)
    compile_parser.add_argument("-o", "--output", help="Output directory for generated .c/.h files")
    compile_parser.add_argument("--date", type=_parse_date, help="Write a build date (YYYY-MM-DD) into banners")

    check_parser = subparsers.add_parser("check", help="Validate source through resolution")
    _add_source_arguments(check_parser)

    explain_parser = subparsers.add_parser("explain", help="Print AST and symbol tables as JSON")
    _add_source_arguments(explain_parser)

    std_parser = subparsers.add_parser("build-std", help="Compile the bundled standard library")
    std_parser.add_argument("-o", "--output", help="Output directory for generated .c/.h files")
    std_parser.add_argument("--date", type=_parse_date, help="Write a build date (YYYY-MM-DD) into banners")

    return parser


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("input", nargs="?", help="Input .brn file")
    parser.add_argument("--code", help="Inline Boron source string")
    parser.add_argument("--module", help="Module name of the entry source (defaults to the file stem)")
    parser.add_argument("--library", action="store_true", help="Compile as an importable library (no main)")
    parser.add_argument(
        "-I",
        "--include",
        action="append",
        default=[],
        help="Directory searched for imported modules; can be repeated.",
    )


def run(argv: list[str] | None = None) -> int:
    """Run CLI and return shell exit code."""
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            stream=sys.stderr,
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    try:
        if args.command == "build-std":
            stdlib = StdlibLocator()
            files = compile_library(stdlib.available(), options=CompileOptions(build_date=args.date))
            _deliver(files, args.output)
            return 0

        source, module_name, filename, search = _resolve_source(args)
        locator = DirectoryLocator(search)
        options = CompileOptions(
            module_name=module_name,
            mode=LIBRARY if args.library else EXECUTABLE,
            filename=filename,
        )

        if args.command == "compile":
            options.build_date = args.date
            artifacts = compile_source(source, locator=locator, options=options)
            if args.output:
                write_files(artifacts.files, args.output)
            else:
                sys.stdout.write(artifacts.code)
            return 0

        if args.command == "check":
            check_source(source, locator=locator, options=options)
            print("OK")
            return 0

        if args.command == "explain":
            payload = explain_source(source, locator=locator, options=options)
            print(json.dumps(payload, indent=2, sort_keys=True))
            return 0

        raise argparse.ArgumentTypeError(f"Unsupported command '{args.command}'.")

    except CompilerError as err:
        diag = err.to_diagnostic()
        print(format_diagnostic(diag), file=sys.stderr)
        return 1
    except (argparse.ArgumentTypeError, OSError) as err:
        diag = Diagnostic(code="CLI001", message=str(err), span=None, hint="Run boron --help for usage.")
        print(format_diagnostic(diag), file=sys.stderr)
        return 2


def _resolve_source(args: argparse.Namespace) -> tuple[str, str, str, list[Path]]:
    search = [Path(directory) for directory in args.include]
    if args.input and args.code is not None:
        raise argparse.ArgumentTypeError("Use either input file path or --code, not both.")
    if args.input:
        path = Path(args.input)
        source = path.read_text(encoding="utf-8")
        search.insert(0, path.parent)
        return source, args.module or path.stem, str(path), search
    if args.code is not None:
        search.insert(0, Path.cwd())
        return args.code, args.module or "main", "<inline>", search
    raise argparse.ArgumentTypeError("No source provided. Pass input file path or --code.")


def _deliver(files: dict[str, str], output: str | None) -> None:
    if output:
        write_files(files, output)
        return
    for relative_path, body in files.items():
        sys.stdout.write(f"/* ==> {relative_path} <== */\n")
        sys.stdout.write(body)


if __name__ == "__main__":
    raise SystemExit(run())
