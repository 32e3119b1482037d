"""Boron-to-C compiler package."""

from __future__ import annotations

from typing import Any


__version__ = "0.1.0"

__all__ = [
    "CompileArtifacts",
    "CompileOptions",
    "check_source",
    "compile_file",
    "compile_library",
    "compile_source",
    "explain_source",
    "tokenize_source",
]


def compile_source(*args: Any, **kwargs: Any):
    from boron.main import compile_source as _compile_source

    return _compile_source(*args, **kwargs)


def compile_file(*args: Any, **kwargs: Any):
    from boron.main import compile_file as _compile_file

    return _compile_file(*args, **kwargs)


def compile_library(*args: Any, **kwargs: Any):
    from boron.main import compile_library as _compile_library

    return _compile_library(*args, **kwargs)


def check_source(*args: Any, **kwargs: Any):
    from boron.main import check_source as _check_source

    return _check_source(*args, **kwargs)


def explain_source(*args: Any, **kwargs: Any):
    from boron.main import explain_source as _explain_source

    return _explain_source(*args, **kwargs)


def tokenize_source(*args: Any, **kwargs: Any):
    from boron.main import tokenize_source as _tokenize_source

    return _tokenize_source(*args, **kwargs)


def __getattr__(name: str):
    if name in {"CompileArtifacts", "CompileOptions"}:
        from boron import main

        return getattr(main, name)
    raise AttributeError(name)
