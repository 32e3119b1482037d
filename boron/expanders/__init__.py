"""Built-in backend emitters."""

from boron.expanders.c_backend import CBackend

__all__ = ["CBackend"]
