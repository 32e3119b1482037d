"""Bundled `std.*` Boron modules, served by `boron.linker.StdlibLocator`."""
