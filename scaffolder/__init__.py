"""Create projects and components from versioned template packages."""
from __future__ import annotations

from importlib import import_module

__version__ = "0.1.0"

_cli_module = import_module(f"{__name__}.cli")
main = _cli_module.main

__all__ = ["__version__", "main"]
