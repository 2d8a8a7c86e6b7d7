"""CLI package for driving the storm pipeline verification harness."""

from importlib import import_module
from types import ModuleType


def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)

# ``cli.app`` resolves to the module; the Typer instance is ``cli.app.app``.

__all__ = []
