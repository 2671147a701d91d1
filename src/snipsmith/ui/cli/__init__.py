"""Public CLI exports for snipsmith."""

from __future__ import annotations

from .app import app, main
from .commands import expand, inspect
from .state import debug_enabled, emit_error, emit_warning, get_cli_state


__all__ = [
    "app",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "expand",
    "get_cli_state",
    "inspect",
    "main",
]
