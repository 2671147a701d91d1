"""CLI command implementations exposed via `snipsmith.ui.cli`."""

from __future__ import annotations

from .expand import expand
from .inspect import inspect


__all__ = ["expand", "inspect"]
