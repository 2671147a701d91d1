"""Per-invocation CLI state: verbosity, traceback display, consoles, and events.

The state lives on the Click context object while a command runs and is
mirrored into a context variable so helpers called outside a command (tests,
emitters created ahead of time) still find it.
"""

from __future__ import annotations

from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass, field
import sys
from typing import TYPE_CHECKING, Any

import click
import typer

from snipsmith.core.exceptions import exception_messages


if TYPE_CHECKING:  # pragma: no cover - typing only
    from rich.console import Console


@dataclass(slots=True)
class CLIState:
    """Diagnostics settings and collected session events for one invocation."""

    verbosity: int = 0
    show_tracebacks: bool = False
    events: dict[str, list[dict[str, Any]]] = field(default_factory=dict, init=False)
    _consoles: dict[str, Console] = field(default_factory=dict, init=False, repr=False)

    def _console_for(self, name: str, stream: Any, **options: Any) -> Console:
        # Re-bind when the stream was swapped (pytest capture, CliRunner).
        from rich.console import Console

        console = self._consoles.get(name)
        if console is None or console.file is not stream:
            console = Console(file=stream, **options)
            self._consoles[name] = console
        return console

    @property
    def console(self) -> Console:
        """Console writing to the current stdout."""
        return self._console_for("out", sys.stdout)

    @property
    def err_console(self) -> Console:
        """Console writing to the current stderr, without syntax highlighting."""
        return self._console_for("err", sys.stderr, highlight=False)

    def record_event(self, name: str, payload: Mapping[str, Any] | None = None) -> None:
        self.events.setdefault(name, []).append(dict(payload or {}))

    def consume_events(self, name: str) -> list[dict[str, Any]]:
        """Return the events recorded under ``name`` and forget them."""
        return self.events.pop(name, [])


_STATE_VAR: ContextVar[CLIState | None] = ContextVar("snipsmith_cli_state", default=None)


def _state_from_context(ctx: click.Context) -> CLIState | None:
    current: click.Context | None = ctx
    while current is not None:
        if isinstance(current.obj, CLIState):
            return current.obj
        current = current.parent
    return None


def get_cli_state(
    ctx: typer.Context | click.Context | None = None,
    *,
    create: bool = True,
) -> CLIState:
    """Return the state bound to the active Click context, or the ambient one.

    Raises ``RuntimeError`` when no state exists and ``create`` is false.
    """
    if ctx is None:
        ctx = click.get_current_context(silent=True)

    state = _state_from_context(ctx) if ctx is not None else None
    if state is None:
        state = _STATE_VAR.get()
    if state is None:
        if not create:
            raise RuntimeError("CLI state is not initialised for this context.")
        state = CLIState()

    if ctx is not None and ctx.obj is None:
        ctx.obj = state
    _STATE_VAR.set(state)
    return state


def set_cli_state(
    *,
    ctx: typer.Context | None = None,
    verbosity: int | None = None,
    debug: bool | None = None,
) -> CLIState:
    """Apply command-line diagnostics flags and return the state."""
    state = get_cli_state(ctx)
    if verbosity is not None:
        state.verbosity = max(0, verbosity)
    if debug is not None:
        state.show_tracebacks = debug
    return state


_LEVEL_STYLES = {"warning": "yellow", "error": "red"}


def render_message(
    level: str,
    message: str,
    *,
    exception: BaseException | None = None,
) -> None:
    """Write a message to stderr.

    Info messages only appear with ``-v``. Warnings and errors always appear;
    ``-v`` adds the exception type and ``-vv`` the chain of causes.
    """
    state = get_cli_state()

    if level == "info":
        if state.verbosity >= 1:
            state.err_console.log(message)
        return

    from rich.text import Text

    style = _LEVEL_STYLES.get(level, "red")
    text = Text.assemble((f"{level}: ", f"bold {style}"), (message, style))

    if exception is not None and state.verbosity >= 1:
        details = [f"type: {type(exception).__name__}"]
        causes = exception_messages(exception)[1:]
        if state.verbosity >= 2 and causes:
            details.append("caused by:")
            details.extend(f"  {cause}" for cause in causes)
        text.append("\n" + "\n".join(details), style=style)

    state.err_console.print(text)


def emit_warning(message: str, *, exception: BaseException | None = None) -> None:
    render_message("warning", message, exception=exception)


def emit_error(message: str, *, exception: BaseException | None = None) -> None:
    render_message("error", message, exception=exception)


def debug_enabled() -> bool:
    """Return whether ``--debug`` asked for full tracebacks."""
    try:
        return get_cli_state(create=False).show_tracebacks
    except RuntimeError:
        return False


__all__ = [
    "CLIState",
    "debug_enabled",
    "emit_error",
    "emit_warning",
    "get_cli_state",
    "render_message",
    "set_cli_state",
]
