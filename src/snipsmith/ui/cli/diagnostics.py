"""Route snippet session diagnostics to the CLI console."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any

from snipsmith.core.diagnostics import event_level, format_event_message

from .state import CLIState, emit_error, emit_warning, get_cli_state, render_message


class CliEmitter:
    """Emitter recording session events on the CLI state and echoing them with ``-v``."""

    def __init__(self, state: CLIState | None = None) -> None:
        self.state = state or get_cli_state()

    @property
    def debug_enabled(self) -> bool:
        return self.state.show_tracebacks

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        emit_warning(message, exception=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        emit_error(message, exception=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        data = dict(payload)
        self.state.record_event(name, data)
        message = format_event_message(name, data)
        if message is None:
            return
        if event_level(name, data) >= logging.WARNING:
            emit_warning(message)
        else:
            render_message("info", message)


__all__ = ["CliEmitter"]
