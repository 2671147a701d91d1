"""Diagnostics raised by snippet sessions.

Sessions report their lifecycle through a :class:`DiagnosticEmitter` instead of
printing or logging directly, so that hosts decide how visible each event is.

Events

`snippet_started`
: A session became active. Payload: ``buffer``, ``tabstops`` (navigation
  order).

`snippet_finished`
: The final tabstop was reached. Payload: ``buffer``.

`snippet_cancelled`
: The session ended early. Payload: ``buffer``, ``reason`` (``user``,
  ``out_of_tree_edit``, ``cursor_left``, ``replaced``, ``buffer_closed``,
  ``disposed``).
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Any, Protocol, runtime_checkable


logger = logging.getLogger(__name__)

# Cancellations after which the buffer may hold text the user did not intend.
UNEXPECTED_CANCEL_REASONS = frozenset({"out_of_tree_edit"})


@runtime_checkable
class DiagnosticEmitter(Protocol):
    """Interface used to surface warnings, errors, and structured events."""

    debug_enabled: bool

    def warning(self, message: str, exc: BaseException | None = None) -> None: ...

    def error(self, message: str, exc: BaseException | None = None) -> None: ...

    def event(self, name: str, payload: Mapping[str, Any]) -> None: ...


class NullEmitter:
    """Emitter that drops everything."""

    debug_enabled: bool = False

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        return


class LoggingEmitter:
    """Emitter writing to a :mod:`logging` logger, one record per diagnostic."""

    def __init__(
        self, *, logger_obj: logging.Logger | None = None, debug_enabled: bool = False
    ) -> None:
        self._logger = logger_obj or logger
        self.debug_enabled = debug_enabled

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        self._logger.warning(message, exc_info=exc)

    def error(self, message: str, exc: BaseException | None = None) -> None:
        self._logger.error(message, exc_info=exc)

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        message = format_event_message(name, payload)
        if message is None:
            self._logger.debug("snippet event %s: %s", name, dict(payload))
            return
        self._logger.log(event_level(name, payload), message)


def event_level(name: str, payload: Mapping[str, Any]) -> int:
    """Return the logging level an event deserves."""
    if name == "snippet_cancelled" and payload.get("reason") in UNEXPECTED_CANCEL_REASONS:
        return logging.WARNING
    return logging.INFO


def format_event_message(name: str, payload: Mapping[str, Any]) -> str | None:
    """Return a one-line summary of a session event, or ``None`` for unknown events."""
    buffer_id = payload.get("buffer", "<unknown>")

    if name == "snippet_started":
        tabstops = payload.get("tabstops") or []
        listed = ", ".join(str(index) for index in tabstops) or "-"
        return f"Snippet session started in buffer {buffer_id} (tabstops: {listed})"

    if name == "snippet_finished":
        return f"Snippet session finished in buffer {buffer_id}"

    if name == "snippet_cancelled":
        reason = payload.get("reason") or "user"
        return f"Snippet session cancelled in buffer {buffer_id} ({reason})"

    return None


__all__ = [
    "UNEXPECTED_CANCEL_REASONS",
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "event_level",
    "format_event_message",
]
