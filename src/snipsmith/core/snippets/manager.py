"""Registry of snippet sessions keyed by buffer.

The manager is an explicit context object owned by whatever hosts the
buffers. It listens to the buffers it has inserted snippets into, routes
their notifications to the matching session, and drives the status item.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
import logging
from types import TracebackType
from typing import Protocol, runtime_checkable

from ..config import SnippetConfig
from ..diagnostics import DiagnosticEmitter, NullEmitter
from .buffer import BufferId, Position, TextBuffer, TextChange
from .markers import Snippet
from .parser import SnippetParser
from .session import SnippetSession
from .variables import (
    CompositeVariableResolver,
    MappingVariableResolver,
    SnippetVariableResolver,
    VariableContext,
    VariableResolver,
)


logger = logging.getLogger(__name__)


@runtime_checkable
class StatusItem(Protocol):
    """Indicator shown while the focused buffer hosts an active session."""

    text: str

    def show(self) -> None: ...

    def hide(self) -> None: ...


class NullStatusItem:
    """Status item that only records its visibility."""

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.visible = False

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False


class SnippetManager:
    """Own at most one snippet session per buffer."""

    def __init__(
        self,
        *,
        config: SnippetConfig | None = None,
        status_item: StatusItem | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.config = config or SnippetConfig()
        self.status_item = status_item if status_item is not None else NullStatusItem()
        self.status_item.text = self.config.status_text
        self.emitter = emitter or NullEmitter()
        self.focused: BufferId | None = None
        self._sessions: dict[BufferId, SnippetSession] = {}
        self._buffers: dict[BufferId, TextBuffer] = {}
        self._subscriptions: dict[BufferId, Callable[[], None]] = {}

    def __enter__(self) -> SnippetManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.dispose()

    # -- buffers ----------------------------------------------------------

    def attach(self, buffer: TextBuffer) -> None:
        """Start listening to ``buffer`` if not already doing so."""
        buffer_id = buffer.buffer_id
        if buffer_id in self._subscriptions:
            return
        self._buffers[buffer_id] = buffer
        self._subscriptions[buffer_id] = buffer.subscribe(self)

    def on_text_changed(self, buffer_id: BufferId, changes: Sequence[TextChange]) -> None:
        session = self.get_session(buffer_id)
        if session is not None and session.is_active:
            session.synchronize_changes(changes)

    def on_cursor_moved(self, buffer_id: BufferId, position: Position) -> None:
        session = self.get_session(buffer_id)
        if session is not None and session.is_active:
            session.check_position(position)

    def on_buffer_enter(self, buffer_id: BufferId) -> None:
        self.focused = buffer_id
        session = self.get_session(buffer_id)
        if session is not None and session.is_active:
            self.status_item.show()
        else:
            self.status_item.hide()

    def on_buffer_closed(self, buffer_id: BufferId) -> None:
        session = self._sessions.pop(buffer_id, None)
        if session is not None:
            session.cancel(reason="buffer_closed")
        unsubscribe = self._subscriptions.pop(buffer_id, None)
        if unsubscribe is not None:
            unsubscribe()
        self._buffers.pop(buffer_id, None)
        if self.focused == buffer_id:
            self.focused = None
            self.status_item.hide()

    # -- sessions ---------------------------------------------------------

    def get_session(self, buffer_id: BufferId | None) -> SnippetSession | None:
        if buffer_id is None:
            return None
        return self._sessions.get(buffer_id)

    def session_for(self, buffer_id: BufferId | None = None) -> SnippetSession | None:
        """Return the active session of ``buffer_id`` (default: focused buffer)."""
        session = self.get_session(self.focused if buffer_id is None else buffer_id)
        return session if session is not None and session.is_active else None

    @property
    def session(self) -> SnippetSession | None:
        return self.session_for()

    def variable_resolver(self, context: VariableContext | None = None) -> VariableResolver:
        """Configured variables first, then values derived from ``context``."""
        return CompositeVariableResolver(
            MappingVariableResolver(self.config.variables), SnippetVariableResolver(context)
        )

    def resolver_for(
        self, buffer: TextBuffer, context: VariableContext | None = None
    ) -> VariableResolver:
        return self.variable_resolver(context or VariableContext.from_buffer(buffer))

    def insert_snippet(
        self,
        buffer: TextBuffer,
        snippet: str,
        select: bool | None = None,
        position: Position | None = None,
        *,
        context: VariableContext | None = None,
    ) -> bool:
        """Insert ``snippet`` into ``buffer`` and return whether a session is active."""
        self.attach(buffer)
        buffer_id = buffer.buffer_id
        self.focused = buffer_id

        previous = self._sessions.pop(buffer_id, None)
        if previous is not None:
            previous.cancel(reason="replaced")

        session = SnippetSession(
            buffer,
            config=self.config,
            resolver=self.resolver_for(buffer, context),
            emitter=self.emitter,
        )
        dispose = session.on_deactivate(self._session_ended)
        is_active = session.start(snippet, select, position)
        if is_active:
            self._sessions[buffer_id] = session
            self.status_item.show()
        else:
            dispose()
        logger.debug("inserted snippet into buffer %s (active=%s)", buffer_id, is_active)
        return is_active

    def _session_ended(self, session: SnippetSession) -> None:
        buffer_id = session.buffer_id
        if self._sessions.get(buffer_id) is session:
            del self._sessions[buffer_id]
        if self.focused == buffer_id:
            self.status_item.hide()

    def select_current_placeholder(self, buffer_id: BufferId | None = None) -> None:
        session = self.session_for(buffer_id)
        if session is not None:
            session.select_current_placeholder()

    def next_placeholder(self, buffer_id: BufferId | None = None) -> None:
        session = self.session_for(buffer_id)
        if session is not None:
            session.next_placeholder()
            return
        self.status_item.hide()

    def previous_placeholder(self, buffer_id: BufferId | None = None) -> None:
        session = self.session_for(buffer_id)
        if session is not None:
            session.previous_placeholder()
            return
        self.status_item.hide()

    def cancel(self, buffer_id: BufferId | None = None) -> None:
        session = self.get_session(self.focused if buffer_id is None else buffer_id)
        if session is not None:
            session.deactivate()
            return
        self.status_item.hide()

    def resolve_snippet(
        self,
        body: str,
        resolver: VariableResolver | None = None,
        *,
        context: VariableContext | None = None,
        final_tabstop: bool = True,
    ) -> Snippet:
        """Parse ``body`` and resolve its variables without inserting it.

        Without an explicit ``resolver`` the configured variables are consulted
        first, then those derived from ``context``.
        """
        snippet = SnippetParser().parse(body, final_tabstop)
        snippet.resolve_variables(resolver or self.variable_resolver(context))
        return snippet

    def dispose(self) -> None:
        """Cancel every session and stop listening to every buffer."""
        for session in list(self._sessions.values()):
            session.cancel(reason="disposed")
        self._sessions.clear()
        for unsubscribe in self._subscriptions.values():
            unsubscribe()
        self._subscriptions.clear()
        self._buffers.clear()
        self.status_item.hide()


__all__ = ["NullStatusItem", "SnippetManager", "StatusItem"]
