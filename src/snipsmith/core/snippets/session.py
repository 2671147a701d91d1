"""Live snippet session bound to one buffer.

A session inserts a parsed snippet, then keeps the marker tree in step with
the buffer while the user edits and tabs through the stops.

States

`IDLE`
: Created, nothing inserted yet. ``start`` leaves this state exactly once.

`ACTIVE`
: The snippet is inserted and a tabstop is current. Edits are synchronised
  and mirrored, navigation moves between stops.

`FINISHED`
: The final tabstop was reached (or the snippet had no stop to visit).

`CANCELLED`
: Ended early: explicit cancel, an edit outside the snippet, the cursor
  leaving the current stop, or the buffer going away.

``FINISHED`` and ``CANCELLED`` are terminal. Text already inserted stays in
the buffer in every case.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Sequence
from enum import Enum
import logging

from ..config import SnippetConfig
from ..diagnostics import DiagnosticEmitter, NullEmitter
from ..exceptions import SnippetSessionError
from .buffer import (
    BufferId,
    Position,
    Range,
    TextBuffer,
    TextChange,
    offset_at,
    position_at,
)
from .groups import PlaceholderGroupIndex
from .markers import Placeholder, Snippet, Text
from .parser import SnippetParser
from .variables import VariableResolver


logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"


_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.ACTIVE, SessionState.FINISHED}),
    SessionState.ACTIVE: frozenset({SessionState.FINISHED, SessionState.CANCELLED}),
    SessionState.FINISHED: frozenset(),
    SessionState.CANCELLED: frozenset(),
}


class SnippetSession:
    """One snippet expansion in one buffer."""

    def __init__(
        self,
        buffer: TextBuffer,
        *,
        config: SnippetConfig | None = None,
        resolver: VariableResolver | None = None,
        emitter: DiagnosticEmitter | None = None,
    ) -> None:
        self.buffer = buffer
        self.config = config or SnippetConfig()
        self._resolver = resolver
        self._emitter = emitter or NullEmitter()
        self.state = SessionState.IDLE
        self.snippet: Snippet | None = None
        self.groups = PlaceholderGroupIndex()
        self.current_index: int | None = None
        self.cancel_reason: str | None = None
        self._origin = Position(0, 0)
        self._text = ""
        self._pending: deque[TextChange] = deque()
        self._deactivate_callbacks: list[Callable[[SnippetSession], None]] = []

    def __repr__(self) -> str:
        return (
            f"SnippetSession(buffer={self.buffer_id!r}, state={self.state.value}, "
            f"current={self.current_index!r})"
        )

    # -- properties -------------------------------------------------------

    @property
    def buffer_id(self) -> BufferId:
        return self.buffer.buffer_id

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def origin(self) -> Position:
        """Buffer position where the snippet text starts."""
        return self._origin

    @property
    def text(self) -> str:
        """Snippet text as the session believes the buffer holds it."""
        return self._text

    @property
    def navigation_order(self) -> tuple[int, ...]:
        return self.groups.navigation_order()

    @property
    def current_placeholder(self) -> int | None:
        """Marker id of the current stop's canonical placeholder."""
        return self.groups.canonical(self.current_index)

    def current_range(self) -> Range | None:
        """Buffer range currently covered by the active stop."""
        marker_id = self.current_placeholder
        if marker_id is None or self.snippet is None:
            return None
        return self._range_of(marker_id)

    # -- lifecycle --------------------------------------------------------

    def on_deactivate(self, callback: Callable[[SnippetSession], None]) -> Callable[[], None]:
        """Register ``callback`` for when the session leaves ``ACTIVE``."""
        self._deactivate_callbacks.append(callback)

        def _dispose() -> None:
            if callback in self._deactivate_callbacks:
                self._deactivate_callbacks.remove(callback)

        return _dispose

    def _transition(self, target: SessionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise SnippetSessionError(
                f"Cannot move snippet session from {self.state.value} to {target.value}."
            )
        logger.debug("session %s: %s -> %s", self.buffer_id, self.state.value, target.value)
        self.state = target

    def _leave(self, target: SessionState) -> None:
        was_active = self.is_active
        self._transition(target)
        self._pending.clear()
        if target is SessionState.FINISHED:
            self._emitter.event("snippet_finished", {"buffer": self.buffer_id})
        else:
            self._emitter.event(
                "snippet_cancelled", {"buffer": self.buffer_id, "reason": self.cancel_reason}
            )
        if was_active:
            for callback in list(self._deactivate_callbacks):
                callback(self)

    def start(
        self,
        template: str,
        select: bool | None = None,
        position: Position | None = None,
    ) -> bool:
        """Insert ``template`` and activate its first stop.

        Returns whether the session is active afterwards. A template whose
        only stop is the final one (or that has no stop at all) is inserted,
        the cursor is placed, and the session ends immediately.
        """
        if self.state is not SessionState.IDLE:
            raise SnippetSessionError("A snippet session can only be started once.")
        select = self.config.select_on_insert if select is None else select
        origin = position if position is not None else self.buffer.cursor()

        snippet = SnippetParser().parse(template, self.config.insert_final_tabstop)
        if self._resolver is not None:
            snippet.resolve_variables(self._resolver)
        text = snippet.render()
        snippet.compute_offsets()

        self.snippet = snippet
        self.groups = PlaceholderGroupIndex.build(snippet)
        self._origin = origin
        self._text = text

        self._expect(TextChange(Range.collapsed(origin), text))
        self.buffer.insert_text(origin, text)

        first = self.groups.next_index(None)
        if first is None:
            self.buffer.set_cursor(position_at(text, origin, len(text)))
            self._transition(SessionState.FINISHED)
            self._pending.clear()
            return False

        self.current_index = first
        if first == 0:
            self._select(0, select)
            self._transition(SessionState.FINISHED)
            self._pending.clear()
            return False

        self._transition(SessionState.ACTIVE)
        self._select(first, select)
        self._emitter.event(
            "snippet_started",
            {"buffer": self.buffer_id, "tabstops": list(self.navigation_order)},
        )
        return True

    def deactivate(self) -> None:
        """End the session at the user's request."""
        self.cancel()

    def cancel(self, reason: str = "user") -> None:
        """End the session immediately, leaving the inserted text in place."""
        if not self.is_active:
            return
        self.cancel_reason = reason
        self._leave(SessionState.CANCELLED)

    # -- navigation -------------------------------------------------------

    def next_placeholder(self) -> None:
        if not self.is_active:
            return
        target = self.groups.next_index(self.current_index)
        if target is None:
            # No final tabstop to land on: park the cursor after the last stop.
            current = self.current_range()
            if current is not None:
                self.buffer.set_cursor(current.end)
            self._leave(SessionState.FINISHED)
            return
        self.current_index = target
        self._select(target, True)
        if target == 0:
            self._leave(SessionState.FINISHED)

    def previous_placeholder(self) -> None:
        if not self.is_active:
            return
        target = self.groups.previous_index(self.current_index)
        if target is None:
            return
        self.current_index = target
        self._select(target, True)

    def select_current_placeholder(self) -> None:
        if not self.is_active or self.current_index is None:
            return
        self._select(self.current_index, True)

    def check_position(self, position: Position | None = None) -> None:
        """Cancel when the cursor sits outside the current stop."""
        if not self.is_active:
            return
        position = position if position is not None else self.buffer.cursor()
        current = self.current_range()
        if current is None or not (current.start <= position <= current.end):
            logger.debug("session %s: cursor %s left %s", self.buffer_id, position, current)
            self.cancel(reason="cursor_left")

    def _select(self, index: int, select: bool) -> None:
        marker_id = self.groups.canonical(index)
        if marker_id is None:
            return
        target = self._range_of(marker_id)
        if select and not target.is_empty:
            self.buffer.set_selection(target)
        else:
            self.buffer.set_cursor(target.end)

    def _range_of(self, marker_id: int) -> Range:
        assert self.snippet is not None
        span = self.snippet.span(marker_id)
        assert span is not None
        return Range(
            position_at(self._text, self._origin, span.start),
            position_at(self._text, self._origin, span.end),
        )

    # -- synchronisation --------------------------------------------------

    def _expect(self, change: TextChange) -> None:
        self._pending.append(change)

    def _consume_expected(self, change: TextChange) -> bool:
        # Notifications for edits this session requested are echoes, not user input.
        if change in self._pending:
            while self._pending:
                if self._pending.popleft() == change:
                    return True
        self._pending.clear()
        return False

    def synchronize_changes(self, changes: Sequence[TextChange]) -> None:
        """Process a notification carrying several changes, in delivery order.

        Each range is read against the text left by the previous change. Mirrors
        are rewritten once, after every change has been folded in, because the
        buffer already holds the whole batch.
        """
        folded = False
        for change in changes:
            if not self.is_active:
                return
            folded = self._fold(change) or folded
        if folded and self.is_active:
            self._propagate()

    def synchronize_updated_placeholders(self, change: TextChange) -> None:
        """Fold a buffer edit into the tree and rewrite the affected mirrors."""
        self.synchronize_changes([change])

    def _fold(self, change: TextChange) -> bool:
        if not self.is_active or self.snippet is None:
            return False
        if self._consume_expected(change):
            return False

        start = offset_at(self._text, self._origin, change.range.start)
        end = offset_at(self._text, self._origin, change.range.end)
        if start is None or end is None or end < start:
            self.cancel(reason="out_of_tree_edit")
            return False

        target = self._edit_target(start, end)
        if target is None:
            self.cancel(reason="out_of_tree_edit")
            return False

        self._apply_edit(target, start, end, change.new_text)
        self.groups = PlaceholderGroupIndex.build(self.snippet)
        return True

    def _rank(self, marker_id: int) -> int:
        assert self.snippet is not None
        marker = self.snippet[marker_id]
        if isinstance(marker, Placeholder):
            return 0 if self.groups.is_canonical(marker_id) else 3
        if isinstance(marker, Text):
            return 2
        return 1

    def _edit_target(self, start: int, end: int) -> int | None:
        snippet = self.snippet
        assert snippet is not None
        active = self.current_placeholder
        if active is not None:
            span = snippet.span(active)
            if span is not None and span.contains(start, end):
                return active

        chain = snippet.enclosing(start, end, rank=self._rank)
        if not chain:
            return None
        for marker_id in chain:
            if isinstance(snippet[marker_id], Placeholder) and not self.groups.is_canonical(
                marker_id
            ):
                return None
        return chain[-1]

    def _apply_edit(self, target: int, start: int, end: int, new_text: str) -> None:
        snippet = self.snippet
        assert snippet is not None
        span = snippet.span(target)
        assert span is not None
        rendered = snippet.render(target)
        value = rendered[: start - span.start] + new_text + rendered[end - span.start :]
        if isinstance(snippet[target], Text):
            snippet.replace_text(target, value)
        else:
            snippet.replace_content(target, value, keep_transform=False)
        self._text = self._text[:start] + new_text + self._text[end:]
        logger.debug("session %s: marker %d now %r", self.buffer_id, target, value)

    def _propagate(self) -> None:
        snippet = self.snippet
        assert snippet is not None
        for update in snippet.iter_mirror_updates():
            change = TextChange(
                Range(
                    position_at(self._text, self._origin, update.span.start),
                    position_at(self._text, self._origin, update.span.end),
                ),
                update.new_text,
            )
            self._text = (
                self._text[: update.span.start] + update.new_text + self._text[update.span.end :]
            )
            if update.old_text == update.new_text:
                continue
            self._expect(change)
            self.buffer.replace_range(change.range, change.new_text)


__all__ = ["SessionState", "SnippetSession"]
