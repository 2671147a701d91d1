"""Text buffer contracts and an in-memory implementation.

Positions follow the language server convention: zero-based line and
character, ranges end-exclusive. Change notifications carry the range as it
stood before the change was applied.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
import re
from typing import Protocol, runtime_checkable

from ..exceptions import SnippetBufferError


logger = logging.getLogger(__name__)

BufferId = int | str

_WORD_RE = re.compile(r"\w+")


@dataclass(frozen=True, slots=True, order=True)
class Position:
    line: int
    character: int


@dataclass(frozen=True, slots=True)
class Range:
    start: Position
    end: Position

    @classmethod
    def collapsed(cls, position: Position) -> Range:
        return cls(position, position)

    @property
    def is_empty(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True, slots=True)
class TextChange:
    """A single edit: ``range`` replaced by ``new_text``."""

    range: Range
    new_text: str


@runtime_checkable
class BufferListener(Protocol):
    """Receiver of buffer notifications."""

    def on_text_changed(self, buffer_id: BufferId, changes: Sequence[TextChange]) -> None: ...

    def on_cursor_moved(self, buffer_id: BufferId, position: Position) -> None: ...


@runtime_checkable
class TextBuffer(Protocol):
    """Editor buffer as seen by a snippet session."""

    @property
    def buffer_id(self) -> BufferId: ...

    def insert_text(self, position: Position, text: str) -> None: ...

    def replace_range(self, range: Range, text: str) -> None: ...

    def set_selection(self, range: Range) -> None: ...

    def set_cursor(self, position: Position) -> None: ...

    def cursor(self) -> Position: ...

    def subscribe(self, listener: BufferListener) -> Callable[[], None]: ...


def offset_at(text: str, origin: Position, position: Position) -> int | None:
    """Return the offset of ``position`` within ``text`` inserted at ``origin``.

    ``None`` means the position lies outside the text.
    """
    line_delta = position.line - origin.line
    if line_delta < 0:
        return None
    lines = text.split("\n")
    if line_delta >= len(lines):
        return None
    column = position.character - (origin.character if line_delta == 0 else 0)
    if column < 0 or column > len(lines[line_delta]):
        return None
    return sum(len(line) + 1 for line in lines[:line_delta]) + column


def position_at(text: str, origin: Position, offset: int) -> Position:
    """Return the buffer position of ``offset`` within ``text`` inserted at ``origin``."""
    before = text[:offset]
    line_delta = before.count("\n")
    if line_delta == 0:
        return Position(origin.line, origin.character + len(before))
    return Position(origin.line + line_delta, len(before) - before.rfind("\n") - 1)


class TextDocument:
    """In-memory :class:`TextBuffer` that notifies listeners synchronously."""

    def __init__(
        self,
        text: str = "",
        *,
        buffer_id: BufferId = 1,
        path: str | None = None,
        cursor: Position | None = None,
    ) -> None:
        self._buffer_id = buffer_id
        self._text = text
        self.path = path
        self._cursor = cursor or Position(0, 0)
        self._selection: Range | None = None
        self._listeners: list[BufferListener] = []

    @property
    def buffer_id(self) -> BufferId:
        return self._buffer_id

    @property
    def text(self) -> str:
        return self._text

    @property
    def selection(self) -> Range | None:
        return self._selection

    @property
    def lines(self) -> list[str]:
        return self._text.split("\n")

    def line_text(self, line: int) -> str:
        lines = self.lines
        return lines[line] if 0 <= line < len(lines) else ""

    def word_at(self, position: Position) -> str:
        line = self.line_text(position.line)
        for match in _WORD_RE.finditer(line):
            if match.start() <= position.character <= match.end():
                return match.group(0)
        return ""

    def selected_text(self) -> str:
        return self.get_text(self._selection) if self._selection is not None else ""

    def offset_at(self, position: Position) -> int:
        offset = offset_at(self._text, Position(0, 0), position)
        if offset is None:
            raise SnippetBufferError(f"Position {position} lies outside buffer {self._buffer_id}.")
        return offset

    def position_at(self, offset: int) -> Position:
        if not 0 <= offset <= len(self._text):
            raise SnippetBufferError(f"Offset {offset} lies outside buffer {self._buffer_id}.")
        return position_at(self._text, Position(0, 0), offset)

    def get_text(self, range: Range) -> str:
        return self._text[self.offset_at(range.start) : self.offset_at(range.end)]

    def cursor(self) -> Position:
        return self._cursor

    def subscribe(self, listener: BufferListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def insert_text(self, position: Position, text: str) -> None:
        self.replace_range(Range.collapsed(position), text)

    def replace_range(self, range: Range, text: str) -> None:
        start = self.offset_at(range.start)
        end = self.offset_at(range.end)
        if end < start:
            raise SnippetBufferError(f"Range {range} is reversed.")
        self._text = self._text[:start] + text + self._text[end:]
        logger.debug("buffer %s: replaced [%d, %d) with %r", self._buffer_id, start, end, text)
        change = TextChange(range, text)
        for listener in list(self._listeners):
            listener.on_text_changed(self._buffer_id, [change])

    def apply_changes(self, changes: Sequence[TextChange]) -> None:
        """Apply several changes in order, then notify once with all of them."""
        for change in changes:
            start = self.offset_at(change.range.start)
            end = self.offset_at(change.range.end)
            self._text = self._text[:start] + change.new_text + self._text[end:]
        for listener in list(self._listeners):
            listener.on_text_changed(self._buffer_id, list(changes))

    def set_selection(self, range: Range) -> None:
        self._selection = range
        self._move_cursor(range.end)

    def set_cursor(self, position: Position) -> None:
        self._selection = None
        self._move_cursor(position)

    def _move_cursor(self, position: Position) -> None:
        self._cursor = position
        for listener in list(self._listeners):
            listener.on_cursor_moved(self._buffer_id, position)


__all__ = [
    "BufferId",
    "BufferListener",
    "Position",
    "Range",
    "TextBuffer",
    "TextChange",
    "TextDocument",
    "offset_at",
    "position_at",
]
