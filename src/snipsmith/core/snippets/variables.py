"""Variable resolvers supplying values for ``$NAME`` markers.

Resolution happens once, before the snippet is first rendered. Values are not
refreshed afterwards, so the inserted text stays stable while the user edits.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@runtime_checkable
class VariableResolver(Protocol):
    """Supply the value of a named variable, or ``None`` when unknown."""

    def resolve(self, name: str) -> str | None: ...


class MappingVariableResolver:
    """Resolve variables from a plain mapping."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values = dict(values or {})

    def resolve(self, name: str) -> str | None:
        return self._values.get(name)


class CompositeVariableResolver:
    """Ask each resolver in turn and return the first value found."""

    def __init__(self, *resolvers: VariableResolver) -> None:
        self._resolvers = resolvers

    def resolve(self, name: str) -> str | None:
        for resolver in self._resolvers:
            value = resolver.resolve(name)
            if value is not None:
                return value
        return None


@dataclass(slots=True)
class VariableContext:
    """Editing context snapshot used to answer the standard variables."""

    filepath: Path | None = None
    selected_text: str = ""
    current_line: str = ""
    current_word: str = ""
    line_index: int = 0
    clipboard: str | None = None
    now: datetime | None = None
    extra: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_buffer(cls, buffer: Any) -> VariableContext:
        """Build a context from whatever the buffer exposes.

        Only the cursor is part of the buffer contract; path, selection and
        line text are read when the buffer provides them.
        """
        cursor = buffer.cursor()
        path = getattr(buffer, "path", None)
        selected = getattr(buffer, "selected_text", None)
        line_text = getattr(buffer, "line_text", None)
        word_at = getattr(buffer, "word_at", None)
        return cls(
            filepath=Path(path) if path else None,
            selected_text=selected() if callable(selected) else "",
            current_line=line_text(cursor.line) if callable(line_text) else "",
            current_word=word_at(cursor) if callable(word_at) else "",
            line_index=cursor.line,
        )


class SnippetVariableResolver:
    """Resolve the TextMate variables from a :class:`VariableContext`."""

    def __init__(self, context: VariableContext | None = None) -> None:
        self.context = context or VariableContext()
        self._handlers: dict[str, Callable[[], str | None]] = {
            "TM_SELECTED_TEXT": self._selected_text,
            "SELECTION": self._selected_text,
            "TM_CURRENT_LINE": lambda: self.context.current_line or None,
            "TM_CURRENT_WORD": lambda: self.context.current_word or None,
            "TM_LINE_INDEX": lambda: str(self.context.line_index),
            "TM_LINE_NUMBER": lambda: str(self.context.line_index + 1),
            "TM_FILENAME": lambda: self._path_part(lambda path: path.name),
            "TM_FILENAME_BASE": lambda: self._path_part(lambda path: path.stem),
            "TM_DIRECTORY": lambda: self._path_part(lambda path: str(path.parent)),
            "TM_FILEPATH": lambda: self._path_part(str),
            "CLIPBOARD": lambda: self.context.clipboard,
            "CURRENT_YEAR": lambda: f"{self._now().year:04d}",
            "CURRENT_YEAR_SHORT": lambda: f"{self._now().year % 100:02d}",
            "CURRENT_MONTH": lambda: f"{self._now().month:02d}",
            "CURRENT_MONTH_NAME": lambda: _MONTH_NAMES[self._now().month - 1],
            "CURRENT_MONTH_NAME_SHORT": lambda: _MONTH_NAMES[self._now().month - 1][:3],
            "CURRENT_DATE": lambda: f"{self._now().day:02d}",
            "CURRENT_DAY_NAME": lambda: _DAY_NAMES[self._now().weekday()],
            "CURRENT_DAY_NAME_SHORT": lambda: _DAY_NAMES[self._now().weekday()][:3],
            "CURRENT_HOUR": lambda: f"{self._now().hour:02d}",
            "CURRENT_MINUTE": lambda: f"{self._now().minute:02d}",
            "CURRENT_SECOND": lambda: f"{self._now().second:02d}",
        }

    def _now(self) -> datetime:
        return self.context.now or datetime.now()

    def _selected_text(self) -> str | None:
        return self.context.selected_text or None

    def _path_part(self, getter: Callable[[Path], str]) -> str | None:
        if self.context.filepath is None:
            return None
        return getter(self.context.filepath)

    def resolve(self, name: str) -> str | None:
        if name in self.context.extra:
            return self.context.extra[name]
        handler = self._handlers.get(name)
        return handler() if handler is not None else None


__all__ = [
    "CompositeVariableResolver",
    "MappingVariableResolver",
    "SnippetVariableResolver",
    "VariableContext",
    "VariableResolver",
]
