"""Marker tree for parsed snippets.

A parsed template is stored as an arena: every marker lives in a flat list
owned by :class:`Snippet` and is addressed by its integer id. Containers
(:class:`Placeholder` and :class:`Variable`) reference their children by id,
so mirror relationships between placeholders sharing a tabstop index never
require back-references between marker objects.

Markers

`Text`
: Immutable literal text. Edits replace the node in the arena.

`Placeholder`
: A tabstop. Its value is the concatenation of its children, or its first
  choice when it has a choice list and no children. An attached
  :class:`Transform` shapes the rendered text without touching the value.

`Variable`
: A named substitution resolved once through a variable resolver. Declared
  children act as the default when the resolver has no value.

Offsets are half-open ``[start, end)`` spans over the rendered text. They are
recomputed lazily after any mutation, so :meth:`Snippet.span` always agrees
with :meth:`Snippet.render`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
import re
from typing import TYPE_CHECKING, Union


if TYPE_CHECKING:  # pragma: no cover - typing only
    from .variables import VariableResolver


_WORD_RE = re.compile(r"[a-z0-9]+", re.IGNORECASE)


class CaseRule(Enum):
    """Case shaping applied to a format fragment."""

    NONE = "none"
    UPCASE = "upcase"
    DOWNCASE = "downcase"
    CAPITALIZE = "capitalize"
    PASCALCASE = "pascalcase"
    CAMELCASE = "camelcase"

    def apply(self, value: str) -> str:
        if not value or self is CaseRule.NONE:
            return value
        if self is CaseRule.UPCASE:
            return value.upper()
        if self is CaseRule.DOWNCASE:
            return value.lower()
        if self is CaseRule.CAPITALIZE:
            return value[0].upper() + value[1:]
        words = _WORD_RE.findall(value)
        pascal = "".join(word[0].upper() + word[1:].lower() for word in words)
        if self is CaseRule.PASCALCASE:
            return pascal
        return pascal[:1].lower() + pascal[1:]


@dataclass(frozen=True, slots=True)
class FormatText:
    """Literal text inside a transform's format string."""

    value: str
    case: CaseRule = CaseRule.NONE

    def resolve(self, match: re.Match[str]) -> str:
        return self.case.apply(self.value)


@dataclass(frozen=True, slots=True)
class FormatReference:
    """Back-reference to a capture group, optionally shaped or conditional."""

    group: int
    case: CaseRule = CaseRule.NONE
    if_value: str | None = None
    else_value: str | None = None

    def resolve(self, match: re.Match[str]) -> str:
        try:
            value = match.group(self.group) or ""
        except IndexError:
            value = ""
        if value and self.if_value is not None:
            return self.if_value
        if not value and self.else_value is not None:
            return self.else_value
        return self.case.apply(value)


FormatFragment = Union[FormatText, FormatReference]


@dataclass(frozen=True, slots=True)
class Transform:
    """Regular expression substitution applied to a resolved value."""

    pattern: re.Pattern[str]
    format: tuple[FormatFragment, ...] = ()
    replace_all: bool = False
    flags: str = ""

    @property
    def ignore_case(self) -> bool:
        return bool(self.pattern.flags & re.IGNORECASE)

    def apply(self, value: str) -> str:
        """Return ``value`` with the pattern substituted by the format."""

        def _replacement(match: re.Match[str]) -> str:
            return "".join(fragment.resolve(match) for fragment in self.format)

        return self.pattern.sub(_replacement, value, count=0 if self.replace_all else 1)


@dataclass(frozen=True, slots=True)
class Text:
    """Literal text leaf."""

    value: str


@dataclass(slots=True)
class Placeholder:
    """Tabstop with default content, optional choices, and optional transform."""

    index: int
    children: list[int] = field(default_factory=list)
    choices: tuple[str, ...] | None = None
    transform: Transform | None = None

    @property
    def is_final_tabstop(self) -> bool:
        return self.index == 0


@dataclass(slots=True)
class Variable:
    """Named substitution resolved once from the editing context."""

    name: str
    children: list[int] = field(default_factory=list)
    transform: Transform | None = None


Marker = Union[Text, Placeholder, Variable]


@dataclass(frozen=True, slots=True)
class Span:
    """Half-open ``[start, end)`` range over the rendered snippet text."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, start: int, end: int) -> bool:
        """Return whether ``[start, end]`` lies inside the span, edges included."""
        return self.start <= start and end <= self.end

    def holds(self, start: int, end: int) -> bool:
        """Like :meth:`contains`, but an empty range must fall strictly inside."""
        if start == end:
            return self.start < start < self.end
        return self.contains(start, end)


@dataclass(frozen=True, slots=True)
class MirrorUpdate:
    """Record of one mirror rewritten from its canonical placeholder."""

    marker_id: int
    span: Span
    old_text: str
    new_text: str


def _default_rank(marker: Marker) -> int:
    if isinstance(marker, Placeholder):
        return 0
    if isinstance(marker, Variable):
        return 1
    return 2


class Snippet:
    """Parsed snippet stored as an arena of markers."""

    def __init__(self) -> None:
        self._markers: list[Marker] = []
        self.children: list[int] = []
        self._spans: dict[int, Span] = {}
        self._parents: dict[int, int | None] | None = None
        self._origin = 0
        self._dirty = True
        self._variables_resolved = False

    def __getitem__(self, marker_id: int) -> Marker:
        return self._markers[marker_id]

    def __repr__(self) -> str:
        return f"Snippet({self.render()!r})"

    # -- construction -----------------------------------------------------

    def add(self, marker: Marker) -> int:
        """Store ``marker`` in the arena without attaching it and return its id."""
        self._markers.append(marker)
        self._invalidate()
        return len(self._markers) - 1

    def append(self, marker: Marker) -> int:
        """Store ``marker`` and attach it at the end of the top-level sequence."""
        marker_id = self.add(marker)
        self.children.append(marker_id)
        return marker_id

    def children_of(self, marker_id: int | None) -> list[int]:
        if marker_id is None:
            return self.children
        marker = self._markers[marker_id]
        if isinstance(marker, Text):
            return []
        return marker.children

    # -- traversal --------------------------------------------------------

    def walk(self, marker_id: int | None = None) -> Iterator[int]:
        """Yield reachable marker ids depth-first in document order."""
        for child in self.children_of(marker_id):
            yield child
            yield from self.walk(child)

    def placeholders(self) -> list[int]:
        return [mid for mid in self.walk() if isinstance(self._markers[mid], Placeholder)]

    def variables(self) -> list[int]:
        return [mid for mid in self.walk() if isinstance(self._markers[mid], Variable)]

    def placeholder_groups(self) -> dict[int, list[int]]:
        """Map each tabstop index to its placeholders in document order."""
        groups: dict[int, list[int]] = {}
        for marker_id in self.placeholders():
            marker = self._markers[marker_id]
            assert isinstance(marker, Placeholder)
            groups.setdefault(marker.index, []).append(marker_id)
        return groups

    def has_final_tabstop(self) -> bool:
        return any(
            isinstance(self._markers[mid], Placeholder) and self._markers[mid].index == 0
            for mid in self.walk()
        )

    def parent_of(self, marker_id: int) -> int | None:
        if self._parents is None:
            parents: dict[int, int | None] = {child: None for child in self.children}
            for parent in self.walk():
                for child in self.children_of(parent):
                    parents[child] = parent
            self._parents = parents
        return self._parents.get(marker_id)

    def ancestors(self, marker_id: int) -> list[int]:
        """Return the ids enclosing ``marker_id``, innermost first."""
        chain: list[int] = []
        parent = self.parent_of(marker_id)
        while parent is not None:
            chain.append(parent)
            parent = self.parent_of(parent)
        return chain

    # -- rendering --------------------------------------------------------

    def value_of(self, marker_id: int) -> str:
        """Return the untransformed value of a marker."""
        marker = self._markers[marker_id]
        if isinstance(marker, Text):
            return marker.value
        if isinstance(marker, Placeholder) and not marker.children and marker.choices:
            return marker.choices[0]
        return "".join(self.render(child) for child in marker.children)

    def render(self, marker_id: int | None = None) -> str:
        """Render the whole snippet, or one marker when ``marker_id`` is given."""
        if marker_id is None:
            return "".join(self.render(child) for child in self.children)
        marker = self._markers[marker_id]
        value = self.value_of(marker_id)
        if not isinstance(marker, Text) and marker.transform is not None:
            return marker.transform.apply(value)
        return value

    @property
    def text(self) -> str:
        return self.render()

    def _passes_through(self, marker: Marker) -> bool:
        # Children only own spans when the marker renders them verbatim.
        if isinstance(marker, Text) or marker.transform is not None:
            return False
        if isinstance(marker, Placeholder) and not marker.children and marker.choices:
            return False
        return True

    # -- offsets ----------------------------------------------------------

    def compute_offsets(self, start: int = 0) -> int:
        """Assign a span to every reachable marker and return the end offset."""
        self._spans = {}
        self._origin = start
        end = start
        for child in self.children:
            end = self._assign(child, end)
        self._dirty = False
        return end

    def _assign(self, marker_id: int, offset: int) -> int:
        marker = self._markers[marker_id]
        if isinstance(marker, Text):
            end = offset + len(marker.value)
        elif self._passes_through(marker):
            end = offset
            for child in marker.children:
                end = self._assign(child, end)
        else:
            end = offset + len(self.render(marker_id))
        self._spans[marker_id] = Span(offset, end)
        return end

    def span(self, marker_id: int) -> Span | None:
        """Return the current span of a marker, or ``None`` when it has none."""
        if self._dirty:
            self.compute_offsets(self._origin)
        return self._spans.get(marker_id)

    def enclosing(
        self,
        start: int,
        end: int,
        *,
        rank: Callable[[int], int] | None = None,
    ) -> list[int]:
        """Return the markers whose spans contain ``[start, end]``, outermost first.

        When several siblings qualify (a zero-width range on a boundary), the
        one with the lowest ``rank`` wins; placeholders outrank variables,
        which outrank text, unless a custom ranking is supplied. Top-level literal
        text never takes an insertion at its own edges, so typing just before or
        after the snippet is not folded into it.
        """
        rank_of = rank or (lambda marker_id: _default_rank(self._markers[marker_id]))
        chain: list[int] = []
        candidates = self.children
        top_level = True
        while candidates:
            matches = []
            for marker_id in candidates:
                span = self.span(marker_id)
                if span is None:
                    continue
                if top_level and isinstance(self._markers[marker_id], Text):
                    inside = span.holds(start, end)
                else:
                    inside = span.contains(start, end)
                if inside:
                    matches.append(marker_id)
            if not matches:
                break
            best = min(matches, key=rank_of)
            chain.append(best)
            marker = self._markers[best]
            candidates = marker.children if self._passes_through(marker) else []
            top_level = False
        return chain

    # -- mutation ---------------------------------------------------------

    def _invalidate(self) -> None:
        self._dirty = True
        self._parents = None

    def replace_text(self, marker_id: int, value: str) -> None:
        """Swap the text leaf ``marker_id`` for a new literal."""
        if not isinstance(self._markers[marker_id], Text):
            raise TypeError(f"marker {marker_id} is not a text leaf")
        self._markers[marker_id] = Text(value)
        self._invalidate()

    def replace_content(self, marker_id: int, value: str, *, keep_transform: bool = True) -> None:
        """Replace the children of a container with a single text leaf.

        Choices are dropped because the explicit value now wins. Nested
        markers are detached from the tree.
        """
        marker = self._markers[marker_id]
        if isinstance(marker, Text):
            raise TypeError(f"marker {marker_id} is a text leaf")
        marker.children = [self.add(Text(value))] if value else []
        if isinstance(marker, Placeholder):
            marker.choices = None
        if not keep_transform:
            marker.transform = None
        self._invalidate()

    def resolve_variables(self, resolver: VariableResolver) -> None:
        """Resolve every variable once, keeping declared defaults when unresolved."""
        if self._variables_resolved:
            return
        self._resolve_in(self.children, resolver)
        self._variables_resolved = True
        self._invalidate()
        self.fill_mirrors()

    def _resolve_in(self, marker_ids: list[int], resolver: VariableResolver) -> None:
        for marker_id in list(marker_ids):
            marker = self._markers[marker_id]
            if isinstance(marker, Text):
                continue
            if isinstance(marker, Variable):
                value = resolver.resolve(marker.name)
                if value is not None:
                    marker.children = [self.add(Text(value))] if value else []
                    continue
            self._resolve_in(marker.children, resolver)

    # -- mirrors ----------------------------------------------------------

    def iter_mirror_updates(self) -> Iterator[MirrorUpdate]:
        """Copy canonical values into diverging mirrors, one update at a time.

        Each yielded update is applied before it is yielded; its span is the
        mirror's span in the text as it stood just before the update.
        """
        limit = len(self.placeholders()) ** 2 + 1
        for _ in range(limit):
            update = self._next_mirror_update()
            if update is None:
                return
            yield update

    def _next_mirror_update(self) -> MirrorUpdate | None:
        for members in self.placeholder_groups().values():
            canonical, *mirrors = members
            value = self.value_of(canonical)
            for mirror_id in mirrors:
                mirror = self._markers[mirror_id]
                assert isinstance(mirror, Placeholder)
                if canonical in self.ancestors(mirror_id):
                    continue
                if mirror.choices is None and self.value_of(mirror_id) == value:
                    continue
                span = self.span(mirror_id)
                assert span is not None
                old_text = self.render(mirror_id)
                self.replace_content(mirror_id, value)
                return MirrorUpdate(mirror_id, span, old_text, self.render(mirror_id))
        return None

    def fill_mirrors(self) -> list[int]:
        """Bring every mirror in line with its canonical placeholder."""
        return [update.marker_id for update in self.iter_mirror_updates()]


__all__ = [
    "CaseRule",
    "FormatFragment",
    "FormatReference",
    "FormatText",
    "Marker",
    "MirrorUpdate",
    "Placeholder",
    "Snippet",
    "Span",
    "Text",
    "Transform",
    "Variable",
]
