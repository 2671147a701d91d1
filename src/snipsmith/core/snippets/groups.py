"""Tabstop index to mirror placeholders mapping."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from .markers import Snippet


@dataclass(slots=True)
class PlaceholderGroupIndex:
    """Placeholders sharing each tabstop index, in document order.

    The first member of every group is its canonical mirror. The index is a
    snapshot: rebuild it with :meth:`build` after the tree changes shape.
    """

    groups: dict[int, tuple[int, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, snippet: Snippet) -> PlaceholderGroupIndex:
        return cls(
            groups={index: tuple(members) for index, members in snippet.placeholder_groups().items()}
        )

    def __contains__(self, index: object) -> bool:
        return index in self.groups

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices())

    def members(self, index: int) -> tuple[int, ...]:
        return self.groups.get(index, ())

    def canonical(self, index: int | None) -> int | None:
        """Return the marker id of the first-declared placeholder for ``index``."""
        if index is None:
            return None
        members = self.groups.get(index)
        return members[0] if members else None

    def mirrors(self, index: int) -> tuple[int, ...]:
        """Return the non-canonical placeholders for ``index``."""
        return self.groups.get(index, ())[1:]

    def is_canonical(self, marker_id: int) -> bool:
        return any(members[0] == marker_id for members in self.groups.values())

    def indices(self) -> list[int]:
        return sorted(self.groups)

    def navigation_order(self) -> tuple[int, ...]:
        """Ascending non-zero indices with the final tabstop last."""
        order = [index for index in sorted(self.groups) if index != 0]
        if 0 in self.groups:
            order.append(0)
        return tuple(order)

    def next_index(self, current: int | None) -> int | None:
        order = self.navigation_order()
        if not order:
            return None
        if current is None:
            return order[0]
        if current in order:
            position = order.index(current)
            return order[position + 1] if position + 1 < len(order) else None
        # The current stop vanished (its placeholder was overwritten); resume
        # at the first remaining stop after it.
        for index in order:
            if index == 0 or index > current:
                return index
        return None

    def previous_index(self, current: int | None) -> int | None:
        order = self.navigation_order()
        if current is None or not order:
            return None
        if current in order:
            position = order.index(current)
            return order[position - 1] if position > 0 else None
        earlier = [index for index in order if index != 0 and index < current]
        return earlier[-1] if earlier else None


__all__ = ["PlaceholderGroupIndex"]
