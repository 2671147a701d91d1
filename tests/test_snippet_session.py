from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pytest

from snipsmith.core.config import SnippetConfig
from snipsmith.core.exceptions import SnippetSessionError
from snipsmith.core.snippets import (
    BufferId,
    MappingVariableResolver,
    Position,
    Range,
    SessionState,
    SnippetSession,
    TextChange,
    TextDocument,
)


class RecordingDocument(TextDocument):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.writes: list[tuple[Range, str]] = []

    def replace_range(self, range: Range, text: str) -> None:
        self.writes.append((range, text))
        super().replace_range(range, text)


class SessionBridge:
    """Forward buffer notifications to a session, as a host editor would."""

    def __init__(self, session: SnippetSession) -> None:
        self.session = session

    def on_text_changed(self, buffer_id: BufferId, changes: Sequence[TextChange]) -> None:
        self.session.synchronize_changes(changes)

    def on_cursor_moved(self, buffer_id: BufferId, position: Position) -> None:
        return


class RecordingEmitter:
    debug_enabled = False

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def warning(self, message: str, exc: BaseException | None = None) -> None:
        return

    def error(self, message: str, exc: BaseException | None = None) -> None:
        return

    def event(self, name: str, payload: Mapping[str, Any]) -> None:
        self.events.append((name, dict(payload)))


def _start(
    template: str,
    text: str = "",
    *,
    cursor: Position | None = None,
    config: SnippetConfig | None = None,
    emitter: RecordingEmitter | None = None,
    select: bool | None = None,
) -> tuple[SnippetSession, RecordingDocument, bool]:
    document = RecordingDocument(text, cursor=cursor)
    session = SnippetSession(document, config=config, emitter=emitter)
    document.subscribe(SessionBridge(session))
    active = session.start(template, select)
    document.writes.clear()
    return session, document, active


def _edit(document: TextDocument, start: int, end: int, text: str, line: int = 0) -> None:
    document.replace_range(Range(Position(line, start), Position(line, end)), text)


def test_start_inserts_rendered_text_and_selects_first_tabstop() -> None:
    session, document, active = _start("for ${1:item} in ${2:items}:")

    assert active is True
    assert session.state is SessionState.ACTIVE
    assert document.text == "for item in items:"
    assert session.text == document.text
    assert session.current_index == 1
    assert document.selection == Range(Position(0, 4), Position(0, 8))


def test_start_at_explicit_position() -> None:
    document = TextDocument("x = \nend")
    session = SnippetSession(document)
    assert session.start("${1:42}", position=Position(0, 4))
    assert document.text == "x = 42\nend"
    assert session.origin == Position(0, 4)
    assert session.current_range() == Range(Position(0, 4), Position(0, 6))


def test_start_without_selection_collapses_cursor() -> None:
    _, document, _ = _start("${1:abc} tail", select=False)
    assert document.selection is None
    assert document.cursor() == Position(0, 3)


def test_choice_default_is_rendered() -> None:
    session, document, active = _start("${1|red,green,blue|}")
    assert active
    assert document.text == "red"
    assert session.current_range() == Range(Position(0, 0), Position(0, 3))


def test_editing_canonical_updates_mirrors() -> None:
    session, document, _ = _start("${1:foo} and ${1:foo}")

    _edit(document, 0, 3, "bar")

    assert document.text == "bar and bar"
    assert session.text == document.text
    assert document.writes[-1] == (Range(Position(0, 8), Position(0, 11)), "bar")
    assert session.is_active


def test_typing_character_by_character() -> None:
    session, document, _ = _start("${1:name} = $1")

    _edit(document, 0, 4, "")
    for column, char in enumerate("ab"):
        document.insert_text(Position(0, column), char)

    assert document.text == "ab = ab"
    assert session.current_range() == Range(Position(0, 0), Position(0, 2))


def test_transform_mirror_follows_canonical() -> None:
    _, document, _ = _start(r"${1:hello}${1/.*/\U$0/}")
    assert document.text == "helloHELLO"

    _edit(document, 0, 5, "world")

    assert document.text == "worldWORLD"


def test_navigation_order() -> None:
    emitter = RecordingEmitter()
    session, document, _ = _start("${2:two} ${1:one} $0", emitter=emitter)

    assert session.navigation_order == (1, 2, 0)
    assert session.current_index == 1

    session.previous_placeholder()
    assert session.current_index == 1
    assert session.is_active

    session.next_placeholder()
    assert session.current_index == 2
    assert document.selection == Range(Position(0, 0), Position(0, 3))

    session.previous_placeholder()
    assert session.current_index == 1
    session.next_placeholder()

    session.next_placeholder()
    assert session.current_index == 0
    assert session.state is SessionState.FINISHED
    assert document.cursor() == Position(0, 8)

    names = [name for name, _ in emitter.events]
    assert names == ["snippet_started", "snippet_finished"]
    assert emitter.events[0][1]["tabstops"] == [1, 2, 0]

    session.next_placeholder()
    assert session.state is SessionState.FINISHED


def test_moving_past_last_stop_finishes_without_final_tabstop() -> None:
    emitter = RecordingEmitter()
    config = SnippetConfig(insert_final_tabstop=False)
    session, document, _ = _start("${1:a} ${2:b}", config=config, emitter=emitter)
    assert session.navigation_order == (1, 2)

    session.next_placeholder()
    assert session.current_index == 2
    assert session.is_active

    session.next_placeholder()
    assert not session.is_active
    assert session.state is SessionState.FINISHED
    assert document.cursor() == Position(0, 3)
    assert emitter.events[-1] == ("snippet_finished", {"buffer": document.buffer_id})


def test_typing_before_leading_literal_cancels() -> None:
    session, document, _ = _start("let ${1:x} = 1")

    document.insert_text(Position(0, 0), "z")

    assert document.text == "zlet x = 1"
    assert session.state is SessionState.CANCELLED
    assert session.cancel_reason == "out_of_tree_edit"


def test_typing_after_trailing_literal_cancels() -> None:
    config = SnippetConfig(insert_final_tabstop=False)
    session, document, _ = _start("${1:x} end", config=config)

    document.insert_text(Position(0, 5), "!")

    assert document.text == "x end!"
    assert session.cancel_reason == "out_of_tree_edit"


def test_out_of_tree_edit_cancels_without_writes() -> None:
    emitter = RecordingEmitter()
    session, document, _ = _start(
        "${1:foo} $1", "x\n", cursor=Position(1, 0), emitter=emitter
    )
    assert document.text == "x\nfoo foo"

    document.insert_text(Position(0, 0), "z")

    assert session.state is SessionState.CANCELLED
    assert session.cancel_reason == "out_of_tree_edit"
    assert document.writes == [(Range.collapsed(Position(0, 0)), "z")]
    assert emitter.events[-1] == (
        "snippet_cancelled",
        {"buffer": document.buffer_id, "reason": "out_of_tree_edit"},
    )


def test_editing_a_mirror_cancels() -> None:
    session, document, _ = _start("${1:foo} $1")
    _edit(document, 4, 7, "nope")
    assert session.state is SessionState.CANCELLED
    assert document.text == "foo nope"


def test_editing_another_placeholder_or_literal_text() -> None:
    session, document, _ = _start("${1:a} ${2:b} mid $2")

    _edit(document, 2, 3, "c")
    assert document.text == "a c mid c"
    assert session.is_active
    assert session.current_index == 1

    _edit(document, 4, 7, "MID")
    assert document.text == "a c MID c"
    assert session.text == document.text
    assert session.is_active


def test_multi_range_notification_is_folded_in_order() -> None:
    session, document, _ = _start("${1:ab} $1")

    document.apply_changes(
        [
            TextChange(Range.collapsed(Position(0, 0)), "x"),
            TextChange(Range.collapsed(Position(0, 3)), "y"),
        ]
    )

    assert document.text == "xaby xaby"
    assert session.text == document.text
    assert session.is_active


def test_overwriting_nested_placeholder_skips_it() -> None:
    session, document, _ = _start("${1:a ${2:b}} ${3:c}")

    _edit(document, 0, 3, "z")
    assert document.text == "z c"

    session.next_placeholder()
    assert session.current_index == 3
    assert document.selection == Range(Position(0, 2), Position(0, 3))


def test_check_position() -> None:
    emitter = RecordingEmitter()
    session, _, _ = _start("${1:foo} bar", emitter=emitter)

    session.check_position(Position(0, 2))
    session.check_position(Position(0, 3))
    assert session.is_active

    session.check_position(Position(0, 6))
    assert session.state is SessionState.CANCELLED
    assert session.cancel_reason == "cursor_left"


def test_cancel_leaves_text_and_stops_syncing() -> None:
    session, document, _ = _start("${1:foo} $1")
    session.cancel()
    assert session.state is SessionState.CANCELLED
    assert session.cancel_reason == "user"

    _edit(document, 0, 3, "bar")
    assert document.text == "bar foo"

    session.cancel()
    session.next_placeholder()
    session.select_current_placeholder()
    assert session.state is SessionState.CANCELLED


def test_select_current_placeholder_restores_selection() -> None:
    session, document, _ = _start("${1:foo} bar")
    document.set_cursor(Position(0, 1))
    session.select_current_placeholder()
    assert document.selection == Range(Position(0, 0), Position(0, 3))


def test_template_without_tabstops() -> None:
    config = SnippetConfig(insert_final_tabstop=False)
    session, document, active = _start("plain text", config=config)
    assert active is False
    assert session.state is SessionState.FINISHED
    assert document.text == "plain text"
    assert document.cursor() == Position(0, 10)


def test_template_with_only_final_tabstop() -> None:
    session, document, active = _start("before $0 after")
    assert active is False
    assert session.state is SessionState.FINISHED
    assert document.cursor() == Position(0, 7)


def test_variables_are_resolved_before_insertion() -> None:
    document = TextDocument()
    session = SnippetSession(
        document, resolver=MappingVariableResolver({"USER": "ada"})
    )
    session.start("by $USER ${1:${UNKNOWN:n/a}}")
    assert document.text == "by ada n/a"


def test_start_twice_raises() -> None:
    session, _, _ = _start("$1")
    with pytest.raises(SnippetSessionError):
        session.start("$2")


def test_deactivate_callbacks() -> None:
    session, _, _ = _start("$1 $2")
    seen: list[SnippetSession] = []
    session.on_deactivate(seen.append)
    dispose = session.on_deactivate(lambda _: pytest.fail("disposed callback ran"))
    dispose()

    session.deactivate()
    assert seen == [session]
