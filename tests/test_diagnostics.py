from __future__ import annotations

import logging

import pytest

from snipsmith.core.diagnostics import (
    DiagnosticEmitter,
    LoggingEmitter,
    NullEmitter,
    event_level,
    format_event_message,
)
from snipsmith.core.exceptions import (
    SnippetConfigError,
    SnippetError,
    exception_hint,
    exception_messages,
)
from snipsmith.core.snippets import SnippetManager, TextDocument
from snipsmith.ui.cli.diagnostics import CliEmitter
from snipsmith.ui.cli.state import set_cli_state


def _raise_nested() -> None:
    try:
        raise OSError("disk unavailable")
    except OSError as exc:
        raise SnippetConfigError("config failed") from exc


def test_null_emitter_is_noop(caplog: pytest.LogCaptureFixture) -> None:
    emitter = NullEmitter()
    with caplog.at_level(logging.WARNING):
        emitter.warning("nothing to see")
        emitter.error("still quiet")
    assert not caplog.records
    emitter.event("ignored", {"value": 1})
    assert emitter.debug_enabled is False
    assert isinstance(emitter, DiagnosticEmitter)


def test_logging_emitter_logs_messages(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter(debug_enabled=True)
    with caplog.at_level(logging.ERROR):
        emitter.error("boom")
    assert any(record.message == "boom" for record in caplog.records)
    assert emitter.debug_enabled is True


def test_logging_emitter_summarises_events(caplog: pytest.LogCaptureFixture) -> None:
    emitter = LoggingEmitter()
    with caplog.at_level(logging.INFO, logger="snipsmith.core.diagnostics"):
        with SnippetManager(emitter=emitter) as manager:
            manager.insert_snippet(TextDocument(buffer_id="doc"), "$1 $2")
            manager.cancel()
    messages = [record.message for record in caplog.records]
    assert "Snippet session started in buffer doc (tabstops: 1, 2, 0)" in messages
    assert "Snippet session cancelled in buffer doc (user)" in messages


@pytest.mark.parametrize(
    ("name", "payload", "expected"),
    [
        (
            "snippet_started",
            {"buffer": 3, "tabstops": []},
            "Snippet session started in buffer 3 (tabstops: -)",
        ),
        ("snippet_finished", {"buffer": "b"}, "Snippet session finished in buffer b"),
        (
            "snippet_cancelled",
            {"buffer": "b", "reason": "cursor_left"},
            "Snippet session cancelled in buffer b (cursor_left)",
        ),
        ("something_else", {}, None),
    ],
)
def test_format_event_message(name: str, payload: dict, expected: str | None) -> None:
    assert format_event_message(name, payload) == expected


def test_cli_emitter_bridges_state(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=1, debug=False)
    emitter = CliEmitter(state=state)

    emitter.warning("Heads up", exc=None)
    emitter.error("Boom", exc=None)
    emitter.event("snippet_finished", {"buffer": 7})

    captured = capsys.readouterr()
    combined_output = f"{captured.out}\n{captured.err}"
    assert "Heads up" in combined_output
    assert "Boom" in combined_output
    assert "finished in buffer 7" in combined_output
    assert state.consume_events("snippet_finished")[-1] == {"buffer": 7}


def test_exception_messages_follow_the_chain() -> None:
    with pytest.raises(SnippetError) as excinfo:
        _raise_nested()
    assert exception_messages(excinfo.value) == ["config failed", "disk unavailable"]
    assert exception_hint(excinfo.value) == "disk unavailable"
    assert exception_hint(SnippetError()) is None


def test_unexpected_cancellations_are_warnings(caplog: pytest.LogCaptureFixture) -> None:
    assert event_level("snippet_cancelled", {"reason": "out_of_tree_edit"}) == logging.WARNING
    assert event_level("snippet_cancelled", {"reason": "user"}) == logging.INFO
    assert event_level("snippet_started", {}) == logging.INFO

    emitter = LoggingEmitter()
    with caplog.at_level(logging.WARNING, logger="snipsmith.core.diagnostics"):
        emitter.event("snippet_cancelled", {"buffer": 1, "reason": "out_of_tree_edit"})
        emitter.event("snippet_cancelled", {"buffer": 1, "reason": "user"})
    assert [record.levelno for record in caplog.records] == [logging.WARNING]


def test_cli_emitter_warns_on_unexpected_cancel(capsys: pytest.CaptureFixture[str]) -> None:
    state = set_cli_state(verbosity=0, debug=True)
    emitter = CliEmitter(state)
    assert emitter.debug_enabled is True

    emitter.event("snippet_cancelled", {"buffer": "doc", "reason": "user"})
    emitter.event("snippet_cancelled", {"buffer": "doc", "reason": "out_of_tree_edit"})

    err = capsys.readouterr().err
    assert "warning" in err
    assert "out_of_tree_edit" in err
    assert "(user)" not in err
    set_cli_state(debug=False)
