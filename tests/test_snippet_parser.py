from __future__ import annotations

import pytest

from snipsmith.core.snippets import (
    CaseRule,
    FormatReference,
    Placeholder,
    Text,
    Variable,
    escape_snippet_text,
    parse_snippet,
)
from snipsmith.core.snippets.scanner import Scanner, TokenType


def _top(template: str, insert_final_tabstop: bool = False) -> list:
    snippet = parse_snippet(template, insert_final_tabstop)
    return [snippet[marker_id] for marker_id in snippet.children]


def test_scanner_splits_template_into_tokens() -> None:
    scanner = Scanner("${1:ab} x")
    kinds = []
    token = scanner.next()
    while token.type is not TokenType.EOF:
        kinds.append((token.type, scanner.token_text(token)))
        token = scanner.next()

    assert kinds == [
        (TokenType.DOLLAR, "$"),
        (TokenType.CURLY_OPEN, "{"),
        (TokenType.INT, "1"),
        (TokenType.COLON, ":"),
        (TokenType.VARIABLE_NAME, "ab"),
        (TokenType.CURLY_CLOSE, "}"),
        (TokenType.FORMAT, " "),
        (TokenType.VARIABLE_NAME, "x"),
    ]


def test_plain_text_is_a_single_leaf() -> None:
    markers = _top("hello, world!")
    assert markers == [Text("hello, world!")]


def test_simple_tabstops() -> None:
    markers = _top("$1 and ${2}")
    assert isinstance(markers[0], Placeholder) and markers[0].index == 1
    assert markers[1] == Text(" and ")
    assert isinstance(markers[2], Placeholder) and markers[2].index == 2


def test_placeholder_with_default_text() -> None:
    snippet = parse_snippet("${1:foo}")
    placeholder = snippet[snippet.children[0]]
    assert isinstance(placeholder, Placeholder)
    assert [snippet[child] for child in placeholder.children] == [Text("foo")]
    assert snippet.render() == "foo"


def test_nested_placeholders() -> None:
    snippet = parse_snippet("${1:outer ${2:inner}} end")
    assert snippet.render() == "outer inner end"
    indices = [snippet[marker_id].index for marker_id in snippet.placeholders()]
    assert indices == [1, 2]
    inner = snippet.placeholders()[1]
    assert snippet.parent_of(inner) == snippet.placeholders()[0]


def test_choices_render_first_entry() -> None:
    snippet = parse_snippet("${1|red,green,blue|}")
    placeholder = snippet[snippet.children[0]]
    assert isinstance(placeholder, Placeholder)
    assert placeholder.choices == ("red", "green", "blue")
    assert snippet.render() == "red"


def test_choice_escapes() -> None:
    snippet = parse_snippet(r"${1|a\,b,c\|d|}")
    placeholder = snippet[snippet.children[0]]
    assert placeholder.choices == ("a,b", "c|d")


def test_escapes_outside_placeholders() -> None:
    assert parse_snippet(r"\$1 \} \\ \x").render() == r"$1 } \ \x"


def test_adjacent_text_is_merged() -> None:
    assert _top(r"a\$b") == [Text("a$b")]


def test_lone_dollar_is_literal() -> None:
    snippet = parse_snippet("cost: $ 5")
    assert snippet.render() == "cost: $ 5"
    assert snippet.placeholders() == []


@pytest.mark.parametrize(
    "template",
    [
        "a ${1:foo",
        "${1",
        "x ${1|a,b",
        "${1|a,b} rest",
        "${NAME:default",
    ],
)
def test_unterminated_constructs_degrade_to_text(template: str) -> None:
    snippet = parse_snippet(template)
    assert snippet.render() == template
    assert snippet.placeholders() == []
    assert snippet.variables() == []


def test_malformed_braces_keep_following_markers() -> None:
    snippet = parse_snippet("${1#} $2")
    assert snippet.render() == "${1#} "
    assert [snippet[marker_id].index for marker_id in snippet.placeholders()] == [2]


def test_variables_with_and_without_default() -> None:
    markers = _top("$TM_FILENAME ${USER:nobody}")
    assert isinstance(markers[0], Variable) and markers[0].name == "TM_FILENAME"
    assert isinstance(markers[2], Variable) and markers[2].name == "USER"
    assert parse_snippet("$TM_FILENAME ${USER:nobody}").render() == " nobody"


def test_final_tabstop_is_appended_when_missing() -> None:
    markers = _top("$1", insert_final_tabstop=True)
    assert isinstance(markers[-1], Placeholder)
    assert markers[-1].index == 0

    explicit = parse_snippet("$0 x", insert_final_tabstop=True)
    assert len(explicit.placeholders()) == 1
    assert not parse_snippet("$1").has_final_tabstop()


def test_mirrors_take_the_canonical_value() -> None:
    assert parse_snippet("${1:foo} $1").render() == "foo foo"
    assert parse_snippet("$1 ${1:foo}").render() == " "


def test_transform_with_case_rule() -> None:
    snippet = parse_snippet("${1:hello} ${1/(.*)/${1:/upcase}/}")
    assert snippet.render() == "hello HELLO"
    mirror = snippet[snippet.placeholders()[1]]
    assert mirror.transform is not None
    assert mirror.transform.format == (FormatReference(1, CaseRule.UPCASE),)


def test_transform_case_switches() -> None:
    snippet = parse_snippet(r"${1:john smith} ${1/(\w+) (\w+)/\u$1 \U$2/}")
    assert snippet.render() == "john smith John SMITH"


def test_transform_conditional_and_global_flag() -> None:
    snippet = parse_snippet("${1:ab} ${1/(a)|b/${1:?Y:N}/g}")
    assert snippet.render() == "ab YN"


def test_transform_else_branch_on_empty_value() -> None:
    assert parse_snippet("${1:} ${1/^$/${0:-empty}/}").render() == " empty"


def test_transform_ignore_case_flag() -> None:
    snippet = parse_snippet("${1:Hello} ${1/h/j/i}")
    mirror = snippet[snippet.placeholders()[1]]
    assert mirror.transform is not None and mirror.transform.ignore_case
    assert snippet.render() == "Hello jello"


def test_invalid_regex_degrades_to_text() -> None:
    snippet = parse_snippet("${1/(/x/} tail")
    assert snippet.render() == "${1/(/x/} tail"
    assert snippet.placeholders() == []


def test_variable_transform() -> None:
    snippet = parse_snippet("${name/(.*)/${1:/capitalize}/}")
    variable = snippet[snippet.children[0]]
    assert isinstance(variable, Variable)
    assert variable.transform is not None


@pytest.mark.parametrize(
    "value",
    ["plain", "cost $5", "{braces} and }", r"back\slash", "$1 ${2:x}"],
)
def test_escaped_text_parses_back_to_itself(value: str) -> None:
    assert parse_snippet(escape_snippet_text(value)).render() == value


def test_reparsing_literal_render_is_stable() -> None:
    snippet = parse_snippet("for ${1:i} in ${2:items}: $0")
    rendered = snippet.render()
    assert parse_snippet(escape_snippet_text(rendered)).render() == rendered
