"""Implementation of the ``snipsmith inspect`` command."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.tree import Tree

from snipsmith.core.snippets import (
    Placeholder,
    PlaceholderGroupIndex,
    Snippet,
    Text,
    Variable,
    VariableContext,
)

from .._options import (
    ConfigOption,
    DebugOption,
    FileOption,
    FinalTabstopOption,
    SelectionOption,
    TemplateArgument,
    VariableOption,
    VerboseOption,
)
from ..state import set_cli_state
from ..utils import build_snippet, parse_variable_option, read_template, resolve_config


if TYPE_CHECKING:  # pragma: no cover - typing only
    from rich.console import Console


def _label(snippet: Snippet, marker_id: int, groups: PlaceholderGroupIndex) -> str:
    marker = snippet[marker_id]
    span = snippet.span(marker_id)
    where = f"[dim]\\[{span.start}, {span.end})[/]" if span is not None else "[dim](detached)[/]"
    rendered = escape(repr(snippet.render(marker_id)))
    if isinstance(marker, Text):
        return f"text {where} {rendered}"
    if isinstance(marker, Placeholder):
        role = "" if groups.is_canonical(marker_id) else " [yellow]mirror[/]"
        extras = []
        if marker.choices:
            extras.append("choices=" + escape("|".join(marker.choices)))
        if marker.transform is not None:
            extras.append("transform=" + escape(marker.transform.pattern.pattern))
        suffix = f" [dim]{' '.join(extras)}[/]" if extras else ""
        return f"[bold cyan]${marker.index}[/]{role} {where} {rendered}{suffix}"
    assert isinstance(marker, Variable)
    return f"[bold magenta]${escape(marker.name)}[/] {where} {rendered}"


def _branch(tree: Tree, snippet: Snippet, marker_id: int, groups: PlaceholderGroupIndex) -> None:
    node = tree.add(_label(snippet, marker_id, groups))
    for child in snippet.children_of(marker_id):
        _branch(node, snippet, child, groups)


def render_tree(snippet: Snippet, console: Console) -> None:
    """Print the marker tree of ``snippet`` followed by its tabstop order."""
    groups = PlaceholderGroupIndex.build(snippet)
    tree = Tree(f"snippet {escape(repr(snippet.render()))}")
    for child in snippet.children:
        _branch(tree, snippet, child, groups)
    console.print(tree)
    order = groups.navigation_order()
    console.print(
        "tabstops: " + (", ".join(f"${index}" for index in order) if order else "(none)"),
        highlight=False,
    )


def inspect(
    template: TemplateArgument,
    variables: VariableOption = None,
    file: FileOption = None,
    selection: SelectionOption = None,
    final_tabstop: FinalTabstopOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
) -> None:
    """Show the parsed marker tree of a snippet template."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    config = resolve_config(
        config_path,
        variables=parse_variable_option(variables),
        final_tabstop=final_tabstop,
    )
    snippet = build_snippet(
        read_template(template),
        config=config,
        context=VariableContext(filepath=file, selected_text=selection or ""),
    )
    render_tree(snippet, state.console)


__all__ = ["inspect", "render_tree"]
