"""Implementation of the ``snipsmith expand`` command."""

from __future__ import annotations

import typer

from snipsmith.core.snippets import SnippetManager, TextDocument, VariableContext

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
from ..diagnostics import CliEmitter
from ..state import set_cli_state
from ..utils import parse_variable_option, read_template, resolve_config


def expand(
    template: TemplateArgument,
    variables: VariableOption = None,
    file: FileOption = None,
    selection: SelectionOption = None,
    final_tabstop: FinalTabstopOption = None,
    config_path: ConfigOption = None,
    verbose: VerboseOption = 0,
    debug: DebugOption = False,
) -> None:
    """Expand a snippet template into an empty buffer and print the result."""
    state = set_cli_state(verbosity=verbose, debug=debug)
    config = resolve_config(
        config_path,
        variables=parse_variable_option(variables),
        final_tabstop=final_tabstop,
    )

    document = TextDocument(buffer_id="cli", path=str(file) if file else None)
    context = VariableContext(filepath=file, selected_text=selection or "")
    with SnippetManager(config=config, emitter=CliEmitter(state)) as manager:
        manager.insert_snippet(document, read_template(template), context=context)
        session = manager.session_for(document.buffer_id)
        if session is not None and state.verbosity >= 1:
            current = session.current_range()
            if current is not None:
                state.err_console.log(
                    f"tabstop ${session.current_index} at "
                    f"{current.start.line}:{current.start.character}"
                )

    typer.echo(document.text)


__all__ = ["expand"]
