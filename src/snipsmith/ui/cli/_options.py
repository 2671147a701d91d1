"""Shared Typer option definitions for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer


TEMPLATE_PANEL = "Template"
VARIABLES_PANEL = "Variables"
DIAGNOSTICS_PANEL = "Diagnostics"

TemplateArgument = Annotated[
    str,
    typer.Argument(
        metavar="TEMPLATE",
        help="Snippet template, e.g. 'for ${1:i} in ${2:items}:'. Use '-' to read stdin.",
    ),
]

VariableOption = Annotated[
    list[str] | None,
    typer.Option(
        "--var",
        metavar="NAME=VALUE",
        help="Set a variable value. Repeat for several variables.",
        rich_help_panel=VARIABLES_PANEL,
    ),
]

FileOption = Annotated[
    Path | None,
    typer.Option(
        "--file",
        help="File path used for TM_FILENAME, TM_DIRECTORY, and related variables.",
        rich_help_panel=VARIABLES_PANEL,
    ),
]

SelectionOption = Annotated[
    str | None,
    typer.Option(
        "--selection",
        help="Text used for TM_SELECTED_TEXT.",
        rich_help_panel=VARIABLES_PANEL,
    ),
]

FinalTabstopOption = Annotated[
    bool | None,
    typer.Option(
        "--final-tabstop/--no-final-tabstop",
        help="Append an implicit $0 when the template has none (defaults to the configuration).",
        rich_help_panel=TEMPLATE_PANEL,
    ),
]

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        help="YAML configuration file.",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        rich_help_panel=TEMPLATE_PANEL,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]

DebugOption = Annotated[
    bool,
    typer.Option(
        "--debug",
        help="Show full tracebacks when an unexpected error occurs.",
        rich_help_panel=DIAGNOSTICS_PANEL,
    ),
]
