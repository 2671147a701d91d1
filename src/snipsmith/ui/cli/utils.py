"""Auxiliary helpers used by CLI commands."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from pathlib import Path
import sys

import typer

from snipsmith.core.config import SnippetConfig, load_config
from snipsmith.core.exceptions import SnippetConfigError
from snipsmith.core.snippets import Snippet, SnippetManager, VariableContext

from .state import emit_error


def parse_variable_option(values: Iterable[str] | None) -> dict[str, str]:
    """Parse CLI variable overrides declared as 'NAME=VALUE' pairs."""
    variables: dict[str, str] = {}
    if not values:
        return variables

    for raw in values:
        entry = raw.strip()
        if "=" not in entry:
            raise typer.BadParameter(f"Invalid variable '{raw}', expected NAME=VALUE.")
        name, value = entry.split("=", 1)
        name = name.strip()
        if not name:
            raise typer.BadParameter(f"Invalid variable '{raw}', the name is empty.")
        variables[name] = value

    return variables


def read_template(template: str) -> str:
    """Return the template text, reading stdin for '-'."""
    if template == "-":
        return sys.stdin.read()
    return template


def resolve_config(
    path: Path | None,
    *,
    variables: Mapping[str, str] | None = None,
    final_tabstop: bool | None = None,
) -> SnippetConfig:
    """Load the configuration and fold command-line overrides into it.

    Variables given on the command line take precedence over those declared
    in the configuration file.
    """
    try:
        config = load_config(path)
    except SnippetConfigError as exc:
        emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc

    update: dict[str, object] = {}
    if variables:
        update["variables"] = {**config.variables, **variables}
    if final_tabstop is not None:
        update["insert_final_tabstop"] = final_tabstop
    return config.model_copy(update=update) if update else config


def build_snippet(
    template: str,
    *,
    config: SnippetConfig,
    context: VariableContext | None = None,
) -> Snippet:
    """Parse ``template`` and resolve its variables without inserting it."""
    return SnippetManager(config=config).resolve_snippet(
        template, context=context, final_tabstop=config.insert_final_tabstop
    )


__all__ = ["build_snippet", "parse_variable_option", "read_template", "resolve_config"]
