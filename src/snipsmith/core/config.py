"""Configuration models used by the snippet engine.

SnippetConfig

`status_text` (`str`)
: Label shown by the status item while a buffer hosts an active snippet
  session.

`select_on_insert` (`bool`)
: Select the first tabstop's default text right after insertion. When
  `False` the cursor collapses to the end of that tabstop instead.

`insert_final_tabstop` (`bool`)
: Append an implicit `$0` at the end of every template that does not declare
  one, so the session always has a terminal stop.

`variables` (`dict[str, str]`)
: User defined variable values. They take precedence over the values derived
  from the editing context (file name, selection, date, ...).
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import yaml

from .exceptions import SnippetConfigError


DEFAULT_STATUS_TEXT = "SNIP"


class SnippetConfig(BaseModel):
    """Settings controlling snippet insertion and session behaviour."""

    model_config = ConfigDict(extra="forbid")

    status_text: str = Field(default=DEFAULT_STATUS_TEXT, description="Status item label")
    select_on_insert: bool = True
    insert_final_tabstop: bool = True
    variables: dict[str, str] = Field(default_factory=dict)

    @field_validator("status_text")
    @classmethod
    def _default_blank_status(cls, value: str) -> str:
        return value.strip() or DEFAULT_STATUS_TEXT

    @field_validator("variables", mode="before")
    @classmethod
    def _stringify_variables(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {str(key): "" if item is None else str(item) for key, item in value.items()}
        return value


def load_config(path: str | Path | None = None) -> SnippetConfig:
    """Load a YAML configuration file, returning defaults when no path is given."""
    if path is None:
        return SnippetConfig()
    source = Path(path)
    try:
        payload = yaml.safe_load(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise SnippetConfigError(f"Unable to read configuration '{source}'.") from exc
    except yaml.YAMLError as exc:
        raise SnippetConfigError(f"Configuration '{source}' is not valid YAML.") from exc

    if payload is None:
        return SnippetConfig()
    if not isinstance(payload, Mapping):
        raise SnippetConfigError(f"Configuration '{source}' must contain a mapping.")

    # Accept both a bare mapping and one nested under a `snippets` key.
    section = payload.get("snippets", payload)
    try:
        return SnippetConfig.model_validate(section)
    except ValidationError as exc:
        raise SnippetConfigError(f"Invalid configuration in '{source}'.") from exc


__all__ = ["DEFAULT_STATUS_TEXT", "SnippetConfig", "load_config"]
