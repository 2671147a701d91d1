"""Snippet parsing, marker tree, and live editing sessions."""

from __future__ import annotations

from .buffer import (
    BufferId,
    BufferListener,
    Position,
    Range,
    TextBuffer,
    TextChange,
    TextDocument,
    offset_at,
    position_at,
)
from .groups import PlaceholderGroupIndex
from .manager import NullStatusItem, SnippetManager, StatusItem
from .markers import (
    CaseRule,
    FormatReference,
    FormatText,
    Marker,
    MirrorUpdate,
    Placeholder,
    Snippet,
    Span,
    Text,
    Transform,
    Variable,
)
from .parser import SnippetParser, escape_snippet_text, parse_snippet
from .session import SessionState, SnippetSession
from .variables import (
    CompositeVariableResolver,
    MappingVariableResolver,
    SnippetVariableResolver,
    VariableContext,
    VariableResolver,
)


__all__ = [
    "BufferId",
    "BufferListener",
    "CaseRule",
    "CompositeVariableResolver",
    "FormatReference",
    "FormatText",
    "MappingVariableResolver",
    "Marker",
    "MirrorUpdate",
    "NullStatusItem",
    "Placeholder",
    "PlaceholderGroupIndex",
    "Position",
    "Range",
    "SessionState",
    "Snippet",
    "SnippetManager",
    "SnippetParser",
    "SnippetSession",
    "SnippetVariableResolver",
    "Span",
    "StatusItem",
    "Text",
    "TextBuffer",
    "TextChange",
    "TextDocument",
    "Transform",
    "Variable",
    "VariableContext",
    "VariableResolver",
    "escape_snippet_text",
    "offset_at",
    "parse_snippet",
    "position_at",
]
