"""Primary public API for snipsmith."""

from __future__ import annotations

from snipsmith.core.config import SnippetConfig, load_config
from snipsmith.core.diagnostics import DiagnosticEmitter, LoggingEmitter, NullEmitter
from snipsmith.core.exceptions import (
    SnippetBufferError,
    SnippetConfigError,
    SnippetError,
    SnippetSessionError,
)
from snipsmith.core.snippets import (
    Placeholder,
    PlaceholderGroupIndex,
    Position,
    Range,
    SessionState,
    Snippet,
    SnippetManager,
    SnippetParser,
    SnippetSession,
    SnippetVariableResolver,
    Text,
    TextChange,
    TextDocument,
    Transform,
    Variable,
    VariableContext,
    parse_snippet,
)
from snipsmith.version import get_version


__version__ = get_version()

__all__ = [
    "DiagnosticEmitter",
    "LoggingEmitter",
    "NullEmitter",
    "Placeholder",
    "PlaceholderGroupIndex",
    "Position",
    "Range",
    "SessionState",
    "Snippet",
    "SnippetBufferError",
    "SnippetConfig",
    "SnippetConfigError",
    "SnippetError",
    "SnippetManager",
    "SnippetParser",
    "SnippetSession",
    "SnippetSessionError",
    "SnippetVariableResolver",
    "Text",
    "TextChange",
    "TextDocument",
    "Transform",
    "Variable",
    "VariableContext",
    "__version__",
    "load_config",
    "parse_snippet",
]
