"""Recursive-descent parser for TextMate style snippet templates.

Supported syntax::

    $1  ${1}  ${1:default}  ${1|one,two,three|}  ${1/regex/format/flags}
    $name  ${name}  ${name:default}  ${name/regex/format/flags}

The parser never raises on user input. Any construct it cannot make sense of
falls back to literal text: an unknown ``$`` is kept as-is, malformed braced
forms are re-read character by character, and a brace left open at the end
of the template turns everything from its ``$`` onward into text.
"""

from __future__ import annotations

import logging
import re

from .markers import (
    CaseRule,
    FormatFragment,
    FormatReference,
    FormatText,
    Placeholder,
    Snippet,
    Text,
    Transform,
    Variable,
)
from .scanner import Scanner, Token, TokenType


logger = logging.getLogger(__name__)

_CASE_RULES: dict[str, CaseRule] = {
    "upcase": CaseRule.UPCASE,
    "downcase": CaseRule.DOWNCASE,
    "capitalize": CaseRule.CAPITALIZE,
    "pascalcase": CaseRule.PASCALCASE,
    "camelcase": CaseRule.CAMELCASE,
}

_REGEX_FLAGS: dict[str, re.RegexFlag] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}

_PLAIN_ESCAPES = (TokenType.DOLLAR, TokenType.CURLY_CLOSE, TokenType.BACKSLASH)
_CHOICE_ESCAPES = (
    TokenType.COMMA,
    TokenType.PIPE,
    TokenType.BACKSLASH,
    TokenType.DOLLAR,
    TokenType.CURLY_CLOSE,
)
_FORMAT_ESCAPES = (
    TokenType.FORWARDSLASH,
    TokenType.BACKSLASH,
    TokenType.DOLLAR,
    TokenType.CURLY_CLOSE,
)


def escape_snippet_text(value: str) -> str:
    """Escape ``value`` so that parsing it yields the same literal text."""
    return value.replace("\\", "\\\\").replace("$", "\\$").replace("}", "\\}")


class _FormatBuilder:
    """Collect format fragments while tracking ``\\U``/``\\L``/``\\u`` switches."""

    def __init__(self) -> None:
        self.fragments: list[FormatFragment] = []
        self.sticky = CaseRule.NONE
        self.once: CaseRule | None = None

    def _next_rule(self) -> CaseRule:
        if self.once is not None:
            rule, self.once = self.once, None
            return rule
        return self.sticky

    def text(self, value: str) -> None:
        if not value:
            return
        rule = self._next_rule()
        previous = self.fragments[-1] if self.fragments else None
        if isinstance(previous, FormatText) and previous.case is rule:
            self.fragments[-1] = FormatText(previous.value + value, rule)
        else:
            self.fragments.append(FormatText(value, rule))

    def reference(
        self,
        group: int,
        *,
        case: CaseRule = CaseRule.NONE,
        if_value: str | None = None,
        else_value: str | None = None,
    ) -> None:
        rule = self._next_rule()
        if case is not CaseRule.NONE:
            rule = case
        self.fragments.append(FormatReference(group, rule, if_value, else_value))

    def switch(self, letter: str) -> bool:
        if letter == "U":
            self.sticky = CaseRule.UPCASE
        elif letter == "L":
            self.sticky = CaseRule.DOWNCASE
        elif letter == "E":
            self.sticky = CaseRule.NONE
        elif letter == "u":
            self.once = CaseRule.CAPITALIZE
        elif letter == "n":
            self.text("\n")
        elif letter == "t":
            self.text("\t")
        else:
            return False
        return True

    def build(self) -> tuple[FormatFragment, ...]:
        return tuple(self.fragments)


class SnippetParser:
    """Turn template strings into :class:`Snippet` marker trees."""

    def __init__(self) -> None:
        self._scanner = Scanner()
        self._token = Token(TokenType.EOF, 0, 0)
        self._snippet = Snippet()

    def parse(self, value: str, insert_final_tabstop: bool = False) -> Snippet:
        """Parse ``value``; never raises.

        With ``insert_final_tabstop`` an empty ``$0`` is appended when the
        template does not declare one.
        """
        snippet = Snippet()
        self._snippet = snippet
        self._scanner.text(value)
        self._token = self._scanner.next()
        while self._parse(snippet.children):
            pass

        if insert_final_tabstop and not snippet.has_final_tabstop():
            snippet.append(Placeholder(0))

        snippet.fill_mirrors()
        snippet.compute_offsets()
        logger.debug("parsed snippet %r (%d top-level markers)", value, len(snippet.children))
        return snippet

    # -- token helpers ----------------------------------------------------

    def _advance(self) -> str:
        text = self._scanner.token_text(self._token)
        self._token = self._scanner.next()
        return text

    def _accept(self, kind: TokenType) -> bool:
        if self._token.type is kind:
            self._token = self._scanner.next()
            return True
        return False

    def _accept_text(self, kind: TokenType) -> str | None:
        if self._token.type is kind:
            return self._advance()
        return None

    def _back_to(self, token: Token) -> bool:
        self._scanner.pos = token.pos + token.length
        self._token = token
        return False

    def _degrade(self, into: list[int], token: Token) -> bool:
        # Unterminated construct: keep the raw remainder as text.
        scanner = self._scanner
        self._append_text(into, scanner.value[token.pos :])
        scanner.pos = len(scanner.value)
        self._token = scanner.next()
        return True

    def _fail(self, into: list[int], token: Token) -> bool:
        if self._token.type is TokenType.EOF:
            return self._degrade(into, token)
        return self._back_to(token)

    def _until(self, kind: TokenType) -> str | None:
        """Collect raw text up to ``kind`` (consumed), honouring backslash escapes."""
        parts: list[str] = []
        while not self._accept(kind):
            if self._token.type is TokenType.EOF:
                return None
            if self._accept(TokenType.BACKSLASH):
                if self._token.type is TokenType.EOF:
                    return None
            parts.append(self._advance())
        return "".join(parts)

    def _append_text(self, into: list[int], value: str) -> None:
        snippet = self._snippet
        if into:
            previous = snippet[into[-1]]
            if isinstance(previous, Text):
                snippet.replace_text(into[-1], previous.value + value)
                return
        into.append(snippet.add(Text(value)))

    # -- grammar ----------------------------------------------------------

    def _parse(self, into: list[int]) -> bool:
        return (
            self._parse_escaped(into)
            or self._parse_tabstop_or_variable_name(into)
            or self._parse_complex_placeholder(into)
            or self._parse_complex_variable(into)
            or self._parse_anything(into)
        )

    def _parse_escaped(self, into: list[int]) -> bool:
        if not self._accept(TokenType.BACKSLASH):
            return False
        if self._token.type in _PLAIN_ESCAPES:
            self._append_text(into, self._advance())
        else:
            self._append_text(into, "\\")
        return True

    def _parse_tabstop_or_variable_name(self, into: list[int]) -> bool:
        token = self._token
        if not self._accept(TokenType.DOLLAR):
            return False
        index = self._accept_text(TokenType.INT)
        if index is not None:
            into.append(self._snippet.add(Placeholder(int(index))))
            return True
        name = self._accept_text(TokenType.VARIABLE_NAME)
        if name is not None:
            into.append(self._snippet.add(Variable(name)))
            return True
        return self._back_to(token)

    def _parse_complex_placeholder(self, into: list[int]) -> bool:
        token = self._token
        if not (self._accept(TokenType.DOLLAR) and self._accept(TokenType.CURLY_OPEN)):
            return self._back_to(token)
        index = self._accept_text(TokenType.INT)
        if index is None:
            return self._back_to(token)

        placeholder = Placeholder(int(index))
        if self._accept(TokenType.CURLY_CLOSE):
            into.append(self._snippet.add(placeholder))
            return True

        if self._accept(TokenType.COLON):
            children: list[int] = []
            while not self._accept(TokenType.CURLY_CLOSE):
                if self._token.type is TokenType.EOF:
                    return self._degrade(into, token)
                self._parse(children)
            placeholder.children = children
            into.append(self._snippet.add(placeholder))
            return True

        if self._accept(TokenType.PIPE):
            choices = self._parse_choices()
            if choices is None:
                return self._fail(into, token)
            placeholder.choices = tuple(choices)
            into.append(self._snippet.add(placeholder))
            return True

        if self._accept(TokenType.FORWARDSLASH):
            transform = self._parse_transform()
            if transform is None:
                return self._fail(into, token)
            placeholder.transform = transform
            into.append(self._snippet.add(placeholder))
            return True

        return self._fail(into, token)

    def _parse_complex_variable(self, into: list[int]) -> bool:
        token = self._token
        if not (self._accept(TokenType.DOLLAR) and self._accept(TokenType.CURLY_OPEN)):
            return self._back_to(token)
        name = self._accept_text(TokenType.VARIABLE_NAME)
        if name is None:
            return self._back_to(token)

        variable = Variable(name)
        if self._accept(TokenType.CURLY_CLOSE):
            into.append(self._snippet.add(variable))
            return True

        if self._accept(TokenType.COLON):
            children: list[int] = []
            while not self._accept(TokenType.CURLY_CLOSE):
                if self._token.type is TokenType.EOF:
                    return self._degrade(into, token)
                self._parse(children)
            variable.children = children
            into.append(self._snippet.add(variable))
            return True

        if self._accept(TokenType.FORWARDSLASH):
            transform = self._parse_transform()
            if transform is None:
                return self._fail(into, token)
            variable.transform = transform
            into.append(self._snippet.add(variable))
            return True

        return self._fail(into, token)

    def _parse_choices(self) -> list[str] | None:
        choices: list[str] = []
        while True:
            choice = self._parse_choice_element()
            if choice is None:
                return None
            choices.append(choice)
            if self._accept(TokenType.COMMA):
                continue
            if self._accept(TokenType.PIPE) and self._accept(TokenType.CURLY_CLOSE):
                return choices
            return None

    def _parse_choice_element(self) -> str | None:
        parts: list[str] = []
        while self._token.type not in (TokenType.COMMA, TokenType.PIPE, TokenType.EOF):
            if self._accept(TokenType.BACKSLASH):
                if self._token.type in _CHOICE_ESCAPES:
                    parts.append(self._advance())
                else:
                    parts.append("\\")
                continue
            parts.append(self._advance())
        if self._token.type is TokenType.EOF:
            return None
        return "".join(parts)

    def _parse_transform(self) -> Transform | None:
        # regex
        regex: list[str] = []
        while not self._accept(TokenType.FORWARDSLASH):
            if self._token.type is TokenType.EOF:
                return None
            if self._accept(TokenType.BACKSLASH):
                if self._accept(TokenType.FORWARDSLASH):
                    regex.append("/")
                    continue
                regex.append("\\")
                if self._token.type is not TokenType.EOF:
                    regex.append(self._advance())
                continue
            regex.append(self._advance())

        # format
        builder = _FormatBuilder()
        while not self._accept(TokenType.FORWARDSLASH):
            if self._token.type is TokenType.EOF:
                return None
            if self._parse_format_escape(builder) or self._parse_format_reference(builder):
                continue
            builder.text(self._advance())

        # flags
        options: list[str] = []
        while not self._accept(TokenType.CURLY_CLOSE):
            if self._token.type is TokenType.EOF:
                return None
            options.append(self._advance())
        flag_text = "".join(options)

        compile_flags = 0
        for letter in flag_text:
            compile_flags |= _REGEX_FLAGS.get(letter, 0)
        try:
            pattern = re.compile("".join(regex), compile_flags)
        except re.error as exc:
            logger.debug("invalid transform regex %r: %s", "".join(regex), exc)
            return None
        return Transform(
            pattern=pattern,
            format=builder.build(),
            replace_all="g" in flag_text,
            flags=flag_text,
        )

    def _parse_format_escape(self, builder: _FormatBuilder) -> bool:
        if not self._accept(TokenType.BACKSLASH):
            return False
        if self._token.type in _FORMAT_ESCAPES:
            builder.text(self._advance())
            return True
        if self._token.type is TokenType.VARIABLE_NAME:
            word = self._scanner.token_text(self._token)
            if builder.switch(word[0]):
                self._advance()
                builder.text(word[1:])
                return True
        builder.text("\\")
        return True

    def _parse_format_reference(self, builder: _FormatBuilder) -> bool:
        token = self._token
        if not self._accept(TokenType.DOLLAR):
            return False
        group = self._accept_text(TokenType.INT)
        if group is not None:
            builder.reference(int(group))
            return True
        if not self._accept(TokenType.CURLY_OPEN):
            return self._back_to(token)
        group = self._accept_text(TokenType.INT)
        if group is None:
            return self._back_to(token)
        if self._accept(TokenType.CURLY_CLOSE):
            builder.reference(int(group))
            return True
        if not self._accept(TokenType.COLON):
            return self._back_to(token)

        if self._accept(TokenType.FORWARDSLASH):
            rule = _CASE_RULES.get(self._accept_text(TokenType.VARIABLE_NAME) or "")
            if rule is not None and self._accept(TokenType.CURLY_CLOSE):
                builder.reference(int(group), case=rule)
                return True
            return self._back_to(token)

        if self._accept(TokenType.PLUS):
            if_value = self._until(TokenType.CURLY_CLOSE)
            if if_value is None:
                return self._back_to(token)
            builder.reference(int(group), if_value=if_value)
            return True

        if self._accept(TokenType.DASH):
            else_value = self._until(TokenType.CURLY_CLOSE)
            if else_value is None:
                return self._back_to(token)
            builder.reference(int(group), else_value=else_value)
            return True

        if self._accept(TokenType.QUESTION_MARK):
            if_value = self._until(TokenType.COLON)
            if if_value is None:
                return self._back_to(token)
            else_value = self._until(TokenType.CURLY_CLOSE)
            if else_value is None:
                return self._back_to(token)
            builder.reference(int(group), if_value=if_value, else_value=else_value)
            return True

        else_value = self._until(TokenType.CURLY_CLOSE)
        if else_value is None:
            return self._back_to(token)
        builder.reference(int(group), else_value=else_value)
        return True

    def _parse_anything(self, into: list[int]) -> bool:
        if self._token.type is TokenType.EOF:
            return False
        self._append_text(into, self._advance())
        return True


def parse_snippet(value: str, insert_final_tabstop: bool = False) -> Snippet:
    """Parse ``value`` with a fresh :class:`SnippetParser`."""
    return SnippetParser().parse(value, insert_final_tabstop)


__all__ = ["SnippetParser", "escape_snippet_text", "parse_snippet"]
