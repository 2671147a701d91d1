"""Tokenizer feeding the snippet parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    DOLLAR = auto()
    COLON = auto()
    COMMA = auto()
    CURLY_OPEN = auto()
    CURLY_CLOSE = auto()
    BACKSLASH = auto()
    FORWARDSLASH = auto()
    PIPE = auto()
    INT = auto()
    VARIABLE_NAME = auto()
    FORMAT = auto()
    PLUS = auto()
    DASH = auto()
    QUESTION_MARK = auto()
    EOF = auto()


_SINGLE_CHARACTERS: dict[str, TokenType] = {
    "$": TokenType.DOLLAR,
    ":": TokenType.COLON,
    ",": TokenType.COMMA,
    "{": TokenType.CURLY_OPEN,
    "}": TokenType.CURLY_CLOSE,
    "\\": TokenType.BACKSLASH,
    "/": TokenType.FORWARDSLASH,
    "|": TokenType.PIPE,
    "+": TokenType.PLUS,
    "-": TokenType.DASH,
    "?": TokenType.QUESTION_MARK,
}


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_name_start(char: str) -> bool:
    return char == "_" or ("a" <= char <= "z") or ("A" <= char <= "Z")


def _is_name_part(char: str) -> bool:
    return _is_name_start(char) or _is_digit(char)


@dataclass(frozen=True, slots=True)
class Token:
    type: TokenType
    pos: int
    length: int


class Scanner:
    """Split a template into tokens on demand."""

    def __init__(self, value: str = "") -> None:
        self.value = value
        self.pos = 0

    def text(self, value: str) -> None:
        """Reset the scanner onto a new template."""
        self.value = value
        self.pos = 0

    def token_text(self, token: Token) -> str:
        return self.value[token.pos : token.pos + token.length]

    def next(self) -> Token:
        value = self.value
        start = self.pos
        if start >= len(value):
            return Token(TokenType.EOF, start, 0)

        char = value[start]
        kind = _SINGLE_CHARACTERS.get(char)
        if kind is not None:
            self.pos += 1
            return Token(kind, start, 1)

        end = start + 1
        if _is_digit(char):
            kind = TokenType.INT
            while end < len(value) and _is_digit(value[end]):
                end += 1
        elif _is_name_start(char):
            kind = TokenType.VARIABLE_NAME
            while end < len(value) and _is_name_part(value[end]):
                end += 1
        else:
            kind = TokenType.FORMAT
            while end < len(value):
                following = value[end]
                if following in _SINGLE_CHARACTERS or _is_name_part(following):
                    break
                end += 1

        self.pos = end
        return Token(kind, start, end - start)


__all__ = ["Scanner", "Token", "TokenType"]
