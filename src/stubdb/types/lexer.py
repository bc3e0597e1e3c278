"""Tokenizer for docblock type expressions."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from stubdb.core.exceptions import TypeParseError


class TokenKind(str, Enum):
    IDENTIFIER = "identifier"
    VARIABLE = "variable"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    ELLIPSIS = "..."
    DOUBLE_COLON = "::"
    PIPE = "|"
    AMPERSAND = "&"
    QUESTION = "?"
    COMMA = ","
    COLON = ":"
    LESS = "<"
    GREATER = ">"
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    EQUALS = "="
    STAR = "*"
    PLUS = "+"
    MINUS = "-"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    position: int

    @property
    def end(self) -> int:
        return self.position + len(self.value)


_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
    |(?P<ellipsis>\.\.\.)
    |(?P<dcolon>::)
    |(?P<float>\d[\d_]*\.\d[\d_]*(?:[eE][+-]?\d+)?|\.\d[\d_]*(?:[eE][+-]?\d+)?|\d[\d_]*[eE][+-]?\d+)
    |(?P<int>0[xX][0-9a-fA-F_]+|0[bB][01_]+|0[oO][0-7_]+|\d[\d_]*)
    |(?P<variable>\$[A-Za-z_]\w*)
    |(?P<identifier>\\?[^\W\d][\w-]*(?:\\[^\W\d][\w-]*)*)
    |(?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    |(?P<punct>[|&?,:<>{}()\[\]=*+-])
    """,
    re.VERBOSE | re.DOTALL,
)

_GROUP_KINDS = {
    "ellipsis": TokenKind.ELLIPSIS,
    "dcolon": TokenKind.DOUBLE_COLON,
    "float": TokenKind.FLOAT,
    "int": TokenKind.INT,
    "variable": TokenKind.VARIABLE,
    "identifier": TokenKind.IDENTIFIER,
    "string": TokenKind.STRING,
}


def tokenize(text: str) -> list[Token]:
    """Split ``text`` into tokens, ending with an EOF token.

    Raises:
        TypeParseError: On a character that cannot start any token.
    """
    tokens: list[Token] = []
    position = 0
    length = len(text)
    while position < length:
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise TypeParseError(f"Unexpected character {text[position]!r}", text, position)
        group = match.lastgroup
        value = match.group()
        if group == "punct":
            tokens.append(Token(TokenKind(value), value, position))
        elif group != "ws":
            tokens.append(Token(_GROUP_KINDS[group], value, position))
        position = match.end()
    tokens.append(Token(TokenKind.EOF, "", length))
    return tokens


def parse_int_literal(value: str) -> int:
    """Convert a PHP integer literal to its value."""
    digits = value.replace("_", "")
    lowered = digits.lower()
    if lowered.startswith(("0x", "0b", "0o")):
        return int(digits, 0)
    if len(digits) > 1 and digits.startswith("0") and set(digits) <= set("01234567"):
        return int(digits, 8)
    return int(digits)


def unquote(value: str) -> str:
    """Strip the quotes of a string token and resolve backslash escapes."""
    quote = value[0]
    body = value[1:-1]
    if quote == "'":
        return re.sub(r"\\([\\'])", r"\1", body)
    return re.sub(r"\\(.)", lambda m: _DOUBLE_QUOTED_ESCAPES.get(m.group(1), m.group(0)), body)


_DOUBLE_QUOTED_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "v": "\v",
    "f": "\f",
    "e": "\x1b",
    "0": "\0",
    "\\": "\\",
    '"': '"',
    "$": "$",
}
