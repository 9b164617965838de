"""
Tokenizer for the nginx-like configuration syntax.

Supports:
- Identifiers (directive names, enum values such as ``five_seconds``)
- Quoted strings with escape sequences
- Numbers and durations (``10s``, ``500ms``, ``1h``)
- Booleans (on/off/true/false)
- ``#`` line comments and ``/* */`` block comments
- The ``include`` keyword
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator


class TokenType(Enum):
    """Token types produced by the lexer."""
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    DURATION = auto()
    BOOLEAN = auto()
    LBRACE = auto()
    RBRACE = auto()
    SEMICOLON = auto()
    INCLUDE = auto()
    EOF = auto()


@dataclass
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: str | int | float | bool
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


class LexerError(Exception):
    """Exception raised for lexer errors."""

    def __init__(self, message: str, line: int, column: int):
        self.line = line
        self.column = column
        super().__init__(f"Line {line}, column {column}: {message}")


_TOKEN_RE = re.compile(
    r"""
      (?P<space>[ \t\r\n]+)
    | (?P<comment>\#[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<string>"(?:\\.|[^"\\\n])*"|'(?:\\.|[^'\\\n])*')
    | (?P<number>\d+(?:\.\d+)?)(?P<unit>[A-Za-z]+)?
    | (?P<identifier>[A-Za-z_][A-Za-z0-9_\-]*)
    | (?P<punct>[{};])
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

_PUNCTUATION = {
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    ";": TokenType.SEMICOLON,
}


class Lexer:
    """
    Tokenizer for configuration text.

    Example:
        plugin "cpu-stats" {
            interval five_seconds;
            lead_time 500ms;
        }
    """

    BOOLEAN_KEYWORDS = {"on": True, "off": False, "true": True, "false": False}

    # Duration units in seconds
    DURATION_UNITS = {
        "ms": 0.001,
        "s": 1,
        "m": 60,
        "h": 3600,
        "d": 86400,
    }

    def __init__(self, source: str, filename: str = "<string>"):
        self.source = source
        self.filename = filename

    @staticmethod
    def _unescape(body: str) -> str:
        return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)

    def _number(self, match: re.Match, line: int, column: int) -> Token:
        text = match.group("number")
        value: int | float = float(text) if "." in text else int(text)

        unit = match.group("unit")
        if unit is None:
            return Token(TokenType.NUMBER, value, line, column)

        factor = self.DURATION_UNITS.get(unit.lower())
        if factor is None:
            raise LexerError(f"Unknown duration unit: {unit}", line, column)
        return Token(TokenType.DURATION, value * factor, line, column)

    def _word(self, text: str, line: int, column: int) -> Token:
        lowered = text.lower()
        if lowered in self.BOOLEAN_KEYWORDS:
            return Token(TokenType.BOOLEAN, self.BOOLEAN_KEYWORDS[lowered], line, column)
        if lowered == "include":
            return Token(TokenType.INCLUDE, text, line, column)
        return Token(TokenType.IDENTIFIER, text, line, column)

    def tokenize(self) -> Iterator[Token]:
        """Generate all tokens, ending with EOF."""
        pos = 0
        line = 1
        line_start = 0
        source = self.source

        while pos < len(source):
            column = pos - line_start + 1
            match = _TOKEN_RE.match(source, pos)

            if match is None:
                if source[pos] in "\"'":
                    raise LexerError("Unterminated string literal", line, column)
                if source.startswith("/*", pos):
                    raise LexerError("Unterminated multi-line comment", line, column)
                raise LexerError(f"Unexpected character: {source[pos]!r}", line, column)

            kind = match.lastgroup
            text = match.group(0)

            if kind == "string":
                yield Token(TokenType.STRING, self._unescape(text[1:-1]), line, column)
            elif kind in ("number", "unit"):
                yield self._number(match, line, column)
            elif kind == "identifier":
                yield self._word(text, line, column)
            elif kind == "punct":
                yield Token(_PUNCTUATION[text], text, line, column)

            newlines = text.count("\n")
            if newlines:
                line += newlines
                line_start = pos + text.rfind("\n") + 1
            pos = match.end()

        yield Token(TokenType.EOF, "", line, pos - line_start + 1)

    def __iter__(self) -> Iterator[Token]:
        return self.tokenize()


def tokenize(source: str, filename: str = "<string>") -> list[Token]:
    """Convenience function to tokenize a source string."""
    return list(Lexer(source, filename))
