"""
Recursive descent parser for the configuration syntax.

Grammar:
    document    := (block | directive | include)*
    block       := IDENTIFIER [value] '{' (block | directive | include)* '}'
    directive   := IDENTIFIER value* ';'
    value       := STRING | NUMBER | DURATION | BOOLEAN | IDENTIFIER
    include     := 'include' STRING ';'
"""

import glob as glob_module
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .lexer import Lexer, Token, TokenType


VALUE_TOKENS = (
    TokenType.STRING,
    TokenType.NUMBER,
    TokenType.DURATION,
    TokenType.BOOLEAN,
    TokenType.IDENTIFIER,
)


class ParseError(Exception):
    """Exception raised for parser errors."""

    def __init__(self, message: str, token: Token | None = None):
        self.token = token
        if token:
            super().__init__(f"Line {token.line}, column {token.column}: {message}")
        else:
            super().__init__(message)


@dataclass
class Directive:
    """
    A directive with a name and values.

    Examples:
        host "localhost";   -> Directive(name="host", values=["localhost"])
        lead_time 500ms;    -> Directive(name="lead_time", values=[0.5])
    """
    name: str
    values: list[Any] = field(default_factory=list)
    line: int = 0

    @property
    def value(self) -> Any:
        """Get single value (first) or None."""
        return self.values[0] if self.values else None


@dataclass
class Block:
    """
    A block with a type, optional name, and contents.

    Examples:
        daemon { ... }            -> Block(type="daemon", name=None)
        plugin "cpu-stats" { ... } -> Block(type="plugin", name="cpu-stats")
    """
    type: str
    name: str | None = None
    directives: list[Directive] = field(default_factory=list)
    blocks: list["Block"] = field(default_factory=list)
    line: int = 0

    def get_directive(self, name: str) -> Directive | None:
        """Get the last directive with a given name (later ones override)."""
        for d in reversed(self.directives):
            if d.name == name:
                return d
        return None

    def get_value(self, name: str, default: Any = None) -> Any:
        """Get single value from a directive."""
        directive = self.get_directive(name)
        if directive is None or directive.value is None:
            return default
        return directive.value

    def get_block(self, type_name: str) -> "Block | None":
        """Get first nested block with given type."""
        for b in self.blocks:
            if b.type == type_name:
                return b
        return None

    def get_blocks(self, type_name: str) -> list["Block"]:
        """Get all nested blocks with given type."""
        return [b for b in self.blocks if b.type == type_name]


@dataclass
class ConfigDocument(Block):
    """Root document: an unnamed block holding the top-level contents."""
    type: str = "<root>"
    filename: str = "<string>"

    def merge(self, other: "ConfigDocument") -> None:
        """Merge another document into this one (for includes)."""
        self.blocks.extend(other.blocks)
        self.directives.extend(other.directives)


class ConfigParser:
    """Parses configuration text into a ConfigDocument."""

    def __init__(
        self,
        source: str,
        filename: str = "<string>",
        base_path: Path | None = None,
        included_files: set[str] | None = None,
    ):
        self.tokens = list(Lexer(source, filename))
        self.pos = 0
        self.filename = filename
        self.base_path = base_path or Path.cwd()
        self.included_files = included_files or set()

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def _expect(self, token_type: TokenType, message: str = "") -> Token:
        if self.current.type != token_type:
            raise ParseError(
                message or f"Expected {token_type.name}, got {self.current.type.name}",
                self.current,
            )
        return self._advance()

    def parse(self) -> ConfigDocument:
        """Parse the entire configuration document."""
        doc = ConfigDocument(filename=self.filename)
        self._parse_contents(doc, closing=TokenType.EOF)
        return doc

    def _parse_contents(self, block: Block, closing: TokenType) -> None:
        while self.current.type != closing:
            if self.current.type == TokenType.INCLUDE:
                included = self._parse_include()
                block.directives.extend(included.directives)
                block.blocks.extend(included.blocks)
            elif self.current.type == TokenType.IDENTIFIER:
                item = self._parse_block_or_directive()
                if isinstance(item, Block):
                    block.blocks.append(item)
                else:
                    block.directives.append(item)
            elif self.current.type == TokenType.EOF:
                raise ParseError(f"Expected '}}' to close '{block.type}' block", self.current)
            else:
                raise ParseError(
                    f"Expected block, directive, or include; got {self.current.type.name}",
                    self.current,
                )

    def _parse_include(self) -> ConfigDocument:
        """Parse an include directive and load the matching file(s)."""
        include_token = self._expect(TokenType.INCLUDE)
        path_token = self._expect(TokenType.STRING, "Expected file path after 'include'")
        self._expect(TokenType.SEMICOLON, "Expected ';' after include path")

        pattern = str(path_token.value)
        if not Path(pattern).is_absolute():
            pattern = str(self.base_path / pattern)

        merged = ConfigDocument()
        # No match is not an error: include "conf.d/*.conf" may be empty
        for path in sorted(glob_module.glob(pattern)):
            path_obj = Path(path)
            resolved = str(path_obj.resolve())

            if resolved in self.included_files:
                raise ParseError(f"Circular include detected: {path}", include_token)

            parser = ConfigParser(
                source=path_obj.read_text(),
                filename=path,
                base_path=path_obj.parent,
                included_files=self.included_files | {resolved},
            )
            merged.merge(parser.parse())

        return merged

    def _parse_block_or_directive(self) -> Block | Directive:
        name_token = self._expect(TokenType.IDENTIFIER)
        name = str(name_token.value)

        values: list[Any] = []
        while self.current.type in VALUE_TOKENS:
            values.append(self._advance().value)

        if self.current.type == TokenType.SEMICOLON:
            self._advance()
            return Directive(name=name, values=values, line=name_token.line)

        if self.current.type == TokenType.LBRACE:
            if len(values) > 1:
                raise ParseError(
                    f"Block '{name}' has too many arguments before '{{'; expected 0 or 1",
                    self.current,
                )
            self._advance()
            block = Block(
                type=name,
                name=str(values[0]) if values else None,
                line=name_token.line,
            )
            self._parse_contents(block, closing=TokenType.RBRACE)
            self._expect(TokenType.RBRACE)
            return block

        raise ParseError(f"Expected '{{' or ';' after directive '{name}'", self.current)


def parse_config(source: str, filename: str = "<string>", base_path: Path | None = None) -> ConfigDocument:
    """Parse a configuration string."""
    return ConfigParser(source, filename, base_path).parse()


def parse_config_file(path: str | Path) -> ConfigDocument:
    """Parse a configuration file."""
    path = Path(path)
    parser = ConfigParser(
        path.read_text(),
        str(path),
        path.parent,
        included_files={str(path.resolve())},
    )
    return parser.parse()
