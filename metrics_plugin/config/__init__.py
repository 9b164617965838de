"""
Configuration parsing module with nginx-like syntax support.
"""

from .lexer import Lexer, LexerError, Token, TokenType
from .loader import ConfigError, ConfigLoader, load_config
from .parser import ConfigParser, ParseError
from .schema import Config

__all__ = [
    "Lexer",
    "LexerError",
    "Token",
    "TokenType",
    "ConfigParser",
    "ParseError",
    "Config",
    "ConfigError",
    "ConfigLoader",
    "load_config",
]
