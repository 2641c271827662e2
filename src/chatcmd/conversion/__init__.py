"""Token cursor, converter registry and the built-in converters."""

from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.conversion.tokens import UNBOUNDED, Converted, TokenCursor, tokenize

__all__ = ["UNBOUNDED", "ConversionRegistry", "Converted", "TokenCursor", "tokenize"]
