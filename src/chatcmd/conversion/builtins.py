"""Built-in converters for primitive types.

Registered by :func:`register_builtins`; any of them can be overridden by
registering another converter under the same tag. Arrays of these types
use the registry's derived array conversion, except ``char[]`` which has
its own escape-aware converter.

Restriction modes per type:

- numbers: the numeric mini-language (``"positive & even"``)
- ``str`` / ``match`` / ``char[]``: whole-string regular expression
- ``char``: regular expression character class
"""

from __future__ import annotations

import re
import threading
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from chatcmd.conversion.tokens import Converted
from chatcmd.domain.errors import DeserializationError, InvalidRestrictionError
from chatcmd.domain.restriction import Restriction
from chatcmd.domain.tags import BOOL, BYTE, CHAR, FLOAT, INT, LONG, MATCH, SHORT, STR, TypeTag

if TYPE_CHECKING:
    from chatcmd.conversion.registry import ConversionRegistry, Deserializer

CHAR_ARRAY = CHAR.array()

DEFAULT_BOOLEAN_WORDS: dict[str, bool] = {
    "0": False,
    "1": True,
    "f": False,
    "t": True,
    "false": False,
    "true": True,
    "n": False,
    "y": True,
    "no": False,
    "yes": True,
    "off": False,
    "on": True,
    "close": False,
    "open": True,
}

CHAR_KEYWORDS: dict[str, str] = {
    "sp": " ",
    "space": " ",
    "\\s": " ",
    "nl": "\n",
    "newline": "\n",
    "new_line": "\n",
    "\\n": "\n",
    "re": "\r",
    "return": "\r",
    "\\r": "\r",
    "tab": "\t",
    "\\t": "\t",
    "\\\\": "\\",
}

_ESCAPES: dict[str, str] = {"\\": "\\", "n": "\n", "r": "\r", "t": "\t", "s": " "}
_ESCAPE_RE = re.compile(r"\\([\\nrts])")
_INTEGER_RE = re.compile(r"[+-]?\d+")

INTEGER_RANGES: dict[TypeTag, tuple[int, int]] = {
    INT: (-(2**31), 2**31 - 1),
    BYTE: (-(2**7), 2**7 - 1),
    SHORT: (-(2**15), 2**15 - 1),
    LONG: (-(2**63), 2**63 - 1),
}


class BooleanWords:
    """Word-to-boolean table used by the ``bool`` converter.

    Words are stored lowercase. Mutations swap in a new dict so lookups
    during dispatch never see a half-updated table.
    """

    def __init__(self, words: Mapping[str, bool] | None = None) -> None:
        self._lock = threading.Lock()
        self._words: dict[str, bool] = dict(DEFAULT_BOOLEAN_WORDS if words is None else words)

    def __contains__(self, word: str) -> bool:
        return word.lower() in self._words

    def __len__(self) -> int:
        return len(self._words)

    def lookup(self, word: str) -> bool | None:
        return self._words.get(word.lower())

    def add(self, word: str, value: bool) -> bool | None:
        """Map *word* to *value*. Returns the previous value, if any."""
        with self._lock:
            updated = dict(self._words)
            previous = updated.get(word.lower())
            updated[word.lower()] = value
            self._words = updated
        return previous

    def remove(self, word: str) -> bool | None:
        """Unmap *word*. Returns its value, if it was mapped."""
        with self._lock:
            updated = dict(self._words)
            previous = updated.pop(word.lower(), None)
            self._words = updated
        return previous

    def add_many(self, mapping: Mapping[str, bool]) -> None:
        """Add mappings, skipping words that contain spaces."""
        with self._lock:
            updated = dict(self._words)
            for word, value in mapping.items():
                if " " not in word:
                    updated[word.lower()] = value
            self._words = updated

    def add_words(self, false_words: Iterable[str] = (), true_words: Iterable[str] = ()) -> None:
        mapping = {word: False for word in false_words}
        mapping.update({word: True for word in true_words})
        self.add_many(mapping)

    def set(self, mapping: Mapping[str, bool]) -> None:
        """Replace the whole table with *mapping*, skipping words with spaces."""
        replacement = {word.lower(): value for word, value in mapping.items() if " " not in word}
        with self._lock:
            self._words = replacement

    def clear(self) -> None:
        with self._lock:
            self._words = {}


# ---------------------------------------------------------------------------
# Converters
# ---------------------------------------------------------------------------


def _join(tokens: tuple[str, ...], max_tokens: int) -> tuple[str, int]:
    count = min(len(tokens), max_tokens)
    return " ".join(tokens[:count]), count


def _extend_until_match(
    tokens: tuple[str, ...], max_tokens: int, restriction: Restriction
) -> tuple[str, int, re.Match[str] | None]:
    """Greedily pull tokens one at a time until the restriction regex matches."""
    text, consumed = _join(tokens, max_tokens)
    match = restriction.matches_text(text)
    while match is None and consumed < len(tokens):
        text = f"{text} {tokens[consumed]}"
        consumed += 1
        match = restriction.matches_text(text)
    return text, consumed, match


def deserialize_str(
    tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
) -> Converted:
    """Join up to *max_tokens* tokens with single spaces.

    With a restriction, keep pulling tokens until the whole text matches the
    restriction's regular expression or input runs out.
    """
    if restriction is None:
        text, consumed = _join(tokens, max_tokens)
        return Converted(text, consumed)
    text, consumed, match = _extend_until_match(tokens, max_tokens, restriction)
    if match is None:
        raise restriction.failure(text)
    return Converted(text, consumed)


def deserialize_match(
    tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
) -> Converted:
    """Like ``str``, but returns the ``re.Match`` of the restriction regex."""
    if restriction is None:
        msg = "Match parameters must have a regex restriction to match against."
        raise InvalidRestrictionError(msg)
    text, consumed, match = _extend_until_match(tokens, max_tokens, restriction)
    if match is None:
        raise restriction.failure(text)
    return Converted(match, consumed)


def _check_number(value: float, token: str, restriction: Restriction | None) -> float:
    if restriction is not None and not restriction.allows(value):
        raise restriction.failure(token)
    return value


def deserialize_int(
    tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
) -> Converted:
    token = tokens[0]
    if not _INTEGER_RE.fullmatch(token):
        msg = f"Can't convert {token} to a number."
        raise DeserializationError(msg)
    return Converted(_check_number(int(token), token, restriction), 1)


def bounded_int(tag: TypeTag, low: int, high: int) -> Deserializer:
    """Build an integer converter limited to ``low..high``."""

    def deserialize(
        tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
    ) -> Converted:
        value, consumed = deserialize_int(tokens, max_tokens)
        if not low <= value <= high:
            msg = f"Can't convert {tokens[0]} to a number."
            raise DeserializationError(msg)
        return Converted(_check_number(value, tokens[0], restriction), consumed)

    deserialize.__name__ = f"deserialize_{tag.name}"
    return deserialize


def deserialize_float(
    tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
) -> Converted:
    token = tokens[0]
    try:
        value = float(token)
    except ValueError:
        msg = f"Can't convert {token} to a number."
        raise DeserializationError(msg) from None
    return Converted(_check_number(value, token, restriction), 1)


def boolean_converter(words: BooleanWords) -> Deserializer:
    """Build a ``bool`` converter backed by *words*."""

    def deserialize_bool(tokens: tuple[str, ...], max_tokens: int) -> Converted:
        token = tokens[0]
        value = words.lookup(token)
        if value is None:
            msg = f"Can't convert {token} to a boolean."
            raise DeserializationError(msg)
        return Converted(value, 1)

    return deserialize_bool


def char_converter(*, drop_silently: bool = False) -> Deserializer:
    """Build a ``char`` converter.

    Keywords (``space``, ``tab``, ``\\n``...) map to their character. Other
    multi-character input is an error unless *drop_silently*, in which case
    only the first character is kept.
    """

    def deserialize_char(
        tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
    ) -> Converted:
        token = tokens[0]
        char = CHAR_KEYWORDS.get(token.lower())
        if char is None:
            if len(token) > 1 and not drop_silently:
                msg = f'"{token}" is not a valid character.'
                raise DeserializationError(msg)
            char = token[0]
        if restriction is not None and not restriction.matches_char(char):
            raise restriction.failure(token)
        return Converted(char, 1)

    return deserialize_char


def decode_escapes(text: str) -> str:
    r"""Replace ``\\``, ``\n``, ``\r``, ``\t`` and ``\s`` with their characters."""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(1)], text)


def deserialize_char_array(
    tokens: tuple[str, ...], max_tokens: int, restriction: Restriction | None = None
) -> Converted:
    """Join up to *max_tokens* tokens, decode escapes, and split into characters."""
    joined, consumed = _join(tokens, max_tokens)
    text = decode_escapes(joined)
    if restriction is not None and restriction.matches_text(text) is None:
        msg = f'"{text}" is not a valid input.'
        raise DeserializationError(msg)
    return Converted(list(text), consumed)


def register_builtins(
    registry: ConversionRegistry,
    *,
    boolean_words: BooleanWords | None = None,
    char_drop_silently: bool = False,
) -> BooleanWords:
    """Register the primitive converters on *registry*.

    Returns the BooleanWords table the ``bool`` converter reads from.
    """
    words = boolean_words if boolean_words is not None else BooleanWords()
    registry.register_deserializer(STR, deserialize_str)
    registry.register_deserializer(MATCH, deserialize_match)
    for tag, (low, high) in INTEGER_RANGES.items():
        registry.register_deserializer(tag, bounded_int(tag, low, high))
    registry.register_deserializer(FLOAT, deserialize_float)
    registry.register_deserializer(BOOL, boolean_converter(words))
    registry.register_deserializer(CHAR, char_converter(drop_silently=char_drop_silently))
    registry.register_deserializer(CHAR_ARRAY, deserialize_char_array)
    return words
