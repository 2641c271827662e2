"""ConversionRegistry — type-keyed deserializers and serializers.

Deserializers turn the front of a token sequence into a typed value;
serializers turn a handler's result into an output kind the transport can
deliver. Both maps are keyed by :class:`~chatcmd.domain.tags.TypeTag`.

Arrays and enums need no explicit registration: an array tag falls back to
its element deserializer (one element per call, ``max_tokens=1``) and an
enum tag falls back to a case-insensitive member-name lookup.

Thread safety: both maps are copy-on-write. Writers build a new dict under
a lock and swap the reference; readers take the current reference once per
call and never lock.
"""

from __future__ import annotations

import inspect
import logging
import threading
import typing
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from chatcmd.conversion.tokens import Converted
from chatcmd.domain.errors import (
    ChatcmdError,
    DeserializationError,
    InvalidDeserializerError,
    InvalidSerializerError,
    SerializationError,
)
from chatcmd.domain.output import OUTPUT_TYPES, output_kind
from chatcmd.domain.restriction import Restriction
from chatcmd.domain.tags import TypeTag, as_tag

logger = logging.getLogger(__name__)

Deserializer = Callable[..., Converted]
Serializer = Callable[..., Any]

DESERIALIZER_EXTRAS = frozenset({"restriction", "context"})

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
_DESERIALIZER_CONTRACT = (
    "Deserializers must take at least two positional parameters: "
    "the remaining tokens and the maximum number of tokens to take."
)
_OUTPUT_NAMES = frozenset(cls.__name__ for cls in OUTPUT_TYPES)


@dataclass(frozen=True)
class _DeserializerEntry:
    fn: Deserializer
    wants_restriction: bool = False
    wants_context: bool = False

    def __call__(
        self,
        tokens: tuple[str, ...],
        max_tokens: int,
        restriction: Restriction | None,
        context: Any,
    ) -> Any:
        kwargs: dict[str, Any] = {}
        if self.wants_restriction:
            kwargs["restriction"] = restriction
        if self.wants_context:
            kwargs["context"] = context
        return self.fn(tokens, max_tokens, **kwargs)


@dataclass(frozen=True)
class _SerializerEntry:
    fn: Serializer
    wants_context: bool = False

    def __call__(self, value: Any, context: Any) -> Any:
        if self.wants_context:
            return self.fn(value, context)
        return self.fn(value)


# ---------------------------------------------------------------------------
# Signature contracts
# ---------------------------------------------------------------------------


def _signature(fn: Callable[..., Any], error: type[Exception]) -> inspect.Signature:
    if not callable(fn):
        msg = f"{fn!r} is not callable"
        raise error(msg)
    try:
        return inspect.signature(fn, eval_str=True)
    except (NameError, SyntaxError, AttributeError):
        # Unresolvable string annotations: fall back to the raw signature.
        return inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot inspect the signature of {fn!r}"
        raise error(msg) from exc


def inspect_deserializer(fn: Deserializer) -> _DeserializerEntry:
    """Validate *fn* against the deserializer contract.

    The first two positional parameters receive the remaining tokens and the
    maximum token count. Further parameters are only allowed when named
    ``restriction`` or ``context``, or when they have a default.

    Raises:
        InvalidDeserializerError: If the signature violates the contract.
    """
    params = list(_signature(fn, InvalidDeserializerError).parameters.values())
    positional = [p for p in params if p.kind in _POSITIONAL]
    var_positional = any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in params)
    if len(positional) < 2 and not var_positional:
        raise InvalidDeserializerError(_DESERIALIZER_CONTRACT)

    extras = positional[2:] + [p for p in params if p.kind is inspect.Parameter.KEYWORD_ONLY]
    wanted: set[str] = set()
    for param in extras:
        if param.name in DESERIALIZER_EXTRAS:
            wanted.add(param.name)
        elif param.default is inspect.Parameter.empty:
            msg = (
                "Deserializers can only take a restriction or a context as additional "
                f"arguments, not {param.name!r}."
            )
            raise InvalidDeserializerError(msg)
    if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in params):
        wanted |= DESERIALIZER_EXTRAS

    return _DeserializerEntry(
        fn=fn,
        wants_restriction="restriction" in wanted,
        wants_context="context" in wanted,
    )


def _is_output_annotation(annotation: Any) -> bool:
    if annotation in OUTPUT_TYPES:
        return True
    if isinstance(annotation, str):
        names = {part.strip() for part in annotation.split("|")}
        return names <= _OUTPUT_NAMES
    members = typing.get_args(annotation)
    return bool(members) and all(_is_output_annotation(m) for m in members)


def inspect_serializer(fn: Serializer) -> _SerializerEntry:
    """Validate *fn* against the serializer contract.

    A serializer takes the value (and optionally the message context) and
    returns ``str``, :class:`RichPayload` or :class:`Reaction`. Return
    annotations are checked when present; unannotated serializers are
    checked on every call.

    Raises:
        InvalidSerializerError: If the signature violates the contract.
    """
    sig = _signature(fn, InvalidSerializerError)
    params = [p for p in sig.parameters.values() if p.kind in _POSITIONAL]
    required_keywords = [
        p
        for p in sig.parameters.values()
        if p.kind is inspect.Parameter.KEYWORD_ONLY and p.default is inspect.Parameter.empty
    ]
    if len(params) not in (1, 2) or required_keywords:
        msg = (
            "Serializers must take exactly one or two parameters: the value to "
            "serialize and optionally the message context."
        )
        raise InvalidSerializerError(msg)

    returns = sig.return_annotation
    if returns is not inspect.Signature.empty and not _is_output_annotation(returns):
        msg = f"Serializers must return str, RichPayload or Reaction, not {returns!r}."
        raise InvalidSerializerError(msg)

    return _SerializerEntry(fn=fn, wants_context=len(params) == 2)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ConversionRegistry:
    """Process-scoped registry of converters, keyed by TypeTag.

    Usage::

        conversions = ConversionRegistry()
        register_builtins(conversions)
        conversions.register_deserializer("dice", parse_dice)
        value, consumed = conversions.deserialize("dice", ("2d6", "rest"))
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._deserializers: dict[TypeTag, _DeserializerEntry] = {}
        self._serializers: dict[TypeTag, _SerializerEntry] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_deserializer(self, tag: TypeTag | str | type[Enum], fn: Deserializer) -> None:
        """Register (or replace) the deserializer for *tag*.

        Raises:
            InvalidDeserializerError: If *fn* violates the deserializer contract.
        """
        key = as_tag(tag)
        entry = inspect_deserializer(fn)
        with self._lock:
            updated = dict(self._deserializers)
            replaced = key in updated
            updated[key] = entry
            self._deserializers = updated
        logger.debug("Registered deserializer for %s (replaced=%s)", key, replaced)

    def register_serializer(self, tag: TypeTag | str | type[Enum], fn: Serializer) -> None:
        """Register (or replace) the serializer for *tag*.

        Raises:
            InvalidSerializerError: If *fn* violates the serializer contract.
        """
        key = as_tag(tag)
        entry = inspect_serializer(fn)
        with self._lock:
            updated = dict(self._serializers)
            replaced = key in updated
            updated[key] = entry
            self._serializers = updated
        logger.debug("Registered serializer for %s (replaced=%s)", key, replaced)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def has_deserializer(self, tag: TypeTag | str | type[Enum]) -> bool:
        return as_tag(tag) in self._deserializers

    def has_serializer(self, tag: TypeTag | str | type[Enum]) -> bool:
        return as_tag(tag) in self._serializers

    def can_deserialize(self, tag: TypeTag | str | type[Enum]) -> bool:
        """Whether *tag* has an explicit, derived-array, or enum deserializer."""
        key = as_tag(tag)
        deserializers = self._deserializers
        if key in deserializers:
            return True
        scalar = key.scalar
        return scalar in deserializers or scalar.is_enum

    def deserializer_tags(self) -> list[TypeTag]:
        return sorted(self._deserializers, key=str)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def deserialize(
        self,
        tag: TypeTag | str | type[Enum],
        tokens: Sequence[str],
        max_tokens: int = 1,
        restriction: Restriction | None = None,
        context: Any = None,
    ) -> Converted:
        """Convert the front of *tokens* to a value of type *tag*.

        Returns:
            ``Converted(value, consumed)``; *consumed* leading tokens were used.

        Raises:
            DeserializationError: Malformed input, failed restriction, or no
                converter for *tag*.
            InvalidDeserializerError: The converter reported an impossible
                consumed count.
        """
        return self._deserialize(
            self._deserializers, as_tag(tag), tuple(tokens), max_tokens, restriction, context
        )

    def _deserialize(
        self,
        deserializers: dict[TypeTag, _DeserializerEntry],
        tag: TypeTag,
        tokens: tuple[str, ...],
        max_tokens: int,
        restriction: Restriction | None,
        context: Any,
    ) -> Converted:
        entry = deserializers.get(tag)
        if entry is not None:
            return self._invoke(entry, tag, tokens, max_tokens, restriction, context)
        if tag.is_array:
            return self._deserialize_array(
                deserializers, tag.scalar, tokens, max_tokens, restriction, context
            )
        if tag.is_enum:
            return self._deserialize_enum(tag, tokens)
        msg = f"Type {tag} has no string converter."
        raise DeserializationError(msg)

    def _invoke(
        self,
        entry: _DeserializerEntry,
        tag: TypeTag,
        tokens: tuple[str, ...],
        max_tokens: int,
        restriction: Restriction | None,
        context: Any,
    ) -> Converted:
        if not tokens:
            raise DeserializationError("Not enough input.")
        try:
            result = entry(tokens, max_tokens, restriction, context)
        except ChatcmdError:
            raise
        except Exception as exc:
            msg = f"The deserialization method for type {tag} failed: {exc}"
            raise DeserializationError(msg) from exc

        try:
            value, consumed = result
        except (TypeError, ValueError) as exc:
            msg = f"Deserializer for {tag} must return Converted(value, consumed)"
            raise InvalidDeserializerError(msg) from exc
        if not isinstance(consumed, int) or not 1 <= consumed <= len(tokens):
            msg = f"Deserializer for {tag} consumed {consumed!r} of {len(tokens)} tokens"
            raise InvalidDeserializerError(msg)
        return Converted(value, consumed)

    def _deserialize_array(
        self,
        deserializers: dict[TypeTag, _DeserializerEntry],
        element: TypeTag,
        tokens: tuple[str, ...],
        max_tokens: int,
        restriction: Restriction | None,
        context: Any,
    ) -> Converted:
        size = min(len(tokens), max_tokens)
        values: list[Any] = []
        position = 0
        while len(values) < size and position < len(tokens):
            value, consumed = self._deserialize(
                deserializers, element, tokens[position:], 1, restriction, context
            )
            values.append(value)
            position += consumed
        return Converted(values, position)

    @staticmethod
    def _deserialize_enum(tag: TypeTag, tokens: tuple[str, ...]) -> Converted:
        if not tokens:
            raise DeserializationError("Not enough input.")
        assert tag.enum is not None
        token = tokens[0]
        lowered = token.lower()
        for member in tag.enum:
            if member.name.lower() == lowered:
                return Converted(member, 1)
        msg = f"{token} is an invalid choice."
        raise DeserializationError(msg)

    def serialize(
        self,
        value: Any,
        declared: TypeTag | str | type[Enum] | None = None,
        context: Any = None,
    ) -> Any:
        """Convert a handler result to ``str``, RichPayload or Reaction.

        Uses the serializer registered for the handler's *declared* return
        tag; without one, the value is rendered with ``str()``.

        Raises:
            SerializationError: The serializer failed or returned a value that
                is not an output kind.
        """
        entry = self._serializers.get(as_tag(declared)) if declared is not None else None
        if entry is None:
            return str(value)
        try:
            output = entry(value, context)
        except ChatcmdError:
            raise
        except Exception as exc:
            msg = f"The serialization method for type {declared} failed: {exc}"
            raise SerializationError(msg) from exc
        if output_kind(output) is None:
            msg = (
                f"The serialization method for type {declared} returned "
                f"{type(output).__name__}, not str, RichPayload or Reaction."
            )
            raise SerializationError(msg)
        return output
