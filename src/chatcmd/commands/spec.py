"""Command and parameter specifications.

A CommandSpec is the static description of one command: its names, where
it listens and replies, and an ordered list of ParameterSpecs telling the
dispatcher how to convert user tokens into handler arguments.

Specs are declared explicitly and handed to the reader, either one at a
time or bundled in a :class:`CommandTable` together with the converters the
commands rely on::

    table = CommandTable()

    @table.command("roll", param("int", default="6", restrict="positive"), usage="roll [sides]")
    def roll(context, sides):
        return str(random.randint(1, sides))

    reader.register(table)
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, Field, InstanceOf, field_validator

from chatcmd.conversion.tokens import UNBOUNDED, tokenize
from chatcmd.domain.restriction import Restriction
from chatcmd.domain.tags import TEXT, TypeTag, as_tag
from chatcmd.domain.types import MentionSetting, ReplyTarget, Scope

NAME_PATTERN = re.compile(r"[a-z0-9_-]+")

F = TypeVar("F", bound=Callable[..., Any])


def valid_name(name: str) -> bool:
    """Whether *name* (case-insensitive) is a legal command name."""
    return NAME_PATTERN.fullmatch(name.lower()) is not None


class ParameterSpec(BaseModel):
    """How one handler argument is read from the token stream.

    Attributes:
        type_tag: Converter key. Array tags consume many tokens.
        name: Display name used in diagnostics.
        combine: Tokens to combine into this value. None means 1 for
            scalars and unbounded for arrays.
        default: Default input text, used when no tokens remain. It is
            tokenized and converted like user input.
        restriction: Validation rule passed to the converter.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    type_tag: InstanceOf[TypeTag]
    name: str = ""
    combine: int | None = Field(default=None, ge=1)
    default: str | None = None
    restriction: Restriction | None = None

    @field_validator("type_tag", mode="before")
    @classmethod
    def _coerce_tag(cls, value: Any) -> TypeTag:
        return as_tag(value)

    @field_validator("restriction", mode="before")
    @classmethod
    def _coerce_restriction(cls, value: Any) -> Restriction | None:
        if isinstance(value, str):
            return Restriction(value)
        return value

    @property
    def is_array(self) -> bool:
        return self.type_tag.is_array

    @property
    def combine_count(self) -> int:
        if self.combine is not None:
            return self.combine
        return UNBOUNDED if self.is_array else 1

    @property
    def unbounded(self) -> bool:
        return self.combine_count == UNBOUNDED

    @property
    def default_tokens(self) -> tuple[str, ...] | None:
        if self.default is None:
            return None
        return tokenize(self.default)

    def describe(self, index: int) -> str:
        return self.name or f"parameter {index + 1} ({self.type_tag})"


def param(
    type_tag: TypeTag | str | type[Enum],
    *,
    name: str = "",
    combine: int | None = None,
    default: str | None = None,
    restrict: Restriction | str | None = None,
    error: str = "",
) -> ParameterSpec:
    """Shorthand for building a ParameterSpec.

    ``restrict`` with ``error`` builds a Restriction carrying a custom
    failure message (``{INPUT}`` is replaced by the offending input).
    """
    restriction = Restriction(restrict, error) if isinstance(restrict, str) else restrict
    return ParameterSpec(
        type_tag=type_tag,
        name=name,
        combine=combine,
        default=default,
        restriction=restriction,
    )


class CommandSpec(BaseModel):
    """Static description of a command.

    Attributes:
        name: Primary name, ``[a-z0-9_-]+`` (case-insensitive).
        handler: Called as ``handler(context, *args)``, or
            ``handler(context, reply_target, *args)`` when ``returns`` is None.
        usage: Usage line shown when parameters are missing or invalid.
        parameters: Ordered parameter specs.
        aliases: Additional names; a space-separated string is accepted.
        scope: Private, shared, or both namespaces.
        reply: Default reply target for results and errors.
        reply_other: Channel id for ``ReplyTarget.OTHER``.
        mentions: Pre-mention requirement; DEFAULT inherits the reader's.
        required_capability: Capability the caller needs, or None.
        description: Free text for the help index.
        returns: Declared result tag; None means the handler returns nothing.
    """

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    name: str
    handler: Callable[..., Any]
    usage: str = ""
    parameters: tuple[ParameterSpec, ...] = ()
    aliases: tuple[str, ...] = ()
    scope: Scope = Scope.BOTH
    reply: ReplyTarget = ReplyTarget.SOURCE
    reply_other: str | None = None
    mentions: MentionSetting = MentionSetting.DEFAULT
    required_capability: str | None = None
    description: str = ""
    returns: InstanceOf[TypeTag] | None = TEXT

    @field_validator("aliases", mode="before")
    @classmethod
    def _split_aliases(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(value.split())
        return value

    @field_validator("parameters", mode="before")
    @classmethod
    def _coerce_parameters(cls, value: Any) -> Any:
        if isinstance(value, Iterable) and not isinstance(value, str):
            return tuple(
                p if isinstance(p, ParameterSpec) else ParameterSpec(type_tag=p) for p in value
            )
        return value

    @field_validator("returns", mode="before")
    @classmethod
    def _coerce_returns(cls, value: Any) -> TypeTag | None:
        return None if value is None else as_tag(value)

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def names(self) -> list[str]:
        """Primary name followed by aliases."""
        return [self.name, *self.aliases]

    @property
    def returns_value(self) -> bool:
        return self.returns is not None


@dataclass
class CommandTable:
    """Declarative bundle of commands and the converters they need.

    Converters are registered before commands when a table is registered,
    so commands can depend on converters from the same table.
    """

    commands: list[CommandSpec] = field(default_factory=list)
    deserializers: dict[TypeTag, Callable[..., Any]] = field(default_factory=dict)
    serializers: dict[TypeTag, Callable[..., Any]] = field(default_factory=dict)

    def add(self, spec: CommandSpec) -> CommandSpec:
        self.commands.append(spec)
        return spec

    def command(
        self, name: str, *parameters: ParameterSpec | TypeTag | str, **options: Any
    ) -> Callable[[F], F]:
        """Decorator declaring *name* as a command handled by the function."""

        def decorator(fn: F) -> F:
            self.add(CommandSpec(name=name, handler=fn, parameters=parameters, **options))
            return fn

        return decorator

    def deserializer(self, tag: TypeTag | str | type[Enum]) -> Callable[[F], F]:
        def decorator(fn: F) -> F:
            self.deserializers[as_tag(tag)] = fn
            return fn

        return decorator

    def serializer(self, tag: TypeTag | str | type[Enum]) -> Callable[[F], F]:
        def decorator(fn: F) -> F:
            self.serializers[as_tag(tag)] = fn
            return fn

        return decorator
