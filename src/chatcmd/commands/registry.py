"""CommandRegistry — name lookup for registered commands.

Commands live in two namespaces: private (direct messages) and shared
(group channels). A command's scope decides which of them it is bound in.
Names are case-insensitive and never silently replaced: a taken primary
name aborts registration, a taken alias is skipped.

INVARIANT: A spec is validated completely before any name is bound, so a
failed registration leaves both namespaces untouched.
"""

from __future__ import annotations

import inspect
import logging
import threading

from chatcmd.commands.spec import CommandSpec, valid_name
from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.domain.errors import (
    DeserializationError,
    InvalidCommandMethodError,
    NameConflictError,
)
from chatcmd.domain.tags import DIRECT_OUTPUT_TAGS

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def _check_handler(spec: CommandSpec) -> None:
    try:
        signature = inspect.signature(spec.handler)
    except (TypeError, ValueError) as exc:
        msg = f"Cannot inspect the handler of command {spec.name}"
        raise InvalidCommandMethodError(msg) from exc

    leading = 1 if spec.returns_value else 2
    placeholders = [None] * (leading + len(spec.parameters))
    try:
        signature.bind(*placeholders)
    except TypeError as exc:
        expected = "context" if spec.returns_value else "context, reply_target"
        msg = (
            f"The handler of command {spec.name} must accept ({expected}) followed by "
            f"{len(spec.parameters)} parameter(s): {exc}"
        )
        raise InvalidCommandMethodError(msg) from exc


def _check_parameters(spec: CommandSpec, conversions: ConversionRegistry) -> None:
    last = len(spec.parameters) - 1
    for index, parameter in enumerate(spec.parameters):
        if not conversions.can_deserialize(parameter.type_tag):
            msg = (
                f"Parameter {index + 1} of command {spec.name} has type "
                f"{parameter.type_tag}, which has no string converter."
            )
            raise InvalidCommandMethodError(msg)
        if parameter.unbounded and index != last:
            msg = (
                f"Parameter {index + 1} of command {spec.name} takes all remaining input; "
                "only the last parameter can do that."
            )
            raise InvalidCommandMethodError(msg)


def _check_returns(spec: CommandSpec, conversions: ConversionRegistry) -> None:
    returns = spec.returns
    if returns is None or returns in DIRECT_OUTPUT_TAGS or conversions.has_serializer(returns):
        return
    msg = f"Command {spec.name} returns {returns}, which has no serializer."
    raise InvalidCommandMethodError(msg)


def _check_defaults(spec: CommandSpec, conversions: ConversionRegistry) -> None:
    for index, parameter in enumerate(spec.parameters):
        tokens = parameter.default_tokens
        if tokens is None:
            continue
        if not tokens:
            msg = f"The default value for parameter {index + 1} of {spec.name} is empty."
            raise InvalidCommandMethodError(msg)
        try:
            conversions.deserialize(
                parameter.type_tag, tokens, parameter.combine_count, parameter.restriction
            )
        except DeserializationError as exc:
            msg = (
                f"The default value for parameter {index + 1} of command {spec.name} "
                f"is invalid: {exc.message}"
            )
            raise InvalidCommandMethodError(msg) from exc


def validate(spec: CommandSpec, conversions: ConversionRegistry) -> None:
    """Check *spec* against the handler contract and *conversions*.

    Raises:
        InvalidCommandMethodError: On the first structural problem found.
    """
    _check_handler(spec)
    _check_parameters(spec, conversions)
    _check_returns(spec, conversions)
    _check_defaults(spec, conversions)
    if not valid_name(spec.name):
        msg = f"The command name {spec.name} is not valid (allowed: a-z, 0-9, _ and -)."
        raise InvalidCommandMethodError(msg)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class CommandRegistry:
    """Private and shared name-to-command maps.

    Writers copy the affected map under a lock and swap the reference, so a
    dispatch running alongside a registration sees either the old or the new
    map, never a partial one.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._private: dict[str, CommandSpec] = {}
        self._shared: dict[str, CommandSpec] = {}
        self._specs: tuple[CommandSpec, ...] = ()

    def __len__(self) -> int:
        return len(self.commands())

    def register(self, spec: CommandSpec, conversions: ConversionRegistry) -> list[str]:
        """Validate *spec* and bind its primary name and aliases.

        Returns:
            The names that were bound, primary name first.

        Raises:
            InvalidCommandMethodError: The spec is structurally invalid.
            NameConflictError: The primary name is taken in a namespace the
                spec's scope requires.
        """
        validate(spec, conversions)
        with self._lock:
            taken = self._taken(spec.key, spec)
            if taken is not None:
                raise NameConflictError(spec.key, taken.name)
            self._specs = (*self._specs, spec)
            accepted = [spec.key]
            self._bind(spec.key, spec)
            for alias in spec.aliases:
                if self._bind_alias(alias, spec):
                    accepted.append(alias.lower())
        logger.debug(
            "Registered command %s (names=%s, scope=%s)", spec.name, accepted, spec.scope
        )
        return accepted

    def bind_name(self, name: str, spec: CommandSpec) -> bool:
        """Bind an extra *name* to an already validated *spec*.

        Returns False (and binds nothing) when the name is invalid or taken
        in any namespace the spec's scope requires.
        """
        with self._lock:
            return self._bind_alias(name, spec)

    def _bind_alias(self, name: str, spec: CommandSpec) -> bool:
        key = name.lower()
        if not valid_name(key):
            logger.debug("Skipping invalid name %r for command %s", name, spec.name)
            return False
        taken = self._taken(key, spec)
        if taken is not None:
            logger.debug(
                "Skipping name %r for command %s: taken by %s", name, spec.name, taken.name
            )
            return False
        self._bind(key, spec)
        return True

    def _taken(self, key: str, spec: CommandSpec) -> CommandSpec | None:
        if spec.scope.private and key in self._private:
            return self._private[key]
        if spec.scope.shared and key in self._shared:
            return self._shared[key]
        return None

    def _bind(self, key: str, spec: CommandSpec) -> None:
        if spec.scope.private:
            updated = dict(self._private)
            updated[key] = spec
            self._private = updated
        if spec.scope.shared:
            updated = dict(self._shared)
            updated[key] = spec
            self._shared = updated

    def lookup(self, name: str, *, private: bool) -> CommandSpec | None:
        """Find the command bound to *name* in the private or shared namespace."""
        namespace = self._private if private else self._shared
        return namespace.get(name.lower())

    def names(self, spec: CommandSpec) -> list[str]:
        """All names currently bound to *spec*, primary name first."""
        bound: list[str] = []
        for namespace in (self._private, self._shared):
            for name, candidate in namespace.items():
                if candidate is spec and name not in bound:
                    bound.append(name)
        bound.sort(key=lambda name: (name != spec.key, name))
        return bound

    def commands(self) -> list[CommandSpec]:
        """Registered specs in registration order."""
        return list(self._specs)
