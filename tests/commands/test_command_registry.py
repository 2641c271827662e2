"""Tests for command validation, namespaces and aliases."""

from __future__ import annotations

from enum import Enum

import pytest

from chatcmd.commands.registry import CommandRegistry
from chatcmd.commands.spec import CommandSpec, param
from chatcmd.conversion.registry import ConversionRegistry
from chatcmd.domain.errors import (
    DeserializationError,
    InvalidCommandMethodError,
    NameConflictError,
    RegistrationError,
)
from chatcmd.domain.types import Scope


class Size(Enum):
    SMALL = 1
    LARGE = 2


def two_ints(context: object, a: int, b: int) -> str:
    return str(a + b)


def one_arg(context: object, value: object) -> str:
    return str(value)


def spec(name: str = "cmd", **kwargs: object) -> CommandSpec:
    kwargs.setdefault("handler", one_arg)
    kwargs.setdefault("parameters", ("int",))
    return CommandSpec(name=name, **kwargs)


@pytest.fixture
def registry() -> CommandRegistry:
    return CommandRegistry()


class TestValidation:
    def test_registers_valid_spec(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        command = spec("add", handler=two_ints, parameters=("int", "int"))
        names = registry.register(command, conversions)
        assert names == ["add"]
        assert registry.lookup("ADD", private=False) is not None
        assert registry.lookup("add", private=True) is not None

    def test_handler_arity_mismatch(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="must accept"):
            registry.register(spec(handler=two_ints, parameters=("int",)), conversions)

    def test_no_return_handler_needs_reply_target(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="reply_target"):
            registry.register(spec(returns=None), conversions)

        def silent(context: object, target: object, value: int) -> None:
            return None

        assert registry.register(spec(handler=silent, returns=None), conversions) == ["cmd"]

    def test_variadic_handler(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        def anything(*args: object) -> str:
            return ""

        assert registry.register(spec(handler=anything, parameters=("int", "str")), conversions)

    def test_unknown_parameter_type(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="no string converter"):
            registry.register(spec(parameters=("widget",)), conversions)

    def test_enum_parameter_needs_no_converter(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        assert registry.register(spec(parameters=(Size,)), conversions) == ["cmd"]

    def test_only_last_parameter_unbounded(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="only the last parameter"):
            registry.register(spec(handler=two_ints, parameters=("int[]", "int")), conversions)
        bounded = spec("ok", handler=two_ints, parameters=(param("int[]", combine=2), "int"))
        assert registry.register(bounded, conversions) == ["ok"]

    def test_return_type_needs_serializer(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="no serializer"):
            registry.register(spec(returns="point"), conversions)
        conversions.register_serializer("point", lambda value: str(value))
        assert registry.register(spec(returns="point"), conversions) == ["cmd"]

    def test_direct_output_returns(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        registry.register(spec("a", returns="rich"), conversions)
        registry.register(spec("b", returns="reaction"), conversions)
        assert len(registry) == 2

    def test_bad_default_fails(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="default value") as excinfo:
            registry.register(spec(parameters=(param("int", default="abc"),)), conversions)
        assert isinstance(excinfo.value.__cause__, DeserializationError)
        assert registry.lookup("cmd", private=False) is None

    def test_default_must_meet_restriction(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        parameter = param("int", default="0", restrict="positive")
        with pytest.raises(InvalidCommandMethodError, match="does not meet the restriction"):
            registry.register(spec(parameters=(parameter,)), conversions)
        assert registry.lookup("cmd", private=False) is None

    def test_default_meeting_restriction(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        parameter = param("int", default="6", restrict="positive")
        assert registry.register(spec(parameters=(parameter,)), conversions) == ["cmd"]

    def test_match_parameter_with_default(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        parameter = param("match", default="1d6", restrict=r"(\d+)d(\d+)")
        assert registry.register(spec("roll", parameters=(parameter,)), conversions) == ["roll"]

    def test_invalid_primary_name(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        with pytest.raises(InvalidCommandMethodError, match="not valid"):
            registry.register(spec("bad name"), conversions)

    def test_registration_errors_share_a_base(self) -> None:
        assert issubclass(NameConflictError, RegistrationError)
        assert issubclass(InvalidCommandMethodError, RegistrationError)


class TestNamespaces:
    def test_same_name_overlapping_scopes_conflict(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        registry.register(spec("x", scope=Scope.BOTH), conversions)
        with pytest.raises(NameConflictError, match="already taken by command x"):
            registry.register(spec("x", scope=Scope.SHARED), conversions)

    def test_private_and_shared_coexist(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        private = spec("x", scope=Scope.PRIVATE)
        shared = spec("x", scope=Scope.SHARED)
        registry.register(private, conversions)
        registry.register(shared, conversions)
        assert registry.lookup("x", private=True) is private
        assert registry.lookup("x", private=False) is shared
        assert registry.commands() == [private, shared]

    def test_conflict_leaves_registry_unchanged(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        registry.register(spec("x", scope=Scope.PRIVATE), conversions)
        with pytest.raises(NameConflictError):
            registry.register(spec("x", aliases="fresh"), conversions)
        assert registry.lookup("fresh", private=False) is None
        assert len(registry) == 1


class TestAliases:
    def test_aliases_bound(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        command = spec("remove", aliases="rm del")
        assert registry.register(command, conversions) == ["remove", "rm", "del"]
        assert registry.lookup("RM", private=False) is command
        assert registry.names(command) == ["remove", "del", "rm"]

    def test_invalid_or_taken_aliases_skipped(
        self, registry: CommandRegistry, conversions: ConversionRegistry
    ) -> None:
        first = spec("first")
        registry.register(first, conversions)
        second = spec("second", aliases=("first", "ok!", "fine"))
        assert registry.register(second, conversions) == ["second", "fine"]
        assert registry.lookup("first", private=False) is first

    def test_bind_name(self, registry: CommandRegistry, conversions: ConversionRegistry) -> None:
        command = spec("ping", scope=Scope.SHARED)
        registry.register(command, conversions)
        assert registry.bind_name("pong", command)
        assert not registry.bind_name("ping", command)
        assert registry.lookup("pong", private=False) is command
        assert registry.lookup("pong", private=True) is None
