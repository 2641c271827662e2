"""Tests for ParameterSpec, CommandSpec and CommandTable."""

from __future__ import annotations

from enum import Enum

import pytest
from pydantic import ValidationError

from chatcmd.commands.spec import CommandSpec, CommandTable, ParameterSpec, param, valid_name
from chatcmd.conversion.tokens import UNBOUNDED
from chatcmd.domain.restriction import Restriction
from chatcmd.domain.tags import INT, RICH, STR, TypeTag
from chatcmd.domain.types import ReplyTarget, Scope


class Mood(Enum):
    HAPPY = 1


def noop(context: object) -> str:
    return ""


class TestParameterSpec:
    def test_scalar_defaults(self) -> None:
        spec = ParameterSpec(type_tag="int")
        assert spec.type_tag == INT
        assert spec.combine_count == 1
        assert not spec.unbounded
        assert spec.default_tokens is None

    def test_array_is_unbounded(self) -> None:
        spec = ParameterSpec(type_tag="int[]")
        assert spec.is_array
        assert spec.combine_count == UNBOUNDED
        assert spec.unbounded

    def test_explicit_combine(self) -> None:
        assert ParameterSpec(type_tag="int[]", combine=3).combine_count == 3

    def test_combine_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            ParameterSpec(type_tag="str", combine=0)

    def test_default_tokens(self) -> None:
        assert ParameterSpec(type_tag="str", default="  two  words ").default_tokens == (
            "two",
            "words",
        )

    def test_restriction_from_string(self) -> None:
        assert ParameterSpec(type_tag="int", restriction="even").restriction == Restriction("even")

    def test_enum_tag(self) -> None:
        assert ParameterSpec(type_tag=Mood).type_tag == TypeTag.for_enum(Mood)

    def test_param_helper_custom_error(self) -> None:
        spec = param("int", name="sides", default="6", restrict="positive", error="No {INPUT}")
        assert spec.restriction == Restriction("positive", "No {INPUT}")
        assert spec.describe(0) == "sides"
        assert param("int").describe(1) == "parameter 2 (int)"

    def test_frozen(self) -> None:
        spec = ParameterSpec(type_tag="int")
        with pytest.raises(ValidationError):
            spec.name = "x"  # type: ignore[misc]


class TestCommandSpec:
    def test_defaults(self) -> None:
        spec = CommandSpec(name="Ping", handler=noop)
        assert spec.key == "ping"
        assert spec.scope is Scope.BOTH
        assert spec.reply is ReplyTarget.SOURCE
        assert spec.returns == STR
        assert spec.returns_value

    def test_aliases_from_string(self) -> None:
        spec = CommandSpec(name="ping", handler=noop, aliases="p  pong")
        assert spec.aliases == ("p", "pong")
        assert spec.names == ["ping", "p", "pong"]

    def test_parameters_from_tags(self) -> None:
        spec = CommandSpec(name="add", handler=noop, parameters=["int", param("int", default="0")])
        assert [p.type_tag for p in spec.parameters] == [INT, INT]
        assert spec.parameters[1].default == "0"

    def test_no_return_value(self) -> None:
        spec = CommandSpec(name="quiet", handler=noop, returns=None)
        assert not spec.returns_value

    def test_enum_strings(self) -> None:
        spec = CommandSpec(name="x", handler=noop, scope="private", reply="dm")
        assert spec.scope is Scope.PRIVATE
        assert spec.reply is ReplyTarget.DM


class TestValidName:
    @pytest.mark.parametrize("name", ["ping", "Roll-2", "a_b", "9"])
    def test_valid(self, name: str) -> None:
        assert valid_name(name)

    @pytest.mark.parametrize("name", ["", "has space", "émoji", "semi;colon"])
    def test_invalid(self, name: str) -> None:
        assert not valid_name(name)


class TestCommandTable:
    def test_decorators_collect_everything(self) -> None:
        table = CommandTable()

        @table.command("roll", param("int", default="6"), usage="roll [sides]", returns=RICH)
        def roll(context: object, sides: int) -> str:
            return str(sides)

        @table.deserializer("dice")
        def parse_dice(tokens: tuple[str, ...], max_tokens: int) -> object:
            return None

        @table.serializer(Mood)
        def show_mood(value: Mood) -> str:
            return value.name

        assert roll(None, 4) == "4"
        assert [c.name for c in table.commands] == ["roll"]
        assert table.commands[0].usage == "roll [sides]"
        assert table.deserializers == {TypeTag.of("dice"): parse_dice}
        assert table.serializers == {TypeTag.for_enum(Mood): show_mood}
