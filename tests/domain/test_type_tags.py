"""Tests for type tags and output kinds."""

from __future__ import annotations

from enum import Enum

import pytest

from chatcmd.domain.output import OutputKind, Reaction, RichField, RichPayload, output_kind
from chatcmd.domain.tags import INT, STR, TypeTag, as_tag
from chatcmd.domain.types import Scope


class Color(Enum):
    RED = 1
    GREEN = 2


class TestTypeTag:
    def test_of_scalar(self) -> None:
        assert TypeTag.of("int") == INT
        assert not INT.is_array

    def test_of_array_suffix(self) -> None:
        tag = TypeTag.of("int[]")
        assert tag.is_array
        assert tag.element == INT
        assert tag == INT.array()
        assert str(tag) == "int[]"

    def test_nested_arrays_rejected(self) -> None:
        with pytest.raises(ValueError, match="Nested array"):
            INT.array().array()

    def test_enum_tag(self) -> None:
        tag = as_tag(Color)
        assert tag.is_enum
        assert tag.enum is Color
        assert tag.array().scalar == tag

    def test_as_tag_passthrough_and_names(self) -> None:
        assert as_tag(STR) is STR
        assert as_tag("str") == STR

    def test_as_tag_rejects_other_values(self) -> None:
        with pytest.raises(TypeError):
            as_tag(42)  # type: ignore[arg-type]

    def test_tags_are_hashable(self) -> None:
        table = {TypeTag.of("dice"): 1}
        assert table[TypeTag.of("dice")] == 1


class TestScope:
    def test_namespaces(self) -> None:
        assert Scope.BOTH.private and Scope.BOTH.shared
        assert Scope.PRIVATE.private and not Scope.PRIVATE.shared
        assert Scope.SHARED.shared and not Scope.SHARED.private


class TestOutputKinds:
    def test_kinds(self) -> None:
        assert output_kind("hi") is OutputKind.TEXT
        assert output_kind(RichPayload(title="t")) is OutputKind.RICH
        assert output_kind(Reaction(emoji="👍")) is OutputKind.REACTION
        assert output_kind(3) is None

    def test_payload_char_count(self) -> None:
        payload = RichPayload(
            title="ab", description="cd", footer="e", fields=[RichField(name="f", value="gh")]
        )
        assert payload.char_count() == 8

    def test_reaction_str(self) -> None:
        assert str(Reaction(emoji="👍")) == "👍"
