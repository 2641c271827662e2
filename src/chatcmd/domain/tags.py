"""Type tags — registry keys for converters.

A TypeTag names a semantic value type rather than a Python class, so two
converters for ``int`` and ``byte`` can coexist even though both produce
Python ints. Array tags are derived from a scalar tag; enum tags carry the
``Enum`` class they look members up in.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

ARRAY_SUFFIX = "[]"


@dataclass(frozen=True)
class TypeTag:
    """Hashable identifier for a value type.

    Attributes:
        name: Display name (``int``, ``int[]``, ``Color``).
        element: Scalar tag for array tags, else None.
        enum: Enum class for enum tags (scalar or element), else None.
    """

    name: str
    element: TypeTag | None = None
    enum: type[Enum] | None = None

    @classmethod
    def of(cls, name: str) -> TypeTag:
        """Tag for a named scalar type. ``"int[]"`` yields an array tag."""
        if name.endswith(ARRAY_SUFFIX):
            return cls.of(name[: -len(ARRAY_SUFFIX)]).array()
        return cls(name=name)

    @classmethod
    def for_enum(cls, enum_cls: type[Enum]) -> TypeTag:
        return cls(name=enum_cls.__name__, enum=enum_cls)

    def array(self) -> TypeTag:
        """The array tag whose elements are of this type."""
        if self.is_array:
            msg = f"Nested array tags are not supported: {self.name}{ARRAY_SUFFIX}"
            raise ValueError(msg)
        return TypeTag(name=f"{self.name}{ARRAY_SUFFIX}", element=self, enum=None)

    @property
    def is_array(self) -> bool:
        return self.element is not None

    @property
    def is_enum(self) -> bool:
        return self.enum is not None

    @property
    def scalar(self) -> TypeTag:
        """The element tag for arrays, or the tag itself."""
        return self.element if self.element is not None else self

    def __str__(self) -> str:
        return self.name


# Built-in scalar tags
STR = TypeTag.of("str")
INT = TypeTag.of("int")
LONG = TypeTag.of("long")
SHORT = TypeTag.of("short")
BYTE = TypeTag.of("byte")
FLOAT = TypeTag.of("float")
BOOL = TypeTag.of("bool")
CHAR = TypeTag.of("char")
MATCH = TypeTag.of("match")

# Directly-outputable kinds (usable as a command's declared return tag)
TEXT = STR
RICH = TypeTag.of("rich")
REACTION = TypeTag.of("reaction")

DIRECT_OUTPUT_TAGS: frozenset[TypeTag] = frozenset({TEXT, RICH, REACTION})


def as_tag(tag: TypeTag | str | type[Enum]) -> TypeTag:
    """Coerce a tag name or enum class to a TypeTag."""
    if isinstance(tag, TypeTag):
        return tag
    if isinstance(tag, str):
        return TypeTag.of(tag)
    if isinstance(tag, type) and issubclass(tag, Enum):
        return TypeTag.for_enum(tag)
    msg = f"Cannot build a type tag from {tag!r}"
    raise TypeError(msg)
