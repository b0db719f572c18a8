"""In-memory representation of decoded and parsed values.

A value knows nothing about the type id it will be encoded as; the encoder
and the literal parser always match it explicitly against a definition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

from contract_transcode.types import PrimitiveType


class Value:
    """Base class for all values."""

    __slots__ = ()


@dataclass(frozen=True)
class BoolValue(Value):
    value: bool


@dataclass(frozen=True)
class IntValue(Value):
    """An integer together with the width and signedness it was read as."""

    value: int
    primitive: PrimitiveType = PrimitiveType.U128

    def __int__(self) -> int:
        return self.value


@dataclass(frozen=True)
class CharValue(Value):
    value: str


@dataclass(frozen=True)
class StrValue(Value):
    value: str


@dataclass(frozen=True)
class BytesValue(Value):
    """Raw bytes: the ``bytes`` primitive and sequences/arrays of ``u8``."""

    value: bytes


@dataclass(frozen=True)
class SeqValue(Value):
    """Elements of a sequence or fixed-length array."""

    elements: tuple[Value, ...] = ()

    def __iter__(self) -> Iterator[Value]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)


@dataclass(frozen=True)
class TupleValue(Value):
    elements: tuple[Value, ...] = ()

    def __iter__(self) -> Iterator[Value]:
        return iter(self.elements)

    def __len__(self) -> int:
        return len(self.elements)


Fields = tuple[tuple["str | None", Value], ...]


def _named(fields: Fields) -> bool:
    return bool(fields) and all(name is not None for name, _ in fields)


def _get(fields: Fields, name: str) -> Value | None:
    for field_name, value in fields:
        if field_name == name:
            return value
    return None


@dataclass(frozen=True)
class CompositeValue(Value):
    """Struct-like (named) or tuple-like (unnamed) fields in declared order.

    ``name`` is the type's name where known; it does not take part in
    equality.
    """

    fields: Fields = ()
    name: str | None = field(default=None, compare=False)

    @property
    def is_named(self) -> bool:
        return _named(self.fields)

    def get(self, name: str) -> Value | None:
        """Get a field value by name."""
        return _get(self.fields, name)

    def values(self) -> list[Value]:
        return [value for _, value in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    @classmethod
    def from_dict(cls, values: dict[str, Value], name: str | None = None) -> CompositeValue:
        return cls(fields=tuple(values.items()), name=name)

    @classmethod
    def from_values(cls, *values: Value, name: str | None = None) -> CompositeValue:
        return cls(fields=tuple((None, v) for v in values), name=name)


@dataclass(frozen=True)
class VariantValue(Value):
    """One case of a variant, with its fields in declared order."""

    name: str
    discriminant: int
    fields: Fields = ()

    @property
    def is_named(self) -> bool:
        return _named(self.fields)

    def get(self, name: str) -> Value | None:
        """Get a field value by name."""
        return _get(self.fields, name)

    def values(self) -> list[Value]:
        return [value for _, value in self.fields]


def some(value: Value) -> VariantValue:
    """Build ``Some(value)`` for Option-shaped variants."""
    return VariantValue(name="Some", discriminant=1, fields=((None, value),))


NONE = VariantValue(name="None", discriminant=0)

UNIT = TupleValue()
