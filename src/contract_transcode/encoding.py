"""SCALE encoder: turns a value into wire bytes guided by the registry."""

from __future__ import annotations

import struct
from typing import Callable

from contract_transcode.errors import ArityMismatch, InvalidVariantCase, TypeMismatch
from contract_transcode.types import (
    ArrayTypeDefinition,
    CompactTypeDefinition,
    CompositeTypeDefinition,
    FieldDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    SequenceTypeDefinition,
    TupleTypeDefinition,
    TypeDefinition,
    TypeKind,
    TypeRegistry,
    VariantTypeDefinition,
)
from contract_transcode.value import (
    BoolValue,
    BytesValue,
    CharValue,
    CompositeValue,
    IntValue,
    SeqValue,
    StrValue,
    TupleValue,
    Value,
    VariantValue,
)

# struct formats for the fixed-width types that struct can pack directly
INT_FORMATS: dict[PrimitiveType, str] = {
    PrimitiveType.U8: "<B",
    PrimitiveType.I8: "<b",
    PrimitiveType.U16: "<H",
    PrimitiveType.I16: "<h",
    PrimitiveType.U32: "<I",
    PrimitiveType.I32: "<i",
    PrimitiveType.U64: "<Q",
    PrimitiveType.I64: "<q",
}

# Upper bounds of the three fixed compact modes
COMPACT_SINGLE_BYTE_MAX = (1 << 6) - 1
COMPACT_TWO_BYTE_MAX = (1 << 14) - 1
COMPACT_FOUR_BYTE_MAX = (1 << 30) - 1
# Big-integer mode stores up to 4 + 63 bytes
COMPACT_MAX = (1 << (8 * 67)) - 1


def encode_compact(value: int) -> bytes:
    """Encode a non-negative integer in the SCALE compact format.

    The two low bits of the first byte select the mode:
    0b00 single byte, 0b01 two bytes, 0b10 four bytes, and 0b11 for a
    length byte followed by 4..67 little-endian value bytes.
    """
    if value < 0:
        raise ValueError(f"Compact integers are unsigned, got {value}")
    if value <= COMPACT_SINGLE_BYTE_MAX:
        return struct.pack("<B", value << 2)
    if value <= COMPACT_TWO_BYTE_MAX:
        return struct.pack("<H", (value << 2) | 0b01)
    if value <= COMPACT_FOUR_BYTE_MAX:
        return struct.pack("<I", (value << 2) | 0b10)
    if value > COMPACT_MAX:
        raise ValueError(f"Integer {value} is too large for compact encoding")
    n = max(4, (value.bit_length() + 7) // 8)
    return struct.pack("<B", ((n - 4) << 2) | 0b11) + value.to_bytes(n, "little")


def encode_int(value: int, primitive: PrimitiveType) -> bytes:
    """Encode an integer at the exact width of its primitive type."""
    fmt = INT_FORMATS.get(primitive)
    if fmt is not None:
        return struct.pack(fmt, value)
    return value.to_bytes(primitive.size_bytes, "little", signed=primitive.is_signed)


class Encoder:
    """Encodes values against type ids of a registry.

    The encoder is stateless apart from the registry it reads, so one
    instance can be shared between threads.
    """

    def __init__(self, registry: TypeRegistry) -> None:
        self.registry = registry
        self._dispatch: dict[TypeKind, Callable[[Value, TypeDefinition, int], bytes]] = {
            TypeKind.PRIMITIVE: self._encode_primitive,
            TypeKind.COMPOSITE: self._encode_composite,
            TypeKind.VARIANT: self._encode_variant,
            TypeKind.SEQUENCE: self._encode_sequence,
            TypeKind.ARRAY: self._encode_array,
            TypeKind.TUPLE: self._encode_tuple,
            TypeKind.COMPACT: self._encode_compact,
        }

    def encode(self, value: Value, type_id: int) -> bytes:
        """Encode a value as the given type.

        Raises before returning anything if any part of the value does not
        fit, so callers never see partial output.
        """
        parts: list[bytes] = []
        self._encode_into(value, type_id, parts)
        return b"".join(parts)

    def _encode_into(self, value: Value, type_id: int, parts: list[bytes]) -> None:
        type_def = self.registry.resolve(type_id)
        parts.append(self._dispatch[type_def.kind](value, type_def, type_id))

    def _name(self, type_id: int) -> str:
        return self.registry.display_name(type_id)

    def _encode_primitive(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, PrimitiveTypeDefinition)
        primitive = type_def.primitive

        if primitive == PrimitiveType.BOOL:
            if not isinstance(value, BoolValue):
                raise TypeMismatch(self._name(type_id), value)
            return b"\x01" if value.value else b"\x00"
        if primitive == PrimitiveType.CHAR:
            if not isinstance(value, CharValue) or len(value.value) != 1:
                raise TypeMismatch(self._name(type_id), value, "expected a single character")
            return struct.pack("<I", ord(value.value))
        if primitive == PrimitiveType.STR:
            if not isinstance(value, StrValue):
                raise TypeMismatch(self._name(type_id), value)
            data = value.value.encode("utf-8")
            return encode_compact(len(data)) + data
        if primitive == PrimitiveType.BYTES:
            if not isinstance(value, BytesValue):
                raise TypeMismatch(self._name(type_id), value)
            return encode_compact(len(value.value)) + value.value

        if not isinstance(value, IntValue):
            raise TypeMismatch(self._name(type_id), value)
        if not primitive.min_value <= value.value <= primitive.max_value:
            raise TypeMismatch(
                self._name(type_id), value,
                f"{value.value} is out of range [{primitive.min_value}, {primitive.max_value}]",
            )
        return encode_int(value.value, primitive)

    def _encode_fields(
        self,
        fields: tuple[FieldDefinition, ...],
        values: tuple[tuple[str | None, Value], ...],
        context: str,
    ) -> bytes:
        """Encode field values in declared order.

        Named values are matched to fields by name, so their order in the
        value does not matter; unnamed values are matched by position.
        """
        if len(values) != len(fields):
            raise ArityMismatch(len(fields), len(values), context)

        ordered: list[Value]
        if values and all(name is not None for name, _ in values) and all(
            f.name is not None for f in fields
        ):
            by_name = dict(values)
            missing = [f.name for f in fields if f.name not in by_name]
            if missing:
                raise TypeMismatch(context, values, f"missing fields {missing}")
            ordered = [by_name[f.name] for f in fields]  # type: ignore[index]
        else:
            ordered = [v for _, v in values]

        parts: list[bytes] = []
        for f, v in zip(fields, ordered):
            self._encode_into(v, f.type_id, parts)
        return b"".join(parts)

    def _encode_composite(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, CompositeTypeDefinition)
        if not isinstance(value, CompositeValue):
            raise TypeMismatch(self._name(type_id), value)
        return self._encode_fields(type_def.fields, value.fields, self._name(type_id))

    def _encode_variant(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, VariantTypeDefinition)
        if not isinstance(value, VariantValue):
            raise TypeMismatch(self._name(type_id), value)
        variant = type_def.get_variant_by_discriminant(value.discriminant)
        if variant is None or variant.name != value.name:
            raise InvalidVariantCase(self._name(type_id), value.name, value.discriminant)
        payload = self._encode_fields(
            variant.fields, value.fields, f"{self._name(type_id)}::{variant.name}"
        )
        return struct.pack("<B", variant.discriminant) + payload

    def _elements(self, value: Value, element_type: int, type_id: int) -> tuple[Value, ...]:
        """Elements of a sequence or array value; u8 elements may come as bytes."""
        if isinstance(value, SeqValue):
            return value.elements
        if isinstance(value, BytesValue) and self.registry.is_byte_sequence(type_id):
            return tuple(IntValue(b, PrimitiveType.U8) for b in value.value)
        raise TypeMismatch(self._name(type_id), value)

    def _encode_sequence(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, SequenceTypeDefinition)
        if isinstance(value, BytesValue) and self.registry.is_byte_sequence(type_id):
            return encode_compact(len(value.value)) + value.value
        elements = self._elements(value, type_def.element_type, type_id)
        parts = [encode_compact(len(elements))]
        for element in elements:
            self._encode_into(element, type_def.element_type, parts)
        return b"".join(parts)

    def _encode_array(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, ArrayTypeDefinition)
        elements = self._elements(value, type_def.element_type, type_id)
        if len(elements) != type_def.length:
            raise ArityMismatch(type_def.length, len(elements), self._name(type_id))
        if isinstance(value, BytesValue):
            return value.value
        parts: list[bytes] = []
        for element in elements:
            self._encode_into(element, type_def.element_type, parts)
        return b"".join(parts)

    def _encode_tuple(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, TupleTypeDefinition)
        if isinstance(value, TupleValue):
            elements = value.elements
        elif isinstance(value, CompositeValue) and not value.is_named:
            elements = tuple(value.values())
        else:
            raise TypeMismatch(self._name(type_id), value)
        if len(elements) != len(type_def.elements):
            raise ArityMismatch(len(type_def.elements), len(elements), self._name(type_id))
        parts: list[bytes] = []
        for element, element_type in zip(elements, type_def.elements):
            self._encode_into(element, element_type, parts)
        return b"".join(parts)

    def _encode_compact(self, value: Value, type_def: TypeDefinition, type_id: int) -> bytes:
        assert isinstance(type_def, CompactTypeDefinition)
        inner = self.registry.resolve(type_def.inner_type)

        # Compact<Wrapper> where Wrapper is a single-field struct around an integer
        if isinstance(inner, CompositeTypeDefinition):
            if not isinstance(value, CompositeValue) or len(value.fields) != 1 or len(inner.fields) != 1:
                raise TypeMismatch(self._name(type_id), value, "expected a single-field composite")
            value = value.fields[0][1]
            inner = self.registry.resolve(inner.fields[0].type_id)
        elif isinstance(inner, TupleTypeDefinition) and not inner.elements:
            if value != TupleValue():
                raise TypeMismatch(self._name(type_id), value)
            return b""

        if not isinstance(inner, PrimitiveTypeDefinition) or not inner.primitive.is_integer:
            raise TypeMismatch(self._name(type_id), value, "compact applies to integers only")
        if inner.primitive.is_signed:
            raise TypeMismatch(self._name(type_id), value, "compact integers are unsigned")
        if not isinstance(value, IntValue):
            raise TypeMismatch(self._name(type_id), value)
        if not 0 <= value.value <= inner.primitive.max_value:
            raise TypeMismatch(
                self._name(type_id), value,
                f"{value.value} is out of range [0, {inner.primitive.max_value}]",
            )
        return encode_compact(value.value)


def encode(value: Value, type_id: int, registry: TypeRegistry) -> bytes:
    """Encode a value as the given type id."""
    return Encoder(registry).encode(value, type_id)
