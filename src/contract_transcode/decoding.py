"""SCALE decoder: turns wire bytes back into values guided by the registry."""

from __future__ import annotations

import struct
from typing import Callable

from contract_transcode.encoding import INT_FORMATS
from contract_transcode.errors import (
    InvalidDiscriminant,
    InvalidEncoding,
    NestingTooDeep,
    TrailingBytes,
    UnexpectedEndOfInput,
)
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

# Deepest nesting of types accepted below the top-level value
DEFAULT_MAX_DEPTH = 128

# Most elements a length prefix may announce for a zero-sized element type
MAX_ZERO_SIZED_ELEMENTS = 1 << 16


def _take(data: bytes, offset: int, size: int) -> bytes:
    """Return ``size`` bytes at ``offset`` or raise if the input is too short."""
    available = len(data) - offset
    if size > available:
        raise UnexpectedEndOfInput(offset, size, max(available, 0))
    return data[offset:offset + size]


def decode_compact(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a compact integer; return (value, bytes consumed)."""
    first = _take(data, offset, 1)[0]
    mode = first & 0b11
    if mode == 0b00:
        return first >> 2, 1
    if mode == 0b01:
        raw = struct.unpack("<H", _take(data, offset, 2))[0]
        return raw >> 2, 2
    if mode == 0b10:
        raw = struct.unpack("<I", _take(data, offset, 4))[0]
        return raw >> 2, 4
    n = (first >> 2) + 4
    raw_bytes = _take(data, offset + 1, n)
    value = int.from_bytes(raw_bytes, "little")
    if value.bit_length() <= 30 or raw_bytes[-1] == 0:
        raise InvalidEncoding("Compact", offset, "non-canonical big-integer compact")
    return value, n + 1


def decode_int(data: bytes, offset: int, primitive: PrimitiveType) -> int:
    """Decode a fixed-width little-endian integer."""
    raw = _take(data, offset, primitive.size_bytes)  # type: ignore[arg-type]
    fmt = INT_FORMATS.get(primitive)
    if fmt is not None:
        return struct.unpack(fmt, raw)[0]
    return int.from_bytes(raw, "little", signed=primitive.is_signed)


class Decoder:
    """Decodes bytes against type ids of a registry.

    Internally every step takes and returns an absolute offset into the
    input; nothing is returned until the whole value is decoded. Values
    nested deeper than ``max_depth`` raise NestingTooDeep.
    """

    def __init__(self, registry: TypeRegistry, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.registry = registry
        self.max_depth = max_depth
        self._dispatch: dict[
            TypeKind, Callable[[bytes, int, TypeDefinition, int, int], tuple[Value, int]]
        ] = {
            TypeKind.PRIMITIVE: self._decode_primitive,
            TypeKind.COMPOSITE: self._decode_composite,
            TypeKind.VARIANT: self._decode_variant,
            TypeKind.SEQUENCE: self._decode_sequence,
            TypeKind.ARRAY: self._decode_array,
            TypeKind.TUPLE: self._decode_tuple,
            TypeKind.COMPACT: self._decode_compact,
        }

    def decode(self, data: bytes, offset: int, type_id: int) -> tuple[Value, int]:
        """Decode one value at ``offset``; return (value, bytes consumed)."""
        data = bytes(data)
        value, end = self._decode(data, offset, type_id)
        return value, end - offset

    def decode_all(self, data: bytes, type_id: int) -> Value:
        """Decode a value that must span the whole input."""
        data = bytes(data)
        value, end = self._decode(data, 0, type_id)
        if end != len(data):
            raise TrailingBytes(end, len(data))
        return value

    def decode_fields(
        self, data: bytes, offset: int, fields: tuple[FieldDefinition, ...], depth: int = 0
    ) -> tuple[tuple[tuple[str | None, Value], ...], int]:
        """Decode a field list in declared order; return (fields, end offset)."""
        values: list[tuple[str | None, Value]] = []
        for f in fields:
            value, offset = self._decode(data, offset, f.type_id, depth)
            values.append((f.name, value))
        return tuple(values), offset

    def _decode(self, data: bytes, offset: int, type_id: int, depth: int = 0) -> tuple[Value, int]:
        if depth > self.max_depth:
            raise NestingTooDeep(self._name(type_id), offset, self.max_depth)
        type_def = self.registry.resolve(type_id)
        return self._dispatch[type_def.kind](data, offset, type_def, type_id, depth + 1)

    def _name(self, type_id: int) -> str:
        return self.registry.display_name(type_id)

    def _decode_primitive(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, PrimitiveTypeDefinition)
        primitive = type_def.primitive

        if primitive == PrimitiveType.BOOL:
            byte = _take(data, offset, 1)[0]
            if byte > 1:
                raise InvalidEncoding("bool", offset, f"byte 0x{byte:02x} is neither 0 nor 1")
            return BoolValue(byte == 1), offset + 1
        if primitive == PrimitiveType.CHAR:
            code = struct.unpack("<I", _take(data, offset, 4))[0]
            if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
                raise InvalidEncoding("char", offset, f"0x{code:x} is not a Unicode scalar value")
            return CharValue(chr(code)), offset + 4
        if primitive in (PrimitiveType.STR, PrimitiveType.BYTES):
            raw, end = self._length_prefixed(data, offset)
            if primitive == PrimitiveType.BYTES:
                return BytesValue(raw), end
            try:
                return StrValue(raw.decode("utf-8")), end
            except UnicodeDecodeError as e:
                raise InvalidEncoding("str", offset, str(e)) from e

        size = primitive.size_bytes
        return IntValue(decode_int(data, offset, primitive), primitive), offset + size  # type: ignore[operator]

    def _length_prefixed(self, data: bytes, offset: int) -> tuple[bytes, int]:
        length, consumed = decode_compact(data, offset)
        start = offset + consumed
        return _take(data, start, length), start + length

    def _decode_composite(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, CompositeTypeDefinition)
        fields, end = self.decode_fields(data, offset, type_def.fields, depth)
        return CompositeValue(fields=fields, name=type_def.name), end

    def _decode_variant(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, VariantTypeDefinition)
        disc = _take(data, offset, 1)[0]
        variant = type_def.get_variant_by_discriminant(disc)
        if variant is None:
            raise InvalidDiscriminant(self._name(type_id), disc, offset)
        fields, end = self.decode_fields(data, offset + 1, variant.fields, depth)
        return VariantValue(name=variant.name, discriminant=disc, fields=fields), end

    def _check_length(self, data: bytes, offset: int, length: int, element_type: int) -> None:
        """Bound a length prefix by the input that is actually left.

        Zero-sized elements consume no input, so their count is capped by
        MAX_ZERO_SIZED_ELEMENTS instead.
        """
        min_size = self.registry.min_encoded_size(element_type)
        if min_size == 0:
            if length > MAX_ZERO_SIZED_ELEMENTS:
                raise InvalidEncoding(
                    self._name(element_type), offset,
                    f"{length} zero-sized elements exceed the limit of {MAX_ZERO_SIZED_ELEMENTS}",
                )
            return
        available = len(data) - offset
        if length * min_size > available:
            raise UnexpectedEndOfInput(offset, length * min_size, available)

    def _decode_sequence(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, SequenceTypeDefinition)
        if self.registry.is_byte_sequence(type_id):
            raw, end = self._length_prefixed(data, offset)
            return BytesValue(raw), end
        length, consumed = decode_compact(data, offset)
        offset += consumed
        self._check_length(data, offset, length, type_def.element_type)
        elements: list[Value] = []
        for _ in range(length):
            element, offset = self._decode(data, offset, type_def.element_type, depth)
            elements.append(element)
        return SeqValue(tuple(elements)), offset

    def _decode_array(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, ArrayTypeDefinition)
        if self.registry.is_byte_sequence(type_id):
            return BytesValue(_take(data, offset, type_def.length)), offset + type_def.length
        elements: list[Value] = []
        for _ in range(type_def.length):
            element, offset = self._decode(data, offset, type_def.element_type, depth)
            elements.append(element)
        return SeqValue(tuple(elements)), offset

    def _decode_tuple(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, TupleTypeDefinition)
        elements: list[Value] = []
        for element_type in type_def.elements:
            element, offset = self._decode(data, offset, element_type, depth)
            elements.append(element)
        return TupleValue(tuple(elements)), offset

    def _decode_compact(
        self, data: bytes, offset: int, type_def: TypeDefinition, type_id: int, depth: int
    ) -> tuple[Value, int]:
        assert isinstance(type_def, CompactTypeDefinition)
        inner = self.registry.resolve(type_def.inner_type)

        if isinstance(inner, TupleTypeDefinition) and not inner.elements:
            return TupleValue(), offset

        wrapper: CompositeTypeDefinition | None = None
        if isinstance(inner, CompositeTypeDefinition) and len(inner.fields) == 1:
            wrapper = inner
            inner = self.registry.resolve(inner.fields[0].type_id)
        if not isinstance(inner, PrimitiveTypeDefinition) or not inner.primitive.is_integer:
            raise InvalidEncoding(self._name(type_id), offset, "compact applies to integers only")

        number, consumed = decode_compact(data, offset)
        if number > inner.primitive.max_value:
            raise InvalidEncoding(
                self._name(type_id), offset,
                f"{number} exceeds {inner.primitive.value}",
            )
        value: Value = IntValue(number, inner.primitive)
        if wrapper is not None:
            value = CompositeValue(fields=((wrapper.fields[0].name, value),), name=wrapper.name)
        return value, offset + consumed


def decode(data: bytes, offset: int, type_id: int, registry: TypeRegistry) -> tuple[Value, int]:
    """Decode one value of ``type_id`` at ``offset``; return (value, bytes consumed)."""
    return Decoder(registry).decode(data, offset, type_id)


def decode_all(data: bytes, type_id: int, registry: TypeRegistry) -> Value:
    """Decode a value that must consume the whole input."""
    return Decoder(registry).decode_all(data, type_id)
