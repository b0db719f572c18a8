"""Type definitions for the contract type registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Mapping

from contract_transcode.errors import DanglingTypeReference, TypeNotFound


class PrimitiveType(Enum):
    """Built-in primitive types supported by the metadata format."""

    BOOL = "bool"
    CHAR = "char"
    STR = "str"
    BYTES = "bytes"
    U8 = "u8"
    U16 = "u16"
    U32 = "u32"
    U64 = "u64"
    U128 = "u128"
    U256 = "u256"
    I8 = "i8"
    I16 = "i16"
    I32 = "i32"
    I64 = "i64"
    I128 = "i128"
    I256 = "i256"

    @property
    def size_bytes(self) -> int | None:
        """Return the fixed encoded size, or None for length-prefixed types."""
        sizes = {
            PrimitiveType.BOOL: 1,
            PrimitiveType.CHAR: 4,  # Unicode code point as u32
            PrimitiveType.U8: 1,
            PrimitiveType.I8: 1,
            PrimitiveType.U16: 2,
            PrimitiveType.I16: 2,
            PrimitiveType.U32: 4,
            PrimitiveType.I32: 4,
            PrimitiveType.U64: 8,
            PrimitiveType.I64: 8,
            PrimitiveType.U128: 16,
            PrimitiveType.I128: 16,
            PrimitiveType.U256: 32,
            PrimitiveType.I256: 32,
        }
        return sizes.get(self)

    @property
    def is_integer(self) -> bool:
        return self.value[0] in "ui"

    @property
    def is_signed(self) -> bool:
        return self.value[0] == "i"

    @property
    def bits(self) -> int:
        """Bit width of an integer type."""
        if not self.is_integer:
            raise TypeError(f"{self.value} is not an integer type")
        return int(self.value[1:])

    @property
    def min_value(self) -> int:
        if self.is_signed:
            return -(1 << (self.bits - 1))
        return 0

    @property
    def max_value(self) -> int:
        if self.is_signed:
            return (1 << (self.bits - 1)) - 1
        return (1 << self.bits) - 1


# Mapping from metadata primitive names to PrimitiveType enum values
PRIMITIVE_TYPE_NAMES: dict[str, PrimitiveType] = {pt.value: pt for pt in PrimitiveType}


class TypeKind(Enum):
    """The shape of a type definition; dispatch tables are keyed by this."""

    PRIMITIVE = "primitive"
    COMPOSITE = "composite"
    VARIANT = "variant"
    SEQUENCE = "sequence"
    ARRAY = "array"
    TUPLE = "tuple"
    COMPACT = "compact"


@dataclass(frozen=True)
class TypeParameter:
    """A generic parameter of a type, e.g. ``T`` of ``Option<T>``."""

    name: str
    type_id: int | None = None


@dataclass(frozen=True)
class TypeDefinition:
    """Base class for all type definitions.

    ``path`` and ``params`` come from the metadata and are only used to
    render readable names; the encoding depends solely on the shape.
    """

    path: tuple[str, ...] = field(default=(), kw_only=True)
    params: tuple[TypeParameter, ...] = field(default=(), kw_only=True)

    @property
    def kind(self) -> TypeKind:
        raise NotImplementedError

    def references(self) -> list[int]:
        """Return the type ids this definition refers to."""
        return []

    @property
    def name(self) -> str | None:
        """Return the last path segment, if the type has a path."""
        return self.path[-1] if self.path else None


@dataclass(frozen=True)
class PrimitiveTypeDefinition(TypeDefinition):
    """Type definition wrapping a primitive type."""

    primitive: PrimitiveType

    @property
    def kind(self) -> TypeKind:
        return TypeKind.PRIMITIVE


@dataclass(frozen=True)
class FieldDefinition:
    """A field of a composite type or of a variant case."""

    name: str | None
    type_id: int
    type_name: str | None = None


def fields_are_named(fields: tuple[FieldDefinition, ...]) -> bool:
    """True if the fields are struct-like (all named and at least one)."""
    return bool(fields) and all(f.name is not None for f in fields)


@dataclass(frozen=True)
class CompositeTypeDefinition(TypeDefinition):
    """Type definition for structs and tuple structs."""

    fields: tuple[FieldDefinition, ...] = ()

    @property
    def kind(self) -> TypeKind:
        return TypeKind.COMPOSITE

    @property
    def has_named_fields(self) -> bool:
        return fields_are_named(self.fields)

    def references(self) -> list[int]:
        return [f.type_id for f in self.fields]

    def get_field(self, name: str) -> FieldDefinition | None:
        """Get a field by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class VariantDefinition:
    """A single case within a variant type."""

    name: str
    discriminant: int
    fields: tuple[FieldDefinition, ...] = ()

    @property
    def has_named_fields(self) -> bool:
        return fields_are_named(self.fields)


@dataclass(frozen=True)
class VariantTypeDefinition(TypeDefinition):
    """Type definition for enums, including Option and Result."""

    variants: tuple[VariantDefinition, ...] = ()

    @property
    def kind(self) -> TypeKind:
        return TypeKind.VARIANT

    def references(self) -> list[int]:
        return [f.type_id for v in self.variants for f in v.fields]

    @property
    def is_option(self) -> bool:
        """True for Option-shaped variants: ``None`` and a one-field ``Some``."""
        names = {v.name: v for v in self.variants}
        if set(names) != {"None", "Some"}:
            return False
        return not names["None"].fields and len(names["Some"].fields) == 1

    def get_variant(self, name: str, ignore_case: bool = False) -> VariantDefinition | None:
        """Get a case by name; an exact match wins over a case-insensitive one."""
        for v in self.variants:
            if v.name == name:
                return v
        if ignore_case:
            lowered = name.lower()
            for v in self.variants:
                if v.name.lower() == lowered:
                    return v
        return None

    def get_variant_by_discriminant(self, disc: int) -> VariantDefinition | None:
        for v in self.variants:
            if v.discriminant == disc:
                return v
        return None


@dataclass(frozen=True)
class SequenceTypeDefinition(TypeDefinition):
    """Variable-length sequence, encoded with a compact length prefix."""

    element_type: int

    @property
    def kind(self) -> TypeKind:
        return TypeKind.SEQUENCE

    def references(self) -> list[int]:
        return [self.element_type]


@dataclass(frozen=True)
class ArrayTypeDefinition(TypeDefinition):
    """Fixed-length array; the length is part of the type."""

    element_type: int
    length: int

    @property
    def kind(self) -> TypeKind:
        return TypeKind.ARRAY

    def references(self) -> list[int]:
        return [self.element_type]


@dataclass(frozen=True)
class TupleTypeDefinition(TypeDefinition):
    """Anonymous tuple; the empty tuple is the unit type."""

    elements: tuple[int, ...] = ()

    @property
    def kind(self) -> TypeKind:
        return TypeKind.TUPLE

    def references(self) -> list[int]:
        return list(self.elements)


@dataclass(frozen=True)
class CompactTypeDefinition(TypeDefinition):
    """Marks an integer type for variable-length encoding."""

    inner_type: int

    @property
    def kind(self) -> TypeKind:
        return TypeKind.COMPACT

    def references(self) -> list[int]:
        return [self.inner_type]


class TypeRegistry:
    """Arena of type definitions addressed by numeric type id.

    The registry is validated once on construction and never mutated
    afterwards, so it can be shared freely between threads.
    """

    def __init__(
        self, types: Mapping[int, TypeDefinition] | Iterable[tuple[int, TypeDefinition]]
    ) -> None:
        items = types.items() if isinstance(types, Mapping) else types
        self._types: dict[int, TypeDefinition] = dict(items)
        self._validate()
        self._min_sizes = self._compute_min_sizes()

    def _validate(self) -> None:
        """Reject definitions that reference ids missing from the registry."""
        for type_id, type_def in self._types.items():
            for ref in type_def.references():
                if ref not in self._types:
                    raise DanglingTypeReference(type_id, ref)
            for param in type_def.params:
                if param.type_id is not None and param.type_id not in self._types:
                    raise DanglingTypeReference(type_id, param.type_id)

    def resolve(self, type_id: int) -> TypeDefinition:
        """Get a type by id, raising TypeNotFound if absent."""
        type_def = self._types.get(type_id)
        if type_def is None:
            raise TypeNotFound(type_id)
        return type_def

    def get(self, type_id: int) -> TypeDefinition | None:
        """Get a type by id."""
        return self._types.get(type_id)

    def min_encoded_size(self, type_id: int) -> int:
        """Lower bound on the encoded size of any value of the type."""
        if type_id not in self._types:
            raise TypeNotFound(type_id)
        return self._min_sizes[type_id]

    def _compute_min_sizes(self) -> dict[int, int]:
        """Smallest number of bytes any value of each type can encode to.

        Computed as a fixed point starting from zero. Every round yields a
        valid lower bound, so the iteration is capped for self-containing
        types that would otherwise grow without limit.
        """
        sizes = {type_id: 0 for type_id in self._types}
        for _ in range(len(self._types) + 1):
            changed = False
            for type_id, type_def in self._types.items():
                size = self._min_size_of(type_def, sizes)
                if size != sizes[type_id]:
                    sizes[type_id] = size
                    changed = True
            if not changed:
                break
        return sizes

    @staticmethod
    def _min_size_of(type_def: TypeDefinition, sizes: dict[int, int]) -> int:
        if isinstance(type_def, PrimitiveTypeDefinition):
            return type_def.primitive.size_bytes or 1  # compact length prefix
        if isinstance(type_def, (SequenceTypeDefinition, CompactTypeDefinition)):
            return 1
        if isinstance(type_def, ArrayTypeDefinition):
            return type_def.length * sizes[type_def.element_type]
        if isinstance(type_def, TupleTypeDefinition):
            return sum(sizes[t] for t in type_def.elements)
        if isinstance(type_def, CompositeTypeDefinition):
            return sum(sizes[f.type_id] for f in type_def.fields)
        if isinstance(type_def, VariantTypeDefinition):
            payloads = [sum(sizes[f.type_id] for f in v.fields) for v in type_def.variants]
            return 1 + (min(payloads) if payloads else 0)
        raise TypeError(f"Unknown type definition: {type_def!r}")

    def display_name(self, type_id: int) -> str:
        """Render a readable name such as ``Option<u32>`` or ``[u8; 32]``."""
        return self._display_name(type_id, set())

    def _display_name(self, type_id: int, visiting: set[int]) -> str:
        type_def = self.resolve(type_id)
        if type_id in visiting:
            return type_def.name or f"#{type_id}"
        visiting = visiting | {type_id}

        if type_def.path:
            name = type_def.path[-1]
            args = [
                self._display_name(p.type_id, visiting) if p.type_id is not None else p.name
                for p in type_def.params
            ]
            return f"{name}<{', '.join(args)}>" if args else name
        if isinstance(type_def, PrimitiveTypeDefinition):
            return type_def.primitive.value
        if isinstance(type_def, SequenceTypeDefinition):
            return f"Vec<{self._display_name(type_def.element_type, visiting)}>"
        if isinstance(type_def, ArrayTypeDefinition):
            return f"[{self._display_name(type_def.element_type, visiting)}; {type_def.length}]"
        if isinstance(type_def, TupleTypeDefinition):
            inner = ", ".join(self._display_name(t, visiting) for t in type_def.elements)
            return f"({inner},)" if len(type_def.elements) == 1 else f"({inner})"
        if isinstance(type_def, CompactTypeDefinition):
            return f"Compact<{self._display_name(type_def.inner_type, visiting)}>"
        return f"#{type_id}"

    def is_byte_sequence(self, type_id: int) -> bool:
        """True for sequences/arrays of ``u8`` and the ``bytes`` primitive."""
        type_def = self.resolve(type_id)
        if isinstance(type_def, PrimitiveTypeDefinition):
            return type_def.primitive == PrimitiveType.BYTES
        if isinstance(type_def, (SequenceTypeDefinition, ArrayTypeDefinition)):
            element = self.resolve(type_def.element_type)
            return (
                isinstance(element, PrimitiveTypeDefinition)
                and element.primitive == PrimitiveType.U8
            )
        return False

    def list_types(self) -> list[int]:
        """List all registered type ids."""
        return list(self._types.keys())

    def __contains__(self, type_id: object) -> bool:
        return type_id in self._types

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self) -> Iterator[int]:
        return iter(self._types)
