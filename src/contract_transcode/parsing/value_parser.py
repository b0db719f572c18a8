"""Interpret literal text or JSON as a value of an expected type.

Both input surfaces are turned into the same literal syntax tree and then
walked top-down together with the expected type definition. The expected
type is threaded through every recursive call because the same literal
means different things in different positions: ``0x01`` is an integer for
``u32`` and a single byte for ``Vec<u8>``, ``Foo`` is a case name for a
variant and bare text for ``str``.
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from contract_transcode.errors import LengthMismatch, LiteralParseError, UnknownVariantCase
from contract_transcode.parsing.literal_parser import (
    BoolLiteral,
    CallLiteral,
    CharLiteral,
    HexLiteral,
    Identifier,
    IntLiteral,
    ListLiteral,
    LiteralNode,
    LiteralParser,
    MapLiteral,
    NullLiteral,
    StringLiteral,
    TupleLiteral,
    json_to_node,
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
    VariantDefinition,
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

OPTION_NONE_LITERALS = ("None", "null")

# Deepest nesting of literals accepted below the top-level value
DEFAULT_MAX_DEPTH = 128


class ValueParser:
    """Parses text and JSON into values, guided by a type registry.

    Literals nested deeper than ``max_depth`` are rejected with a
    LiteralParseError rather than exhausting the interpreter stack.
    """

    def __init__(self, registry: TypeRegistry, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        self.registry = registry
        self.max_depth = max_depth
        self._literal_parser = LiteralParser()
        # PLY parser objects keep per-parse state
        self._lock = threading.Lock()
        self._dispatch: dict[TypeKind, Callable[[LiteralNode, TypeDefinition, int, int], Value]] = {
            TypeKind.PRIMITIVE: self._from_primitive,
            TypeKind.COMPOSITE: self._from_composite,
            TypeKind.VARIANT: self._from_variant,
            TypeKind.SEQUENCE: self._from_sequence,
            TypeKind.ARRAY: self._from_array,
            TypeKind.TUPLE: self._from_tuple,
            TypeKind.COMPACT: self._from_compact,
        }

    def parse(self, text: str, type_id: int) -> Value:
        """Parse literal text as a value of the given type."""
        expected = self.registry.display_name(type_id)
        with self._lock:
            node = self._literal_parser.parse(text, expected)
        return self.interpret(node, type_id)

    def parse_json(self, obj: Any, type_id: int) -> Value:
        """Parse a JSON-compatible Python object as a value of the given type."""
        try:
            node = json_to_node(obj)
        except RecursionError:
            raise LiteralParseError(
                "", self.registry.display_name(type_id), None, "JSON input is nested too deeply"
            ) from None
        return self.interpret(node, type_id)

    def interpret(self, node: LiteralNode, type_id: int, depth: int = 0) -> Value:
        """Interpret a literal syntax tree against a type id.

        ``depth`` is the nesting level of ``node`` below the top-level value.
        """
        if depth > self.max_depth:
            raise self._error(node, type_id, f"nested more than {self.max_depth} levels deep")
        type_def = self.registry.resolve(type_id)
        return self._dispatch[type_def.kind](node, type_def, type_id, depth + 1)

    def _error(self, node: LiteralNode, type_id: int, reason: str | None = None) -> LiteralParseError:
        return LiteralParseError(node.text, self.registry.display_name(type_id), node.span, reason)

    # ---- Primitives ----

    def _from_primitive(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, PrimitiveTypeDefinition)
        primitive = type_def.primitive

        if primitive == PrimitiveType.BOOL:
            if isinstance(node, BoolLiteral):
                return BoolValue(node.value)
            if isinstance(node, Identifier) and node.name in ("true", "false"):
                return BoolValue(node.name == "true")
            raise self._error(node, type_id, "expected true or false")
        if primitive == PrimitiveType.CHAR:
            text = None
            if isinstance(node, (CharLiteral, StringLiteral)):
                text = node.value
            elif isinstance(node, Identifier):
                text = node.name
            if text is None or len(text) != 1:
                raise self._error(node, type_id, "expected a single character")
            return CharValue(text)
        if primitive == PrimitiveType.STR:
            if isinstance(node, StringLiteral):
                return StrValue(node.value)
            if isinstance(node, Identifier):
                return StrValue(node.name)
            raise self._error(node, type_id, "expected a string")
        if primitive == PrimitiveType.BYTES:
            return BytesValue(self._bytes(node, type_id))

        number = self._integer(node, type_id)
        if not primitive.min_value <= number <= primitive.max_value:
            raise self._error(
                node, type_id,
                f"{number} is out of range [{primitive.min_value}, {primitive.max_value}]",
            )
        return IntValue(number, primitive)

    def _integer(self, node: LiteralNode, type_id: int) -> int:
        """Decimal or hex integer; JSON may carry big numbers as strings."""
        if isinstance(node, IntLiteral):
            return node.value
        if isinstance(node, HexLiteral):
            if not node.digits:
                raise self._error(node, type_id, "hex literal has no digits")
            return int(node.digits, 16)
        if isinstance(node, StringLiteral):
            try:
                return int(node.value.replace("_", ""), 0)
            except ValueError:
                raise self._error(node, type_id, "expected an integer") from None
        raise self._error(node, type_id, "expected an integer")

    def _bytes(self, node: LiteralNode, type_id: int) -> bytes:
        """``0x`` hex, a JSON hex string, or a list of byte values."""
        digits: str | None = None
        if isinstance(node, HexLiteral):
            digits = node.digits
        elif isinstance(node, StringLiteral) and node.value[:2] in ("0x", "0X"):
            digits = node.value[2:]
        if digits is not None:
            if len(digits) % 2:
                raise self._error(node, type_id, "hex literal has an odd number of digits")
            try:
                return bytes.fromhex(digits)
            except ValueError:
                raise self._error(node, type_id, "invalid hex digits") from None
        if isinstance(node, ListLiteral):
            result = bytearray()
            for item in node.items:
                number = self._integer(item, type_id)
                if not 0 <= number <= 0xFF:
                    raise self._error(item, type_id, f"byte value {number} is out of range")
                result.append(number)
            return bytes(result)
        raise self._error(node, type_id, "expected 0x-prefixed hex bytes")

    # ---- Sequences ----

    def _from_sequence(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, SequenceTypeDefinition)
        if self.registry.is_byte_sequence(type_id):
            return BytesValue(self._bytes(node, type_id))
        if not isinstance(node, ListLiteral):
            raise self._error(node, type_id, "expected a [..] list")
        return SeqValue(tuple(self.interpret(item, type_def.element_type, depth) for item in node.items))

    def _from_array(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, ArrayTypeDefinition)
        if self.registry.is_byte_sequence(type_id):
            data = self._bytes(node, type_id)
            if len(data) != type_def.length:
                raise LengthMismatch(
                    node.text, self.registry.display_name(type_id),
                    type_def.length, len(data), node.span,
                )
            return BytesValue(data)
        if not isinstance(node, ListLiteral):
            raise self._error(node, type_id, "expected a [..] list")
        if len(node.items) != type_def.length:
            raise LengthMismatch(
                node.text, self.registry.display_name(type_id),
                type_def.length, len(node.items), node.span,
            )
        return SeqValue(tuple(self.interpret(item, type_def.element_type, depth) for item in node.items))

    def _from_tuple(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, TupleTypeDefinition)
        if not isinstance(node, (TupleLiteral, ListLiteral)):
            if not type_def.elements and isinstance(node, NullLiteral):
                return TupleValue()
            raise self._error(node, type_id, "expected a (..) tuple")
        if len(node.items) != len(type_def.elements):
            raise self._error(
                node, type_id,
                f"expected {len(type_def.elements)} elements, got {len(node.items)}",
            )
        return TupleValue(tuple(
            self.interpret(item, element_type, depth)
            for item, element_type in zip(node.items, type_def.elements)
        ))

    # ---- Composites and variants ----

    def _fields(
        self,
        node: LiteralNode,
        fields: tuple[FieldDefinition, ...],
        items: list[LiteralNode] | None,
        entries: list[tuple[str, LiteralNode]] | None,
        type_id: int,
        depth: int,
    ) -> tuple[tuple[str | None, Value], ...]:
        """Interpret positional items or named entries against a field list."""
        if entries is not None:
            names = [f.name for f in fields]
            if None in names:
                raise self._error(node, type_id, "fields are unnamed; use (..) instead of {..}")
            given = dict(entries)
            unknown = [name for name in given if name not in names]
            if unknown:
                raise self._error(node, type_id, f"unknown fields {unknown}")
            missing = [name for name in names if name not in given]
            if missing:
                raise self._error(node, type_id, f"missing fields {missing}")
            return tuple((f.name, self.interpret(given[f.name], f.type_id, depth)) for f in fields)  # type: ignore[index]

        items = items or []
        if len(items) != len(fields):
            raise self._error(node, type_id, f"expected {len(fields)} fields, got {len(items)}")
        return tuple((f.name, self.interpret(item, f.type_id, depth)) for f, item in zip(fields, items))

    def _from_composite(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, CompositeTypeDefinition)
        name = type_def.name
        fields = type_def.fields

        if isinstance(node, MapLiteral) and (type_def.has_named_fields or not node.entries):
            self._check_name(node, node.name, name, type_id)
            values = self._fields(node, fields, None, node.entries if fields else None, type_id, depth)
            return CompositeValue(fields=values, name=name)
        if isinstance(node, CallLiteral) and node.name.split("::")[-1] == name and not type_def.has_named_fields:
            return CompositeValue(fields=self._fields(node, fields, node.items, None, type_id, depth), name=name)
        if isinstance(node, (TupleLiteral, ListLiteral)) and len(fields) != 1:
            return CompositeValue(fields=self._fields(node, fields, node.items, None, type_id, depth), name=name)
        if isinstance(node, TupleLiteral) and not type_def.has_named_fields:
            return CompositeValue(fields=self._fields(node, fields, node.items, None, type_id, depth), name=name)
        if not fields and isinstance(node, (Identifier, NullLiteral)):
            if isinstance(node, Identifier):
                self._check_name(node, node.name, name, type_id)
            return CompositeValue(name=name)

        # A single-field wrapper accepts its inner value directly
        if len(fields) == 1:
            inner = self.interpret(node, fields[0].type_id, depth)
            return CompositeValue(fields=((fields[0].name, inner),), name=name)
        raise self._error(node, type_id, "expected {..} or (..)")

    def _check_name(self, node: LiteralNode, given: str | None, name: str | None, type_id: int) -> None:
        if given is not None and name is not None and given.split("::")[-1] != name:
            raise self._error(node, type_id, f"literal names '{given}', expected '{name}'")

    def _lookup_case(
        self, node: LiteralNode, type_def: VariantTypeDefinition, case: str, type_id: int
    ) -> VariantDefinition:
        variant = type_def.get_variant(case.split("::")[-1], ignore_case=True)
        if variant is None:
            raise UnknownVariantCase(
                node.text, self.registry.display_name(type_id), case,
                [v.name for v in type_def.variants], node.span,
            )
        return variant

    def _case_value(
        self,
        node: LiteralNode,
        variant: VariantDefinition,
        type_id: int,
        depth: int,
        items: list[LiteralNode] | None = None,
        entries: list[tuple[str, LiteralNode]] | None = None,
    ) -> VariantValue:
        fields = self._fields(node, variant.fields, items, entries, type_id, depth)
        return VariantValue(name=variant.name, discriminant=variant.discriminant, fields=fields)

    def _from_variant(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, VariantTypeDefinition)

        if type_def.is_option:
            if isinstance(node, NullLiteral) or (
                isinstance(node, Identifier) and node.name in OPTION_NONE_LITERALS
            ):
                return self._case_value(node, type_def.get_variant("None"), type_id, depth)  # type: ignore[arg-type]

        if isinstance(node, (Identifier, StringLiteral)):
            case = node.name if isinstance(node, Identifier) else node.value
            variant = type_def.get_variant(case.split("::")[-1], ignore_case=True)
            if variant is not None or not type_def.is_option:
                variant = self._lookup_case(node, type_def, case, type_id)
                return self._case_value(node, variant, type_id, depth, items=[])
        elif isinstance(node, CallLiteral):
            variant = self._lookup_case(node, type_def, node.name, type_id)
            return self._case_value(node, variant, type_id, depth, items=node.items)
        elif isinstance(node, MapLiteral) and node.name is not None:
            variant = self._lookup_case(node, type_def, node.name, type_id)
            return self._case_value(node, variant, type_id, depth, entries=node.entries)
        elif isinstance(node, MapLiteral) and len(node.entries) == 1 and (
            type_def.get_variant(node.entries[0][0], ignore_case=True) is not None
            or not type_def.is_option
        ):
            # JSON form {"Case": payload}
            case, payload = node.entries[0]
            variant = self._lookup_case(node, type_def, case, type_id)
            return self._json_case_value(node, variant, payload, type_id, depth)

        if type_def.is_option:
            # A bare value stands for Some(value)
            some = type_def.get_variant("Some")
            return self._case_value(node, some, type_id, depth, items=[node])  # type: ignore[arg-type]
        raise self._error(node, type_id, "expected a variant case such as Name or Name(..)")

    def _json_case_value(
        self,
        node: LiteralNode,
        variant: VariantDefinition,
        payload: LiteralNode,
        type_id: int,
        depth: int,
    ) -> VariantValue:
        if not variant.fields:
            if isinstance(payload, NullLiteral) or (
                isinstance(payload, (ListLiteral, MapLiteral))
                and not (payload.items if isinstance(payload, ListLiteral) else payload.entries)
            ):
                return self._case_value(node, variant, type_id, depth, items=[])
            raise self._error(payload, type_id, f"case '{variant.name}' has no fields")
        if isinstance(payload, MapLiteral) and variant.has_named_fields:
            return self._case_value(node, variant, type_id, depth, entries=payload.entries)
        if isinstance(payload, ListLiteral) and len(variant.fields) != 1:
            return self._case_value(node, variant, type_id, depth, items=payload.items)
        return self._case_value(node, variant, type_id, depth, items=[payload])

    # ---- Compact ----

    def _from_compact(self, node: LiteralNode, type_def: TypeDefinition, type_id: int, depth: int) -> Value:
        assert isinstance(type_def, CompactTypeDefinition)
        return self.interpret(node, type_def.inner_type, depth)


def parse(text: str, type_id: int, registry: TypeRegistry) -> Value:
    """Parse literal text as a value of ``type_id``."""
    return ValueParser(registry).parse(text, type_id)


def parse_json(obj: Any, type_id: int, registry: TypeRegistry) -> Value:
    """Parse a JSON-compatible object as a value of ``type_id``."""
    return ValueParser(registry).parse_json(obj, type_id)
