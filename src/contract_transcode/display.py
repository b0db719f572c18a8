"""Render values as literal text or as JSON-friendly Python objects."""

from __future__ import annotations

import json
from typing import Any

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


def _format_fields(fields: tuple[tuple[str | None, Value], ...], indent: int | None, depth: int) -> str:
    """Format fields as ``{ a: 1 }`` when named, ``(1, 2)`` otherwise."""
    named = bool(fields) and all(name is not None for name, _ in fields)
    if named:
        parts = [f"{name}: {format_value(v, indent, depth + 1)}" for name, v in fields]
        return _wrap("{ ", " }", parts, indent, depth)
    parts = [format_value(v, indent, depth + 1) for _, v in fields]
    return _wrap("(", ")", parts, indent, depth)


def _wrap(open_: str, close: str, parts: list[str], indent: int | None, depth: int) -> str:
    if not parts:
        return open_.strip() + close.strip()
    if indent is None:
        return f"{open_}{', '.join(parts)}{close}"
    pad = " " * (indent * (depth + 1))
    end_pad = " " * (indent * depth)
    body = ",\n".join(f"{pad}{p}" for p in parts)
    return f"{open_.strip()}\n{body}\n{end_pad}{close.strip()}"


def format_value(value: Value, indent: int | None = None, depth: int = 0) -> str:
    """Format a value as literal text that the value parser accepts.

    With ``indent`` set, nested structures are spread over several lines.
    """
    if isinstance(value, BoolValue):
        return "true" if value.value else "false"
    if isinstance(value, IntValue):
        return str(value.value)
    if isinstance(value, CharValue):
        return "'" + json.dumps(value.value)[1:-1].replace("'", "\\'").replace('\\"', '"') + "'"
    if isinstance(value, StrValue):
        return json.dumps(value.value, ensure_ascii=False)
    if isinstance(value, BytesValue):
        return "0x" + value.value.hex()
    if isinstance(value, SeqValue):
        return _wrap("[", "]", [format_value(e, indent, depth + 1) for e in value.elements], indent, depth)
    if isinstance(value, TupleValue):
        return _wrap("(", ")", [format_value(e, indent, depth + 1) for e in value.elements], indent, depth)
    if isinstance(value, CompositeValue):
        body = _format_fields(value.fields, indent, depth)
        if value.name and value.fields:
            return f"{value.name} {body}" if value.is_named else f"{value.name}{body}"
        return body
    if isinstance(value, VariantValue):
        if not value.fields:
            return value.name
        body = _format_fields(value.fields, indent, depth)
        return f"{value.name} {body}" if value.is_named else f"{value.name}{body}"
    raise TypeError(f"Cannot format {type(value).__name__}")


def to_plain(value: Value) -> Any:
    """Convert a value to JSON-compatible Python objects.

    Bytes become ``0x`` hex strings, variants become ``"Case"`` or
    ``{"Case": payload}``, matching what the JSON parser accepts.
    """
    if isinstance(value, (BoolValue, IntValue, CharValue, StrValue)):
        return value.value
    if isinstance(value, BytesValue):
        return "0x" + value.value.hex()
    if isinstance(value, (SeqValue, TupleValue)):
        return [to_plain(e) for e in value.elements]
    if isinstance(value, CompositeValue):
        return _plain_fields(value.fields)
    if isinstance(value, VariantValue):
        if not value.fields:
            return value.name
        if len(value.fields) == 1 and value.fields[0][0] is None:
            return {value.name: to_plain(value.fields[0][1])}
        return {value.name: _plain_fields(value.fields)}
    raise TypeError(f"Cannot convert {type(value).__name__}")


def _plain_fields(fields: tuple[tuple[str | None, Value], ...]) -> Any:
    if fields and all(name is not None for name, _ in fields):
        return {name: to_plain(v) for name, v in fields}
    return [to_plain(v) for _, v in fields]
