"""Load a contract metadata document into a type registry and contract spec.

Understands the ink! metadata layout: a top-level ``types`` table of
``{"id": n, "type": {"def": {...}, "path": [...], "params": [...]}}``
entries and a ``spec`` object with ``constructors``, ``messages`` and
``events``. Version 4 and 5 documents carry these at the top level; older
documents wrap them in a ``V1``/``V2``/``V3`` key.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from contract_transcode.contract import (
    SELECTOR_SIZE,
    ArgumentSpec,
    CallEntry,
    ContractSpec,
    EventEntry,
    EventFieldSpec,
    compute_selector,
)
from contract_transcode.errors import MetadataError
from contract_transcode.types import (
    PRIMITIVE_TYPE_NAMES,
    ArrayTypeDefinition,
    CompactTypeDefinition,
    CompositeTypeDefinition,
    FieldDefinition,
    PrimitiveTypeDefinition,
    SequenceTypeDefinition,
    TupleTypeDefinition,
    TypeDefinition,
    TypeParameter,
    TypeRegistry,
    VariantDefinition,
    VariantTypeDefinition,
)

LOGGER = logging.getLogger(__name__)

LEGACY_VERSION_KEYS = ("V3", "V2", "V1")


def load_metadata_file(path: Path | str) -> ContractSpec:
    """Load a contract spec from a metadata (or ``.contract`` bundle) JSON file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Metadata file not found: {path}")
    with open(path) as f:
        try:
            document = json.load(f)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Invalid JSON in {path}: {e}") from e
    LOGGER.debug("Loading contract metadata from %s", path)
    return load_metadata(document)


def load_metadata(document: dict[str, Any] | str) -> ContractSpec:
    """Build a contract spec from a parsed (or raw JSON) metadata document."""
    if isinstance(document, str):
        try:
            document = json.loads(document)
        except json.JSONDecodeError as e:
            raise MetadataError(f"Invalid metadata JSON: {e}") from e
    if not isinstance(document, dict):
        raise MetadataError("Metadata document must be a JSON object")

    body, version = _unwrap(document)
    registry = load_registry(body.get("types", []))
    spec_data = body.get("spec")
    if not isinstance(spec_data, dict):
        raise MetadataError("Metadata document has no 'spec' object")

    try:
        constructors = [
            _call_entry(c, is_constructor=True) for c in spec_data.get("constructors", [])
        ]
        messages = [_call_entry(m, is_constructor=False) for m in spec_data.get("messages", [])]
        events = [
            _event_entry(e, position) for position, e in enumerate(spec_data.get("events", []))
        ]
    except (KeyError, TypeError, AttributeError) as e:
        raise MetadataError(f"Malformed spec entry ({e!r})") from e

    contract_info = document.get("contract")
    if not isinstance(contract_info, dict):
        contract_info = {}
    spec = ContractSpec(
        registry,
        constructors=constructors,
        messages=messages,
        events=events,
        name=contract_info.get("name"),
        version=version,
    )
    LOGGER.debug(
        "Loaded metadata v%s: %d types, %d constructors, %d messages, %d events",
        version, len(registry), len(constructors), len(messages), len(events),
    )
    return spec


def _unwrap(document: dict[str, Any]) -> tuple[dict[str, Any], str]:
    """Return the versioned body of the document and its version."""
    if "spec" in document and "types" in document:
        return document, str(document.get("version", "4"))
    for key in LEGACY_VERSION_KEYS:
        body = document.get(key)
        if isinstance(body, dict):
            return body, key[1:]
    raise MetadataError(
        "Unrecognised metadata document: expected 'types' and 'spec' "
        f"or one of {list(LEGACY_VERSION_KEYS)}"
    )


# ---- Types ----


def load_registry(types_data: list[dict[str, Any]]) -> TypeRegistry:
    """Build a type registry from the metadata type table.

    Entries without an ``id`` are numbered by position, as in early
    metadata versions.
    """
    if not isinstance(types_data, list):
        raise MetadataError("'types' must be a list")
    types: dict[int, TypeDefinition] = {}
    for position, entry in enumerate(types_data):
        if not isinstance(entry, dict):
            raise MetadataError(f"Type table entry {position} must be an object")
        type_id = entry.get("id", position)
        if type_id in types:
            raise MetadataError(f"Type {type_id} is defined twice")
        try:
            types[type_id] = _type_from_spec(type_id, entry.get("type", entry))
        except (KeyError, TypeError, AttributeError) as e:
            raise MetadataError(f"Type {type_id}: malformed definition ({e!r})") from e
    return TypeRegistry(types)


def _type_from_spec(type_id: int, spec: dict[str, Any]) -> TypeDefinition:
    """Create a type definition from one entry of the type table."""
    definition = spec.get("def")
    if not isinstance(definition, dict) or len(definition) != 1:
        raise MetadataError(f"Type {type_id}: 'def' must have exactly one key")
    (kind, body), = definition.items()
    meta: dict[str, Any] = {
        "path": tuple(spec.get("path", ())),
        "params": tuple(
            TypeParameter(name=p.get("name", ""), type_id=p.get("type"))
            for p in spec.get("params", ())
        ),
    }

    if kind == "primitive":
        primitive = PRIMITIVE_TYPE_NAMES.get(body)
        if primitive is None:
            raise MetadataError(f"Type {type_id}: unknown primitive '{body}'")
        return PrimitiveTypeDefinition(primitive=primitive, **meta)
    elif kind == "composite":
        return CompositeTypeDefinition(fields=_fields((body or {}).get("fields", [])), **meta)
    elif kind == "variant":
        variants = []
        seen: set[int] = set()
        for position, v in enumerate((body or {}).get("variants", [])):
            index = v.get("index", position)
            if not 0 <= index <= 0xFF:
                raise MetadataError(f"Type {type_id}: discriminant {index} does not fit in a byte")
            if index in seen:
                raise MetadataError(f"Type {type_id}: discriminant {index} used twice")
            seen.add(index)
            variants.append(VariantDefinition(
                name=v["name"], discriminant=index, fields=_fields(v.get("fields", []))
            ))
        return VariantTypeDefinition(variants=tuple(variants), **meta)
    elif kind == "sequence":
        return SequenceTypeDefinition(element_type=body["type"], **meta)
    elif kind == "array":
        return ArrayTypeDefinition(element_type=body["type"], length=body["len"], **meta)
    elif kind == "tuple":
        return TupleTypeDefinition(elements=tuple(body), **meta)
    elif kind == "compact":
        return CompactTypeDefinition(inner_type=body["type"], **meta)
    else:
        raise MetadataError(f"Type {type_id}: unsupported type definition '{kind}'")


def _fields(fields_data: list[dict[str, Any]]) -> tuple[FieldDefinition, ...]:
    return tuple(
        FieldDefinition(name=f.get("name"), type_id=f["type"], type_name=f.get("typeName"))
        for f in fields_data
    )


# ---- Spec entries ----


def _label(entry: dict[str, Any]) -> str:
    """Entry label; early versions used ``name`` and path arrays."""
    label = entry.get("label", entry.get("name"))
    if isinstance(label, list):
        label = "::".join(label)
    if not isinstance(label, str) or not label:
        raise MetadataError(f"Entry without a label: {entry}")
    return label


def _type_ref(ref: Any) -> tuple[int, str | None]:
    """A ``{"type": id, "displayName": [...]}`` reference, or a bare id."""
    if isinstance(ref, int):
        return ref, None
    if isinstance(ref, dict) and isinstance(ref.get("type"), int):
        display = ref.get("displayName") or ref.get("display_name")
        return ref["type"], "::".join(display) if display else None
    raise MetadataError(f"Invalid type reference: {ref!r}")


def _selector(entry: dict[str, Any], label: str) -> bytes:
    raw = entry.get("selector")
    if raw is None:
        return compute_selector(label)
    try:
        selector = bytes.fromhex(raw[2:] if raw.startswith(("0x", "0X")) else raw)
    except (ValueError, AttributeError) as e:
        raise MetadataError(f"'{label}': invalid selector {raw!r}") from e
    if len(selector) != SELECTOR_SIZE:
        raise MetadataError(f"'{label}': selector {raw!r} is not {SELECTOR_SIZE} bytes")
    return selector


def _call_entry(entry: dict[str, Any], is_constructor: bool) -> CallEntry:
    label = _label(entry)
    args = []
    for arg in entry.get("args", []):
        type_id, display = _type_ref(arg["type"])
        args.append(ArgumentSpec(label=_label(arg), type_id=type_id, display_name=display))

    return_type = None
    return_ref = entry.get("returnType", entry.get("return_type"))
    if return_ref is not None:
        return_type, _ = _type_ref(return_ref)

    return CallEntry(
        label=label,
        selector=_selector(entry, label),
        args=tuple(args),
        return_type=return_type,
        mutates=bool(entry.get("mutates", False)),
        payable=bool(entry.get("payable", False)),
        is_constructor=is_constructor,
        default=bool(entry.get("default", False)),
        docs=tuple(entry.get("docs", ())),
    )


def _event_entry(entry: dict[str, Any], position: int) -> EventEntry:
    args = []
    for arg in entry.get("args", []):
        type_id, display = _type_ref(arg["type"])
        args.append(EventFieldSpec(
            label=_label(arg),
            type_id=type_id,
            indexed=bool(arg.get("indexed", False)),
            display_name=display,
        ))
    return EventEntry(
        label=_label(entry),
        index=entry.get("index", position),
        args=tuple(args),
        docs=tuple(entry.get("docs", ())),
    )
