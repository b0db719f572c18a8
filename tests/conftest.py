"""Shared fixtures: a sample type registry and a flipper-style metadata document."""

from __future__ import annotations

import copy

import pytest

from contract_transcode.types import (
    ArrayTypeDefinition,
    CompactTypeDefinition,
    CompositeTypeDefinition,
    FieldDefinition,
    PrimitiveType,
    PrimitiveTypeDefinition,
    SequenceTypeDefinition,
    TupleTypeDefinition,
    TypeParameter,
    TypeRegistry,
    VariantDefinition,
    VariantTypeDefinition,
)


def _prim(primitive: PrimitiveType) -> PrimitiveTypeDefinition:
    return PrimitiveTypeDefinition(primitive=primitive)


@pytest.fixture
def registry():
    """A registry covering every kind of type definition.

    Ids:
        0 u32, 1 bool, 2 Vec<bool>, 3 Option<u32>, 4 u8, 5 Vec<u8>,
        6 [u8; 4], 7 str, 8 Point { x: u32, y: u32 }, 9 (u32, bool),
        10 Compact<u32>, 11 i16, 12 u128, 13 AccountId([u8; 4]),
        14 Action { Stop, Move { x, y }, Say(str) }, 15 (), 16 [u32; 2],
        17 Vec<()>, 18 char, 19 u64, 20 Vec<u32>, 21 bytes, 22 [(); 3],
        23 List { Nil, Cons(u8, List) }
    """
    return TypeRegistry({
        0: _prim(PrimitiveType.U32),
        1: _prim(PrimitiveType.BOOL),
        2: SequenceTypeDefinition(element_type=1),
        3: VariantTypeDefinition(
            variants=(
                VariantDefinition(name="None", discriminant=0),
                VariantDefinition(name="Some", discriminant=1, fields=(FieldDefinition(None, 0),)),
            ),
            path=("Option",),
            params=(TypeParameter("T", 0),),
        ),
        4: _prim(PrimitiveType.U8),
        5: SequenceTypeDefinition(element_type=4),
        6: ArrayTypeDefinition(element_type=4, length=4),
        7: _prim(PrimitiveType.STR),
        8: CompositeTypeDefinition(
            fields=(FieldDefinition("x", 0, "u32"), FieldDefinition("y", 0, "u32")),
            path=("geo", "Point"),
        ),
        9: TupleTypeDefinition(elements=(0, 1)),
        10: CompactTypeDefinition(inner_type=0),
        11: _prim(PrimitiveType.I16),
        12: _prim(PrimitiveType.U128),
        13: CompositeTypeDefinition(fields=(FieldDefinition(None, 6),), path=("AccountId",)),
        14: VariantTypeDefinition(
            variants=(
                VariantDefinition(name="Stop", discriminant=0),
                VariantDefinition(
                    name="Move", discriminant=1,
                    fields=(FieldDefinition("x", 0), FieldDefinition("y", 0)),
                ),
                VariantDefinition(name="Say", discriminant=2, fields=(FieldDefinition(None, 7),)),
            ),
            path=("Action",),
        ),
        15: TupleTypeDefinition(elements=()),
        16: ArrayTypeDefinition(element_type=0, length=2),
        17: SequenceTypeDefinition(element_type=15),
        18: _prim(PrimitiveType.CHAR),
        19: _prim(PrimitiveType.U64),
        20: SequenceTypeDefinition(element_type=0),
        21: _prim(PrimitiveType.BYTES),
        22: ArrayTypeDefinition(element_type=15, length=3),
        23: VariantTypeDefinition(
            variants=(
                VariantDefinition(name="Nil", discriminant=0),
                VariantDefinition(
                    name="Cons", discriminant=1,
                    fields=(FieldDefinition(None, 4), FieldDefinition(None, 23)),
                ),
            ),
            path=("List",),
        ),
    })


FLIPPER_METADATA = {
    "source": {"hash": "0x00", "language": "ink! 4.3.0", "compiler": "rustc 1.74.0"},
    "contract": {"name": "flipper", "version": "0.1.0", "authors": ["Parity"]},
    "version": "4",
    "types": [
        {"id": 0, "type": {"def": {"primitive": "bool"}}},
        {"id": 1, "type": {"def": {"primitive": "u32"}}},
        {"id": 2, "type": {"def": {"primitive": "str"}}},
        {"id": 3, "type": {"def": {"array": {"len": 32, "type": 4}}}},
        {"id": 4, "type": {"def": {"primitive": "u8"}}},
        {
            "id": 5,
            "type": {
                "def": {"composite": {"fields": [{"type": 3, "typeName": "[u8; 32]"}]}},
                "path": ["ink_primitives", "types", "AccountId"],
            },
        },
        {"id": 6, "type": {"def": {"primitive": "u128"}}},
        {
            "id": 7,
            "type": {
                "def": {
                    "variant": {
                        "variants": [
                            {"index": 0, "name": "None"},
                            {"index": 1, "name": "Some", "fields": [{"type": 1}]},
                        ]
                    }
                },
                "path": ["Option"],
                "params": [{"name": "T", "type": 1}],
            },
        },
    ],
    "spec": {
        "constructors": [
            {
                "label": "new",
                "selector": "0x9bae9d5e",
                "args": [{"label": "init_value", "type": {"type": 0, "displayName": ["bool"]}}],
                "payable": False,
                "default": False,
                "docs": ["Creates a new flipper."],
            },
            {"label": "default", "selector": "0xed4b9d1b", "args": [], "docs": []},
        ],
        "messages": [
            {"label": "flip", "selector": "0xba563ba6", "args": [], "mutates": True, "returnType": None},
            {
                "label": "get",
                "selector": "0x2f865bd9",
                "args": [],
                "mutates": False,
                "returnType": {"type": 0, "displayName": ["bool"]},
            },
            {
                "label": "transfer",
                "selector": "0x84a15da1",
                "args": [
                    {"label": "to", "type": {"type": 5, "displayName": ["AccountId"]}},
                    {"label": "value", "type": {"type": 6, "displayName": ["Balance"]}},
                ],
                "mutates": True,
                "payable": True,
            },
            {"label": "set", "selector": "0x00000001", "args": [{"label": "value", "type": {"type": 0}}]},
            {
                "label": "set",
                "selector": "0x00000002",
                "args": [
                    {"label": "value", "type": {"type": 0}},
                    {"label": "limit", "type": {"type": 7, "displayName": ["Option"]}},
                ],
            },
            {"label": "tag", "selector": "0x00000003", "args": [{"label": "value", "type": {"type": 1}}]},
            {"label": "tag", "selector": "0x00000004", "args": [{"label": "other", "type": {"type": 0}}]},
            {
                "label": "Erc20::total_supply",
                "selector": "0xdb6375a8",
                "args": [],
                "returnType": {"type": 6, "displayName": ["Balance"]},
            },
        ],
        "events": [
            {
                "label": "Flipped",
                "args": [
                    {"label": "from", "type": {"type": 5, "displayName": ["AccountId"]}, "indexed": True},
                    {"label": "value", "type": {"type": 0, "displayName": ["bool"]}, "indexed": False},
                ],
                "docs": [],
            },
            {"label": "Named", "args": [{"label": "name", "type": {"type": 2}, "indexed": False}]},
        ],
    },
}


@pytest.fixture
def flipper_metadata():
    """A fresh copy of a version 4 metadata document."""
    return copy.deepcopy(FLIPPER_METADATA)
