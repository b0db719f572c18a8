"""Contract Transcode - metadata-driven SCALE codec for smart-contract calls and events."""

from contract_transcode.contract import (
    ArgumentSpec,
    CallEntry,
    ContractSpec,
    EventEntry,
    EventFieldSpec,
    compute_selector,
    decode_event,
    resolve_call,
)
from contract_transcode.decoding import Decoder, decode, decode_all, decode_compact
from contract_transcode.display import format_value, to_plain
from contract_transcode.encoding import Encoder, encode, encode_compact
from contract_transcode.errors import TranscodeError
from contract_transcode.metadata import load_metadata, load_metadata_file
from contract_transcode.parsing import ValueParser, parse, parse_json
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

__all__ = [
    # Main API
    "ContractSpec",
    "load_metadata",
    "load_metadata_file",
    "resolve_call",
    "decode_event",
    "compute_selector",
    "CallEntry",
    "EventEntry",
    "ArgumentSpec",
    "EventFieldSpec",
    # Codec
    "Encoder",
    "Decoder",
    "ValueParser",
    "encode",
    "encode_compact",
    "decode",
    "decode_all",
    "decode_compact",
    "parse",
    "parse_json",
    "format_value",
    "to_plain",
    "TranscodeError",
    # Type definitions
    "TypeDefinition",
    "PrimitiveType",
    "PrimitiveTypeDefinition",
    "CompositeTypeDefinition",
    "VariantTypeDefinition",
    "VariantDefinition",
    "SequenceTypeDefinition",
    "ArrayTypeDefinition",
    "TupleTypeDefinition",
    "CompactTypeDefinition",
    "FieldDefinition",
    "TypeRegistry",
    # Values
    "Value",
    "BoolValue",
    "IntValue",
    "CharValue",
    "StrValue",
    "BytesValue",
    "SeqValue",
    "TupleValue",
    "CompositeValue",
    "VariantValue",
]

__version__ = "0.1.0"
