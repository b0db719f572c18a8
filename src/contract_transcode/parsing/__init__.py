"""Parsing module for value literals and JSON input."""

from contract_transcode.parsing.literal_parser import LiteralParser, json_to_node
from contract_transcode.parsing.value_parser import ValueParser, parse, parse_json

__all__ = [
    "LiteralParser",
    "ValueParser",
    "json_to_node",
    "parse",
    "parse_json",
]
