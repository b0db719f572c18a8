"""Parser for value literals.

The grammar is untyped: it only recognises the shapes of the literal
syntax. Interpreting a tree against an expected type is the job of
:mod:`contract_transcode.parsing.value_parser`, since the same text can
mean different things depending on the type it is parsed as.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from contract_transcode.errors import LiteralParseError
from contract_transcode.parsing.literal_lexer import LiteralLexer


@dataclass
class LiteralNode:
    """Base class for literal syntax tree nodes.

    ``text`` is the source text of the node (for JSON input, its JSON
    rendering); ``span`` is its position in the source text, if any.
    """

    text: str = field(default="", kw_only=True, compare=False)
    span: tuple[int, int] | None = field(default=None, kw_only=True, compare=False)


@dataclass
class IntLiteral(LiteralNode):
    value: int


@dataclass
class HexLiteral(LiteralNode):
    """``0x``-prefixed hex digits, interpreted as an integer or as bytes."""

    digits: str


@dataclass
class StringLiteral(LiteralNode):
    value: str


@dataclass
class CharLiteral(LiteralNode):
    value: str


@dataclass
class BoolLiteral(LiteralNode):
    """Only produced from JSON; text input spells booleans as identifiers."""

    value: bool


@dataclass
class NullLiteral(LiteralNode):
    """JSON ``null``."""


@dataclass
class Identifier(LiteralNode):
    """A bare word: a variant case, ``true``/``false``, ``None`` or bare text."""

    name: str


@dataclass
class ListLiteral(LiteralNode):
    items: list[LiteralNode]


@dataclass
class TupleLiteral(LiteralNode):
    items: list[LiteralNode]


@dataclass
class CallLiteral(LiteralNode):
    """``Name(a, b)``: a variant case or tuple struct with positional values."""

    name: str
    items: list[LiteralNode]


@dataclass
class MapLiteral(LiteralNode):
    """``{ a: 1 }`` or ``Name { a: 1 }``; JSON objects also map here."""

    name: str | None
    entries: list[tuple[str, LiteralNode]]


def _unquote(raw: str, quote: str) -> str:
    """Resolve backslash escapes inside a quoted literal."""
    inner = raw[1:-1]
    if quote == "'":
        inner = inner.replace("\\'", "'").replace('"', '\\"')
    return json.loads(f'"{inner}"')


class LiteralParser:
    """Parser for the value literal grammar."""

    tokens = LiteralLexer.tokens

    def __init__(self) -> None:
        self.lexer = LiteralLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._expected = "a literal"

    def _node(self, p: yacc.YaccProduction, node: LiteralNode, start: int, end: int) -> LiteralNode:
        node.span = (start, end)
        node.text = p.lexer.lexdata[start:end]
        return node

    def _end(self, p: yacc.YaccProduction, index: int) -> int:
        """End position of the terminal at ``index`` in the production."""
        return p.lexpos(index) + len(p[index])

    def p_literal(self, p: yacc.YaccProduction) -> None:
        """literal : value"""
        p[0] = p[1]

    def p_value_integer(self, p: yacc.YaccProduction) -> None:
        """value : INTEGER"""
        node = IntLiteral(value=int(p[1].replace("_", "")))
        p[0] = self._node(p, node, p.lexpos(1), self._end(p, 1))

    def p_value_hex(self, p: yacc.YaccProduction) -> None:
        """value : HEX"""
        node = HexLiteral(digits=p[1][2:].replace("_", ""))
        p[0] = self._node(p, node, p.lexpos(1), self._end(p, 1))

    def p_value_string(self, p: yacc.YaccProduction) -> None:
        """value : STRING"""
        start, end = p.lexpos(1), self._end(p, 1)
        try:
            value = _unquote(p[1], '"')
        except ValueError as e:
            raise LiteralParseError(p[1], self._expected, (start, end), f"bad escape: {e}") from e
        p[0] = self._node(p, StringLiteral(value=value), start, end)

    def p_value_char(self, p: yacc.YaccProduction) -> None:
        """value : CHAR"""
        start, end = p.lexpos(1), self._end(p, 1)
        try:
            value = _unquote(p[1], "'")
        except ValueError as e:
            raise LiteralParseError(p[1], self._expected, (start, end), f"bad escape: {e}") from e
        p[0] = self._node(p, CharLiteral(value=value), start, end)

    def p_value_identifier(self, p: yacc.YaccProduction) -> None:
        """value : IDENTIFIER"""
        p[0] = self._node(p, Identifier(name=p[1]), p.lexpos(1), self._end(p, 1))

    def p_value_call(self, p: yacc.YaccProduction) -> None:
        """value : IDENTIFIER LPAREN items RPAREN"""
        node = CallLiteral(name=p[1], items=p[3])
        p[0] = self._node(p, node, p.lexpos(1), p.lexpos(4) + 1)

    def p_value_named_map(self, p: yacc.YaccProduction) -> None:
        """value : IDENTIFIER LBRACE entries RBRACE"""
        node = MapLiteral(name=p[1], entries=p[3])
        p[0] = self._node(p, node, p.lexpos(1), p.lexpos(4) + 1)

    def p_value_map(self, p: yacc.YaccProduction) -> None:
        """value : LBRACE entries RBRACE"""
        node = MapLiteral(name=None, entries=p[2])
        p[0] = self._node(p, node, p.lexpos(1), p.lexpos(3) + 1)

    def p_value_tuple(self, p: yacc.YaccProduction) -> None:
        """value : LPAREN items RPAREN"""
        node = TupleLiteral(items=p[2])
        p[0] = self._node(p, node, p.lexpos(1), p.lexpos(3) + 1)

    def p_value_list(self, p: yacc.YaccProduction) -> None:
        """value : LBRACKET items RBRACKET"""
        node = ListLiteral(items=p[2])
        p[0] = self._node(p, node, p.lexpos(1), p.lexpos(3) + 1)

    def p_items_empty(self, p: yacc.YaccProduction) -> None:
        """items : """
        p[0] = []

    def p_items(self, p: yacc.YaccProduction) -> None:
        """items : item_list
                 | item_list COMMA"""
        p[0] = p[1]

    def p_item_list_single(self, p: yacc.YaccProduction) -> None:
        """item_list : value"""
        p[0] = [p[1]]

    def p_item_list_multiple(self, p: yacc.YaccProduction) -> None:
        """item_list : item_list COMMA value"""
        p[0] = p[1] + [p[3]]

    def p_entries_empty(self, p: yacc.YaccProduction) -> None:
        """entries : """
        p[0] = []

    def p_entries(self, p: yacc.YaccProduction) -> None:
        """entries : entry_list
                   | entry_list COMMA"""
        p[0] = p[1]

    def p_entry_list_single(self, p: yacc.YaccProduction) -> None:
        """entry_list : entry"""
        p[0] = [p[1]]

    def p_entry_list_multiple(self, p: yacc.YaccProduction) -> None:
        """entry_list : entry_list COMMA entry"""
        p[0] = p[1] + [p[3]]

    def p_entry(self, p: yacc.YaccProduction) -> None:
        """entry : IDENTIFIER COLON value"""
        p[0] = (p[1], p[3])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise LiteralParseError(
                p.value, self._expected, (p.lexpos, p.lexpos + len(p.value)),
                f"unexpected '{p.value}' at position {p.lexpos}",
            )
        raise LiteralParseError("", self._expected, None, "unexpected end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str, expected: str = "a literal") -> LiteralNode:
        """Parse literal text into a syntax tree.

        ``expected`` names the type the caller wants, for error messages.
        """
        if self.parser is None:
            self.build(debug=False, write_tables=False)
        if not data.strip():
            raise LiteralParseError(data, expected, (0, len(data)), "empty input")

        self._expected = expected
        self.lexer.expected = expected
        return self.parser.parse(data, lexer=self.lexer.lexer)


def json_to_node(obj: Any) -> LiteralNode:
    """Convert a JSON-compatible Python object into a literal syntax tree.

    The mapping is type-agnostic; for example a one-key object becomes a
    map literal, which the value parser reads as a variant case when the
    expected type is a variant.
    """
    text = json.dumps(obj, default=repr)
    if obj is None:
        return NullLiteral(text=text)
    if isinstance(obj, bool):
        return BoolLiteral(value=obj, text=text)
    if isinstance(obj, int):
        return IntLiteral(value=obj, text=text)
    if isinstance(obj, str):
        return StringLiteral(value=obj, text=text)
    if isinstance(obj, (list, tuple)):
        return ListLiteral(items=[json_to_node(item) for item in obj], text=text)
    if isinstance(obj, dict):
        entries = []
        for key, value in obj.items():
            if not isinstance(key, str):
                raise LiteralParseError(text, "a JSON object", None, f"key {key!r} is not a string")
            entries.append((key, json_to_node(value)))
        return MapLiteral(name=None, entries=entries, text=text)
    raise LiteralParseError(text, "a JSON value", None, f"unsupported {type(obj).__name__} value")
