"""Tests for interpreting literal text and JSON against expected types."""

import pytest

from contract_transcode.encoding import encode
from contract_transcode.errors import LengthMismatch, LiteralParseError, UnknownVariantCase
from contract_transcode.parsing import ValueParser, parse, parse_json
from contract_transcode.types import PrimitiveType
from contract_transcode.value import (
    NONE,
    BoolValue,
    BytesValue,
    CharValue,
    CompositeValue,
    IntValue,
    SeqValue,
    StrValue,
    TupleValue,
    VariantValue,
    some,
)


def u32(n):
    return IntValue(n, PrimitiveType.U32)


@pytest.fixture
def parser(registry):
    return ValueParser(registry)


class TestOption:
    """Tests for Option sugar."""

    def test_some(self, parser, registry):
        """Some(42) as Option<u32> encodes to 01 2a000000."""
        value = parser.parse("Some(42)", 3)
        assert isinstance(value, VariantValue)
        assert value.discriminant == 1
        assert value.fields == ((None, u32(42)),)
        assert encode(value, 3, registry) == bytes.fromhex("012a000000")

    def test_none(self, parser):
        assert parser.parse("None", 3) == NONE
        assert parser.parse("none", 3) == NONE
        assert parser.parse_json(None, 3) == NONE

    def test_bare_value_is_some(self, parser):
        assert parser.parse("42", 3) == some(u32(42))
        assert parser.parse_json(42, 3) == some(u32(42))

    def test_json_case_object(self, parser):
        assert parser.parse_json({"Some": 7}, 3) == some(u32(7))
        assert parser.parse_json({"None": None}, 3) == NONE
        assert parser.parse_json("None", 3) == NONE


class TestIntegers:
    """Tests for integer literals."""

    def test_decimal_and_hex(self, parser):
        assert parser.parse("42", 0) == u32(42)
        assert parser.parse("0x2a", 0) == u32(42)
        assert parser.parse("1_000", 0) == u32(1000)
        assert parser.parse("-1", 11) == IntValue(-1, PrimitiveType.I16)

    def test_out_of_range(self, parser):
        with pytest.raises(LiteralParseError) as exc_info:
            parser.parse("256", 4)
        assert exc_info.value.expected == "u8"
        with pytest.raises(LiteralParseError):
            parser.parse("-1", 0)

    def test_json_big_integers_as_strings(self, parser):
        """JSON carries integers too big for a double as decimal or hex strings."""
        big = str(2**128 - 1)
        assert parser.parse_json(big, 12) == IntValue(2**128 - 1, PrimitiveType.U128)
        assert parser.parse_json("0xff", 12) == IntValue(255, PrimitiveType.U128)
        assert parser.parse_json(2**100, 12) == IntValue(2**100, PrimitiveType.U128)

    def test_not_an_integer(self, parser):
        with pytest.raises(LiteralParseError):
            parser.parse('"abc"', 0)
        with pytest.raises(LiteralParseError):
            parser.parse_json(True, 0)

    def test_compact_parses_as_inner(self, parser):
        assert parser.parse("64", 10) == u32(64)


class TestScalars:
    """Tests for bool, char, str and bytes."""

    def test_bool(self, parser):
        assert parser.parse("true", 1) == BoolValue(True)
        assert parser.parse_json(False, 1) == BoolValue(False)
        with pytest.raises(LiteralParseError):
            parser.parse("1", 1)

    def test_char(self, parser):
        assert parser.parse("'a'", 18) == CharValue("a")
        assert parser.parse_json("b", 18) == CharValue("b")
        with pytest.raises(LiteralParseError):
            parser.parse('"ab"', 18)

    def test_str(self, parser):
        assert parser.parse('"hello world"', 7) == StrValue("hello world")
        assert parser.parse("hello", 7) == StrValue("hello")
        assert parser.parse_json("x", 7) == StrValue("x")

    def test_bytes(self, parser):
        assert parser.parse("0x0102", 5) == BytesValue(b"\x01\x02")
        assert parser.parse("[1, 2]", 5) == BytesValue(b"\x01\x02")
        assert parser.parse_json("0x0102", 21) == BytesValue(b"\x01\x02")
        assert parser.parse("0x", 5) == BytesValue(b"")

    def test_bad_bytes(self, parser):
        with pytest.raises(LiteralParseError):
            parser.parse("0x123", 5)
        with pytest.raises(LiteralParseError):
            parser.parse("[256]", 5)


class TestContainers:
    """Tests for sequences, arrays and tuples."""

    def test_sequence(self, parser):
        value = parser.parse("[true, false, true]", 2)
        assert value == SeqValue((BoolValue(True), BoolValue(False), BoolValue(True)))
        assert parser.parse_json([1, 2], 20) == SeqValue((u32(1), u32(2)))

    def test_array_length(self, parser):
        with pytest.raises(LengthMismatch) as exc_info:
            parser.parse("[1, 2, 3]", 16)
        assert exc_info.value.expected_length == 2
        assert exc_info.value.actual_length == 3
        assert exc_info.value.expected == "[u32; 2]"

    def test_byte_array_length(self, parser):
        assert parser.parse("0x01020304", 6) == BytesValue(b"\x01\x02\x03\x04")
        with pytest.raises(LengthMismatch):
            parser.parse("0x010203", 6)

    def test_tuple(self, parser):
        assert parser.parse("(7, true)", 9) == TupleValue((u32(7), BoolValue(True)))
        assert parser.parse_json([7, True], 9) == TupleValue((u32(7), BoolValue(True)))
        assert parser.parse("()", 15) == TupleValue()
        assert parser.parse_json(None, 15) == TupleValue()

    def test_tuple_arity(self, parser):
        with pytest.raises(LiteralParseError):
            parser.parse("(7)", 9)


class TestComposites:
    """Tests for structs and newtypes."""

    def test_named_struct(self, parser):
        expected = CompositeValue.from_dict({"x": u32(1), "y": u32(2)})
        assert parser.parse("{ x: 1, y: 2 }", 8) == expected
        assert parser.parse("Point { y: 2, x: 1 }", 8) == expected
        assert parser.parse_json({"x": 1, "y": 2}, 8) == expected

    def test_parsed_struct_keeps_declared_order(self, parser):
        value = parser.parse("{ y: 2, x: 1 }", 8)
        assert [name for name, _ in value.fields] == ["x", "y"]
        assert value.name == "Point"

    def test_missing_and_unknown_fields(self, parser):
        with pytest.raises(LiteralParseError, match="missing"):
            parser.parse("{ x: 1 }", 8)
        with pytest.raises(LiteralParseError, match="unknown"):
            parser.parse("{ x: 1, y: 2, z: 3 }", 8)

    def test_wrong_struct_name(self, parser):
        with pytest.raises(LiteralParseError):
            parser.parse("Line { x: 1, y: 2 }", 8)

    def test_newtype_transparency(self, parser):
        """A single-field wrapper accepts its inner value directly."""
        expected = CompositeValue.from_values(BytesValue(b"\x01\x02\x03\x04"))
        assert parser.parse("0x01020304", 13) == expected
        assert parser.parse("AccountId(0x01020304)", 13) == expected
        assert parser.parse_json("0x01020304", 13) == expected


class TestVariants:
    """Tests for enum cases."""

    def test_unit_case(self, parser):
        assert parser.parse("Stop", 14) == VariantValue(name="Stop", discriminant=0)
        assert parser.parse("stop", 14) == VariantValue(name="Stop", discriminant=0)
        assert parser.parse("Action::Stop", 14) == VariantValue(name="Stop", discriminant=0)

    def test_named_case(self, parser):
        value = parser.parse("Move { x: 1, y: 2 }", 14)
        assert value == VariantValue(name="Move", discriminant=1, fields=(("x", u32(1)), ("y", u32(2))))

    def test_tuple_case(self, parser):
        value = parser.parse('Say("hi")', 14)
        assert value == VariantValue(name="Say", discriminant=2, fields=((None, StrValue("hi")),))

    def test_json_cases(self, parser):
        assert parser.parse_json("Stop", 14) == VariantValue(name="Stop", discriminant=0)
        assert parser.parse_json({"Say": "hi"}, 14) == parser.parse('Say("hi")', 14)
        assert parser.parse_json({"Move": {"x": 1, "y": 2}}, 14) == parser.parse("Move { x: 1, y: 2 }", 14)
        assert parser.parse_json({"Move": [1, 2]}, 14) == parser.parse("Move { x: 1, y: 2 }", 14)

    def test_unknown_case(self, parser):
        with pytest.raises(UnknownVariantCase) as exc_info:
            parser.parse("Fly", 14)
        assert exc_info.value.case == "Fly"
        assert exc_info.value.known == ["Stop", "Move", "Say"]
        assert exc_info.value.expected == "Action"
        with pytest.raises(UnknownVariantCase):
            parser.parse_json({"Fly": None}, 14)

    def test_case_arity(self, parser):
        with pytest.raises(LiteralParseError):
            parser.parse("Say", 14)
        with pytest.raises(LiteralParseError):
            parser.parse_json({"Stop": 1}, 14)


class TestErrorContext:
    """Tests for the context carried by parse errors."""

    def test_span_of_nested_error(self, parser):
        with pytest.raises(LiteralParseError) as exc_info:
            parser.parse("[1, x]", 16)
        assert exc_info.value.span == (4, 5)
        assert exc_info.value.text == "x"
        assert exc_info.value.expected == "u32"

    def test_syntax_error_names_expected_type(self, parser):
        with pytest.raises(LiteralParseError) as exc_info:
            parser.parse("Some(", 3)
        assert exc_info.value.expected == "Option<u32>"

    def test_illegal_character_names_expected_type(self, parser):
        with pytest.raises(LiteralParseError) as exc_info:
            parser.parse("4@2", 0)
        assert exc_info.value.expected == "u32"
        assert exc_info.value.span == (1, 2)
        assert exc_info.value.text == "@"


class TestNestingLimit:
    """Tests for deeply nested input."""

    def test_nested_literal(self, parser):
        text = "Cons(1, " * 50 + "Nil" + ")" * 50
        value = parser.parse(text, 23)
        assert value.name == "Cons"
        assert value.fields[0][1] == IntValue(1, PrimitiveType.U8)

    def test_too_deep_literal(self, parser):
        text = "Cons(1, " * 600 + "Nil" + ")" * 600
        with pytest.raises(LiteralParseError, match="nested more than") as exc_info:
            parser.parse(text, 23)
        assert exc_info.value.expected == "u8"

    def test_too_deep_json(self, parser):
        obj = "Nil"
        for _ in range(600):
            obj = {"Cons": [1, obj]}
        with pytest.raises(LiteralParseError):
            parser.parse_json(obj, 23)

    def test_too_deep_json_list(self, parser):
        obj = []
        for _ in range(5000):
            obj = [obj]
        with pytest.raises(LiteralParseError):
            parser.parse_json(obj, 20)

    def test_configurable_limit(self, registry):
        text = "Cons(1, Cons(2, Nil))"
        with pytest.raises(LiteralParseError):
            ValueParser(registry, max_depth=1).parse(text, 23)
        assert ValueParser(registry, max_depth=2).parse(text, 23).name == "Cons"


class TestModuleFunctions:
    """Tests for the module-level parse helpers."""

    def test_parse(self, registry):
        assert parse("Some(1)", 3, registry) == some(u32(1))

    def test_parse_json(self, registry):
        assert parse_json([True], 2, registry) == SeqValue((BoolValue(True),))
