"""Tests for loading metadata documents."""

import json
import logging

import pytest

from contract_transcode.contract import compute_selector
from contract_transcode.errors import (
    DanglingTypeReference,
    DuplicateEventIndex,
    DuplicateSelector,
    MetadataError,
    TypeNotFound,
)
from contract_transcode.metadata import load_metadata, load_metadata_file, load_registry
from contract_transcode.types import (
    ArrayTypeDefinition,
    CompositeTypeDefinition,
    PrimitiveType,
    SequenceTypeDefinition,
    TupleTypeDefinition,
    VariantTypeDefinition,
)


def _types(*defs):
    """Build a type table from bare ``def`` objects, numbered by position."""
    return [{"id": i, "type": {"def": d}} for i, d in enumerate(defs)]


class TestLoadMetadata:
    """Tests for version 4/5 documents."""

    def test_flipper(self, flipper_metadata):
        spec = load_metadata(flipper_metadata)
        assert spec.name == "flipper"
        assert spec.version == "4"
        assert len(spec.registry) == 8
        assert [c.label for c in spec.constructors] == ["new", "default"]
        assert spec.messages[0].label == "flip"
        assert spec.messages[0].mutates is True
        assert spec.messages[0].return_type is None
        assert [e.label for e in spec.events] == ["Flipped", "Named"]

    def test_entry_details(self, flipper_metadata):
        spec = load_metadata(flipper_metadata)
        new = spec.get_constructor("new")
        assert new.is_constructor is True
        assert new.docs == ("Creates a new flipper.",)
        assert new.args[0].label == "init_value"
        assert new.args[0].display_name == "bool"
        transfer = spec.get_message("transfer")
        assert transfer.payable is True
        assert transfer.arg_names == ["to", "value"]
        assert spec.get_message("get").return_type == 0

    def test_registry_shapes(self, flipper_metadata):
        registry = load_metadata(flipper_metadata).registry
        assert isinstance(registry.resolve(3), ArrayTypeDefinition)
        assert isinstance(registry.resolve(5), CompositeTypeDefinition)
        assert registry.display_name(5) == "AccountId"
        assert registry.display_name(7) == "Option<u32>"
        assert registry.resolve(7).is_option is True

    def test_from_json_text(self, flipper_metadata):
        spec = load_metadata(json.dumps(flipper_metadata))
        assert spec.resolve_call("flip") == bytes.fromhex("ba563ba6")

    def test_version_5_event_indices(self, flipper_metadata):
        """Events are numbered by position unless they carry an index."""
        flipper_metadata["version"] = 5
        flipper_metadata["spec"]["events"][1]["index"] = 9
        spec = load_metadata(flipper_metadata)
        assert spec.version == "5"
        assert [e.index for e in spec.events] == [0, 9]

    def test_missing_selector_is_computed(self, flipper_metadata):
        del flipper_metadata["spec"]["messages"][0]["selector"]
        spec = load_metadata(flipper_metadata)
        assert spec.resolve_call("flip") == compute_selector("flip")

    def test_logs_summary(self, flipper_metadata, caplog):
        with caplog.at_level(logging.DEBUG, logger="contract_transcode.metadata"):
            load_metadata(flipper_metadata)
        assert "Loaded metadata v4" in caplog.text


class TestLegacyMetadata:
    """Tests for documents wrapped in a version key."""

    def test_v3_wrapper(self, flipper_metadata):
        document = {
            "metadataVersion": "0.1.0",
            "V3": {"types": flipper_metadata["types"], "spec": flipper_metadata["spec"]},
        }
        spec = load_metadata(document)
        assert spec.version == "3"
        assert spec.resolve_call("new", ["false"]) == bytes.fromhex("9bae9d5e00")

    def test_v1_name_paths_and_positional_ids(self):
        """Early documents use name arrays and number types by position."""
        document = {
            "V1": {
                "types": [
                    {"def": {"primitive": "bool"}},
                    {"def": {"sequence": {"type": 0}}},
                ],
                "spec": {
                    "constructors": [],
                    "messages": [{
                        "name": ["Flipper", "set_all"],
                        "selector": "0x01020304",
                        "args": [{"name": "flags", "type": {"type": 1, "displayName": ["Vec"]}}],
                        "returnType": None,
                    }],
                    "events": [],
                },
            },
        }
        spec = load_metadata(document)
        assert spec.version == "1"
        message = spec.messages[0]
        assert message.label == "Flipper::set_all"
        assert message.args[0].label == "flags"
        assert spec.resolve_call("set_all", ["[true]"]) == bytes.fromhex("010203040401")
        assert isinstance(spec.registry.resolve(1), SequenceTypeDefinition)


class TestLoadRegistry:
    """Tests for the type table."""

    def test_all_kinds(self):
        registry = load_registry(_types(
            {"primitive": "u64"},
            {"composite": {"fields": [{"name": "a", "type": 0, "typeName": "u64"}]}},
            {"variant": {"variants": [{"name": "A", "index": 3}, {"name": "B", "index": 7}]}},
            {"sequence": {"type": 0}},
            {"array": {"len": 2, "type": 0}},
            {"tuple": [0, 3]},
            {"compact": {"type": 0}},
            {"tuple": []},
        ))
        assert registry.resolve(0).primitive == PrimitiveType.U64
        assert registry.resolve(1).fields[0].type_name == "u64"
        variant = registry.resolve(2)
        assert isinstance(variant, VariantTypeDefinition)
        assert [v.discriminant for v in variant.variants] == [3, 7]
        assert registry.resolve(4).length == 2
        assert registry.resolve(5).elements == (0, 3)
        assert registry.resolve(6).inner_type == 0
        assert isinstance(registry.resolve(7), TupleTypeDefinition)

    def test_empty_composite_and_variant(self):
        registry = load_registry(_types({"composite": {}}, {"variant": {}}))
        assert registry.resolve(0).fields == ()
        assert registry.resolve(1).variants == ()

    def test_bit_sequence_rejected(self):
        with pytest.raises(MetadataError, match="bitSequence"):
            load_registry(_types({"primitive": "u8"}, {"bitSequence": {"bit_store_type": 0, "bit_order_type": 0}}))

    def test_unknown_primitive(self):
        with pytest.raises(MetadataError):
            load_registry(_types({"primitive": "f64"}))

    def test_discriminant_out_of_range(self):
        with pytest.raises(MetadataError):
            load_registry(_types({"variant": {"variants": [{"name": "A", "index": 256}]}}))

    def test_duplicate_discriminant(self):
        with pytest.raises(MetadataError):
            load_registry(_types({"variant": {"variants": [
                {"name": "A", "index": 1}, {"name": "B", "index": 1},
            ]}}))

    def test_malformed_definition(self):
        with pytest.raises(MetadataError):
            load_registry(_types({"sequence": {}}))
        with pytest.raises(MetadataError):
            load_registry(_types({"primitive": "u8", "sequence": {"type": 0}}))

    def test_duplicate_id(self):
        with pytest.raises(MetadataError):
            load_registry([
                {"id": 0, "type": {"def": {"primitive": "u8"}}},
                {"id": 0, "type": {"def": {"primitive": "u16"}}},
            ])

    def test_entry_not_an_object(self):
        with pytest.raises(MetadataError, match="entry 0"):
            load_registry([1])
        with pytest.raises(MetadataError):
            load_registry([{"id": 0, "type": "u8"}])

    def test_dangling_reference(self):
        with pytest.raises(DanglingTypeReference):
            load_registry(_types({"sequence": {"type": 99}}))


class TestMalformedDocuments:
    """Tests for documents the loader rejects."""

    def test_not_an_object(self):
        with pytest.raises(MetadataError):
            load_metadata("[]")

    def test_invalid_json(self):
        with pytest.raises(MetadataError):
            load_metadata("{")

    def test_unrecognised_layout(self):
        with pytest.raises(MetadataError):
            load_metadata({"foo": 1})

    def test_bad_selector(self, flipper_metadata):
        flipper_metadata["spec"]["messages"][0]["selector"] = "0x0102"
        with pytest.raises(MetadataError):
            load_metadata(flipper_metadata)
        flipper_metadata["spec"]["messages"][0]["selector"] = "0xzzzzzzzz"
        with pytest.raises(MetadataError):
            load_metadata(flipper_metadata)

    def test_missing_argument_type(self, flipper_metadata):
        del flipper_metadata["spec"]["constructors"][0]["args"][0]["type"]
        with pytest.raises(MetadataError):
            load_metadata(flipper_metadata)

    def test_entries_that_are_not_objects(self, flipper_metadata):
        """Non-object entries raise MetadataError rather than AttributeError."""
        flipper_metadata["spec"]["messages"] = ["flip"]
        with pytest.raises(MetadataError):
            load_metadata(flipper_metadata)

    def test_argument_that_is_not_an_object(self, flipper_metadata):
        flipper_metadata["spec"]["constructors"][0]["args"] = ["init_value"]
        with pytest.raises(MetadataError):
            load_metadata(flipper_metadata)

    def test_event_index_shared(self, flipper_metadata):
        flipper_metadata["version"] = 5
        flipper_metadata["spec"]["events"][0]["index"] = 1
        with pytest.raises(DuplicateEventIndex):
            load_metadata(flipper_metadata)

    def test_argument_type_not_in_registry(self, flipper_metadata):
        flipper_metadata["spec"]["messages"][2]["args"][1]["type"]["type"] = 42
        with pytest.raises(TypeNotFound):
            load_metadata(flipper_metadata)

    def test_duplicate_message_selector(self, flipper_metadata):
        flipper_metadata["spec"]["messages"][1]["selector"] = "0xba563ba6"
        with pytest.raises(DuplicateSelector) as exc_info:
            load_metadata(flipper_metadata)
        assert exc_info.value.selector == bytes.fromhex("ba563ba6")


class TestLoadMetadataFile:
    """Tests for reading metadata from disk."""

    def test_load_file(self, flipper_metadata, tmp_path):
        path = tmp_path / "flipper.json"
        path.write_text(json.dumps(flipper_metadata))
        spec = load_metadata_file(path)
        assert spec.name == "flipper"
        assert load_metadata_file(str(path)).name == "flipper"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_metadata_file(tmp_path / "missing.json")

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(MetadataError):
            load_metadata_file(path)
