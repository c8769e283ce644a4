"""
Unit Tests for Document Codec

Tests flatten/unflatten conventions, round trips and the bucket body codec.
"""

import math
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from fireferret.core.config.constants import EMPTY_ARRAY, EMPTY_OBJECT
from fireferret.core.exceptions import DocumentCodecError, InvalidArgumentsError
from fireferret.indexing.codec import (
    DocumentCodec,
    ValueKind,
    coerce_object_id,
    flatten,
    unflatten,
)
from tests.test_fixtures import make_documents, make_object_id


@pytest.mark.unit
class TestValueKind:
    """Test value classification."""

    @pytest.mark.parametrize(
        "value, kind",
        [
            ("x", ValueKind.STRING),
            (1, ValueKind.INTEGER),
            (1.5, ValueKind.FLOAT),
            (True, ValueKind.BOOLEAN),
            (None, ValueKind.NULL),
            ({}, ValueKind.OBJECT),
            ([], ValueKind.ARRAY),
            ((1, 2), ValueKind.ARRAY),
            (datetime(2020, 1, 1), ValueKind.DATETIME),
            (ObjectId(), ValueKind.OBJECT_ID),
        ],
    )
    def test_classification(self, value, kind):
        assert ValueKind.of(value) is kind

    def test_unsupported_type(self):
        with pytest.raises(DocumentCodecError):
            ValueKind.of({1, 2})


@pytest.mark.unit
class TestFlatten:
    """Test flatten()."""

    def test_nested_objects_use_dotted_paths(self):
        assert flatten({"a": {"b": {"c": "x"}}, "d": 1}) == {"a.b.c": "x", "d": "1"}

    def test_leaf_values_become_strings(self):
        flat = flatten({"t": True, "f": False, "i": -3, "x": 2.5, "n": None})

        assert flat == {"t": "true", "f": "false", "i": "-3", "x": "2.5", "n": "__ff:null"}

    def test_empty_containers_use_sentinels(self):
        assert flatten({"o": {}, "l": []}) == {"o": EMPTY_OBJECT, "l": EMPTY_ARRAY}

    def test_arrays_use_index_segments(self):
        flat = flatten({"tags": ["a", "b"], "items": [{"k": 1}]})

        assert flat == {"tags.[0]": "a", "tags.[1]": "b", "items.[0].k": "1"}

    def test_ambiguous_strings_are_tagged(self):
        flat = flatten({"a": "true", "b": "12", "c": "1.5e3", "d": "__ff:null", "e": "plain"})

        assert flat == {
            "a": "__ff:str:true",
            "b": "__ff:str:12",
            "c": "__ff:str:1.5e3",
            "d": "__ff:str:__ff:null",
            "e": "plain",
        }

    def test_special_keys_are_escaped(self):
        assert flatten({"a.b": 1, "[0]": 2, "c\\d": 3}) == {"a\\.b": "1", "\\[0]": "2", "c\\\\d": "3"}

    def test_top_level_object_id_is_raw_hex(self):
        object_id = make_object_id(7)
        assert flatten({"_id": object_id}) == {"_id": str(object_id)}

    def test_nested_object_id_is_tagged(self):
        object_id = make_object_id(7)
        assert flatten({"ref": {"_id": object_id}}) == {"ref._id": f"__ff:oid:{object_id}"}

    @pytest.mark.parametrize("document_id", [42, "user-1", "__ff:oid:x", None])
    def test_unsupported_id(self, document_id):
        with pytest.raises(DocumentCodecError):
            flatten({"_id": document_id})

    def test_hex_string_id_is_kept(self):
        hex_id = str(make_object_id(7))
        assert flatten({"_id": hex_id}) == {"_id": hex_id}

    @pytest.mark.parametrize("bad", [None, "doc", [1, 2], 5])
    def test_non_object_input(self, bad):
        with pytest.raises(InvalidArgumentsError):
            flatten(bad)


@pytest.mark.unit
class TestUnflatten:
    """Test unflatten()."""

    def test_rebuilds_nested_structure(self):
        flat = {"a.b": "1", "a.c": "x", "d.[1]": "y", "d.[0]": "z"}

        assert unflatten(flat) == {"a": {"b": 1, "c": "x"}, "d": ["z", "y"]}

    def test_booleans_and_sentinels(self):
        flat = {"t": "true", "f": "false", "o": EMPTY_OBJECT, "l": EMPTY_ARRAY, "n": "__ff:null"}

        assert unflatten(flat) == {"t": True, "f": False, "o": {}, "l": [], "n": None}

    def test_id_goes_through_coercer(self):
        object_id = make_object_id(9)

        assert unflatten({"_id": str(object_id)}, coerce_object_id) == {"_id": object_id}
        assert unflatten({"_id": str(object_id)}) == {"_id": str(object_id)}

    def test_numbers_are_parsed(self):
        assert unflatten({"i": "42", "f": "0.25", "e": "1e+20"}) == {"i": 42, "f": 0.25, "e": 1e20}

    def test_conflicting_paths_rejected(self):
        with pytest.raises(DocumentCodecError):
            unflatten({"a": "1", "a.b": "2"})

    def test_mixed_array_and_object_rejected(self):
        with pytest.raises(DocumentCodecError):
            unflatten({"a.[0]": "1", "a.b": "2"})

    def test_unknown_reserved_value_rejected(self):
        with pytest.raises(DocumentCodecError):
            unflatten({"a": "__ff:mystery"})

    def test_non_mapping_input(self):
        with pytest.raises(InvalidArgumentsError):
            unflatten(["a", "b"])


@pytest.mark.unit
class TestRoundTrip:
    """unflatten(flatten(d)) reproduces d."""

    @pytest.mark.parametrize(
        "document",
        [
            {"name": "ada", "age": 36, "ratio": 0.5, "admin": False},
            {"deep": {"er": {"est": {"value": "x"}}}, "empty": {}},
            {"tags": ["a", "b", "c"], "matrix": [[1, 2], [3, []]], "none": []},
            {"items": [{"sku": "1", "qty": 2}, {"sku": "2", "qty": 0, "meta": {}}]},
            {"looks_numeric": "007", "looks_bool": "false", "nothing": None},
            {"dotted.key": {"[weird]": "v", "back\\slash": 1}},
            {"when": datetime(2021, 5, 4, 12, 30, tzinfo=timezone.utc), "ref": make_object_id(1)},
            {"big": 2**62, "neg": -17, "tiny": 1e-9, "inf": math.inf},
            {"many": list(range(25))},
        ],
    )
    def test_round_trip(self, document):
        assert unflatten(flatten(document)) == document

    def test_round_trip_with_object_id(self):
        for document in make_documents(5):
            assert unflatten(flatten(document), coerce_object_id) == document


@pytest.mark.unit
class TestDocumentCodec:
    """Test bucket body encode/decode."""

    def test_encode_produces_json_object(self):
        body = DocumentCodec().encode({"_id": make_object_id(1), "a": {"b": True}})

        assert body.startswith("{")
        assert '"a.b":"true"' in body

    def test_decode_hydrates_id_by_default(self):
        codec = DocumentCodec()
        document = make_documents(1)[0]

        assert codec.decode(codec.encode(document)) == document

    def test_decode_without_hydrate_keeps_hex(self):
        codec = DocumentCodec()
        document = make_documents(1)[0]

        decoded = codec.decode(codec.encode(document), hydrate=False)

        assert decoded["_id"] == str(document["_id"])

    @pytest.mark.parametrize("body", ["not json", "[1, 2]", '"str"'])
    def test_malformed_bodies(self, body):
        with pytest.raises(DocumentCodecError):
            DocumentCodec().decode(body)
