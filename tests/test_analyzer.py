# ==============================================
# Tests for Schema Inference (Topic 2)
# ==============================================

import logging

import pytest

from docsync.analysis import FieldSchema, SchemaInferencer
from docsync.normalization import ValueType


@pytest.fixture
def inferencer():
    return SchemaInferencer()


class TestFieldPaths:
    def test_nested_and_array_paths(self, inferencer, sample_documents):
        analysis = inferencer.analyze(sample_documents)
        for path in ("name", "address", "address.city", "address.geo", "address.geo.lat",
                     "tags", "items", "items[].sku", "items[].qty"):
            assert path in analysis, path

    def test_nested_flags(self, inferencer, sample_documents):
        analysis = inferencer.analyze(sample_documents)
        assert analysis["address"].is_nested
        assert not analysis["address"].is_array
        assert analysis["items"].is_array
        assert analysis["items"].has_object_elements
        assert analysis["name"].is_scalar

    def test_total_docs(self, inferencer, sample_documents):
        assert inferencer.analyze(sample_documents).total_docs == 2


class TestOccurrence:
    def test_optional_field_not_required(self, inferencer):
        """age in 1 of 2 documents → occurrence 1, nullable."""
        analysis = inferencer.analyze([{"_id": 1, "age": 30}, {"_id": 2}])
        assert analysis["age"].occurrence_count == 1
        assert not analysis.is_required("age")
        assert analysis.is_required("_id")

    def test_null_value_keeps_field_nullable(self, inferencer):
        analysis = inferencer.analyze([{"x": 1}, {"x": None}])
        assert analysis["x"].type_counts == {ValueType.INTEGER: 1, ValueType.NULL: 1}
        assert analysis["x"].occurrence_count == 1
        assert not analysis.is_required("x")

    def test_array_element_paths_counted_once_per_document(self, inferencer):
        analysis = inferencer.analyze([
            {"_id": "1", "items": [{"sku": "a"}, {"sku": "b"}, {"sku": "c"}]},
            {"_id": "2", "items": [{"qty": 1}]},
        ])
        assert analysis["items[].sku"].occurrence_count == 1
        assert analysis["items[].sku"].type_counts == {ValueType.STRING: 3}
        assert analysis["items"].array_element_type_counts == {ValueType.OBJECT: 4}
        for fs in analysis.fields.values():
            assert fs.occurrence_count <= analysis.total_docs, fs.path

    def test_nested_arrays_counted_once_per_document(self, inferencer):
        doc = {"orders": [{"lines": [{"sku": "a"}, {"sku": "b"}]}, {"lines": [{"sku": "c"}]}]}
        analysis = inferencer.analyze([doc])
        assert analysis["orders[].lines"].occurrence_count == 1
        assert analysis["orders[].lines[].sku"].occurrence_count == 1

    def test_empty_input(self, inferencer):
        analysis = inferencer.analyze([])
        assert analysis.total_docs == 0
        assert analysis.fields == {}
        assert not analysis.is_required("anything")


class TestTypes:
    def test_array_of_strings(self, inferencer):
        analysis = inferencer.analyze([{"tags": ["a", "b", "c"]}])
        tags = analysis["tags"]
        assert tags.is_array
        assert tags.array_element_type_counts == {ValueType.STRING: 3}
        assert tags.dominant_element_type is ValueType.STRING

    def test_majority_type_wins(self, inferencer):
        analysis = inferencer.analyze([{"v": 1}, {"v": 2}, {"v": "three"}])
        assert analysis["v"].dominant_type is ValueType.INTEGER

    def test_tie_keeps_first_seen(self, inferencer):
        analysis = inferencer.analyze([{"v": "one"}, {"v": 2}])
        assert analysis["v"].dominant_type is ValueType.STRING

    def test_only_nulls(self, inferencer):
        analysis = inferencer.analyze([{"v": None}])
        assert analysis["v"].dominant_type is ValueType.NULL


class TestSamples:
    def test_samples_deduplicated_and_capped(self):
        fs = FieldSchema(path="x")
        for value in ["a", "a", "b", "c", "d"]:
            fs.add_sample(value)
        assert fs.sample_values == ["a", "b", "c"]

    def test_long_sample_truncated_but_length_remembered(self):
        fs = FieldSchema(path="x")
        fs.add_sample("y" * 300)
        assert len(fs.sample_values[0]) == 50
        assert fs.max_sample_length == 300


class TestRobustness:
    def test_non_object_documents_skipped(self, inferencer, caplog):
        with caplog.at_level(logging.WARNING):
            analysis = inferencer.analyze([{"a": 1}, "not a document", 42])
        assert analysis.total_docs == 1
        assert "document #1 is str" in caplog.text

    def test_max_depth_bounds_recursion(self, caplog):
        doc = {"l1": {"l2": {"l3": {"l4": 1}}}}
        with caplog.at_level(logging.WARNING):
            analysis = SchemaInferencer(max_depth=2).analyze([doc])
        assert "l1.l2" in analysis
        assert "l1.l2.l3.l4" not in analysis
        assert "exceeds max depth 2" in caplog.text

    def test_self_reference_does_not_loop(self, inferencer, caplog):
        doc = {"name": "loop"}
        doc["me"] = doc
        with caplog.at_level(logging.WARNING):
            analysis = inferencer.analyze([doc])
        assert "name" in analysis
        assert "me.name" not in analysis
        assert "refers back to an enclosing object" in caplog.text

    def test_to_dict_is_serializable(self, inferencer, sample_documents):
        data = inferencer.analyze(sample_documents).to_dict()
        assert data["total_docs"] == 2
        assert data["fields"]["tags"]["array_element_type_counts"] == {"string": 4}
