# ==============================================
# Tests for Normalization (Topic 1)
# ==============================================
#
# TypeDetector tagging / normalization and the flattener.
# ==============================================

import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from bson import Decimal128, ObjectId

from docsync.normalization import TypeDetector, ValueType, document_id, flatten_document


class TestDetect:
    @pytest.mark.parametrize("value, expected", [
        (None, ValueType.NULL),
        ("abc", ValueType.STRING),
        (42, ValueType.INTEGER),
        (4.2, ValueType.NUMBER),
        (Decimal("1.5"), ValueType.NUMBER),
        (Decimal128("1.5"), ValueType.NUMBER),
        (True, ValueType.BOOLEAN),
        (datetime(2024, 1, 1), ValueType.DATETIME),
        (date(2024, 1, 1), ValueType.DATETIME),
        ([1, 2], ValueType.ARRAY),
        ({"a": 1}, ValueType.OBJECT),
        (ObjectId("65f0a1b2c3d4e5f6a7b8c9d0"), ValueType.STRING),
    ])
    def test_detect(self, value, expected):
        assert TypeDetector.detect(value) is expected

    def test_bool_is_not_integer(self):
        """bool subclasses int but must be tagged BOOLEAN."""
        assert TypeDetector.detect(False) is ValueType.BOOLEAN

    def test_scalar_tags(self):
        assert ValueType.STRING.is_scalar
        assert ValueType.NULL.is_scalar
        assert not ValueType.ARRAY.is_scalar
        assert not ValueType.OBJECT.is_scalar


class TestNormalize:
    @pytest.mark.parametrize("value, expected", [
        (None, ""),
        (True, "1"),
        (False, "0"),
        (30, "30"),
        (30.0, "30"),
        (Decimal("30.00"), "30"),
        (30.5, "30.5"),
        (Decimal("30.50"), "30.5"),
        ("  abc ", "abc"),
        (datetime(2024, 1, 2, 3, 0, 0), "2024-01-02 03:00:00"),
        (b"\x01", "1"),
    ])
    def test_normalize(self, value, expected):
        assert TypeDetector.normalize(value) == expected

    def test_aware_datetime_normalized_to_utc(self):
        aware = datetime(2024, 1, 2, 8, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert TypeDetector.normalize(aware) == "2024-01-02 03:00:00"

    def test_source_and_destination_forms_agree(self):
        """Integer source vs DECIMAL column and bool source vs BIT column."""
        assert TypeDetector.normalize(30) == TypeDetector.normalize(Decimal("30.00"))
        assert TypeDetector.normalize(True) == TypeDetector.normalize(1)


class TestToSqlValue:
    def test_object_id_becomes_string(self):
        oid = ObjectId("65f0a1b2c3d4e5f6a7b8c9d0")
        assert TypeDetector.to_sql_value(oid) == "65f0a1b2c3d4e5f6a7b8c9d0"

    def test_decimal128_becomes_decimal(self):
        assert TypeDetector.to_sql_value(Decimal128("12.34")) == Decimal("12.34")

    def test_non_finite_float_becomes_none(self):
        assert TypeDetector.to_sql_value(math.nan) is None
        assert TypeDetector.to_sql_value(math.inf) is None

    def test_plain_values_unchanged(self):
        assert TypeDetector.to_sql_value("x") == "x"
        assert TypeDetector.to_sql_value(5) == 5


class TestFlatten:
    def test_keeps_only_top_level_scalars(self, sample_documents):
        flat = flatten_document(sample_documents[0])
        assert set(flat) == {"_id", "name", "age", "active", "created"}

    def test_object_id_key_stringified(self):
        oid = ObjectId("65f0a1b2c3d4e5f6a7b8c9d0")
        flat = flatten_document({"_id": oid, "n": 1})
        assert flat["_id"] == "65f0a1b2c3d4e5f6a7b8c9d0"

    def test_integer_key_stringified(self):
        assert flatten_document({"_id": 7})["_id"] == "7"

    def test_null_fields_kept(self):
        assert flatten_document({"_id": "1", "note": None}) == {"_id": "1", "note": None}

    def test_custom_key_field(self):
        assert flatten_document({"code": 12, "x": "y"}, key_field="code") == {"code": "12", "x": "y"}

    def test_document_id(self):
        assert document_id({"_id": "abc"}) == "abc"
        assert document_id({"name": "no id"}) is None
