# ==============================================
# Tests for Validation (Topic 7)
# ==============================================

from decimal import Decimal

import pytest

from conftest import FakeSource, FakeSQLClient
from docsync.validation import ValidationStatus, Validator


def _destination(rows):
    sql = FakeSQLClient()
    sql.add_table("people", {"_id": "VARCHAR(50)", "name": "VARCHAR(255)", "age": "DECIMAL(18,2)"}, rows)
    return sql


@pytest.fixture
def documents():
    return [
        {"_id": "1", "name": "Alice", "age": 30},
        {"_id": "2", "name": "Bob", "age": 25, "address": {"city": "Pune"}},
    ]


class TestValidator:
    def test_matching_tables_pass(self, documents):
        sql = _destination([
            {"_id": "1", "name": "Alice", "age": Decimal("30.00")},
            {"_id": "2", "name": "Bob", "age": Decimal("25.00")},
        ])
        report = Validator(FakeSource({"people": documents}), sql, 10).validate("people")
        assert report.overall_status is ValidationStatus.PASSED
        assert report.record_count_match
        assert report.passed_samples == 2
        assert report.fields_compared == 6
        assert report.issues == []

    def test_field_mismatch(self, documents):
        """age 30 vs 40 → one difference, sample fails."""
        sql = _destination([
            {"_id": "1", "name": "Alice", "age": 40},
            {"_id": "2", "name": "Bob", "age": 25},
        ])
        report = Validator(FakeSource({"people": documents}), sql, 10).validate("people")
        failed = [d for d in report.details if not d.match]
        assert len(failed) == 1
        assert failed[0].differences == ["age (source: '30' vs dest: '40')"]
        assert failed[0].fields_compared >= 1
        assert "Document 1: 1 field difference(s)" in report.issues
        assert report.overall_status is ValidationStatus.PARTIAL

    def test_count_mismatch(self, documents):
        sql = _destination([{"_id": "1", "name": "Alice", "age": 30}])
        report = Validator(FakeSource({"people": documents}), sql, 10).validate("people")
        assert not report.record_count_match
        assert "Record count mismatch: MongoDB=2, SQL=1" in report.issues
        assert "Document 2 missing in SQL" in report.issues
        assert report.passed_samples == 1
        assert report.failed_samples == 1
        assert report.overall_status is ValidationStatus.PARTIAL

    def test_mostly_failing_is_failed(self, documents):
        sql = _destination([{"_id": "9", "name": "Z", "age": 1}, {"_id": "8", "name": "Y", "age": 2}])
        report = Validator(FakeSource({"people": documents}), sql, 10).validate("people")
        assert report.overall_status is ValidationStatus.FAILED

    def test_missing_column_reported(self, documents):
        sql = FakeSQLClient()
        sql.add_table("people", {"_id": "VARCHAR(50)", "NAME": "VARCHAR(255)"},
                      [{"_id": "1", "NAME": "Alice"}, {"_id": "2", "NAME": "Bob"}])
        report = Validator(FakeSource({"people": documents}), sql, 1).validate("people")
        assert report.details[0].differences == ["age missing in SQL"]

    def test_missing_table_is_error(self, documents):
        report = Validator(FakeSource({"people": documents}), FakeSQLClient(), 10).validate("people")
        assert report.overall_status is ValidationStatus.ERROR
        assert report.mongo_count == 2
        assert any("does not exist" in issue for issue in report.issues)

    def test_exception_keeps_partial_results(self, documents):
        class FlakySQL(FakeSQLClient):
            def fetch_row(self, table, key, value):
                if value == "2":
                    raise RuntimeError("connection reset")
                return super().fetch_row(table, key, value)

        sql = FlakySQL()
        sql.add_table("people", {"_id": "VARCHAR(50)", "name": "VARCHAR(255)", "age": "INT"},
                      [{"_id": "1", "name": "Alice", "age": 30}, {"_id": "2", "name": "Bob", "age": 25}])
        report = Validator(FakeSource({"people": documents}), sql, 10).validate("people")
        assert report.overall_status is ValidationStatus.ERROR
        assert report.passed_samples == 1
        assert "Validation error: connection reset" in report.issues

    def test_zero_sample_size_checks_counts_only(self, documents):
        sql = _destination([{"_id": "1"}, {"_id": "2"}])
        report = Validator(FakeSource({"people": documents}), sql, 0).validate("people")
        assert report.details == []
        assert report.overall_status is ValidationStatus.PASSED

    def test_report_to_dict(self, documents):
        sql = _destination([{"_id": "1", "name": "Alice", "age": 30}, {"_id": "2", "name": "Bob", "age": 25}])
        data = Validator(FakeSource({"people": documents}), sql, 10).validate("people").to_dict()
        assert data["overall_status"] == "PASSED"
        assert data["details"][0]["document_id"] == "1"
