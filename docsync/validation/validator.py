import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from docsync.errors import ValidationError
from docsync.normalization import TypeDetector, document_id, flatten_document


logger = logging.getLogger(__name__)


# ==============================================
# Validator
# ==============================================
#
# PURPOSE:
#   Check a migrated table against its source collection:
#     1. record counts must match
#     2. a random sample of documents is fetched from the source and
#        every flattened scalar field is compared to the destination
#        row with the same id, both sides normalized to strings
#
# STATUS:
# -------
#   ERROR    something raised mid-validation (partial results kept)
#   PASSED   no issues at all
#   FAILED   more failed samples than passed ones
#   PARTIAL  anything else
#
# MESSAGES (exact wording, surfaced in reports):
#   Record count mismatch: MongoDB=<m>, SQL=<s>
#   Document <id> missing in SQL
#   Document <id>: <n> field difference(s)
#   <field> missing in SQL
#   <field> (source: '<a>' vs dest: '<b>')
#
# ==============================================


class ValidationStatus(Enum):
    PASSED = "PASSED"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"
    ERROR = "ERROR"


@dataclass
class SampleDetail:
    document_id: str
    match: bool = True
    differences: List[str] = field(default_factory=list)
    fields_compared: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "match": self.match,
            "differences": list(self.differences),
            "fields_compared": self.fields_compared,
        }


@dataclass
class ValidationReport:
    collection: str
    table: str
    mongo_count: int = 0
    sql_count: int = 0
    record_count_match: bool = False
    details: List[SampleDetail] = field(default_factory=list)
    issues: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    overall_status: ValidationStatus = ValidationStatus.PASSED

    @property
    def fields_compared(self) -> int:
        return sum(d.fields_compared for d in self.details)

    @property
    def passed_samples(self) -> int:
        return sum(1 for d in self.details if d.match)

    @property
    def failed_samples(self) -> int:
        return sum(1 for d in self.details if not d.match)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "table": self.table,
            "mongo_count": self.mongo_count,
            "sql_count": self.sql_count,
            "record_count_match": self.record_count_match,
            "fields_compared": self.fields_compared,
            "passed_samples": self.passed_samples,
            "failed_samples": self.failed_samples,
            "overall_status": self.overall_status.value,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "details": [d.to_dict() for d in self.details],
        }


class Validator:
    def __init__(self, source, destination, sample_size: int = 10):
        self.source = source
        self.destination = destination
        self.sample_size = sample_size

    def validate(self, collection: str, table: Optional[str] = None, key_field: str = "_id") -> ValidationReport:
        """
        Validate one migrated table.

        Args:
            collection: Source collection
            table: Destination main table (defaults to the collection name)
            key_field: Identifier field / column

        Returns:
            ValidationReport, never raises
        """
        table = table or collection
        report = ValidationReport(collection=collection, table=table)

        try:
            self._check_counts(report, collection, table)
            self._check_samples(report, collection, table, key_field)
        except Exception as e:
            logger.error("✗ Validation of '%s' aborted: %s", table, e)
            report.issues.append(f"Validation error: {e}")
            report.overall_status = ValidationStatus.ERROR
            return report

        report.overall_status = self._status(report)
        logger.info(
            "Validation of '%s': %s (%d passed, %d failed, %d fields compared)",
            table, report.overall_status.value, report.passed_samples,
            report.failed_samples, report.fields_compared,
        )
        return report

    def _check_counts(self, report: ValidationReport, collection: str, table: str) -> None:
        report.mongo_count = self.source.count(collection)
        if not self.destination.table_exists(table):
            raise ValidationError(f"table '{table}' does not exist")
        report.sql_count = self.destination.count_rows(table)
        report.record_count_match = report.mongo_count == report.sql_count
        if not report.record_count_match:
            report.issues.append(
                f"Record count mismatch: MongoDB={report.mongo_count}, SQL={report.sql_count}"
            )

    def _check_samples(self, report: ValidationReport, collection: str, table: str, key_field: str) -> None:
        if self.sample_size <= 0:
            return
        for document in self.source.fetch_sample(collection, self.sample_size):
            doc_id = document_id(document, key_field)
            if doc_id is None:
                report.warnings.append(f"Sampled document without '{key_field}' skipped")
                continue

            row = self.destination.fetch_row(table, key_field, doc_id)
            if row is None:
                report.details.append(SampleDetail(document_id=doc_id, match=False))
                report.issues.append(f"Document {doc_id} missing in SQL")
                continue

            detail = self.compare(doc_id, flatten_document(document, key_field), row)
            report.details.append(detail)
            if not detail.match:
                report.issues.append(f"Document {doc_id}: {len(detail.differences)} field difference(s)")

    @staticmethod
    def compare(doc_id: str, flat: Mapping[str, Any], row: Mapping[str, Any]) -> SampleDetail:
        """Compare a flattened source document with its destination row."""
        detail = SampleDetail(document_id=doc_id)
        by_lower = {name.lower(): name for name in row}

        for name, source_value in flat.items():
            detail.fields_compared += 1
            column = name if name in row else by_lower.get(name.lower())
            if column is None:
                detail.differences.append(f"{name} missing in SQL")
                continue
            a = TypeDetector.normalize(source_value)
            b = TypeDetector.normalize(row[column])
            if a != b:
                detail.differences.append(f"{name} (source: '{a}' vs dest: '{b}')")

        detail.match = not detail.differences
        return detail

    @staticmethod
    def _status(report: ValidationReport) -> ValidationStatus:
        if not report.issues:
            return ValidationStatus.PASSED
        if report.failed_samples > report.passed_samples:
            return ValidationStatus.FAILED
        return ValidationStatus.PARTIAL
