# ==============================================
# BulkLoader
# ==============================================
#
# PURPOSE:
#   Write documents into the destination tables. Two entry points:
#
#   - apply(...)      incremental sync: insert NEW, update UPDATED,
#                     delete DELETED rows of the main table, batch by batch.
#                     Given a plan and decomposed rows, the child rows of
#                     every written document are rebuilt too; deleted
#                     documents lose theirs through ON DELETE CASCADE.
#   - load_full(...)  full migration: upsert the main row of every
#                     document and rebuild its child/junction rows
#
#   One record failing never aborts its batch, its class, or the run.
#   Failures are collected as PerRecordError on the result object.
#
# DATA CLASSES:
# -------------
# - ApplyResult: inserted, updated, deleted (ids), errors
# - LoadResult:  documents_loaded, rows_by_table, errors
#
# FUNCTIONS:
# ----------
# - get_path(obj, "address.geo.lat") -> value | None
# - decompose(document, plan, doc_id) -> {child_table: [row, ...]}
#
# ==============================================

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from docsync.errors import PerRecordError
from docsync.normalization import TypeDetector, document_id, flatten_document
from docsync.schema import ARRAY_INDEX_COLUMN, RelationshipKind, SchemaPlan, TableDefinition

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    inserted: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    errors: List[PerRecordError] = field(default_factory=list)

    @property
    def succeeded(self) -> List[str]:
        """Ids whose new content is now in the destination."""
        return self.inserted + self.updated


@dataclass
class LoadResult:
    documents_loaded: int = 0
    rows_by_table: Dict[str, int] = field(default_factory=dict)
    errors: List[PerRecordError] = field(default_factory=list)

    def add_rows(self, table: str, count: int) -> None:
        self.rows_by_table[table] = self.rows_by_table.get(table, 0) + count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documents_loaded": self.documents_loaded,
            "rows_by_table": dict(self.rows_by_table),
            "errors": [e.to_dict() for e in self.errors],
        }


def get_path(obj: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings; None when absent."""
    if path == "":
        return obj
    current = obj
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def _row_from(value: Any, table: TableDefinition) -> Dict[str, Any]:
    row = {}
    for column in table.data_columns:
        item = get_path(value, column.source_path)
        row[column.name] = TypeDetector.to_sql_value(item) if TypeDetector.is_scalar(item) else None
    return row


def decompose(document: Mapping[str, Any], plan: SchemaPlan, doc_id: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Split the nested parts of a document into child table rows.

    Nested objects give one row, arrays give one row per element with
    its position in array_index. Elements that do not match the table
    shape (e.g. a string inside an array of objects) are skipped.
    """
    rows: Dict[str, List[Dict[str, Any]]] = {}
    for table in plan.child_tables:
        value = get_path(document, table.source_path)
        table_rows = []

        if table.relationship is RelationshipKind.NESTED_OBJECT:
            if isinstance(value, Mapping):
                row = {table.foreign_key_column: doc_id}
                row.update(_row_from(value, table))
                table_rows.append(row)

        elif isinstance(value, (list, tuple)):
            want_objects = table.relationship is RelationshipKind.ARRAY_OF_OBJECT
            for index, element in enumerate(value):
                if want_objects != isinstance(element, Mapping):
                    continue
                if not want_objects and not TypeDetector.is_scalar(element):
                    continue
                row = {table.foreign_key_column: doc_id, ARRAY_INDEX_COLUMN: index}
                row.update(_row_from(element, table))
                table_rows.append(row)

        rows[table.name] = table_rows
    return rows


class BulkLoader:
    def __init__(self, destination, batch_size: int = 500):
        self.destination = destination
        self.batch_size = max(1, batch_size)

    def _batches(self, ids: Sequence[str]) -> Iterator[Sequence[str]]:
        for start in range(0, len(ids), self.batch_size):
            yield ids[start:start + self.batch_size]

    # ======================================
    # Incremental sync
    # ======================================
    def apply(
        self,
        table: str,
        change_set,
        flat_by_id: Mapping[str, Dict[str, Any]],
        key_field: str,
        columns: Optional[Iterable[str]] = None,
        plan: Optional[SchemaPlan] = None,
        child_rows: Optional[Mapping[str, Dict[str, List[Dict[str, Any]]]]] = None,
    ) -> ApplyResult:
        """
        Apply one change set to the main table.

        Args:
            table: Main table name
            change_set: ChangeSet from the change detector
            flat_by_id: Flattened source documents by id
            key_field: Identifier column
            columns: Current table columns. Updates set columns the
                     document no longer has back to NULL.
            plan: Table plan of the collection (needed for child rows)
            child_rows: id → decompose() output for NEW and UPDATED ids

        Returns:
            ApplyResult with the ids that succeeded per class
        """
        result = ApplyResult()
        known_columns = [c for c in (columns or []) if c != key_field]

        for batch in self._batches(change_set.new_ids):
            for doc_id in batch:
                try:
                    # upsert so a retried insert never trips on a duplicate key
                    self.destination.upsert_row(table, flat_by_id[doc_id], key_field)
                    self._replace_children(plan, doc_id, child_rows)
                    result.inserted.append(doc_id)
                except Exception as e:
                    self._record_failure(result, doc_id, "insert", e)

        for batch in self._batches(change_set.updated_ids):
            for doc_id in batch:
                try:
                    row = self._full_row(flat_by_id[doc_id], known_columns)
                    self.destination.update_row(table, row, key_field)
                    self._replace_children(plan, doc_id, child_rows)
                    result.updated.append(doc_id)
                except Exception as e:
                    self._record_failure(result, doc_id, "update", e)

        for batch in self._batches(change_set.deleted_ids):
            for doc_id in batch:
                try:
                    self.destination.delete_row(table, key_field, doc_id)
                    result.deleted.append(doc_id)
                except Exception as e:
                    self._record_failure(result, doc_id, "delete", e)

        logger.info(
            "Applied changes to '%s': %d inserted, %d updated, %d deleted, %d failed",
            table, len(result.inserted), len(result.updated), len(result.deleted), len(result.errors),
        )
        return result

    def _replace_children(self, plan: Optional[SchemaPlan], doc_id: str, child_rows) -> Dict[str, int]:
        """Delete the child rows of one document and insert its current ones."""
        counts: Dict[str, int] = {}
        if plan is None or not child_rows or doc_id not in child_rows:
            return counts
        for child_name, rows in child_rows[doc_id].items():
            child = plan.table(child_name)
            self.destination.delete_where(child_name, child.foreign_key_column, doc_id)
            self._insert_child_rows(child_name, rows)
            counts[child_name] = len(rows)
        return counts

    @staticmethod
    def _full_row(flat: Dict[str, Any], known_columns: List[str]) -> Dict[str, Any]:
        row = dict(flat)
        present = {name.lower() for name in row}
        for column in known_columns:
            if column.lower() not in present:
                row[column] = None
        return row

    @staticmethod
    def _record_failure(result, doc_id: str, operation: str, error: Exception) -> None:
        message = str(error)[:200]
        logger.warning("✗ %s failed for %s: %s", operation, doc_id, message)
        result.errors.append(PerRecordError(document_id=doc_id, operation=operation, message=message))

    # ======================================
    # Full migration
    # ======================================
    def load_full(self, plan: SchemaPlan, documents: Iterable[Mapping[str, Any]]) -> LoadResult:
        """
        Load every document into the planned tables.

        The main row is upserted; child rows of the document are deleted
        and re-inserted, so loading the same documents twice leaves the
        same rows behind.
        """
        result = LoadResult()
        key_field = plan.key_field
        main = plan.main_table
        main_columns = {c.name for c in main.columns}

        for document in documents:
            doc_id = document_id(document, key_field)
            if doc_id is None:
                result.errors.append(PerRecordError(
                    document_id="<missing>", operation="insert",
                    message=f"document has no '{key_field}' field",
                ))
                continue
            try:
                flat = flatten_document(document, key_field)
                # unplanned fields are picked up later by schema evolution
                row = {k: v for k, v in flat.items() if k in main_columns}
                self.destination.upsert_row(main.name, row, key_field)
                result.add_rows(main.name, 1)

                children = {doc_id: decompose(document, plan, doc_id)}
                for child_name, count in self._replace_children(plan, doc_id, children).items():
                    result.add_rows(child_name, count)
                result.documents_loaded += 1
            except Exception as e:
                self._record_failure(result, doc_id, "insert", e)

            if result.documents_loaded and result.documents_loaded % self.batch_size == 0:
                logger.info("   → Loaded %d documents...", result.documents_loaded)

        logger.info(
            "Loaded %d documents into %d table(s), %d failed",
            result.documents_loaded, len(result.rows_by_table), len(result.errors),
        )
        return result

    def _insert_child_rows(self, table: str, rows: List[Dict[str, Any]]) -> None:
        for start in range(0, len(rows), self.batch_size):
            self.destination.insert_many(table, rows[start:start + self.batch_size])
