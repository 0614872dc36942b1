# ==============================================
# SyncEngine
# ==============================================
#
# PURPOSE:
#   Run one incremental synchronization of a source collection
#   into its destination main table.
#
# RUN (one table, single-threaded):
#
#   ┌ load SyncState ──────────────── absent / force → full sync
#   │
#   ├ fetch source ─ flatten ─ hash    (S, content per id)
#   ├ plan tables from the fetch       (main + child/junction tables)
#   ├ key-only scan of destination     (D; main table created if missing)
#   ├ ChangeDetector.detect            → ChangeSet
#   ├ missing child tables created
#   ├ SchemaEvolver.evolve             (new columns before any write)
#   ├ BulkLoader.apply                 insert / update / delete, child rows
#   │                                  rebuilt for every written id
#   │
#   └ save SyncState                   hashes of succeeded ids +
#                                      carried-forward unchanged ids
#
#   A record whose write failed is left out of the new hash map so
#   the next run classifies it again. The hash covers the flattened
#   scalar fields only: an edit confined to nested content is picked
#   up with force_full or by the next change to the main row. If anything fails before the
#   apply phase, the previous state file is left untouched.
#
#   Callers must not run two syncs of the same table concurrently:
#   the state file and the table are shared without locking.
#
# ==============================================

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from docsync.analysis import SchemaInferencer
from docsync.config import SyncConfig
from docsync.errors import PerRecordError
from docsync.normalization import document_id, flatten_document
from docsync.persistence import SyncState, SyncStateStore
from docsync.schema import RelationalSchemaPlanner, SchemaPlan, TypeMapper
from docsync.storage import BulkLoader, SchemaEvolver, decompose
from .change_detector import ChangeDetector, ChangeSet

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    collection: str
    table: str
    is_full_sync: bool = False
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    columns_added: List[str] = field(default_factory=list)
    table_created: bool = False
    errors: List[PerRecordError] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def duration_seconds(self) -> float:
        if not self.started_at or not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "table": self.table,
            "is_full_sync": self.is_full_sync,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "deleted": self.deleted,
            "columns_added": list(self.columns_added),
            "table_created": self.table_created,
            "errors": [e.to_dict() for e in self.errors],
            "success": self.success,
            "duration_seconds": round(self.duration_seconds, 2),
        }


class SyncEngine:
    """
    Incremental synchronization of one collection.

    Both store clients are expected to be connected already; the
    workflow owns their lifetime.
    """

    def __init__(
        self,
        source,
        destination,
        state_store: SyncStateStore,
        config: Optional[SyncConfig] = None,
        detector: Optional[ChangeDetector] = None,
        loader: Optional[BulkLoader] = None,
        evolver: Optional[SchemaEvolver] = None,
    ):
        self.source = source
        self.destination = destination
        self.state_store = state_store
        self.config = config or SyncConfig()
        self.type_mapper = TypeMapper(string_length=self.config.string_length)
        self.detector = detector or ChangeDetector()
        self.loader = loader or BulkLoader(destination, batch_size=self.config.batch_size)
        self.evolver = evolver or SchemaEvolver(destination, self.type_mapper)

    def run(self, collection: str, table: Optional[str] = None, force_full: bool = False) -> SyncResult:
        """
        Synchronize a collection into its main table.

        Args:
            collection: Source collection
            table: Destination main table (defaults to the collection name)
            force_full: Ignore stored hashes; every retained id is rewritten

        Returns:
            SyncResult (also on partial failure)
        """
        table = table or collection
        key_field = self.config.key_field
        run_start = datetime.now(timezone.utc)
        result = SyncResult(collection=collection, table=table, started_at=run_start)

        previous = self.state_store.load(table)
        documents = self._fetch_source(collection, key_field, result)
        flat_by_id = {doc_id: flatten_document(d, key_field) for doc_id, d in documents.items()}
        plan = self._plan(collection, table, documents)

        if self.destination.table_exists(table):
            destination_ids = self.destination.fetch_ids(table, key_field)
        else:
            self.destination.create_tables([plan.main_table])
            logger.info("Created main table '%s' with %d column(s)", table, len(plan.main_table.columns))
            result.table_created = True
            destination_ids = set()

        change_set = self.detector.detect(flat_by_id, destination_ids, previous, force_full)
        result.is_full_sync = change_set.is_full_sync

        result.columns_added = self.evolver.evolve(table, flat_by_id.values())
        columns = list(self.destination.get_columns(table))
        child_rows = self._prepare_child_tables(plan, documents, change_set, result)

        applied = self.loader.apply(
            table, change_set, flat_by_id, key_field,
            columns=columns, plan=plan, child_rows=child_rows,
        )
        result.inserted = len(applied.inserted)
        result.updated = len(applied.updated)
        result.deleted = len(applied.deleted)
        result.unchanged = len(change_set.unchanged_ids)
        result.errors.extend(applied.errors)

        new_state = SyncState(
            last_sync_time=run_start,
            document_hashes=self._next_hashes(change_set, applied.succeeded, previous),
        )
        self.state_store.save(table, new_state)

        result.finished_at = datetime.now(timezone.utc)
        logger.info(
            "Sync '%s' → '%s' done in %.2fs: %d inserted, %d updated, %d unchanged, %d deleted, %d errors",
            collection, table, result.duration_seconds, result.inserted, result.updated,
            result.unchanged, result.deleted, len(result.errors),
        )
        return result

    def _fetch_source(self, collection: str, key_field: str, result: SyncResult) -> Dict[str, Dict[str, Any]]:
        """Source documents by id; documents without an id are reported."""
        documents: Dict[str, Dict[str, Any]] = {}
        for document in self.source.fetch_all(collection, batch_size=self.config.batch_size):
            doc_id = document_id(document, key_field)
            if doc_id is None:
                result.errors.append(PerRecordError(
                    document_id="<missing>", operation="fetch",
                    message=f"document has no '{key_field}' field",
                ))
                continue
            if doc_id in documents:
                logger.warning("Duplicate id %s in '%s'; keeping the last one", doc_id, collection)
            documents[doc_id] = document
        logger.info("Fetched %d documents from '%s'", len(documents), collection)
        return documents

    def _plan(self, collection: str, table: str, documents: Dict[str, Dict[str, Any]]) -> SchemaPlan:
        analysis = SchemaInferencer(max_depth=self.config.max_depth).analyze(documents.values())
        planner = RelationalSchemaPlanner(key_field=self.config.key_field, type_mapper=self.type_mapper)
        # planned under the table name so child foreign keys point at it
        plan = planner.plan(analysis, table)
        plan.collection = collection
        plan.main_table.name = table
        return plan

    def _prepare_child_tables(
        self,
        plan: SchemaPlan,
        documents: Dict[str, Dict[str, Any]],
        change_set: ChangeSet,
        result: SyncResult,
    ) -> Dict[str, Dict[str, List[Dict[str, Any]]]]:
        """
        Create missing child tables and add new child columns.

        Returns:
            id → child table rows, for every NEW and UPDATED id
        """
        if not plan.child_tables:
            return {}
        self.destination.create_tables(plan.child_tables)

        written = change_set.new_ids + change_set.updated_ids
        child_rows = {doc_id: decompose(documents[doc_id], plan, doc_id) for doc_id in written}
        for child in plan.child_tables:
            rows = [row for by_table in child_rows.values() for row in by_table.get(child.name, [])]
            if rows:
                added = self.evolver.evolve(child.name, rows)
                result.columns_added.extend(f"{child.name}.{c}" for c in added)
        return child_rows

    @staticmethod
    def _next_hashes(change_set: ChangeSet, succeeded: List[str], previous: Optional[SyncState]) -> Dict[str, str]:
        hashes: Dict[str, str] = {}
        prior = previous.document_hashes if previous else {}
        for doc_id in change_set.unchanged_ids:
            # carried forward as recorded, not recomputed
            hashes[doc_id] = prior.get(doc_id, change_set.hashes[doc_id])
        for doc_id in succeeded:
            hashes[doc_id] = change_set.hashes[doc_id]
        return hashes
