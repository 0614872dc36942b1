# ==============================================
# MigrationWorkflow: Orchestrator
# ==============================================
#
# PURPOSE:
#   Ties the topics together into the four user-facing actions.
#   The CLI talks to this class only.
#
# HOW THE TOPICS CONNECT:
#
#   ┌──────────────────────────────────────────────────────────┐
#   │                   MigrationWorkflow                      │
#   │                                                          │
#   │  analyze ─ MongoSource.fetch_sample                      │
#   │            → SchemaInferencer → RelationalSchemaPlanner  │
#   │            → DDLEmitter.write (schema_<collection>.sql)  │
#   │                                                          │
#   │  migrate ─ MongoSource.fetch_all                         │
#   │            → SchemaInferencer → RelationalSchemaPlanner  │
#   │            → SQLClient.create_tables                     │
#   │            → BulkLoader.load_full                        │
#   │            → SyncStateStore.save (baseline hashes)       │
#   │                                                          │
#   │  sync    ─ SyncEngine.run                                │
#   │                                                          │
#   │  validate ─ Validator.validate                           │
#   └──────────────────────────────────────────────────────────┘
#
#   Each action opens its own source/destination clients in `with`
#   blocks so they are closed on every exit path.
#
#   run_all(action, collections) processes collections one after
#   the other. A StoreConnectionError fails that collection only;
#   the remaining collections still run.
#
# ==============================================

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from docsync.analysis import SchemaAnalysis, SchemaInferencer
from docsync.config import AppConfig, get_config
from docsync.errors import DocSyncError
from docsync.normalization import document_id, flatten_document
from docsync.persistence import SyncState, SyncStateStore
from docsync.schema import DDLEmitter, Dialect, RelationalSchemaPlanner, SchemaPlan, TypeMapper, sanitize_identifier
from docsync.storage import BulkLoader, LoadResult, MongoSource, create_sql_client
from docsync.sync import SyncEngine, SyncResult, compute_hash
from docsync.validation import ValidationReport, ValidationStatus, Validator

logger = logging.getLogger(__name__)

ACTIONS = ("analyze", "migrate", "sync", "validate")


@dataclass
class AnalysisOutcome:
    analysis: SchemaAnalysis
    plan: SchemaPlan
    ddl_path: Optional[Path] = None

    @property
    def success(self) -> bool:
        return True


@dataclass
class MigrationOutcome:
    plan: SchemaPlan
    tables_created: List[str]
    load: LoadResult

    @property
    def success(self) -> bool:
        return not self.load.errors


@dataclass
class CollectionOutcome:
    """Result of one action on one collection, as reported by run_all."""
    collection: str
    action: str
    result: Any = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        if self.error is not None:
            return False
        if isinstance(self.result, ValidationReport):
            return self.result.overall_status is ValidationStatus.PASSED
        return bool(getattr(self.result, "success", True))


class MigrationWorkflow:
    """
    Runs analyze / migrate / sync / validate against configured stores.

    Args:
        config: Application configuration. If None, loads from environment.
        source_factory: () -> source client (defaults to MongoSource)
        destination_factory: (dialect) -> SQL client (defaults to create_sql_client)
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        source_factory: Optional[Callable[[], Any]] = None,
        destination_factory: Optional[Callable[[Dialect], Any]] = None,
    ):
        self.config = config or get_config()
        self._source_factory = source_factory or self._default_source
        self._destination_factory = destination_factory or self._default_destination
        self.type_mapper = TypeMapper(string_length=self.config.sync.string_length)
        self.state_store = SyncStateStore(self.config.sync.state_dir)

    def _default_source(self):
        return MongoSource(self.config.mongo.uri, self.config.mongo.database)

    def _default_destination(self, dialect: Dialect):
        return create_sql_client(dialect, self.config)

    @property
    def dialect(self) -> Dialect:
        return self.config.dialect

    @property
    def key_field(self) -> str:
        return self.config.sync.key_field

    @staticmethod
    def table_for(collection: str) -> str:
        return sanitize_identifier(collection)

    def _plan(self, documents, collection: str):
        inferencer = SchemaInferencer(max_depth=self.config.sync.max_depth)
        analysis = inferencer.analyze(documents)
        planner = RelationalSchemaPlanner(key_field=self.key_field, type_mapper=self.type_mapper)
        return analysis, planner.plan(analysis, collection)

    # ======================================
    # Actions
    # ======================================
    def analyze(self, collection: str, write_ddl: bool = True) -> AnalysisOutcome:
        """
        Infer the schema of a sample and write the DDL script.

        Returns:
            AnalysisOutcome (analysis, plan, path of schema_<collection>.sql)
        """
        with self._source_factory() as source:
            sample = source.fetch_sample(collection, self.config.sync.sample_size)

        analysis, plan = self._plan(sample, collection)
        outcome = AnalysisOutcome(analysis=analysis, plan=plan)
        if write_ddl:
            emitter = DDLEmitter(self.dialect)
            outcome.ddl_path = emitter.write(plan, self.config.sync.output_dir)
        return outcome

    def migrate(self, collection: str, drop_existing: bool = False) -> MigrationOutcome:
        """
        Full migration: create every planned table and load all documents.

        The planned schema comes from the whole collection, not a sample,
        so every field present at migration time gets a column. Hashes of
        the loaded documents are saved as the baseline for the next sync.
        """
        started_at = datetime.now(timezone.utc)
        with self._source_factory() as source, self._destination_factory(self.dialect) as destination:
            documents = list(source.fetch_all(collection, batch_size=self.config.sync.batch_size))
            logger.info("Fetched %d documents from '%s'", len(documents), collection)

            _, plan = self._plan(documents, collection)
            created = destination.create_tables(plan.tables, drop_existing=drop_existing)

            loader = BulkLoader(destination, batch_size=self.config.sync.batch_size)
            load = loader.load_full(plan, documents)

        failed = {e.document_id for e in load.errors}
        state = self._baseline_state(documents, plan, failed, started_at)
        self.state_store.save(plan.main_table.name, state)
        return MigrationOutcome(plan=plan, tables_created=created, load=load)

    def _baseline_state(self, documents, plan: SchemaPlan, failed, started_at: datetime) -> SyncState:
        # hashes cover only the planned main-table columns, so a field left
        # out of the plan makes the next sync rewrite that row
        main_columns = set(plan.main_table.column_names)
        state = SyncState(last_sync_time=started_at)
        for document in documents:
            doc_id = document_id(document, self.key_field)
            if doc_id is None or doc_id in failed:
                continue
            flat = flatten_document(document, self.key_field)
            state.document_hashes[doc_id] = compute_hash({k: v for k, v in flat.items() if k in main_columns})
        return state

    def sync(self, collection: str, force_full: bool = False) -> SyncResult:
        with self._source_factory() as source, self._destination_factory(self.dialect) as destination:
            engine = SyncEngine(source, destination, self.state_store, self.config.sync)
            return engine.run(collection, self.table_for(collection), force_full=force_full)

    def validate(self, collection: str) -> ValidationReport:
        with self._source_factory() as source, self._destination_factory(self.dialect) as destination:
            validator = Validator(source, destination, self.config.sync.validation_sample_size)
            return validator.validate(collection, self.table_for(collection), self.key_field)

    # ======================================
    # Batch runs
    # ======================================
    def collections(self, requested: Optional[List[str]] = None) -> List[str]:
        """Requested names, else COLLECTIONS, else everything in the source."""
        if requested:
            return list(requested)
        if self.config.collections:
            return list(self.config.collections)
        with self._source_factory() as source:
            return source.list_collections()

    def run_all(self, action: str, collections: Optional[List[str]] = None, **options) -> List[CollectionOutcome]:
        """
        Run one action over several collections, sequentially.

        Args:
            action: analyze | migrate | sync | validate
            collections: Names to process (see collections())
            **options: Passed to the action (force_full, drop_existing, ...)

        Returns:
            One CollectionOutcome per collection
        """
        if action not in ACTIONS:
            raise ValueError(f"Unknown action '{action}' (expected one of {', '.join(ACTIONS)})")
        handler = getattr(self, action)

        outcomes = []
        for collection in self.collections(collections):
            logger.info("%s '%s'...", action.capitalize(), collection)
            try:
                outcomes.append(CollectionOutcome(collection, action, result=handler(collection, **options)))
            except DocSyncError as e:
                # StoreConnectionError included: fatal for this collection only
                logger.error("✗ %s '%s' failed: %s", action, collection, e)
                outcomes.append(CollectionOutcome(collection, action, error=str(e)))
        return outcomes

    @staticmethod
    def summarize(outcomes: List[CollectionOutcome]) -> Dict[str, int]:
        succeeded = sum(1 for o in outcomes if o.success)
        return {"collections": len(outcomes), "succeeded": succeeded, "failed": len(outcomes) - succeeded}
