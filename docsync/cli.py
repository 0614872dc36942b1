# ==============================================
# CLI: Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Provides command-line interface to run the workflow.
#   This is how users interact with the system.
#
# COMMANDS:
# ---------
# 1. Infer schemas and write schema_<collection>.sql:
#    python -m docsync.cli analyze orders customers
#
# 2. Create tables and load every document:
#    python -m docsync.cli migrate orders --drop
#
# 3. Incremental sync (add --force to ignore stored hashes):
#    python -m docsync.cli sync orders
#    python -m docsync.cli sync --force
#
# 4. Compare counts and sampled documents:
#    python -m docsync.cli validate orders
#
# Common options: --dialect mysql|sqlserver, --log-level DEBUG
# Without collection names, COLLECTIONS from .env is used, then
# every collection of the source database.
#
# Exit code is 1 when any collection failed.
#
# ==============================================

import argparse
import logging
import sys
from typing import List, Optional

from docsync import __version__
from docsync.config import get_config
from docsync.errors import DocSyncError
from docsync.migrator import CollectionOutcome, MigrationWorkflow
from docsync.schema import Dialect


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsync",
        description="Migrate and synchronize MongoDB collections into MySQL or SQL Server.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("collections", nargs="*", help="Collections to process")
    common.add_argument("--dialect", choices=[d.value for d in Dialect], help="Destination engine")
    common.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("analyze", parents=[common], help="Infer schema and write DDL scripts")
    migrate = subparsers.add_parser("migrate", parents=[common], help="Create tables and load all documents")
    migrate.add_argument("--drop", action="store_true", help="Drop existing tables first")
    sync = subparsers.add_parser("sync", parents=[common], help="Incremental synchronization")
    sync.add_argument("--force", action="store_true", help="Full sync regardless of stored state")
    subparsers.add_parser("validate", parents=[common], help="Validate migrated tables")
    return parser


def _options(args: argparse.Namespace) -> dict:
    if args.command == "migrate":
        return {"drop_existing": args.drop}
    if args.command == "sync":
        return {"force_full": args.force}
    return {}


def _print_outcome(outcome: CollectionOutcome) -> None:
    mark = "✓" if outcome.success else "✗"
    if outcome.error is not None:
        print(f"{mark} {outcome.collection}: {outcome.error}")
        return

    result = outcome.result
    if outcome.action == "analyze":
        tables = ", ".join(t.name for t in result.plan.tables)
        print(f"{mark} {outcome.collection}: {result.analysis.total_docs} docs sampled → {tables}")
        if result.ddl_path:
            print(f"   DDL written to {result.ddl_path}")
    elif outcome.action == "migrate":
        print(f"{mark} {outcome.collection}: {result.load.documents_loaded} documents loaded")
        for table, count in result.load.rows_by_table.items():
            print(f"   {table}: {count} rows")
    elif outcome.action == "sync":
        mode = "full" if result.is_full_sync else "incremental"
        print(
            f"{mark} {outcome.collection} ({mode}): {result.inserted} inserted, "
            f"{result.updated} updated, {result.unchanged} unchanged, {result.deleted} deleted"
        )
        if result.columns_added:
            print(f"   columns added: {', '.join(result.columns_added)}")
    elif outcome.action == "validate":
        print(
            f"{mark} {outcome.collection}: {result.overall_status.value} "
            f"(MongoDB={result.mongo_count}, SQL={result.sql_count}, "
            f"{result.passed_samples} passed / {result.failed_samples} failed samples)"
        )
        for issue in result.issues:
            print(f"   - {issue}")

    errors = getattr(result, "errors", None) or getattr(getattr(result, "load", None), "errors", [])
    for error in errors[:10]:
        print(f"   ✗ {error}")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_config()
    if args.dialect:
        config.dialect = Dialect.parse(args.dialect)
    level = (args.log_level or config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    workflow = MigrationWorkflow(config)
    try:
        outcomes = workflow.run_all(args.command, args.collections or None, **_options(args))
    except DocSyncError as e:
        # raised only while listing the source collections
        print(f"✗ {e}")
        return 1
    if not outcomes:
        print("✗ No collections to process")
        return 1

    print("=" * 60)
    for outcome in outcomes:
        _print_outcome(outcome)
    summary = workflow.summarize(outcomes)
    print("=" * 60)
    print(f"{summary['succeeded']}/{summary['collections']} collection(s) succeeded")
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
