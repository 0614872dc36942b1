# ==============================================
# TOPIC 4: STORAGE (MongoDB source + SQL destination)
# ==============================================
#
# This package handles all database operations:
# reading the source collection, writing destination tables,
# and evolving the destination schema as new fields appear.
#
# Modules:
# --------
# - mongo_client.py → MongoDB source (count, fetch, sample)
# - sql_client.py   → MySQL / SQL Server destination clients
# - evolution.py    → Add columns for newly observed fields
# - bulk_loader.py  → Apply change sets, full-migration loads
#
# ==============================================

from .mongo_client import MongoSource
from .sql_client import MySQLClient, SQLClient, SqlServerClient, create_sql_client
from .evolution import SchemaEvolver
from .bulk_loader import ApplyResult, BulkLoader, LoadResult, decompose, get_path

__all__ = [
    "MongoSource",
    "SQLClient",
    "MySQLClient",
    "SqlServerClient",
    "create_sql_client",
    "SchemaEvolver",
    "ApplyResult",
    "BulkLoader",
    "LoadResult",
    "decompose",
    "get_path",
]
