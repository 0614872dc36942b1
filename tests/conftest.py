# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# Shared fixtures for all tests. Nothing here needs a running
# MongoDB or SQL server:
#
# - FakeSource:    in-memory stand-in for MongoSource
# - FakeSQLClient: in-memory stand-in for MySQLClient / SqlServerClient
#                  (same method names and return shapes, rows kept as
#                  dicts, unknown columns rejected like a real engine,
#                  child rows removed with their parent like ON DELETE CASCADE)
# - RecordingConnection: DB-API connection that records every
#                  statement, for testing the real client classes
#
# ==============================================

import copy
from datetime import datetime

import pytest

from docsync.config import AppConfig, SyncConfig
from docsync.errors import StoreConnectionError
from docsync.persistence import SyncStateStore
from docsync.schema import DDLEmitter, Dialect


class FakeSource:
    def __init__(self, collections=None, fail_connect=False):
        self.collections = collections if collections is not None else {}
        self.fail_connect = fail_connect
        self.connected = False

    def connect(self):
        if self.fail_connect:
            raise StoreConnectionError("MongoDB", "could not connect: refused")
        self.connected = True

    def disconnect(self):
        self.connected = False

    def list_collections(self):
        return sorted(self.collections)

    def count(self, collection):
        return len(self.collections.get(collection, []))

    def fetch_all(self, collection, batch_size=500):
        for document in self.collections.get(collection, []):
            yield copy.deepcopy(document)

    def fetch_sample(self, collection, n):
        return [copy.deepcopy(d) for d in self.collections.get(collection, [])[:n]]

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


class FakeSQLClient:
    def __init__(self, dialect=Dialect.MYSQL):
        self.dialect = dialect
        self.emitter = DDLEmitter(dialect)
        self.tables = {}
        self.executed = []
        # (operation, id) pairs that raise, e.g. ("update", "2")
        self.fail_on = set()
        self.fail_add_column = set()
        self.connected = False

    # --- lifecycle ---
    def connect(self):
        self.connected = True

    def disconnect(self):
        self.connected = False

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()

    # --- helpers ---
    def _table(self, name):
        if name not in self.tables:
            raise RuntimeError(f"Table '{name}' doesn't exist")
        return self.tables[name]

    def _check_columns(self, table, row):
        unknown = [c for c in row if c not in table["columns"]]
        if unknown:
            raise RuntimeError(f"Unknown column '{unknown[0]}'")

    def _maybe_fail(self, operation, value):
        if (operation, str(value)) in self.fail_on:
            raise RuntimeError(f"simulated {operation} failure for {value}")

    def rows(self, name):
        return self.tables[name]["rows"]

    def add_table(self, name, columns, rows=(), parent=None):
        """parent: (parent_table, foreign_key_column, parent_key) for cascading deletes"""
        self.tables[name] = {"columns": dict(columns), "rows": [dict(r) for r in rows], "parent": parent}

    # --- catalog ---
    def table_exists(self, table):
        return table in self.tables

    def get_columns(self, table):
        if table not in self.tables:
            return {}
        return dict(self.tables[table]["columns"])

    # --- reads ---
    def fetch_ids(self, table, key):
        return {str(r[key]) for r in self._table(table)["rows"] if r.get(key) is not None}

    def count_rows(self, table):
        return len(self._table(table)["rows"])

    def fetch_row(self, table, key, value):
        for row in self._table(table)["rows"]:
            if str(row.get(key)) == str(value):
                return dict(row)
        return None

    # --- writes ---
    def insert_row(self, table, row):
        t = self._table(table)
        self._check_columns(t, row)
        full = {c: None for c in t["columns"]}
        full.update(row)
        t["rows"].append(full)
        return 1

    def insert_many(self, table, rows):
        for row in rows:
            self.insert_row(table, row)
        return len(rows)

    def upsert_row(self, table, row, key):
        self._maybe_fail("insert", row.get(key))
        t = self._table(table)
        self._check_columns(t, row)
        for existing in t["rows"]:
            if str(existing.get(key)) == str(row[key]):
                existing.update(row)
                return 2
        return self.insert_row(table, row)

    def update_row(self, table, row, key):
        self._maybe_fail("update", row.get(key))
        t = self._table(table)
        self._check_columns(t, row)
        for existing in t["rows"]:
            if str(existing.get(key)) == str(row[key]):
                existing.update({c: v for c, v in row.items() if c != key})
                return 1
        return 0

    def delete_row(self, table, key, value):
        self._maybe_fail("delete", value)
        return self.delete_where(table, key, value)

    def delete_where(self, table, column, value):
        t = self._table(table)
        removed = [r for r in t["rows"] if str(r.get(column)) == str(value)]
        t["rows"] = [r for r in t["rows"] if str(r.get(column)) != str(value)]
        for child_name, child in list(self.tables.items()):
            if child["parent"] and child["parent"][0] == table:
                _, fk_column, parent_key = child["parent"]
                for row in removed:
                    self.delete_where(child_name, fk_column, row.get(parent_key))
        return len(removed)

    # --- DDL ---
    def add_column(self, table, column, sql_type):
        if column in self.fail_add_column:
            raise RuntimeError(f"simulated ALTER failure for {column}")
        self.executed.append(self.emitter.add_column(table, column, sql_type))
        t = self._table(table)
        t["columns"][column] = sql_type.render(self.dialect)
        for row in t["rows"]:
            row.setdefault(column, None)

    def create_tables(self, tables, drop_existing=False):
        created = []
        tables = list(tables)
        if drop_existing:
            for table in tables:
                self.tables.pop(table.name, None)
        for table in self.emitter.parents_first(tables):
            if table.name in self.tables:
                continue
            self.executed.append(self.emitter.create_table(table))
            parent = None
            if table.parent_table:
                parent = (table.parent_table, table.foreign_key_column, table.parent_key)
            self.add_table(
                table.name,
                {c.name: c.sql_type.render(self.dialect) for c in table.columns},
                parent=parent,
            )
            created.append(table.name)
        return created



class RecordingCursor:
    def __init__(self, connection):
        self.connection = connection
        self.rowcount = 1
        self.description = None
        self._rows = []

    def execute(self, query, params=None):
        for fragment, error in self.connection.fail_on:
            if fragment in query:
                raise error
        self.connection.statements.append((query, params))
        self._rows = list(self.connection.results.pop(0)) if self.connection.results else []
        if self._rows and not isinstance(self._rows[0], dict):
            self.description = [(name,) for name in self.connection.column_names]

    def executemany(self, query, seq_params):
        self.connection.statements.append((query, list(seq_params)))

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class RecordingConnection:
    """
    DB-API connection stand-in.

    results: one row list per execute() call, consumed in order
    fail_on: (query fragment, exception) pairs raised from execute()
    """

    def __init__(self, results=None, column_names=(), fail_on=()):
        self.results = list(results or [])
        self.column_names = list(column_names)
        self.fail_on = list(fail_on)
        self.statements = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, cursor_class=None):
        return RecordingCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True

    @property
    def last(self):
        return self.statements[-1]


# ==============================================
# Fixtures
# ==============================================

@pytest.fixture
def sample_documents():
    """Two orders with nested, array and optional fields."""
    return [
        {
            "_id": "1",
            "name": "Alice",
            "age": 30,
            "active": True,
            "created": datetime(2024, 1, 2, 3, 4, 5),
            "address": {"city": "Pune", "geo": {"lat": 18.5, "lng": 73.8}},
            "tags": ["a", "b", "c"],
            "items": [{"sku": "X1", "qty": 2}, {"sku": "X2", "qty": 1}],
        },
        {
            "_id": "2",
            "name": "Bob",
            "active": False,
            "created": datetime(2024, 2, 3, 4, 5, 6),
            "address": {"city": "Delhi"},
            "tags": ["d"],
            "items": [],
        },
    ]


@pytest.fixture
def fake_sql():
    return FakeSQLClient()


@pytest.fixture
def fake_source(sample_documents):
    return FakeSource({"orders": sample_documents})


@pytest.fixture
def state_store(tmp_path):
    """Provide a temporary sync state store."""
    return SyncStateStore(tmp_path / "state")


@pytest.fixture
def sync_config(tmp_path):
    return SyncConfig(batch_size=2, state_dir=str(tmp_path / "state"), output_dir=str(tmp_path / "out"))


@pytest.fixture
def app_config(sync_config):
    return AppConfig(sync=sync_config, dialect=Dialect.MYSQL)
