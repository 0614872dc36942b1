# ==============================================
# SQL Destination Clients
# ==============================================
#
# PURPOSE:
#   Manage the relational destination connection and every
#   statement the workflow issues against it: catalog lookups,
#   key-only scans, row upsert/update/delete, DDL execution.
#
# CLASSES:
# --------
# - SQLClient (base)
#     Dialect-aware statement building over any DB-API connection
#     whose paramstyle is "format" (%s placeholders). Subclasses
#     only supply _open_connection() and catalog filters.
#
# - MySQLClient(SQLClient)      → pymysql
# - SqlServerClient(SQLClient)  → pymssql
#
#   Methods (all subclasses):
#   -------------------------
#   - connect() / disconnect()
#   - execute(query, params=None) -> int            (commits)
#   - execute_scalar(query, params=None) -> Any
#   - fetch_all(query, params=None) -> list[dict]
#   - table_exists(table) -> bool                   (catalog query)
#   - get_columns(table) -> dict[str, str]          (name → data type)
#   - fetch_ids(table, key) -> set[str]             (key-only scan)
#   - count_rows(table) -> int
#   - fetch_row(table, key, value) -> dict | None
#   - insert_row / upsert_row / update_row / delete_row / delete_where
#   - insert_many(table, rows) -> int
#   - add_column(table, column, sql_type) -> None
#   - create_tables(tables, drop_existing=False) -> list[str]
#
#   Identifiers:
#   ------------
#   Main-table columns keep raw document field names, which may
#   contain "%". Statements that carry parameters are %-formatted
#   by pymysql, so identifiers in them go through quote_param()
#   ("%" doubled on MySQL). Statements without parameters use quote().
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with MySQLClient(...) as db:` usage.
#     The connection is released on every exit path.
#
# ==============================================

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

import pymysql
import pymysql.cursors

from docsync.errors import StoreConnectionError
from docsync.schema import DDLEmitter, Dialect, SqlType, TableDefinition

logger = logging.getLogger(__name__)


class SQLClient:
    dialect: Dialect = Dialect.MYSQL
    store_name = "SQL"
    # driver applies Python %-formatting to parameterized statements
    percent_formatting = True

    def __init__(self, host, port, user, password, database):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = None
        self.emitter = DDLEmitter(self.dialect)

    # ======================================
    # Connection lifecycle
    # ======================================
    def _open_connection(self):
        raise NotImplementedError

    def connect(self) -> None:
        self.connection = self._open_connection()
        logger.info("Connected to %s database '%s'", self.store_name, self.database)

    def disconnect(self) -> None:
        if self.connection:
            try:
                self.connection.close()
            finally:
                self.connection = None
                logger.debug("Disconnected from %s", self.store_name)

    def _require_connection(self):
        if self.connection is None:
            raise StoreConnectionError(self.store_name, "not connected")
        return self.connection

    def quote(self, identifier: str) -> str:
        return self.dialect.quote(identifier)

    def quote_param(self, identifier: str) -> str:
        """Quote an identifier for a statement that carries parameters."""
        quoted = self.quote(identifier)
        return quoted.replace("%", "%%") if self.percent_formatting else quoted

    # ======================================
    # Raw execution
    # ======================================
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a statement, commit, and return the affected row count."""
        connection = self._require_connection()
        cursor = connection.cursor()
        try:
            if params:
                cursor.execute(query, tuple(params))
            else:
                cursor.execute(query)
            affected = cursor.rowcount
            connection.commit()
            return affected
        except Exception:
            connection.rollback()
            raise
        finally:
            cursor.close()

    def execute_scalar(self, query: str, params: Optional[Sequence[Any]] = None) -> Any:
        connection = self._require_connection()
        cursor = connection.cursor()
        try:
            if params:
                cursor.execute(query, tuple(params))
            else:
                cursor.execute(query)
            row = cursor.fetchone()
            return row[0] if row else None
        finally:
            cursor.close()

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Execute SELECT and return rows as dicts."""
        connection = self._require_connection()
        cursor = connection.cursor()
        try:
            if params:
                cursor.execute(query, tuple(params))
            else:
                cursor.execute(query)
            names = [d[0] for d in cursor.description or []]
            return [dict(zip(names, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    # ======================================
    # Catalog
    # ======================================
    def _catalog_filter(self) -> str:
        raise NotImplementedError

    def table_exists(self, table: str) -> bool:
        count = self.execute_scalar(
            "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES "
            f"WHERE {self._catalog_filter()} AND TABLE_NAME = %s",
            (self.database, table),
        )
        return bool(count)

    def get_columns(self, table: str) -> Dict[str, str]:
        rows = self.fetch_all(
            "SELECT COLUMN_NAME, DATA_TYPE FROM INFORMATION_SCHEMA.COLUMNS "
            f"WHERE {self._catalog_filter()} AND TABLE_NAME = %s "
            "ORDER BY ORDINAL_POSITION",
            (self.database, table),
        )
        return {str(r["COLUMN_NAME"]): str(r["DATA_TYPE"]) for r in rows}

    # ======================================
    # Reads
    # ======================================
    def fetch_ids(self, table: str, key: str) -> Set[str]:
        rows = self.fetch_all(f"SELECT {self.quote(key)} FROM {self.quote(table)}")
        return {str(r[key]) for r in rows if r.get(key) is not None}

    def count_rows(self, table: str) -> int:
        return int(self.execute_scalar(f"SELECT COUNT(*) FROM {self.quote(table)}") or 0)

    def fetch_row(self, table: str, key: str, value: Any) -> Optional[Dict[str, Any]]:
        q = self.quote_param
        rows = self.fetch_all(f"SELECT * FROM {q(table)} WHERE {q(key)} = %s", (value,))
        return rows[0] if rows else None

    # ======================================
    # Writes
    # ======================================
    def _insert_statement(self, table: str, columns: List[str]) -> str:
        q = self.quote_param
        column_names = ", ".join(q(c) for c in columns)
        placeholders = ", ".join(["%s"] * len(columns))
        return f"INSERT INTO {q(table)} ({column_names}) VALUES ({placeholders})"

    def insert_row(self, table: str, row: Dict[str, Any]) -> int:
        return self.execute(self._insert_statement(table, list(row)), list(row.values()))

    def insert_many(self, table: str, rows: List[Dict[str, Any]]) -> int:
        """Insert rows sharing one column set in a single transaction."""
        if not rows:
            return 0
        columns = list(rows[0].keys())
        query = self._insert_statement(table, columns)
        connection = self._require_connection()
        cursor = connection.cursor()
        try:
            cursor.executemany(query, [tuple(r.get(c) for c in columns) for r in rows])
            connection.commit()
            return len(rows)
        except Exception:
            connection.rollback()
            raise
        finally:
            cursor.close()

    def upsert_row(self, table: str, row: Dict[str, Any], key: str) -> int:
        raise NotImplementedError

    def update_row(self, table: str, row: Dict[str, Any], key: str) -> int:
        """UPDATE by key; the key column is never part of the SET list."""
        assignments = [(c, v) for c, v in row.items() if c != key]
        if not assignments:
            return 0
        q = self.quote_param
        set_clause = ", ".join(f"{q(c)} = %s" for c, _ in assignments)
        query = f"UPDATE {q(table)} SET {set_clause} WHERE {q(key)} = %s"
        return self.execute(query, [v for _, v in assignments] + [row[key]])

    def delete_row(self, table: str, key: str, value: Any) -> int:
        return self.delete_where(table, key, value)

    def delete_where(self, table: str, column: str, value: Any) -> int:
        q = self.quote_param
        return self.execute(f"DELETE FROM {q(table)} WHERE {q(column)} = %s", (value,))

    # ======================================
    # DDL
    # ======================================
    def add_column(self, table: str, column: str, sql_type: SqlType) -> None:
        self.execute(self.emitter.add_column(table, column, sql_type))

    def create_tables(self, tables: Iterable[TableDefinition], drop_existing: bool = False) -> List[str]:
        """
        Create planned tables (parents first).

        Existing tables are left alone unless drop_existing is set.
        A failing statement is logged at WARNING and the remaining
        statements still run.

        Returns:
            Names of the tables that were created
        """
        tables = list(tables)
        created = []
        if drop_existing:
            for table in reversed(self.emitter.parents_first(tables)):
                self._run_ddl(self.emitter.drop_table(table.name))
        for table in self.emitter.parents_first(tables):
            if self.table_exists(table.name):
                logger.info("Table '%s' already exists, keeping it", table.name)
                continue
            if self._run_ddl(self.emitter.create_table(table)):
                created.append(table.name)
        return created

    def _run_ddl(self, statement: str) -> bool:
        try:
            self.execute(statement.rstrip(";"))
            return True
        except Exception as e:
            logger.warning("DDL failed: %s :: %s", e, statement.splitlines()[0])
            return False

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


class MySQLClient(SQLClient):
    dialect = Dialect.MYSQL
    store_name = "MySQL"

    def _open_connection(self):
        # Establish connection to MySQL, create database if it doesn't exist
        try:
            connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                charset="utf8mb4",
            )
        except pymysql.MySQLError as e:
            raise StoreConnectionError(self.store_name, f"could not connect: {e}") from e
        try:
            with connection.cursor() as cursor:
                cursor.execute(f"CREATE DATABASE IF NOT EXISTS {self.quote(self.database)}")
                cursor.execute(f"USE {self.quote(self.database)}")
        except pymysql.MySQLError as e:
            connection.close()
            raise StoreConnectionError(
                self.store_name, f"could not select database '{self.database}': {e}"
            ) from e
        return connection

    def _catalog_filter(self) -> str:
        return "TABLE_SCHEMA = %s"

    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        connection = self._require_connection()
        cursor = connection.cursor(pymysql.cursors.DictCursor)
        try:
            if params:
                cursor.execute(query, tuple(params))
            else:
                cursor.execute(query)
            return list(cursor.fetchall())
        finally:
            cursor.close()

    def upsert_row(self, table: str, row: Dict[str, Any], key: str) -> int:
        q = self.quote_param
        columns = list(row.keys())

        # Update all columns EXCEPT the primary key itself
        update_parts = [f"{q(c)} = VALUES({q(c)})" for c in columns if c != key]
        if not update_parts:
            update_parts = [f"{q(key)} = {q(key)}"]
        query = (
            f"{self._insert_statement(table, columns)} "
            f"ON DUPLICATE KEY UPDATE {', '.join(update_parts)}"
        )
        return self.execute(query, list(row.values()))


class SqlServerClient(SQLClient):
    dialect = Dialect.SQLSERVER
    store_name = "SQL Server"
    # pymssql replaces %s tokens only
    percent_formatting = False

    def _open_connection(self):
        import pymssql

        try:
            return pymssql.connect(
                server=self.host,
                port=str(self.port),
                user=self.user,
                password=self.password,
                database=self.database,
            )
        except (pymssql.OperationalError, pymssql.InterfaceError) as e:
            raise StoreConnectionError(self.store_name, f"could not connect: {e}") from e

    def _catalog_filter(self) -> str:
        return "TABLE_CATALOG = %s"

    def upsert_row(self, table: str, row: Dict[str, Any], key: str) -> int:
        q = self.quote_param
        columns = list(row.keys())
        source_columns = ", ".join(f"%s AS {q(c)}" for c in columns)
        query = (
            f"MERGE INTO {q(table)} AS target "
            f"USING (SELECT {source_columns}) AS source "
            f"ON target.{q(key)} = source.{q(key)} "
        )
        updates = [c for c in columns if c != key]
        if updates:
            set_clause = ", ".join(f"target.{q(c)} = source.{q(c)}" for c in updates)
            query += f"WHEN MATCHED THEN UPDATE SET {set_clause} "
        insert_columns = ", ".join(q(c) for c in columns)
        insert_values = ", ".join(f"source.{q(c)}" for c in columns)
        query += f"WHEN NOT MATCHED THEN INSERT ({insert_columns}) VALUES ({insert_values});"
        return self.execute(query, list(row.values()))


def create_sql_client(dialect: Dialect, config) -> SQLClient:
    """Build the destination client for a dialect from AppConfig."""
    if dialect is Dialect.SQLSERVER:
        c = config.sqlserver
        return SqlServerClient(c.host, c.port, c.user, c.password, c.database)
    c = config.mysql
    return MySQLClient(c.host, c.port, c.user, c.password, c.database)
