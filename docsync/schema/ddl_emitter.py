"""
DDL Emitter.

Renders planned tables as dialect-specific DDL: CREATE TABLE statements
(optionally preceded by an existence-checked DROP TABLE), foreign keys to
the parent table, and ALTER TABLE ... ADD statements for schema evolution.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Union

from .dialect import Dialect
from .table_definition import ColumnDefinition, SchemaPlan, TableDefinition, sanitize_identifier
from .type_mapper import SqlType

logger = logging.getLogger(__name__)


class DDLEmitter:
    """
    Generates SQL DDL statements for one dialect.

    Syntax differences handled here: identifier quoting, identity
    columns, boolean and timestamp type names, DROP-if-exists form.
    """

    def __init__(self, dialect: Dialect = Dialect.MYSQL):
        self.dialect = dialect

    def quote(self, identifier: str) -> str:
        return self.dialect.quote(identifier)

    # ======================================
    # Single statements
    # ======================================
    def drop_table(self, table_name: str) -> str:
        """Existence-checked DROP TABLE."""
        if self.dialect is Dialect.MYSQL:
            return f"DROP TABLE IF EXISTS {self.quote(table_name)};"
        escaped = table_name.replace("'", "''")
        return (
            f"IF OBJECT_ID(N'{escaped}', N'U') IS NOT NULL "
            f"DROP TABLE {self.quote(table_name)};"
        )

    def column_definition(self, column: ColumnDefinition) -> str:
        parts = [self.quote(column.name), column.sql_type.render(self.dialect)]
        if column.is_identity and self.dialect is Dialect.SQLSERVER:
            parts.append("IDENTITY(1,1)")
        parts.append("NULL" if column.nullable else "NOT NULL")
        if column.is_identity and self.dialect is Dialect.MYSQL:
            parts.append("AUTO_INCREMENT")
        return " ".join(parts)

    def create_table(self, table: TableDefinition) -> str:
        """
        Generate CREATE TABLE for one table.

        Args:
            table: Planned table

        Returns:
            CREATE TABLE statement terminated by ';'
        """
        lines = [f"    {self.column_definition(c)}" for c in table.columns]

        primary_key = table.primary_key
        if primary_key is not None:
            lines.append(f"    PRIMARY KEY ({self.quote(primary_key.name)})")

        if table.parent_table and table.foreign_key_column:
            constraint = sanitize_identifier(f"fk_{table.name}")
            lines.append(
                f"    CONSTRAINT {self.quote(constraint)} "
                f"FOREIGN KEY ({self.quote(table.foreign_key_column)}) "
                f"REFERENCES {self.quote(table.parent_table)} ({self.quote(table.parent_key)}) "
                f"ON DELETE CASCADE"
            )

        body = ",\n".join(lines)
        return f"CREATE TABLE {self.quote(table.name)} (\n{body}\n);"

    def add_column(self, table_name: str, column_name: str, sql_type: SqlType) -> str:
        """ALTER TABLE statement adding a nullable column."""
        keyword = "ADD COLUMN" if self.dialect is Dialect.MYSQL else "ADD"
        return (
            f"ALTER TABLE {self.quote(table_name)} {keyword} "
            f"{self.quote(column_name)} {sql_type.render(self.dialect)} NULL;"
        )

    # ======================================
    # Table sets
    # ======================================
    def statements(self, tables: Iterable[TableDefinition], include_drop: bool = False) -> List[str]:
        """
        Ordered statements for a table set.

        Children are dropped before their parent and created after it.
        """
        tables = list(tables)
        ordered = self.parents_first(tables)
        result = []
        if include_drop:
            result.extend(self.drop_table(t.name) for t in reversed(ordered))
        result.extend(self.create_table(t) for t in ordered)
        return result

    def render(self, tables: Union[SchemaPlan, Iterable[TableDefinition]], include_drop: bool = True) -> str:
        if isinstance(tables, SchemaPlan):
            tables = tables.tables
        header = f"-- Dialect: {self.dialect.value}"
        return "\n\n".join([header] + self.statements(tables, include_drop=include_drop)) + "\n"

    def render_script(self, plan: SchemaPlan, include_drop: bool = True) -> str:
        """
        Full DDL script: this dialect, then the alternate dialect commented out.

        Args:
            plan: Planned tables for a collection
            include_drop: Emit DROP TABLE before each CREATE

        Returns:
            Script text
        """
        primary = self.render(plan, include_drop=include_drop)
        alternate = DDLEmitter(self.dialect.alternate).render(plan, include_drop=include_drop)
        commented = "\n".join(
            f"-- {line}" if line else "--" for line in alternate.rstrip("\n").splitlines()
        )
        banner = (
            f"-- Schema for collection '{plan.collection}' "
            f"({len(plan.tables)} table(s), key field '{plan.key_field}')"
        )
        return (
            f"{banner}\n\n{primary}\n"
            f"-- ---------------------------------------------\n"
            f"-- Equivalent {self.dialect.alternate.value} DDL\n"
            f"-- ---------------------------------------------\n"
            f"{commented}\n"
        )

    def write(self, plan: SchemaPlan, output_dir: Union[str, Path] = ".", include_drop: bool = True) -> Path:
        """Write schema_<collection>.sql and return its path."""
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / f"schema_{plan.collection}.sql"
        path.write_text(self.render_script(plan, include_drop=include_drop), encoding="utf-8")
        logger.info("Wrote DDL for '%s' to %s", plan.collection, path)
        return path

    @staticmethod
    def parents_first(tables: List[TableDefinition]) -> List[TableDefinition]:
        names = {t.name for t in tables}
        roots = [t for t in tables if not t.parent_table or t.parent_table not in names]
        ordered: List[TableDefinition] = []
        seen = set()
        pending = list(roots)
        while pending:
            table = pending.pop(0)
            if table.name in seen:
                continue
            seen.add(table.name)
            ordered.append(table)
            pending.extend(t for t in tables if t.parent_table == table.name)
        # anything left has a cycle in parent references; keep input order
        ordered.extend(t for t in tables if t.name not in seen)
        return ordered
