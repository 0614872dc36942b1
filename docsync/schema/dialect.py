from enum import Enum


class Dialect(Enum):
    """
    Target relational engine for DDL rendering and statement syntax.

    - MYSQL: backtick quoting, AUTO_INCREMENT, BOOLEAN, TIMESTAMP
    - SQLSERVER: bracket quoting, IDENTITY(1,1), BIT, DATETIME2
    """
    MYSQL = "mysql"
    SQLSERVER = "sqlserver"

    @property
    def alternate(self) -> "Dialect":
        return Dialect.SQLSERVER if self is Dialect.MYSQL else Dialect.MYSQL

    def quote(self, identifier: str) -> str:
        if self is Dialect.MYSQL:
            return f"`{identifier.replace('`', '``')}`"
        return f"[{identifier.replace(']', ']]')}]"

    @classmethod
    def parse(cls, value: str) -> "Dialect":
        """Accept 'mysql', 'sqlserver', 'mssql' (case-insensitive)."""
        normalized = (value or "").strip().lower()
        if normalized in ("mssql", "sql_server", "sql-server"):
            normalized = "sqlserver"
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown dialect '{value}'. Expected one of: "
                f"{', '.join(d.value for d in cls)}"
            ) from None
