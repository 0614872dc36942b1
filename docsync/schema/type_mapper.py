# ==============================================
# TypeMapper
# ==============================================
#
# PURPOSE:
#   Map observed value types to relational column types. Shared by
#   the schema planner (majority type of a FieldSchema) and schema
#   evolution (type of one sample value).
#
# MAPPING (majority type tag → SqlKind):
# --------------------------------------
#   STRING    → STRING(255), or TEXT when a retained sample is longer
#   INTEGER   → INTEGER, or BIGINT when a sample exceeds 32 bits
#   NUMBER    → DECIMAL(18,2)
#   BOOLEAN   → BOOLEAN
#   DATETIME  → TIMESTAMP
#   NULL/else → STRING(255)
#   key field → IDENTIFIER(50)   (opaque document ids, any observed type)
#
# RENDERING (SqlType.render(dialect)):
# ------------------------------------
#   kind        MySQL           SQL Server
#   STRING      VARCHAR(n)      NVARCHAR(n)
#   TEXT        TEXT            NVARCHAR(MAX)
#   INTEGER     INT             INT
#   BIGINT      BIGINT          BIGINT
#   DECIMAL     DECIMAL(18,2)   DECIMAL(18,2)
#   BOOLEAN     BOOLEAN         BIT
#   TIMESTAMP   TIMESTAMP       DATETIME2
#   IDENTIFIER  VARCHAR(50)     NVARCHAR(50)
#
# ==============================================

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from docsync.analysis import FieldSchema
from docsync.normalization import TypeDetector, ValueType
from .dialect import Dialect

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


class SqlKind(Enum):
    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIGINT = "bigint"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"
    TIMESTAMP = "timestamp"
    IDENTIFIER = "identifier"


@dataclass(frozen=True)
class SqlType:
    """Dialect-neutral column type."""
    kind: SqlKind
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    @property
    def is_text(self) -> bool:
        return self.kind in (SqlKind.STRING, SqlKind.TEXT, SqlKind.IDENTIFIER)

    def render(self, dialect: Dialect) -> str:
        mysql = dialect is Dialect.MYSQL
        if self.kind in (SqlKind.STRING, SqlKind.IDENTIFIER):
            return f"{'VARCHAR' if mysql else 'NVARCHAR'}({self.length})"
        if self.kind is SqlKind.TEXT:
            return "TEXT" if mysql else "NVARCHAR(MAX)"
        if self.kind is SqlKind.INTEGER:
            return "INT"
        if self.kind is SqlKind.BIGINT:
            return "BIGINT"
        if self.kind is SqlKind.DECIMAL:
            return f"DECIMAL({self.precision},{self.scale})"
        if self.kind is SqlKind.BOOLEAN:
            return "BOOLEAN" if mysql else "BIT"
        if self.kind is SqlKind.TIMESTAMP:
            return "TIMESTAMP" if mysql else "DATETIME2"
        raise ValueError(f"Unhandled SQL kind: {self.kind}")


class TypeMapper:
    def __init__(self, string_length: int = 255, identifier_length: int = 50):
        self.string_length = string_length
        self.identifier_length = identifier_length

    # --- Fixed types ---
    def identifier(self) -> SqlType:
        return SqlType(SqlKind.IDENTIFIER, length=self.identifier_length)

    def integer(self) -> SqlType:
        return SqlType(SqlKind.INTEGER)

    def string(self) -> SqlType:
        return SqlType(SqlKind.STRING, length=self.string_length)

    def decimal(self) -> SqlType:
        return SqlType(SqlKind.DECIMAL, precision=18, scale=2)

    # --- Observed types ---
    def for_field(self, schema: FieldSchema) -> SqlType:
        """Column type from the majority type tag of a scalar field."""
        return self.for_value_type(
            schema.dominant_type,
            max_length=schema.max_sample_length,
            samples=schema.sample_values,
        )

    def for_array_elements(self, schema: FieldSchema) -> SqlType:
        """
        Type of the `value` column of an array-of-primitive junction table.

        Integer, number and boolean elements keep their type; anything
        else (strings, datetimes, mixed) is stored as text.
        """
        element_type = schema.dominant_element_type
        if element_type is ValueType.INTEGER:
            return self.integer()
        if element_type is ValueType.NUMBER:
            return self.decimal()
        if element_type is ValueType.BOOLEAN:
            return SqlType(SqlKind.BOOLEAN)
        return self._text(schema.max_sample_length)

    def for_value(self, value: Any) -> SqlType:
        """Column type for a single observed value (schema evolution)."""
        value_type = TypeDetector.detect(value)
        length = len(str(value)) if value_type is ValueType.STRING else 0
        return self.for_value_type(value_type, max_length=length, samples=[value])

    def for_value_type(self, value_type: ValueType, max_length: int = 0, samples=()) -> SqlType:
        if value_type is ValueType.STRING:
            return self._text(max_length)
        if value_type is ValueType.INTEGER:
            if any(self._exceeds_int32(s) for s in samples):
                return SqlType(SqlKind.BIGINT)
            return self.integer()
        if value_type is ValueType.NUMBER:
            return self.decimal()
        if value_type is ValueType.BOOLEAN:
            return SqlType(SqlKind.BOOLEAN)
        if value_type is ValueType.DATETIME:
            return SqlType(SqlKind.TIMESTAMP)
        return self.string()

    def _text(self, max_length: int) -> SqlType:
        # Heuristic: only retained samples are measured, not every value
        if max_length > self.string_length:
            return SqlType(SqlKind.TEXT)
        return self.string()

    @staticmethod
    def _exceeds_int32(sample: Any) -> bool:
        try:
            number = int(sample)
        except (TypeError, ValueError):
            return False
        return number < INT32_MIN or number > INT32_MAX
