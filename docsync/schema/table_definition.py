# ==============================================
# Table Definitions (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes that represent the OUTPUT of relational planning.
#   Created by the planner, rendered by the DDL emitter and used by
#   the bulk loader to decompose documents into rows.
#
# ENUMS:
# ------
# - RelationshipKind: NONE, NESTED_OBJECT, ARRAY_OF_OBJECT, ARRAY_OF_PRIMITIVE
#
# CLASSES:
# --------
# - ColumnDefinition   → name, sql_type, nullable, is_primary_key, is_identity,
#                        source_path (path relative to the decomposed value,
#                        None for key/bookkeeping columns)
# - TableDefinition    → name, columns, parent_table, parent_key,
#                        foreign_key_column, relationship, source_path
# - Relationship       → child_table → parent_table(key_field)
# - SchemaPlan         → main table + child tables + relationships
#
# FUNCTIONS:
# ----------
# - sanitize_identifier(name) -> str
#     "items[].sku" → "items_sku", "first name" → "first_name"
#
# ==============================================

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .type_mapper import SqlType

ARRAY_INDEX_COLUMN = "array_index"
VALUE_COLUMN = "value"
SURROGATE_KEY_COLUMN = "id"

_NON_IDENTIFIER = re.compile(r"[^0-9A-Za-z_]+")


def sanitize_identifier(name: str) -> str:
    """Turn a document path into a safe SQL identifier."""
    name = name.replace("[]", "").replace(".", "_")
    name = _NON_IDENTIFIER.sub("_", name)
    name = re.sub(r"_{2,}", "_", name).strip("_")
    if not name:
        return "field"
    if name[0].isdigit():
        name = f"f_{name}"
    return name


class RelationshipKind(Enum):
    NONE = "none"
    NESTED_OBJECT = "nested_object"
    ARRAY_OF_OBJECT = "array_of_object"
    ARRAY_OF_PRIMITIVE = "array_of_primitive"


@dataclass
class ColumnDefinition:
    name: str
    sql_type: SqlType
    nullable: bool = True
    is_primary_key: bool = False
    is_identity: bool = False
    source_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "sql_type": self.sql_type.kind.value,
            "nullable": self.nullable,
            "is_primary_key": self.is_primary_key,
            "is_identity": self.is_identity,
            "source_path": self.source_path,
        }


@dataclass
class TableDefinition:
    name: str
    columns: List[ColumnDefinition] = field(default_factory=list)
    parent_table: Optional[str] = None
    parent_key: Optional[str] = None
    foreign_key_column: Optional[str] = None
    relationship: RelationshipKind = RelationshipKind.NONE
    source_path: Optional[str] = None

    def column(self, name: str) -> Optional[ColumnDefinition]:
        for column in self.columns:
            if column.name == name:
                return column
        return None

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def primary_key(self) -> Optional[ColumnDefinition]:
        for column in self.columns:
            if column.is_primary_key:
                return column
        return None

    @property
    def data_columns(self) -> List[ColumnDefinition]:
        """Columns filled from document content."""
        return [c for c in self.columns if c.source_path is not None]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "parent_table": self.parent_table,
            "foreign_key_column": self.foreign_key_column,
            "relationship": self.relationship.value,
            "source_path": self.source_path,
            "columns": [c.to_dict() for c in self.columns],
        }


@dataclass
class Relationship:
    child_table: str
    parent_table: str
    key_field: str

    def __str__(self) -> str:
        return f"{self.child_table} → {self.parent_table}({self.key_field})"


@dataclass
class SchemaPlan:
    """All tables planned for one collection."""
    collection: str
    key_field: str
    main_table: TableDefinition
    child_tables: List[TableDefinition] = field(default_factory=list)
    relationships: List[Relationship] = field(default_factory=list)

    @property
    def tables(self) -> List[TableDefinition]:
        """Main table first, then children (creation order)."""
        return [self.main_table] + list(self.child_tables)

    def table(self, name: str) -> Optional[TableDefinition]:
        for table in self.tables:
            if table.name == name:
                return table
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "collection": self.collection,
            "key_field": self.key_field,
            "tables": [t.to_dict() for t in self.tables],
            "relationships": [str(r) for r in self.relationships],
        }
