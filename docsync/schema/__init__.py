# ==============================================
# TOPIC 3: RELATIONAL SCHEMA
# ==============================================
#
# This package turns an inferred document schema into relational
# tables and renders them as DDL.
#
# Modules:
# --------
# - dialect.py          → MySQL / SQL Server selector
# - type_mapper.py      → Value type → column type, per-dialect rendering
# - table_definition.py → Column/Table/Relationship/SchemaPlan data classes
# - planner.py          → Relational decomposition (main, child, junction)
# - ddl_emitter.py      → CREATE / DROP / ALTER rendering
#
# ==============================================

from .dialect import Dialect
from .type_mapper import SqlKind, SqlType, TypeMapper
from .table_definition import (
    ARRAY_INDEX_COLUMN,
    SURROGATE_KEY_COLUMN,
    VALUE_COLUMN,
    ColumnDefinition,
    Relationship,
    RelationshipKind,
    SchemaPlan,
    TableDefinition,
    sanitize_identifier,
)
from .planner import RelationalSchemaPlanner
from .ddl_emitter import DDLEmitter

__all__ = [
    "Dialect",
    "SqlKind",
    "SqlType",
    "TypeMapper",
    "ARRAY_INDEX_COLUMN",
    "SURROGATE_KEY_COLUMN",
    "VALUE_COLUMN",
    "ColumnDefinition",
    "Relationship",
    "RelationshipKind",
    "SchemaPlan",
    "TableDefinition",
    "sanitize_identifier",
    "RelationalSchemaPlanner",
    "DDLEmitter",
]
