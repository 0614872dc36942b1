# ==============================================
# RelationalSchemaPlanner
# ==============================================
#
# PURPOSE:
#   Convert a Field Schema Map into a set of linked tables:
#   one main table for flat scalar fields, one child table per
#   nested object, and one junction table per array.
#
# PARTITIONING (by path shape):
# -----------------------------
#   flat scalar     "name"                → main table column
#   nested object   "address" (+ "address.city", "address.geo.lat")
#                                          → <collection>_address
#   array           "tags", "items" (+ "items[].sku"), "address.phones"
#                                          → <collection>_tags, _items, ...
#
# TABLE SHAPES:
# -------------
#   main                : <key> IDENTIFIER PK, one column per flat field
#   nested object child : id identity PK, <fk> → main(key), descendant columns
#   array of objects    : id, <fk>, array_index, subfield columns
#   array of primitives : id, <fk>, array_index, value
#
# Columns of the main table keep the document field names so that
# flattened documents map onto them directly. Child table columns
# are sanitized paths relative to the decomposed value.
#
# ==============================================

import logging
from typing import Dict, List, Optional, Set

from docsync.analysis import ARRAY_MARKER, FieldSchema, SchemaAnalysis
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
from .type_mapper import TypeMapper

logger = logging.getLogger(__name__)


class RelationalSchemaPlanner:
    """
    Plans relational tables from an inferred document schema.

    Example:
        analysis = SchemaInferencer().analyze(docs)
        plan = RelationalSchemaPlanner(key_field="_id").plan(analysis, "orders")
        for table in plan.tables:
            print(table.name, table.column_names)
    """

    def __init__(self, key_field: str = "_id", type_mapper: Optional[TypeMapper] = None):
        self.key_field = key_field
        self.type_mapper = type_mapper or TypeMapper()

    def plan(self, analysis: SchemaAnalysis, collection: str) -> SchemaPlan:
        """
        Build the table set for one collection.

        Args:
            analysis: Output of SchemaInferencer.analyze()
            collection: Source collection name (main table name)

        Returns:
            SchemaPlan with main table, child tables and relationships
        """
        main_name = sanitize_identifier(collection)
        main_table = self._plan_main_table(analysis, main_name)
        plan = SchemaPlan(collection=collection, key_field=self.key_field, main_table=main_table)

        fk_column = sanitize_identifier(f"{main_name}_{self.key_field}")
        taken_names: Set[str] = {main_name}

        for root in self._nested_roots(analysis):
            child = self._plan_nested_table(analysis, root, main_name, fk_column, taken_names)
            self._attach(plan, child)

        for array_path in self._array_paths(analysis):
            child = self._plan_array_table(analysis, array_path, main_name, fk_column, taken_names)
            self._attach(plan, child)

        logger.info(
            "Planned %d table(s) for '%s': %s",
            len(plan.tables), collection, ", ".join(t.name for t in plan.tables),
        )
        return plan

    # ======================================
    # Partitioning
    # ======================================
    @staticmethod
    def _is_top_level(path: str) -> bool:
        return "." not in path and ARRAY_MARKER not in path

    def _flat_fields(self, analysis: SchemaAnalysis) -> List[FieldSchema]:
        return [
            fs for path, fs in analysis.fields.items()
            if self._is_top_level(path) and fs.is_scalar
        ]

    def _nested_roots(self, analysis: SchemaAnalysis) -> List[str]:
        return [
            path for path, fs in analysis.fields.items()
            if self._is_top_level(path) and fs.is_nested and not fs.is_array
        ]

    @staticmethod
    def _array_paths(analysis: SchemaAnalysis) -> List[str]:
        # Arrays inside array elements are not decomposed a second time
        paths = []
        for path, fs in analysis.fields.items():
            if not fs.is_array:
                continue
            if ARRAY_MARKER in path:
                logger.debug("Skipping array nested in array elements: '%s'", path)
                continue
            paths.append(path)
        return paths

    @staticmethod
    def _scalar_descendants(analysis: SchemaAnalysis, prefix: str) -> List[FieldSchema]:
        """Scalar paths under prefix that do not cross into another array."""
        found = []
        for path, fs in analysis.fields.items():
            if not path.startswith(prefix):
                continue
            remainder = path[len(prefix):]
            if not remainder or ARRAY_MARKER in remainder:
                continue
            if fs.is_scalar:
                found.append(fs)
        return found

    # ======================================
    # Table builders
    # ======================================
    def _plan_main_table(self, analysis: SchemaAnalysis, name: str) -> TableDefinition:
        table = TableDefinition(name=name)
        table.columns.append(ColumnDefinition(
            name=self.key_field,
            sql_type=self.type_mapper.identifier(),
            nullable=False,
            is_primary_key=True,
            source_path=self.key_field,
        ))
        for fs in self._flat_fields(analysis):
            if fs.path == self.key_field:
                continue
            table.columns.append(ColumnDefinition(
                name=fs.path,
                sql_type=self.type_mapper.for_field(fs),
                nullable=not analysis.is_required(fs.path),
                source_path=fs.path,
            ))
        return table

    def _child_skeleton(
        self,
        name: str,
        main_name: str,
        fk_column: str,
        relationship: RelationshipKind,
        source_path: str,
    ) -> TableDefinition:
        table = TableDefinition(
            name=name,
            parent_table=main_name,
            parent_key=self.key_field,
            foreign_key_column=fk_column,
            relationship=relationship,
            source_path=source_path,
        )
        table.columns.append(ColumnDefinition(
            name=SURROGATE_KEY_COLUMN,
            sql_type=self.type_mapper.integer(),
            nullable=False,
            is_primary_key=True,
            is_identity=True,
        ))
        table.columns.append(ColumnDefinition(
            name=fk_column,
            sql_type=self.type_mapper.identifier(),
            nullable=False,
        ))
        if relationship in (RelationshipKind.ARRAY_OF_OBJECT, RelationshipKind.ARRAY_OF_PRIMITIVE):
            table.columns.append(ColumnDefinition(
                name=ARRAY_INDEX_COLUMN,
                sql_type=self.type_mapper.integer(),
                nullable=False,
            ))
        return table

    def _plan_nested_table(
        self,
        analysis: SchemaAnalysis,
        root: str,
        main_name: str,
        fk_column: str,
        taken: Set[str],
    ) -> TableDefinition:
        name = self._unique(sanitize_identifier(f"{main_name}_{root}"), taken)
        table = self._child_skeleton(name, main_name, fk_column, RelationshipKind.NESTED_OBJECT, root)
        prefix = root + "."
        columns_taken = set(table.column_names)
        for fs in self._scalar_descendants(analysis, prefix):
            relative = fs.path[len(prefix):]
            table.columns.append(ColumnDefinition(
                name=self._unique(sanitize_identifier(relative), columns_taken),
                sql_type=self.type_mapper.for_field(fs),
                source_path=relative,
            ))
        return table

    def _plan_array_table(
        self,
        analysis: SchemaAnalysis,
        array_path: str,
        main_name: str,
        fk_column: str,
        taken: Set[str],
    ) -> TableDefinition:
        fs = analysis.fields[array_path]
        name = self._unique(sanitize_identifier(f"{main_name}_{array_path}"), taken)

        if fs.has_object_elements:
            table = self._child_skeleton(
                name, main_name, fk_column, RelationshipKind.ARRAY_OF_OBJECT, array_path,
            )
            prefix = array_path + ARRAY_MARKER + "."
            columns_taken = set(table.column_names)
            for sub in self._scalar_descendants(analysis, prefix):
                relative = sub.path[len(prefix):]
                table.columns.append(ColumnDefinition(
                    name=self._unique(sanitize_identifier(relative), columns_taken),
                    sql_type=self.type_mapper.for_field(sub),
                    source_path=relative,
                ))
            return table

        table = self._child_skeleton(
            name, main_name, fk_column, RelationshipKind.ARRAY_OF_PRIMITIVE, array_path,
        )
        table.columns.append(ColumnDefinition(
            name=VALUE_COLUMN,
            sql_type=self.type_mapper.for_array_elements(fs),
            # "" marks the element itself rather than a field inside it
            source_path="",
        ))
        return table

    def _attach(self, plan: SchemaPlan, child: TableDefinition) -> None:
        plan.child_tables.append(child)
        plan.relationships.append(Relationship(
            child_table=child.name,
            parent_table=child.parent_table,
            key_field=self.key_field,
        ))

    @staticmethod
    def _unique(name: str, taken: Set[str]) -> str:
        candidate = name
        suffix = 2
        while candidate in taken:
            candidate = f"{name}_{suffix}"
            suffix += 1
        taken.add(candidate)
        return candidate
