# ==============================================
# SchemaEvolver
# ==============================================
#
# PURPOSE:
#   Before a sync applies changes, add destination columns for
#   flat fields that appeared in the source since the table was
#   created. New columns are always nullable.
#
# CLASS: SchemaEvolver
# --------------------
#   - evolve(table, flat_documents) -> list[str]
#       1. Union of flat field names across the fetched documents,
#          keeping the first non-null value seen per field
#       2. Diff against the table's existing columns (case-insensitive)
#       3. ALTER TABLE ... ADD <field> <type> NULL per missing field,
#          typed from the kept sample value
#       Returns the names of columns actually added.
#
# ==============================================

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from docsync.schema import TypeMapper

logger = logging.getLogger(__name__)


class SchemaEvolver:
    def __init__(self, destination, type_mapper: Optional[TypeMapper] = None):
        self.destination = destination
        self.type_mapper = type_mapper or TypeMapper()

    @staticmethod
    def observed_fields(flat_documents: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
        """Field name → first non-null value observed (None if only nulls)."""
        observed: Dict[str, Any] = {}
        for flat in flat_documents:
            for name, value in flat.items():
                if name not in observed or (observed[name] is None and value is not None):
                    observed[name] = value
        return observed

    def evolve(self, table: str, flat_documents: Iterable[Mapping[str, Any]]) -> List[str]:
        observed = self.observed_fields(flat_documents)
        existing = {c.lower() for c in self.destination.get_columns(table)}

        added = []
        for name, sample in observed.items():
            if name.lower() in existing:
                continue
            sql_type = self.type_mapper.for_value(sample)
            try:
                self.destination.add_column(table, name, sql_type)
            except Exception as e:
                logger.warning("DDL failed: could not add column '%s' to '%s': %s", name, table, e)
                continue
            existing.add(name.lower())
            added.append(name)
            logger.info("Added column '%s' (%s) to '%s'", name, sql_type.kind.value, table)
        return added
