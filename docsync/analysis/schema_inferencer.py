# ==============================================
# SchemaInferencer
# ==============================================
#
# PURPOSE:
#   Walk a bounded sample of source documents and build a
#   FieldSchema per dotted path. This is the "observation engine"
#   of the schema path: it watches data and builds evidence that
#   the planner turns into tables.
#
# CLASS: SchemaInferencer
# -----------------------
#   Constructor:
#   ------------
#   - __init__(type_detector=None, max_depth=10)
#
#   Methods:
#   --------
#   - analyze(documents: Iterable[Mapping]) -> SchemaAnalysis
#       Fresh analysis over the given documents. Non-mapping
#       documents are logged and skipped.
#
#   Internal helpers:
#   -----------------
#   - _visit(obj, parent_path, depth, fields, active, counted) -> None
#       Visit every field of one mapping, recursing into nested
#       objects (same path) and array elements (path + "[]").
#       `counted` holds the paths already counted for the current
#       document, so occurrence_count never exceeds total_docs.
#
#   - _join_path(parent, key) -> str
#       "" + "name" → "name", "address" + "city" → "address.city"
#
# ==============================================

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Set

from docsync.normalization import TypeDetector, ValueType
from .field_schema import ARRAY_MARKER, FieldSchema, SchemaAnalysis

logger = logging.getLogger(__name__)


class SchemaInferencer:
    """
    Builds a Field Schema Map from sampled documents.

    Recursion is bounded by max_depth, and an identity set of the
    containers currently being visited guards against self-reference.
    """

    def __init__(self, type_detector: Optional[TypeDetector] = None, max_depth: int = 10):
        """
        Args:
            type_detector: Value classifier. A default one is created if omitted.
            max_depth: Deepest nesting level visited; deeper subtrees are skipped
        """
        self.type_detector = type_detector or TypeDetector()
        self.max_depth = max_depth

    def analyze(self, documents: Iterable[Any]) -> SchemaAnalysis:
        """
        Analyze documents and return the Field Schema Map.

        Args:
            documents: Sampled source documents (consumed once)

        Returns:
            SchemaAnalysis with total_docs = documents actually analyzed
        """
        analysis = SchemaAnalysis()
        for position, document in enumerate(documents):
            if not isinstance(document, Mapping):
                self._warn(f"document #{position} is {type(document).__name__}, not an object; skipped")
                continue
            self._visit(document, "", 0, analysis.fields, set(), set())
            analysis.total_docs += 1

        logger.info(
            "Analyzed %d documents, discovered %d field paths",
            analysis.total_docs, len(analysis.fields),
        )
        return analysis

    def _visit(
        self,
        obj: Mapping,
        parent_path: str,
        depth: int,
        fields: Dict[str, FieldSchema],
        active: Set[int],
        counted: Set[str],
    ) -> None:
        if depth > self.max_depth:
            self._warn(f"'{parent_path}' exceeds max depth {self.max_depth}; subtree skipped")
            return
        if id(obj) in active:
            self._warn(f"'{parent_path}' refers back to an enclosing object; skipped")
            return
        active.add(id(obj))

        try:
            for key, value in obj.items():
                if key is None or (isinstance(key, str) and not key):
                    self._warn(f"empty field name under '{parent_path or '<root>'}'; skipped")
                    continue
                full_path = self._join_path(parent_path, str(key))
                value_type = self.type_detector.detect(value)

                schema = fields.get(full_path)
                if schema is None:
                    schema = FieldSchema(path=full_path)
                    fields[full_path] = schema
                schema.record(value_type, new_in_document=full_path not in counted)
                if value_type is not ValueType.NULL:
                    counted.add(full_path)

                if value_type is ValueType.NULL:
                    logger.debug("Null value at '%s'", full_path)
                elif value_type is ValueType.ARRAY:
                    schema.is_array = True
                    self._visit_array(value, full_path, schema, depth, fields, active, counted)
                elif value_type is ValueType.OBJECT:
                    schema.is_nested = True
                    self._visit(value, full_path, depth + 1, fields, active, counted)
                else:
                    schema.add_sample(value)
        finally:
            active.discard(id(obj))

    def _visit_array(
        self,
        values,
        full_path: str,
        schema: FieldSchema,
        depth: int,
        fields: Dict[str, FieldSchema],
        active: Set[int],
        counted: Set[str],
    ) -> None:
        if id(values) in active:
            self._warn(f"'{full_path}' refers back to an enclosing array; skipped")
            return
        active.add(id(values))
        element_path = full_path + ARRAY_MARKER
        try:
            for element in values:
                element_type = self.type_detector.detect(element)
                schema.record_element(element_type)
                if element_type is ValueType.OBJECT:
                    schema.is_nested = True
                    self._visit(element, element_path, depth + 1, fields, active, counted)
                elif element_type is ValueType.ARRAY:
                    # arrays of arrays are kept only as element-type evidence
                    logger.debug("Nested array inside '%s' not decomposed", full_path)
                elif element_type is not ValueType.NULL:
                    schema.add_sample(element)
        finally:
            active.discard(id(values))

    @staticmethod
    def _join_path(parent: str, key: str) -> str:
        if not parent:
            return key
        return f"{parent}.{key}"

    @staticmethod
    def _warn(message: str) -> None:
        logger.warning("Schema inference: %s", message)
