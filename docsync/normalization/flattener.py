# ==============================================
# Flattener
# ==============================================
#
# PURPOSE:
#   Extract the flat-scalar subset of a document: every top-level
#   field whose value is not an array or an object. This is the row
#   stored in the main table, the input to the content hash, and the
#   set of fields compared by the validator.
#
# FUNCTIONS:
# ----------
# - flatten_document(document, key_field="_id") -> dict
#     {"_id": ObjectId(..), "name": "a", "tags": [..], "addr": {..}}
#       → {"_id": "65f...", "name": "a"}
#
# - document_id(document, key_field="_id") -> str | None
#     Identifier as a string (ObjectId → hex string).
#
# ==============================================

from typing import Any, Dict, Mapping, Optional

from .type_detector import TypeDetector


def document_id(document: Mapping[str, Any], key_field: str = "_id") -> Optional[str]:
    value = document.get(key_field)
    if value is None:
        return None
    return str(TypeDetector.to_sql_value(value))


def flatten_document(document: Mapping[str, Any], key_field: str = "_id") -> Dict[str, Any]:
    """
    Keep only scalar top-level fields, converted for SQL storage.

    The key field is always converted to its string form so it matches
    the fixed-width identifier column in the main table.

    Args:
        document: Source document
        key_field: Identifier field name

    Returns:
        Dictionary of column name → SQL-ready value, in document order
    """
    flat: Dict[str, Any] = {}
    for name, value in document.items():
        name = str(name)
        if name == key_field:
            flat[name] = document_id(document, key_field)
            continue
        if TypeDetector.is_scalar(value):
            flat[name] = TypeDetector.to_sql_value(value)
    return flat
