# ==============================================
# TOPIC 2: SCHEMA ANALYSIS
# ==============================================
#
# This package observes a bounded sample of source documents
# and records, per dotted path, what was seen there.
#
# Modules:
# --------
# - field_schema.py      → FieldSchema / SchemaAnalysis data classes
# - schema_inferencer.py → Walk documents, build the Field Schema Map
#
# ==============================================

from .field_schema import ARRAY_MARKER, FieldSchema, SchemaAnalysis
from .schema_inferencer import SchemaInferencer

__all__ = ["ARRAY_MARKER", "FieldSchema", "SchemaAnalysis", "SchemaInferencer"]
