# ==============================================
# TOPIC 1: NORMALIZATION
# ==============================================
#
# This package handles classification and normalization of
# decoded document values. Everything else builds on it.
#
# Modules:
# --------
# - type_detector.py → Tag a value (ValueType), normalize values to strings
# - flattener.py     → Extract the flat-scalar fields of a document
#
# ==============================================

from .type_detector import TypeDetector, ValueType
from .flattener import flatten_document, document_id

__all__ = ["TypeDetector", "ValueType", "flatten_document", "document_id"]
