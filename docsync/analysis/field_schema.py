# ==============================================
# FieldSchema
# ==============================================
#
# PURPOSE:
#   Data class that holds everything observed about one document
#   path during schema inference. The planner turns these into
#   table columns.
#
# PATHS:
#   Dotted, with "[]" marking descent into array elements:
#     "name"              → top-level field
#     "address.city"      → field of a nested object
#     "items"             → the array itself
#     "items[].sku"       → field of objects inside the "items" array
#
# CLASS: FieldSchema (dataclass)
# ------------------------------
#   - path: str
#   - type_counts: dict[ValueType, int]               → {STRING: 45, NULL: 2}
#   - occurrence_count: int                           → documents holding a non-null value
#   - is_nested: bool                                 → object, or array of objects
#   - is_array: bool
#   - array_element_type_counts: dict[ValueType, int]
#   - sample_values: list[str]                        → ≤3 distinct, ≤50 chars each
#
#   Computed Properties:
#   --------------------
#   - dominant_type -> ValueType
#   - dominant_element_type -> ValueType | None
#   - max_sample_length -> int
#
# CLASS: SchemaAnalysis (dataclass)
# ---------------------------------
#   - fields: dict[str, FieldSchema]
#   - total_docs: int
#
# ==============================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from docsync.normalization import ValueType

ARRAY_MARKER = "[]"
MAX_SAMPLE_VALUES = 3
MAX_SAMPLE_LENGTH = 50


def _majority(counts: Dict[ValueType, int]) -> Optional[ValueType]:
    # max() keeps the first of equal counts, i.e. first-seen type wins ties
    if not counts:
        return None
    return max(counts, key=counts.get)


@dataclass
class FieldSchema:
    """Observed structure of a single document path."""

    path: str

    # --- Counters ---
    type_counts: Dict[ValueType, int] = field(default_factory=dict)
    occurrence_count: int = 0

    # --- Structure info ---
    is_nested: bool = False
    is_array: bool = False
    array_element_type_counts: Dict[ValueType, int] = field(default_factory=dict)

    # --- Display ---
    sample_values: List[str] = field(default_factory=list)

    # ======================================
    # Update logic
    # ======================================
    def record(self, value_type: ValueType, new_in_document: bool = True) -> None:
        """
        Tally one value of this path with the given type.

        Null values are tallied in the histogram but do not count as an
        occurrence, so a field that is sometimes null stays nullable.
        A path met again inside the same document (one per array element)
        adds to the histogram only.
        """
        if value_type is not ValueType.NULL and new_in_document:
            self.occurrence_count += 1
        self.type_counts[value_type] = self.type_counts.get(value_type, 0) + 1

    def record_element(self, element_type: ValueType) -> None:
        self.array_element_type_counts[element_type] = (
            self.array_element_type_counts.get(element_type, 0) + 1
        )

    def add_sample(self, value: Any) -> None:
        """
        Keep a sample value for display and string-length sizing.

        Samples are deduplicated and truncated; at most three are kept.
        """
        if value is None or len(self.sample_values) >= MAX_SAMPLE_VALUES:
            return
        text = str(value)
        truncated = text[:MAX_SAMPLE_LENGTH]
        if truncated in self.sample_values:
            return
        self.sample_values.append(truncated)
        # Remember that the real value was longer than what we show
        if len(text) > self._longest_seen:
            self._longest_seen = len(text)

    # ======================================
    # Computed properties
    # ======================================
    @property
    def dominant_type(self) -> ValueType:
        """
        Majority type tag, ignoring nulls when anything else was seen.

        Returns:
            ValueType.NULL if the path only ever held nulls.
        """
        non_null = {t: c for t, c in self.type_counts.items() if t is not ValueType.NULL}
        return _majority(non_null) or ValueType.NULL

    @property
    def dominant_element_type(self) -> Optional[ValueType]:
        non_null = {
            t: c for t, c in self.array_element_type_counts.items()
            if t is not ValueType.NULL
        }
        return _majority(non_null)

    @property
    def has_object_elements(self) -> bool:
        return self.array_element_type_counts.get(ValueType.OBJECT, 0) > 0

    @property
    def max_sample_length(self) -> int:
        """Length of the longest retained sample before truncation."""
        return self._longest_seen

    @property
    def is_scalar(self) -> bool:
        return not self.is_array and not self.is_nested

    def __post_init__(self):
        self._longest_seen = 0

    # ======================================
    # Serialization
    # ======================================
    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for reports and the CLI."""
        return {
            "path": self.path,
            "type_counts": {t.value: c for t, c in self.type_counts.items()},
            "occurrence_count": self.occurrence_count,
            "is_nested": self.is_nested,
            "is_array": self.is_array,
            "array_element_type_counts": {
                t.value: c for t, c in self.array_element_type_counts.items()
            },
            "sample_values": list(self.sample_values),
        }


@dataclass
class SchemaAnalysis:
    """Output of one schema inference run."""
    fields: Dict[str, FieldSchema] = field(default_factory=dict)
    total_docs: int = 0

    def __getitem__(self, path: str) -> FieldSchema:
        return self.fields[path]

    def __contains__(self, path: str) -> bool:
        return path in self.fields

    def is_required(self, path: str) -> bool:
        """A field is NOT NULL only when every sampled document had it."""
        schema = self.fields.get(path)
        return (
            schema is not None
            and self.total_docs > 0
            and schema.occurrence_count == self.total_docs
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_docs": self.total_docs,
            "fields": {path: fs.to_dict() for path, fs in self.fields.items()},
        }
