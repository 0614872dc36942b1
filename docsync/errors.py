# ==============================================
# Error Taxonomy
# ==============================================
#
# PURPOSE:
#   One place for every failure category the migration and sync
#   workflow distinguishes.
#
# CLASSES:
# --------
# - DocSyncError              → base for all raised errors
# - StoreConnectionError      → source/destination could not be reached.
#                               Fatal for the current collection only.
# - ValidationError           → failure inside a validation run.
#                               Turns the report status into ERROR.
# - PerRecordError (dataclass)→ one insert/update/delete failure, collected
#                               on the result object, never raised.
#
# Non-fatal events (malformed value during inference, failed DDL
# statement) are logged at WARNING and the run continues.
#
# ==============================================

from dataclasses import dataclass


class DocSyncError(Exception):
    """Base class for docsync errors."""


class StoreConnectionError(DocSyncError):
    """Raised when a document store or relational store cannot be reached."""

    def __init__(self, store: str, message: str):
        self.store = store
        super().__init__(f"{store}: {message}")


class ValidationError(DocSyncError):
    """Raised when a validation step cannot be completed."""


@dataclass
class PerRecordError:
    """A failed store operation for a single document."""
    document_id: str
    operation: str  # insert, update, delete or fetch
    message: str

    def __str__(self) -> str:
        return f"{self.operation} {self.document_id}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "operation": self.operation,
            "message": self.message,
        }
