# ==============================================
# TOPIC 6: SYNCHRONIZATION
# ==============================================
#
# Incremental synchronization of a collection into its main table
# and the child/junction tables of every written document.
#
# Modules:
# --------
# - change_detector.py → content hashing (hash_value, compute_hash) + NEW/UPDATED/UNCHANGED/DELETED
# - sync_engine.py     → one sync run: fetch, detect, evolve, apply, persist
#
# ==============================================

from .change_detector import ChangeDetector, ChangeKind, ChangeSet, compute_hash, hash_value
from .sync_engine import SyncEngine, SyncResult

__all__ = [
    "ChangeDetector",
    "ChangeKind",
    "ChangeSet",
    "compute_hash",
    "hash_value",
    "SyncEngine",
    "SyncResult",
]
