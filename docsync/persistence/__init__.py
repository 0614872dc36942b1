# ==============================================
# TOPIC 5: PERSISTENCE
# ==============================================
#
# Sync state persisted between runs, so that each synchronization
# only touches documents that changed since the previous one.
#
# Modules:
# --------
# - sync_state.py → SyncState data class + SyncStateStore (JSON files)
#
# ==============================================

from .sync_state import SyncState, SyncStateStore

__all__ = ["SyncState", "SyncStateStore"]
