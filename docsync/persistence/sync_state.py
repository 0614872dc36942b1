import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union


logger = logging.getLogger(__name__)


# ==============================================
# SyncState / SyncStateStore
# ==============================================
#
# PURPOSE:
#   Persist what the last successful sync run saw, so the next run
#   can tell new, changed and unchanged documents apart without
#   re-reading the destination rows.
#
# WHAT IS PERSISTED (one file per destination table):
#   sync_state_<table>.json
#   {
#     "LastSyncTime": "2024-05-01T10:00:00+00:00",
#     "DocumentHashes": {"<id>": "<hex digest>", ...}
#   }
#
# LIFECYCLE:
#   Loaded once at the start of a run, rebuilt in memory, and
#   written wholesale at the end. The file is replaced atomically,
#   so a crash mid-write leaves the previous state in place.
#
@dataclass
class SyncState:
    """Last sync time plus per-document content hashes."""
    last_sync_time: Optional[datetime] = None
    document_hashes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization"""
        return {
            "LastSyncTime": self.last_sync_time.isoformat() if self.last_sync_time else None,
            "DocumentHashes": dict(self.document_hashes),
        }

    @staticmethod
    def from_dict(data: dict) -> "SyncState":
        """Create from dictionary (deserialization)"""
        raw_time = data.get("LastSyncTime")
        hashes = data.get("DocumentHashes") or {}
        if not isinstance(hashes, dict):
            raise ValueError("DocumentHashes must be an object")
        return SyncState(
            last_sync_time=datetime.fromisoformat(raw_time) if raw_time else None,
            document_hashes={str(k): str(v) for k, v in hashes.items()},
        )


# CLASS: SyncStateStore
# ---------------------
#   Stateful: holds a reference to the state directory.
#
#   Methods:
#   --------
#   - path_for(table) -> Path
#   - load(table) -> SyncState | None     (None = no usable state → full sync)
#   - save(table, state) -> Path
#   - exists(table) -> bool
#   - clear(table) -> None
#
class SyncStateStore:
    """
    Handles persistence of sync state files.

    Files created:
    - <state_dir>/sync_state_<table>.json
    """

    def __init__(self, state_dir: Union[str, Path] = "."):
        self.state_dir = Path(state_dir)

    def path_for(self, table: str) -> Path:
        return self.state_dir / f"sync_state_{table}.json"

    def exists(self, table: str) -> bool:
        return self.path_for(table).exists()

    def load(self, table: str) -> Optional[SyncState]:
        """
        Load the state of the last run for a table.

        Returns:
            SyncState, or None when there is no file or it cannot be read
            (the caller then performs a full sync; the bad file is only
            replaced once that run completes)
        """
        path = self.path_for(table)
        if not path.exists():
            logger.info("No sync state found at %s", path)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                state = SyncState.from_dict(json.load(f))
        except (OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable sync state %s: %s", path, e)
            return None

        logger.info("Loaded sync state for '%s' (%d hashes)", table, len(state.document_hashes))
        return state

    def save(self, table: str, state: SyncState) -> Path:
        """Write the state file atomically (temp file + rename)."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(table)

        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=self.state_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.info("Saved sync state for '%s' (%d hashes) to %s", table, len(state.document_hashes), path)
        return path

    def clear(self, table: str) -> None:
        """Delete the state file, forcing the next run to be a full sync."""
        path = self.path_for(table)
        if path.exists():
            path.unlink()
            logger.info("Deleted %s", path)
