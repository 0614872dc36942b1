# ==============================================
# ChangeDetector
# ==============================================
#
# PURPOSE:
#   Classify every document id of one sync run as NEW, UPDATED,
#   UNCHANGED or DELETED, from three inputs:
#     S  → ids (and flattened content) of the current source fetch
#     D  → ids currently in the destination main table
#     H  → content hashes recorded by the previous run
#
# RULES:
# ------
#   i ∈ S, i ∉ D                                   → NEW
#   i ∈ S, i ∈ D, (full sync | H[i] missing | H[i] ≠ hash) → UPDATED
#   i ∈ S, i ∈ D, H[i] == hash                     → UNCHANGED
#   j ∈ D, j ∉ S                                   → DELETED
#
#   Full sync = no previous state, or forced. The classes are
#   disjoint by construction.
#
# CONTENT HASH:
# -------------
#   compute_hash(flat) → SHA-256 over "name=value" lines of the
#   flattened scalar fields sorted by name. Each value is written
#   as its type name plus repr() of its driver-ready form (None → ""),
#   so a whitespace or type change alters the hash.
#   Insertion order of the fields never affects the hash.
#   TypeDetector.normalize is lossy and only used for validation.
#
# ==============================================

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from docsync.normalization import TypeDetector
from docsync.persistence import SyncState

logger = logging.getLogger(__name__)


def hash_value(value: Any) -> str:
    """Type-preserving text form of a scalar for hashing."""
    value = TypeDetector.to_sql_value(value)
    if value is None:
        return ""
    return f"{type(value).__name__}:{value!r}"


def compute_hash(flat: Mapping[str, Any]) -> str:
    """Deterministic digest of a flattened document."""
    digest = hashlib.sha256()
    for name in sorted(flat):
        line = f"{name}={hash_value(flat[name])}\n"
        digest.update(line.encode("utf-8"))
    return digest.hexdigest()


class ChangeKind(Enum):
    NEW = "new"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    DELETED = "deleted"


@dataclass
class ChangeSet:
    """
    Classification of one sync run.

    `hashes` holds the freshly computed hash of every id still in the
    source (NEW, UPDATED, UNCHANGED); deleted ids have none.
    """
    is_full_sync: bool = False
    kinds: Dict[str, ChangeKind] = field(default_factory=dict)
    hashes: Dict[str, str] = field(default_factory=dict)

    def ids(self, kind: ChangeKind) -> List[str]:
        return [i for i, k in self.kinds.items() if k is kind]

    @property
    def new_ids(self) -> List[str]:
        return self.ids(ChangeKind.NEW)

    @property
    def updated_ids(self) -> List[str]:
        return self.ids(ChangeKind.UPDATED)

    @property
    def unchanged_ids(self) -> List[str]:
        return self.ids(ChangeKind.UNCHANGED)

    @property
    def deleted_ids(self) -> List[str]:
        return self.ids(ChangeKind.DELETED)

    @property
    def has_changes(self) -> bool:
        return any(k is not ChangeKind.UNCHANGED for k in self.kinds.values())

    def counts(self) -> Dict[str, int]:
        totals = {kind.value: 0 for kind in ChangeKind}
        for kind in self.kinds.values():
            totals[kind.value] += 1
        return totals


class ChangeDetector:
    def detect(
        self,
        flat_by_id: Mapping[str, Mapping[str, Any]],
        destination_ids: Iterable[str],
        previous: Optional[SyncState],
        force_full: bool = False,
    ) -> ChangeSet:
        """
        Classify source and destination ids.

        Args:
            flat_by_id: Flattened source documents keyed by id (S)
            destination_ids: Ids present in the destination table (D)
            previous: State of the last run, or None
            force_full: Ignore previous hashes even when state exists

        Returns:
            ChangeSet
        """
        destination = {str(i) for i in destination_ids}
        is_full = previous is None or force_full
        prior = {} if previous is None else previous.document_hashes

        change_set = ChangeSet(is_full_sync=is_full)

        for doc_id, flat in flat_by_id.items():
            current = compute_hash(flat)
            change_set.hashes[doc_id] = current

            if doc_id not in destination:
                change_set.kinds[doc_id] = ChangeKind.NEW
            elif is_full or prior.get(doc_id) != current:
                change_set.kinds[doc_id] = ChangeKind.UPDATED
            else:
                change_set.kinds[doc_id] = ChangeKind.UNCHANGED

        for doc_id in sorted(destination):
            if doc_id not in flat_by_id:
                change_set.kinds[doc_id] = ChangeKind.DELETED

        counts = change_set.counts()
        logger.info(
            "Change detection (%s): %d new, %d updated, %d unchanged, %d deleted",
            "full" if is_full else "incremental",
            counts["new"], counts["updated"], counts["unchanged"], counts["deleted"],
        )
        return change_set
