"""
Outcome of committing an edited aggregate.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class CommitStatus(str, Enum):
    """How a commit settled."""
    ALL_COMMITTED = "all_committed"
    ROLLED_BACK = "rolled_back"


@dataclass(frozen=True)
class PatchFailure:
    """One rejected patch call within a commit."""
    target: str      # "parent" or "child"
    target_id: int
    error: str


@dataclass(frozen=True)
class CommitOutcome:
    """
    Result of EntitySyncCoordinator.commit().

    ROLLED_BACK means at least one patch failed. Which of the other calls
    reached the backend is unknown, so local state was replaced by a fresh
    list (resynced=True) or, if that fetch also failed, by the pre-edit
    snapshot (resynced=False).
    """
    status: CommitStatus
    aggregate_id: int
    reason: Optional[str] = None
    failed_calls: tuple[PatchFailure, ...] = field(default_factory=tuple)
    resynced: bool = False

    @property
    def committed(self) -> bool:
        return self.status == CommitStatus.ALL_COMMITTED

    @classmethod
    def all_committed(cls, aggregate_id: int) -> "CommitOutcome":
        return cls(status=CommitStatus.ALL_COMMITTED, aggregate_id=aggregate_id)

    @classmethod
    def rolled_back(
        cls,
        aggregate_id: int,
        reason: str,
        failed_calls: tuple[PatchFailure, ...],
        resynced: bool
    ) -> "CommitOutcome":
        return cls(
            status=CommitStatus.ROLLED_BACK,
            aggregate_id=aggregate_id,
            reason=reason,
            failed_calls=failed_calls,
            resynced=resynced,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "aggregate_id": self.aggregate_id,
            "reason": self.reason,
            "failed_calls": [
                {"target": f.target, "target_id": f.target_id, "error": f.error}
                for f in self.failed_calls
            ],
            "resynced": self.resynced,
        }
