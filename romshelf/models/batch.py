"""State records for cancellable multi-item batch jobs."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum

from romshelf.models.results import truncate_errors


class ItemStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CancellationToken:
    """Cooperative cancellation flag shared between the UI and a running job.

    Reads always see the latest value, so a loop can poll
    :attr:`is_cancelled` between items without capturing it up front.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class BatchItem:
    game_id: str
    status: ItemStatus = ItemStatus.PENDING
    error: str | None = None


@dataclass
class BatchJob:
    """Ordered working set of one bulk action plus its per-item state."""

    game_ids: list[str]
    items: list[BatchItem] = field(init=False)
    state: JobState = JobState.IDLE

    def __post_init__(self) -> None:
        self.items = [BatchItem(game_id=gid) for gid in self.game_ids]

    @property
    def total(self) -> int:
        return len(self.items)

    def count(self, status: ItemStatus) -> int:
        return sum(1 for item in self.items if item.status is status)


@dataclass
class BatchProgress:
    """One per-item progress event."""

    index: int
    total: int
    game_id: str
    title: str
    status: ItemStatus
    error: str | None = None


@dataclass
class BatchResult:
    """Aggregate outcome of a batch job, returned even on partial failure."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def pending(self) -> int:
        return self.total - self.successful - self.failed

    def display_errors(self, limit: int = 5) -> list[str]:
        return truncate_errors(self.errors, limit)

    @classmethod
    def from_job(cls, job: BatchJob, errors: list[str]) -> BatchResult:
        return cls(
            total=job.total,
            successful=job.count(ItemStatus.SUCCEEDED),
            failed=job.count(ItemStatus.FAILED),
            errors=list(errors),
            cancelled=job.state is JobState.CANCELLED,
        )
