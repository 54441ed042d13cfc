"""Copy job entity."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import time

from object_copy.domain.entities.chunk import ChunkResult, ChunkSpec
from object_copy.domain.value_objects.identifiers import JobId, ObjectLocation


class JobStatus(Enum):
    """Copy job lifecycle state."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CopyJob:
    """State of one copy_object call.

    Owned by the orchestrator thread; workers never touch it directly.
    """
    job_id: JobId
    source: ObjectLocation
    destination: ObjectLocation
    status: JobStatus = JobStatus.RUNNING

    pending: set[ChunkSpec] = field(default_factory=set)
    in_flight: int = 0
    results: list[ChunkResult] = field(default_factory=list)
    first_error: Optional[BaseException] = None

    started_at: float = field(default_factory=time.time)
    completed_at: float | None = None

    def complete(self) -> None:
        """Mark job as completed."""
        if self.status != JobStatus.RUNNING:
            raise RuntimeError(f"Cannot complete job in state {self.status}")
        self.status = JobStatus.COMPLETED
        self.completed_at = time.time()

    def fail(self, error: BaseException) -> None:
        """Mark job as failed.

        Args:
            error: Error that terminated the job.
        """
        if self.status != JobStatus.RUNNING:
            raise RuntimeError(f"Cannot fail job in state {self.status}")
        self.status = JobStatus.FAILED
        if self.first_error is None:
            self.first_error = error
        self.completed_at = time.time()

    def is_terminal(self) -> bool:
        """Check if job has finished.

        Returns:
            True if completed or failed.
        """
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)

    @property
    def bytes_copied(self) -> int:
        return sum(result.size for result in self.results)

    @property
    def duration_seconds(self) -> float:
        end = self.completed_at if self.completed_at is not None else time.time()
        return end - self.started_at
