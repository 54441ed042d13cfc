"""Collection of per-chunk outcomes for a copy job."""

from __future__ import annotations

from typing import Optional

from object_copy.domain.entities.chunk import ChunkOutcome, ChunkSpec
from object_copy.domain.entities.job import CopyJob


class ResultAggregator:
    """Single consumer of chunk outcomes for one job.

    Outcomes are handed over in completion order by the orchestrator
    thread, which is the only caller; workers never reach this object.
    The first failure observed is latched. Outcomes arriving after it are
    still drained so every dispatched chunk is accounted for exactly once.
    """

    def __init__(self, job: CopyJob) -> None:
        """Initialize aggregator.

        Args:
            job: Job whose state this aggregator maintains.
        """
        self.job = job
        self._dispatched: set[int] = set()
        self._observed: set[int] = set()

    @property
    def dispatched(self) -> int:
        return len(self._dispatched)

    @property
    def observed(self) -> int:
        return len(self._observed)

    @property
    def drained(self) -> bool:
        """True once one outcome per dispatched chunk has been observed."""
        return self._observed == self._dispatched

    @property
    def should_stop(self) -> bool:
        """True once a failure has been latched."""
        return self.job.first_error is not None

    @property
    def first_error(self) -> Optional[BaseException]:
        return self.job.first_error

    def on_dispatch(self, spec: ChunkSpec) -> None:
        """Record that a chunk was handed to a worker.

        Args:
            spec: Dispatched chunk.
        """
        if spec.index in self._dispatched:
            raise RuntimeError(f"Chunk {spec.index} dispatched twice")
        self._dispatched.add(spec.index)
        self.job.pending.discard(spec)
        self.job.in_flight += 1

    def on_outcome(self, outcome: ChunkOutcome) -> None:
        """Record the outcome of a dispatched chunk.

        Args:
            outcome: Result or error from the worker.

        Raises:
            RuntimeError: If the chunk was never dispatched or already reported.
        """
        if outcome.index not in self._dispatched:
            raise RuntimeError(f"Outcome for chunk {outcome.index} which was never dispatched")
        if outcome.index in self._observed:
            raise RuntimeError(f"Outcome for chunk {outcome.index} observed twice")
        self._observed.add(outcome.index)
        self.job.in_flight -= 1

        if not outcome.succeeded:
            if self.job.first_error is None:
                self.job.first_error = outcome.error
            return

        if outcome.result is not None:
            self.job.results.append(outcome.result)
