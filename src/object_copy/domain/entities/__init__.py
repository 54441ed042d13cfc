"""Domain entities."""

from object_copy.domain.entities.chunk import ChunkOutcome, ChunkResult, ChunkSpec, ManifestItem
from object_copy.domain.entities.job import CopyJob, JobStatus

__all__ = [
    "ChunkSpec",
    "ChunkResult",
    "ChunkOutcome",
    "ManifestItem",
    "CopyJob",
    "JobStatus",
]
