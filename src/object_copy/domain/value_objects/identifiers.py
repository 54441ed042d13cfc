"""Object copy value objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NewType

# Type-safe identifiers
JobId = NewType("JobId", str)


@dataclass(frozen=True)
class ObjectLocation:
    """Address of one object in the storage service."""

    region: str
    container: str
    key: str

    @property
    def path(self) -> str:
        """Container-qualified path, as used in manifests."""
        return f"{self.container}/{self.key}"

    def part(self, index: int) -> "ObjectLocation":
        """Get the location of a numbered part of this object.

        Args:
            index: Chunk index.

        Returns:
            Location of ``<key>-<index>`` in the same container.
        """
        return ObjectLocation(self.region, self.container, part_name(self.key, index))

    def __str__(self) -> str:
        return f"{self.region}:{self.path}"


def part_name(key: str, index: int) -> str:
    """Build the destination key of a chunk part.

    Args:
        key: Destination object key.
        index: Chunk index.

    Returns:
        Part key.
    """
    return f"{key}-{index}"


def create_job_id() -> JobId:
    """Create a unique copy job ID.

    Returns:
        Job ID.
    """
    import uuid

    return JobId(f"copy-{uuid.uuid4().hex[:12]}")
