"""Chunk entities for object copy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ChunkSpec:
    """A contiguous byte range of the source object."""

    index: int
    offset: int
    length: int

    @property
    def end(self) -> int:
        """Exclusive end offset of the range."""
        return self.offset + self.length


@dataclass(frozen=True)
class ChunkResult:
    """Outcome of a successfully copied chunk."""

    index: int
    destination_path: str
    content_hash: str
    size: int
    skipped: bool = False  # True if the part was already at the destination

    def to_manifest_item(self) -> "ManifestItem":
        """Derive the manifest entry for this chunk.

        Returns:
            Manifest item.
        """
        return ManifestItem(path=self.destination_path, etag=self.content_hash, size=self.size)


@dataclass(frozen=True)
class ManifestItem:
    """One segment of a multipart manifest."""

    path: str
    etag: str
    size: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the storage service's manifest format.

        Returns:
            Dictionary with ``path``, ``etag`` and ``size_bytes`` keys.
        """
        return {"path": self.path, "etag": self.etag, "size_bytes": self.size}


@dataclass(frozen=True)
class ChunkOutcome:
    """Result or error reported for one dispatched chunk."""

    index: int
    result: ChunkResult | None = None
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
