"""Chunk planning for ranged copies."""

from __future__ import annotations

from object_copy.domain.entities.chunk import ChunkSpec
from object_copy.domain.errors import InvalidSizeError

# 256MB chunks
DEFAULT_CHUNK_SIZE = 256 * 1024 * 1024


def plan_chunks(total_size: int, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[ChunkSpec]:
    """Split an object into fixed-size byte ranges.

    Every range except possibly the last is exactly ``chunk_size`` bytes,
    and together they cover ``[0, total_size)`` without gaps or overlaps.

    Args:
        total_size: Object size in bytes.
        chunk_size: Maximum bytes per chunk.

    Returns:
        Chunk specs ordered by index.

    Raises:
        InvalidSizeError: If either size is not positive.
    """
    if total_size <= 0:
        raise InvalidSizeError(f"Object size must be positive, got {total_size}")
    if chunk_size <= 0:
        raise InvalidSizeError(f"Chunk size must be positive, got {chunk_size}")

    chunk_count, remainder = divmod(total_size, chunk_size)
    if remainder > 0:
        chunk_count += 1

    specs = []
    for index in range(chunk_count):
        offset = index * chunk_size
        specs.append(
            ChunkSpec(
                index=index,
                offset=offset,
                length=min(chunk_size, total_size - offset),
            )
        )
    return specs
