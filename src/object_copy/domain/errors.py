"""Error taxonomy for object copy operations.

Every error raised out of ``copy_object`` derives from :class:`CopyError`,
so callers can catch the whole family with a single ``except`` clause.
"""

from __future__ import annotations

from typing import Optional


class CopyError(Exception):
    """Base class for all object copy errors."""

    pass


class AuthError(CopyError):
    """Raised when the identity exchange fails."""

    pass


class NotFoundError(CopyError):
    """Raised when an object, part or region does not exist."""

    pass


class TransferError(CopyError):
    """Raised when a download or upload fails.

    Attributes:
        stage: Transfer stage that failed ("download", "upload" or "stat").
        chunk_index: Index of the chunk being transferred, if any.
    """

    def __init__(
        self,
        message: str,
        stage: str = "download",
        chunk_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.stage = stage
        self.chunk_index = chunk_index


class IntegrityError(CopyError):
    """Raised when the upload-reported hash differs from the download hash."""

    def __init__(self, chunk_index: int, expected: str, actual: str) -> None:
        super().__init__(
            f"Upload etag does not match download etag for chunk {chunk_index}: "
            f"{expected} != {actual}"
        )
        self.chunk_index = chunk_index
        self.expected = expected
        self.actual = actual


class ManifestError(CopyError):
    """Raised when the destination rejects the final manifest."""

    pass


class InvalidSizeError(CopyError, ValueError):
    """Raised when an object size or chunk size is not positive."""

    pass


class CopyCancelledError(CopyError):
    """Raised when a copy is cancelled before every chunk was dispatched."""

    pass
