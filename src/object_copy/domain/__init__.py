"""Object copy domain layer."""

from object_copy.domain.errors import (
    AuthError,
    CopyCancelledError,
    CopyError,
    IntegrityError,
    InvalidSizeError,
    ManifestError,
    NotFoundError,
    TransferError,
)

__all__ = [
    "CopyError",
    "AuthError",
    "NotFoundError",
    "TransferError",
    "IntegrityError",
    "ManifestError",
    "InvalidSizeError",
    "CopyCancelledError",
]
