"""Chunked, bounded-concurrency copies of large objects between storage locations."""

__version__ = "0.1.0"

from object_copy.application.copy_orchestrator import CopyOrchestrator, copy_object
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
from object_copy.domain.value_objects.identifiers import ObjectLocation

__all__ = [
    "copy_object",
    "CopyOrchestrator",
    "ObjectLocation",
    "CopyError",
    "AuthError",
    "NotFoundError",
    "TransferError",
    "IntegrityError",
    "ManifestError",
    "InvalidSizeError",
    "CopyCancelledError",
]
