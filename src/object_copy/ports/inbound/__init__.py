"""Inbound ports - API contract exposed by the copy engine.

Callers copy one object at a time; the only observable outcome is
whether the destination manifest was written.
"""

from __future__ import annotations

import threading
from abc import abstractmethod
from typing import Optional, Protocol

from object_copy.domain.entities.job import CopyJob
from object_copy.domain.value_objects.identifiers import ObjectLocation


class ObjectCopyPort(Protocol):
    """Protocol for chunked object copy.

    Idempotence:
        Re-running a copy with an unchanged source writes the same manifest
        and uploads nothing; every part is skipped by hash.

    Example:
        job = copier.copy(
            ObjectLocation("IAD", "testing", "image.iso"),
            ObjectLocation("DFW", "testing", "image.iso"),
        )
        assert job.status is JobStatus.COMPLETED
    """

    @abstractmethod
    def copy(
        self,
        source: ObjectLocation,
        destination: ObjectLocation,
        chunk_size: Optional[int] = None,
        concurrency: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CopyJob:
        """Copy an object between storage locations.

        Args:
            source: Object to copy.
            destination: Logical object to create.
            chunk_size: Bytes per chunk.
            concurrency: Maximum simultaneous chunk transfers.
            cancel_event: Stops dispatch of further chunks when set.

        Returns:
            The completed job.

        Raises:
            AuthError: If the session is rejected.
            NotFoundError: If the source does not exist.
            TransferError: If a chunk download or upload fails.
            IntegrityError: If an uploaded chunk's hash does not match.
            ManifestError: If the manifest is rejected.
            CopyCancelledError: If cancelled before all chunks were dispatched.
        """
        ...


__all__ = ["ObjectCopyPort"]
