"""Outbound ports - interfaces for the remote object storage service.

The copy engine only depends on the contract below. Identity exchange,
HTTP range reads and writes, and the authentication wire format all live
behind it in adapters.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import BinaryIO, Mapping, Protocol, Sequence

from object_copy.domain.entities.chunk import ManifestItem
from object_copy.domain.errors import NotFoundError
from object_copy.domain.value_objects.identifiers import ObjectLocation


# =============================================================================
# Session
# =============================================================================


@dataclass(frozen=True)
class Session:
    """Authorized session produced once by ``authorize()``.

    Immutable; passed explicitly into every client call instead of being
    stored on the client.
    """

    token: str
    tenant_id: str = ""
    endpoints: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "endpoints", MappingProxyType(dict(self.endpoints)))

    def endpoint_for(self, region: str) -> str:
        """Get the storage endpoint for a region.

        Args:
            region: Region name (e.g. "IAD").

        Returns:
            Public endpoint URL.

        Raises:
            NotFoundError: If the region is not in the service catalog.
        """
        endpoint = self.endpoints.get(region)
        if not endpoint:
            raise NotFoundError(f"Could not find region {region} in service catalog.")
        return endpoint


@dataclass(frozen=True)
class ObjectStat:
    """Size and etag reported for a stored object."""

    size: int
    etag: str


@dataclass(frozen=True)
class ReadResult:
    """Outcome of a ranged read."""

    bytes_written: int
    etag: str


# =============================================================================
# Object Store Client Port
# =============================================================================


class ObjectStoreClientPort(Protocol):
    """Protocol for the remote object storage service.

    Thread Safety:
        Implementations must allow concurrent calls from worker threads.

    Example:
        session = client.authorize()
        stat = client.stat(session, ObjectLocation("IAD", "testing", "image.iso"))
    """

    @abstractmethod
    def authorize(self) -> Session:
        """Exchange credentials for a session.

        Returns:
            Authorized session.

        Raises:
            AuthError: If the identity service rejects the credentials.
        """
        ...

    @abstractmethod
    def stat(self, session: Session, location: ObjectLocation) -> ObjectStat:
        """Get the size and etag of an object without reading it.

        Args:
            session: Authorized session.
            location: Object to inspect.

        Returns:
            Object size and etag.

        Raises:
            NotFoundError: If the object does not exist.
            TransferError: If the request fails.
        """
        ...

    @abstractmethod
    def ranged_read(
        self,
        session: Session,
        location: ObjectLocation,
        offset: int,
        length: int,
        sink: BinaryIO,
    ) -> ReadResult:
        """Stream a byte range of an object into a sink.

        When ``length`` is positive the returned etag is the MD5 of exactly
        the bytes written. When ``length`` is 0 the whole object is read and
        the service-reported etag is returned.

        Args:
            session: Authorized session.
            location: Object to read.
            offset: First byte to read.
            length: Number of bytes, or 0 for the whole object.
            sink: Writable binary stream. Not closed by the client.

        Returns:
            Bytes written and etag.

        Raises:
            TransferError: If the read fails.
        """
        ...

    @abstractmethod
    def write(self, session: Session, location: ObjectLocation, source: BinaryIO) -> str:
        """Upload an object from a readable stream.

        Args:
            session: Authorized session.
            location: Object to write.
            source: Readable binary stream positioned at the start.

        Returns:
            Etag reported by the service.

        Raises:
            TransferError: If the upload fails.
        """
        ...

    @abstractmethod
    def write_manifest(
        self,
        session: Session,
        location: ObjectLocation,
        items: Sequence[ManifestItem],
    ) -> None:
        """Submit a multipart manifest that assembles parts into one object.

        Args:
            session: Authorized session.
            location: Logical object to create.
            items: Parts, in the order they are to be assembled.

        Raises:
            ManifestError: If the service rejects the manifest.
        """
        ...


__all__ = [
    "Session",
    "ObjectStat",
    "ReadResult",
    "ObjectStoreClientPort",
]
