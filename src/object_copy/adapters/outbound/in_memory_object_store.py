"""In-memory object store for testing and development.

This adapter provides an in-memory implementation of the
ObjectStoreClientPort protocol. It mimics the storage service closely
enough for the copy engine: MD5 etags, regions with separate namespaces,
and static-large-object manifests that are validated on write and
readable as one logical object afterwards.

Faults can be injected per object key to exercise error paths.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
import uuid
from collections import Counter
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Sequence

from object_copy.domain.entities.chunk import ManifestItem
from object_copy.domain.errors import AuthError, ManifestError, NotFoundError, TransferError
from object_copy.domain.value_objects.identifiers import ObjectLocation
from object_copy.ports.outbound import ObjectStat, ReadResult, Session


logger = logging.getLogger(__name__)

_READ_BLOCK_SIZE = 64 * 1024


@dataclass
class StoredObject:
    """A stored blob or manifest."""

    data: bytes = b""
    etag: str = ""
    manifest: Optional[list[ManifestItem]] = None

    @property
    def is_manifest(self) -> bool:
        return self.manifest is not None


@dataclass
class FaultPlan:
    """Faults to inject for one object key."""

    fail_read: bool = False
    fail_write: bool = False
    fail_stat: bool = False
    corrupt_upload_etag: bool = False
    delay_seconds: float = 0.0


@dataclass
class CallLog:
    """Calls made against the store, counted per (operation, key)."""

    counts: Counter = field(default_factory=Counter)

    def record(self, operation: str, key: str) -> None:
        self.counts[(operation, key)] += 1

    def total(self, operation: str) -> int:
        return sum(count for (op, _), count in self.counts.items() if op == operation)

    def for_key(self, operation: str, key: str) -> int:
        return self.counts[(operation, key)]


class InMemoryObjectStore:
    """In-memory implementation of ObjectStoreClientPort.

    Thread-safe; all state is guarded by one lock and delays are applied
    outside of it so concurrent calls really overlap.

    Example:
        store = InMemoryObjectStore(regions=["IAD", "DFW"])
        session = store.authorize()
        store.put_object(ObjectLocation("IAD", "testing", "file.bin"), b"data")
    """

    def __init__(
        self,
        regions: Sequence[str] = ("IAD", "DFW"),
        token: str = "test-token",
        reject_auth: bool = False,
    ) -> None:
        """Initialize store.

        Args:
            regions: Regions advertised in the service catalog.
            token: Token handed out by ``authorize``.
            reject_auth: Make ``authorize`` fail.
        """
        self._regions = list(regions)
        self._token = token
        self._reject_auth = reject_auth
        self._objects: dict[tuple[str, str, str], StoredObject] = {}
        self._faults: dict[str, FaultPlan] = {}
        self._lock = threading.Lock()
        self.calls = CallLog()
        self.manifests: list[tuple[ObjectLocation, list[ManifestItem]]] = []

    # ------------------------------------------------------------------
    # Test helpers
    # ------------------------------------------------------------------

    def put_object(self, location: ObjectLocation, data: bytes) -> str:
        """Store an object directly, bypassing call accounting.

        Returns:
            Etag of the stored object.
        """
        etag = hashlib.md5(data).hexdigest()
        with self._lock:
            self._objects[self._key(location)] = StoredObject(data=data, etag=etag)
        return etag

    def get_object_data(self, location: ObjectLocation) -> bytes:
        """Get stored bytes, assembling manifests from their parts."""
        with self._lock:
            stored = self._lookup(location)
            return self._assemble(location.region, stored)

    def has_object(self, location: ObjectLocation) -> bool:
        with self._lock:
            return self._key(location) in self._objects

    def inject_fault(self, key: str, **faults) -> FaultPlan:
        """Inject faults for every object with the given key.

        Args:
            key: Object key (in any region/container).
            **faults: FaultPlan fields to set.

        Returns:
            The fault plan now in effect.
        """
        plan = FaultPlan(**faults)
        with self._lock:
            self._faults[key] = plan
        return plan

    def clear_faults(self) -> None:
        with self._lock:
            self._faults.clear()

    # ------------------------------------------------------------------
    # ObjectStoreClientPort
    # ------------------------------------------------------------------

    def authorize(self) -> Session:
        if self._reject_auth:
            raise AuthError("Could not authenticate: invalid credentials (401)")
        return Session(
            token=self._token,
            tenant_id=f"tenant-{uuid.uuid4().hex[:8]}",
            endpoints={region: f"memory://{region.lower()}" for region in self._regions},
        )

    def stat(self, session: Session, location: ObjectLocation) -> ObjectStat:
        self._check_session(session, location)
        plan = self._begin("stat", location)
        if plan.fail_stat:
            raise TransferError(f"Could not fetch object {location}, status: 500", stage="stat")
        with self._lock:
            stored = self._lookup(location)
            if stored.is_manifest:
                size = sum(item.size for item in stored.manifest)
            else:
                size = len(stored.data)
            return ObjectStat(size=size, etag=stored.etag)

    def ranged_read(
        self,
        session: Session,
        location: ObjectLocation,
        offset: int,
        length: int,
        sink: BinaryIO,
    ) -> ReadResult:
        self._check_session(session, location)
        plan = self._begin("read", location)
        if plan.fail_read:
            raise TransferError(f"Could not fetch object {location}, status: 503")
        with self._lock:
            stored = self._lookup(location)
            data = self._assemble(location.region, stored)

        if length > 0:
            if offset >= len(data):
                raise TransferError(f"Requested range not satisfiable for {location}, status: 416")
            data = data[offset:offset + length]
        hasher = hashlib.md5()
        for start in range(0, len(data), _READ_BLOCK_SIZE):
            block = data[start:start + _READ_BLOCK_SIZE]
            hasher.update(block)
            sink.write(block)

        etag = hasher.hexdigest() if length > 0 else stored.etag
        return ReadResult(bytes_written=len(data), etag=etag)

    def write(self, session: Session, location: ObjectLocation, source: BinaryIO) -> str:
        self._check_session(session, location)
        plan = self._begin("write", location)
        if plan.fail_write:
            raise TransferError(f"Could not put object {location}, status: 500", stage="upload")
        data = source.read()
        etag = hashlib.md5(data).hexdigest()
        with self._lock:
            self._objects[self._key(location)] = StoredObject(data=data, etag=etag)
        if plan.corrupt_upload_etag:
            return hashlib.md5(data + b"corrupted").hexdigest()
        return etag

    def write_manifest(
        self,
        session: Session,
        location: ObjectLocation,
        items: Sequence[ManifestItem],
    ) -> None:
        self._check_session(session, location)
        self._begin("write_manifest", location)
        if not items:
            raise ManifestError(f"Could not put manifest for {location}, status: 400, error: empty manifest")

        with self._lock:
            errors = []
            for item in items:
                container, _, key = item.path.partition("/")
                segment = self._objects.get((location.region, container, key))
                if segment is None:
                    errors.append(f"{item.path}: 404 Not Found")
                elif segment.etag != item.etag:
                    errors.append(f"{item.path}: Etag Mismatch")
                elif len(segment.data) != item.size:
                    errors.append(f"{item.path}: Size Mismatch")
            if errors:
                raise ManifestError(
                    f"Could not put manifest for {location}, status: 400, error: {'; '.join(errors)}"
                )

            # Static large objects report the MD5 of the concatenated segment etags.
            joined = "".join(item.etag for item in items).encode()
            self._objects[self._key(location)] = StoredObject(
                etag=hashlib.md5(joined).hexdigest(),
                manifest=list(items),
            )
            self.manifests.append((location, list(items)))
        logger.debug(f"Stored manifest {location} with {len(items)} segments")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _key(location: ObjectLocation) -> tuple[str, str, str]:
        return (location.region, location.container, location.key)

    def _lookup(self, location: ObjectLocation) -> StoredObject:
        stored = self._objects.get(self._key(location))
        if stored is None:
            raise NotFoundError(f"Could not fetch object {location}, status: 404")
        return stored

    def _assemble(self, region: str, stored: StoredObject) -> bytes:
        if not stored.is_manifest:
            return stored.data
        parts = []
        for item in stored.manifest:
            container, _, key = item.path.partition("/")
            parts.append(self._objects[(region, container, key)].data)
        return b"".join(parts)

    def _check_session(self, session: Session, location: ObjectLocation) -> None:
        if session.token != self._token:
            raise AuthError("Session token rejected (401)")
        session.endpoint_for(location.region)

    def _begin(self, operation: str, location: ObjectLocation) -> FaultPlan:
        with self._lock:
            self.calls.record(operation, location.key)
            plan = self._faults.get(location.key, FaultPlan())
        if plan.delay_seconds:
            time.sleep(plan.delay_seconds)
        return plan
