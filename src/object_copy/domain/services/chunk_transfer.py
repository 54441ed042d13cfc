"""Per-chunk download, verify and upload.

A worker moves one chunk from the source object to its destination part:

    DOWNLOADING -> PROBING -> UPLOADING -> VERIFYING -> result
                       \\____________________________/
                         (part already present: skip)

Any failure is raised to the caller and logged with the stage it happened
in; nothing is retried here. Re-running the whole copy is safe because
already-present parts are skipped by the destination probe.
"""

from __future__ import annotations

import hashlib
import logging
import tempfile
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

from object_copy.domain.entities.chunk import ChunkResult, ChunkSpec
from object_copy.domain.errors import CopyError, IntegrityError, NotFoundError, TransferError
from object_copy.domain.value_objects.identifiers import ObjectLocation
from object_copy.ports.outbound import ObjectStoreClientPort, Session

logger = logging.getLogger(__name__)


class ChunkStage(Enum):
    """Chunk transfer lifecycle stage."""
    DOWNLOADING = "downloading"
    PROBING = "probing"
    UPLOADING = "uploading"
    VERIFYING = "verifying"


class HashingWriter:
    """Write-through sink that hashes exactly the bytes written to it."""

    def __init__(self, target: BinaryIO) -> None:
        self._target = target
        self._hasher = hashlib.md5()
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self._hasher.update(data)
        self.bytes_written += len(data)
        return self._target.write(data)

    def flush(self) -> None:
        self._target.flush()

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()


class ChunkTransferWorker:
    """Copies individual chunks of one source object to one destination.

    A single worker instance is shared by all chunks of a job; each
    ``transfer`` call owns its own temporary buffer, so calls may run
    concurrently on different threads.
    """

    def __init__(
        self,
        client: ObjectStoreClientPort,
        session: Session,
        source: ObjectLocation,
        destination: ObjectLocation,
        temp_dir: Optional[Path] = None,
    ) -> None:
        """Initialize worker.

        Args:
            client: Object store client used for both ends.
            session: Authorized session.
            source: Object being copied.
            destination: Logical destination object; parts are named
                ``<key>-<index>`` beside it.
            temp_dir: Directory for temporary chunk buffers.
        """
        self.client = client
        self.session = session
        self.source = source
        self.destination = destination
        self.temp_dir = temp_dir

    def transfer(self, spec: ChunkSpec) -> ChunkResult:
        """Copy one chunk.

        Args:
            spec: Chunk to copy.

        Returns:
            Result describing the destination part.

        Raises:
            TransferError: If the download or upload fails.
            IntegrityError: If the uploaded part's hash differs.
        """
        part = self.destination.part(spec.index)
        stage = ChunkStage.DOWNLOADING
        try:
            with self._open_buffer(spec) as buffer:
                download_hash, bytes_read = self._download(spec, buffer)
                buffer.flush()
                buffer.seek(0)

                stage = ChunkStage.PROBING
                if self._already_present(part, download_hash):
                    logger.debug(f"Chunk {spec.index} already present at {part}, skipping upload")
                    return self._result(spec, part, download_hash, bytes_read, skipped=True)

                stage = ChunkStage.UPLOADING
                upload_hash = self._upload(spec, part, buffer)

            stage = ChunkStage.VERIFYING
            if upload_hash != download_hash:
                raise IntegrityError(spec.index, download_hash, upload_hash)

            return self._result(spec, part, download_hash, bytes_read, skipped=False)
        except CopyError as e:
            logger.warning(f"Chunk {spec.index} failed while {stage.value}: {e}")
            raise

    def _open_buffer(self, spec: ChunkSpec) -> BinaryIO:
        try:
            return tempfile.TemporaryFile(dir=self.temp_dir)
        except OSError as e:
            raise TransferError(
                f"Could not create temporary buffer for chunk {spec.index}: {e}",
                stage="download",
                chunk_index=spec.index,
            ) from e

    def _download(self, spec: ChunkSpec, buffer: BinaryIO) -> tuple[str, int]:
        sink = HashingWriter(buffer)
        try:
            read = self.client.ranged_read(self.session, self.source, spec.offset, spec.length, sink)
        except TransferError as e:
            e.stage = "download"
            e.chunk_index = spec.index
            raise
        except (CopyError, OSError) as e:
            raise TransferError(
                f"Could not download chunk {spec.index} of {self.source}: {e}",
                stage="download",
                chunk_index=spec.index,
            ) from e

        if sink.bytes_written != spec.length:
            raise TransferError(
                f"Short read for chunk {spec.index}: expected {spec.length} bytes, "
                f"got {sink.bytes_written}",
                stage="download",
                chunk_index=spec.index,
            )
        download_hash = sink.hexdigest()
        if read.etag and read.etag != download_hash:
            raise TransferError(
                f"Reported etag {read.etag} does not match downloaded bytes "
                f"{download_hash} for chunk {spec.index}",
                stage="download",
                chunk_index=spec.index,
            )
        return download_hash, sink.bytes_written

    def _already_present(self, part: ObjectLocation, download_hash: str) -> bool:
        try:
            existing = self.client.stat(self.session, part)
        except NotFoundError:
            return False
        except CopyError as e:
            # The upload that follows decides whether the destination is usable.
            logger.debug(f"Destination probe for {part} failed: {e}")
            return False
        return existing.etag == download_hash

    def _upload(self, spec: ChunkSpec, part: ObjectLocation, buffer: BinaryIO) -> str:
        try:
            return self.client.write(self.session, part, buffer)
        except TransferError as e:
            e.stage = "upload"
            e.chunk_index = spec.index
            raise
        except (CopyError, OSError) as e:
            raise TransferError(
                f"Could not upload chunk {spec.index} to {part}: {e}",
                stage="upload",
                chunk_index=spec.index,
            ) from e

    @staticmethod
    def _result(
        spec: ChunkSpec,
        part: ObjectLocation,
        content_hash: str,
        size: int,
        skipped: bool,
    ) -> ChunkResult:
        return ChunkResult(
            index=spec.index,
            destination_path=part.path,
            content_hash=content_hash,
            size=size,
            skipped=skipped,
        )
