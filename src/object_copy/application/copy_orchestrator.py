"""Chunked object copy orchestration.

Coordinates the planner, limiter, transfer workers, result aggregator and
manifest assembler to copy one object between two storage locations:

1. stat the source and plan its chunks;
2. dispatch chunks in index order to a thread pool, never letting more
   than ``concurrency`` transfers run at once;
3. collect exactly one outcome per dispatched chunk, stopping new
   dispatch after the first failure or on cancellation;
4. submit the manifest only if every chunk succeeded.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ALL_COMPLETED, FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Optional

import structlog
from opentelemetry import context as otel_context
from opentelemetry import trace

from object_copy.domain.entities.chunk import ChunkOutcome, ChunkResult, ChunkSpec
from object_copy.domain.entities.job import CopyJob
from object_copy.domain.errors import CopyCancelledError, ManifestError
from object_copy.domain.services.chunk_planner import DEFAULT_CHUNK_SIZE, plan_chunks
from object_copy.domain.services.chunk_transfer import ChunkTransferWorker
from object_copy.domain.services.concurrency_limiter import ConcurrencyLimiter
from object_copy.domain.services.manifest_assembler import ManifestAssembler
from object_copy.domain.services.result_aggregator import ResultAggregator
from object_copy.domain.value_objects.identifiers import ObjectLocation, create_job_id
from object_copy.infrastructure.config import TransferConfig
from object_copy.infrastructure.logging import get_logger
from object_copy.infrastructure.metrics import CopyMetrics, get_metrics
from object_copy.infrastructure.tracing import get_tracer
from object_copy.ports.inbound import ObjectCopyPort
from object_copy.ports.outbound import ObjectStoreClientPort, Session

logger = get_logger("copy_orchestrator")


class CopyOrchestrator(ObjectCopyPort):
    """Copies large objects chunk by chunk with bounded concurrency."""

    def __init__(
        self,
        client: ObjectStoreClientPort,
        session: Session,
        config: Optional[TransferConfig] = None,
        metrics: Optional[CopyMetrics] = None,
        tracer: Optional[trace.Tracer] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            client: Object store client for source and destination.
            session: Authorized session, threaded into every call.
            config: Default chunk size, concurrency and temp directory.
            metrics: Metrics collector, or None to disable metrics.
            tracer: Tracer; defaults to the global OpenTelemetry tracer.
        """
        self.client = client
        self.session = session
        self.config = config or TransferConfig()
        self.metrics = metrics
        self.tracer = tracer or get_tracer()

    def copy(
        self,
        source: ObjectLocation,
        destination: ObjectLocation,
        chunk_size: Optional[int] = None,
        concurrency: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CopyJob:
        """Copy ``source`` to ``destination``.

        Args:
            source: Object to copy.
            destination: Logical object to create. Parts are written beside it
                as ``<key>-<index>``.
            chunk_size: Bytes per chunk; defaults to the configured size.
            concurrency: Maximum simultaneous chunk transfers.
            cancel_event: When set, no further chunks are dispatched.

        Returns:
            The completed job.

        Raises:
            CopyError: The first error encountered. No manifest is written.
        """
        chunk_size = chunk_size if chunk_size is not None else self.config.chunk_size
        concurrency = concurrency if concurrency is not None else self.config.concurrency

        job = CopyJob(job_id=create_job_id(), source=source, destination=destination)
        log = logger.bind(source=str(source), destination=str(destination))

        with structlog.contextvars.bound_contextvars(job_id=job.job_id), \
                self.tracer.start_as_current_span("copy_object") as span:
            span.set_attribute("copy.job_id", job.job_id)
            span.set_attribute("copy.source", str(source))
            span.set_attribute("copy.destination", str(destination))
            try:
                limiter = ConcurrencyLimiter(concurrency)

                stat = self.client.stat(self.session, source)
                specs = plan_chunks(stat.size, chunk_size)
                job.pending.update(specs)
                span.set_attribute("copy.size", stat.size)
                span.set_attribute("copy.chunks", len(specs))
                log.info(
                    "copy_started",
                    size=stat.size,
                    chunks=len(specs),
                    chunk_size=chunk_size,
                    concurrency=concurrency,
                )

                aggregator = ResultAggregator(job)
                self._transfer_all(job, aggregator, specs, limiter, cancel_event)

                if aggregator.first_error is not None:
                    raise aggregator.first_error
                if job.pending:
                    raise CopyCancelledError(
                        f"Copy cancelled with {len(job.pending)} of {len(specs)} chunks not dispatched"
                    )

                self._submit_manifest(job, log)
            except Exception as e:
                job.fail(e)
                log.error(
                    "copy_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    chunks_completed=len(job.results),
                )
                self._record_job(job)
                raise

        job.complete()
        self._record_job(job)
        log.info(
            "copy_completed",
            chunks=len(job.results),
            skipped=sum(1 for result in job.results if result.skipped),
            bytes=job.bytes_copied,
            duration_seconds=round(job.duration_seconds, 3),
        )
        return job

    def _transfer_all(
        self,
        job: CopyJob,
        aggregator: ResultAggregator,
        specs: list[ChunkSpec],
        limiter: ConcurrencyLimiter,
        cancel_event: Optional[threading.Event],
    ) -> None:
        worker = ChunkTransferWorker(
            self.client,
            self.session,
            job.source,
            job.destination,
            temp_dir=self.config.temp_dir,
        )
        futures: dict[Future, ChunkSpec] = {}
        parent_context = otel_context.get_current()

        with ThreadPoolExecutor(
            max_workers=limiter.capacity,
            thread_name_prefix=f"{job.job_id}-worker",
        ) as executor:
            for spec in specs:
                if not self._wait_for_slot(limiter, futures, aggregator, cancel_event):
                    break
                aggregator.on_dispatch(spec)
                try:
                    future = executor.submit(self._run_chunk, worker, job.job_id, spec, parent_context)
                except BaseException:
                    limiter.release()
                    raise
                futures[future] = spec

            while futures:
                self._collect(futures, aggregator, limiter, ALL_COMPLETED)

        if not aggregator.drained:
            raise RuntimeError(
                f"Collected {aggregator.observed} outcomes for {aggregator.dispatched} dispatched chunks"
            )

    def _wait_for_slot(
        self,
        limiter: ConcurrencyLimiter,
        futures: dict[Future, ChunkSpec],
        aggregator: ResultAggregator,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        """Block until a limiter slot is held, or dispatch must stop.

        Slots are only returned when the orchestrator collects a chunk's
        outcome, so a failure is always latched before its slot can be
        reused. Finished futures are drained first so the stop check sees
        every outcome that has already arrived.

        Returns:
            True if a slot was acquired for the next chunk.
        """
        self._collect(futures, aggregator, limiter, FIRST_COMPLETED, timeout=0)
        while not (aggregator.should_stop or (cancel_event is not None and cancel_event.is_set())):
            if limiter.try_acquire():
                return True
            self._collect(futures, aggregator, limiter, FIRST_COMPLETED)
        return False

    def _collect(
        self,
        futures: dict[Future, ChunkSpec],
        aggregator: ResultAggregator,
        limiter: ConcurrencyLimiter,
        return_when: str,
        timeout: Optional[float] = None,
    ) -> None:
        if not futures:
            return
        done, _ = wait(futures, timeout=timeout, return_when=return_when)
        for future in sorted(done, key=lambda f: futures[f].index):
            spec = futures.pop(future)
            limiter.release()
            error = future.exception()
            if error is None:
                outcome = ChunkOutcome(spec.index, result=future.result())
            else:
                outcome = ChunkOutcome(spec.index, error=error)
            aggregator.on_outcome(outcome)

    def _run_chunk(
        self,
        worker: ChunkTransferWorker,
        job_id: str,
        spec: ChunkSpec,
        parent_context: otel_context.Context,
    ) -> ChunkResult:
        """Worker-thread entry point.

        Pool threads do not inherit the caller's context, so the trace parent
        and the log context are re-established here for each chunk.
        """
        token = otel_context.attach(parent_context)
        started = time.monotonic()
        if self.metrics:
            self.metrics.workers_active.inc()
        try:
            with structlog.contextvars.bound_contextvars(job_id=job_id, chunk_index=spec.index), \
                    self.tracer.start_as_current_span("transfer_chunk") as span:
                span.set_attribute("chunk.index", spec.index)
                span.set_attribute("chunk.offset", spec.offset)
                span.set_attribute("chunk.length", spec.length)
                try:
                    result = worker.transfer(spec)
                except Exception as e:
                    if self.metrics:
                        self.metrics.record_chunk("failed", 0, time.monotonic() - started)
                    logger.warning("chunk_failed", error=str(e))
                    raise
                span.set_attribute("chunk.skipped", result.skipped)

                outcome = "skipped" if result.skipped else "uploaded"
                if self.metrics:
                    self.metrics.record_chunk(outcome, result.size, time.monotonic() - started)
                logger.debug(f"chunk_{outcome}", path=result.destination_path)
            return result
        finally:
            if self.metrics:
                self.metrics.workers_active.dec()
            otel_context.detach(token)

    def _submit_manifest(self, job: CopyJob, log) -> None:
        assembler = ManifestAssembler(self.client, self.session)
        try:
            items = assembler.submit(job.destination, job.results)
        except ManifestError:
            if self.metrics:
                self.metrics.manifest_writes_total.labels(status="error").inc()
            raise
        if self.metrics:
            self.metrics.manifest_writes_total.labels(status="success").inc()
        log.info("manifest_submitted", segments=len(items))

    def _record_job(self, job: CopyJob) -> None:
        if self.metrics:
            self.metrics.record_job(job.status.value, job.duration_seconds)


def copy_object(
    client: ObjectStoreClientPort,
    session: Session,
    source_region: str,
    source_container: str,
    source_key: str,
    dest_region: str,
    dest_container: str,
    dest_key: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    concurrency: int = 5,
    cancel_event: Optional[threading.Event] = None,
) -> None:
    """Copy a remote object to another location, chunk by chunk.

    Safe to re-run after a failure: parts already present at the destination
    with a matching hash are not uploaded again.

    Raises:
        CopyError: The first error encountered.
    """
    orchestrator = CopyOrchestrator(client, session, metrics=get_metrics())
    orchestrator.copy(
        ObjectLocation(source_region, source_container, source_key),
        ObjectLocation(dest_region, dest_container, dest_key),
        chunk_size=chunk_size,
        concurrency=concurrency,
        cancel_event=cancel_event,
    )
