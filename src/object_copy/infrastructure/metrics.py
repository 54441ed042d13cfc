"""Prometheus metrics for Object Copy."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class CopyMetrics:
    """Metrics collector for chunked object copies."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Job metrics
        self.copy_jobs_total = Counter(
            "object_copy_jobs_total",
            "Total copy jobs by final status",
            ["status"],  # completed, failed
            registry=self._registry,
        )
        self.copy_duration_seconds = Histogram(
            "object_copy_duration_seconds",
            "Wall-clock duration of copy jobs",
            buckets=(1.0, 5.0, 15.0, 60.0, 300.0, 900.0, 3600.0),
            registry=self._registry,
        )

        # Chunk metrics
        self.chunks_total = Counter(
            "object_copy_chunks_total",
            "Total chunks processed by outcome",
            ["outcome"],  # uploaded, skipped, failed
            registry=self._registry,
        )
        self.chunk_transfer_seconds = Histogram(
            "object_copy_chunk_transfer_seconds",
            "Time to download, verify and upload one chunk",
            buckets=(0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0),
            registry=self._registry,
        )
        self.workers_active = Gauge(
            "object_copy_workers_active",
            "Chunk transfer workers currently running",
            registry=self._registry,
        )

        # Byte metrics
        self.bytes_downloaded = Counter(
            "object_copy_bytes_downloaded_total",
            "Total bytes read from source objects",
            registry=self._registry,
        )
        self.bytes_uploaded = Counter(
            "object_copy_bytes_uploaded_total",
            "Total bytes written to destination parts",
            registry=self._registry,
        )

        # Manifest metrics
        self.manifest_writes_total = Counter(
            "object_copy_manifest_writes_total",
            "Total manifest submissions by status",
            ["status"],  # success, error
            registry=self._registry,
        )

    def record_chunk(self, outcome: str, size: int, duration_seconds: float) -> None:
        """Record a finished chunk.

        Args:
            outcome: "uploaded", "skipped" or "failed".
            size: Bytes read for the chunk.
            duration_seconds: Time spent on the chunk.
        """
        self.chunks_total.labels(outcome=outcome).inc()
        self.chunk_transfer_seconds.observe(duration_seconds)
        self.bytes_downloaded.inc(size)
        if outcome == "uploaded":
            self.bytes_uploaded.inc(size)

    def record_job(self, status: str, duration_seconds: float) -> None:
        """Record a finished copy job."""
        self.copy_jobs_total.labels(status=status).inc()
        self.copy_duration_seconds.observe(duration_seconds)

    def start_server(self, port: int) -> None:
        """Expose metrics over HTTP."""
        start_http_server(port, registry=self._registry)


_metrics: CopyMetrics | None = None


def get_metrics() -> CopyMetrics:
    """Get the process-wide metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = CopyMetrics()
    return _metrics
