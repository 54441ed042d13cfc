"""Integration tests for chunked object copies."""

import threading
import time

import pytest
import structlog
from prometheus_client import CollectorRegistry

from object_copy.adapters.outbound.in_memory_object_store import InMemoryObjectStore
from object_copy.application.copy_orchestrator import CopyOrchestrator, copy_object
from object_copy.domain.entities.job import JobStatus
from object_copy.domain.errors import (
    CopyCancelledError,
    IntegrityError,
    InvalidSizeError,
    ManifestError,
    NotFoundError,
    TransferError,
)
from object_copy.domain.services.chunk_transfer import ChunkTransferWorker
from object_copy.domain.value_objects.identifiers import ObjectLocation
from object_copy.infrastructure.config import TransferConfig
from object_copy.infrastructure.metrics import CopyMetrics


@pytest.fixture
def orchestrator(store, session, transfer_config, metrics) -> CopyOrchestrator:
    return CopyOrchestrator(store, session, config=transfer_config, metrics=metrics)


@pytest.fixture
def seeded(store, source, source_data):
    store.put_object(source, source_data)
    return store


def _manifest_paths(store):
    _, items = store.manifests[-1]
    return [item.path for item in items]


class TestCopyObject:
    """End-to-end copies against the in-memory store."""

    def test_copy_assembles_destination(self, orchestrator, seeded, source, destination, source_data):
        job = orchestrator.copy(source, destination)

        assert job.status == JobStatus.COMPLETED
        assert len(job.results) == 10
        assert not job.pending
        assert job.in_flight == 0
        assert seeded.get_object_data(destination) == source_data
        assert _manifest_paths(seeded) == [f"testing/dest-{i}" for i in range(10)]

    def test_four_equal_chunks(self, seeded, session, source, destination):
        """Test an object of exactly four chunks yields four full-size parts."""
        data = bytes(range(256)) * 16  # 4096 bytes
        seeded.put_object(source, data)
        orchestrator = CopyOrchestrator(seeded, session)

        orchestrator.copy(source, destination, chunk_size=1024, concurrency=5)

        location, items = seeded.manifests[-1]
        assert location == destination
        assert [item.path for item in items] == [f"testing/dest-{i}" for i in range(4)]
        assert all(item.size == 1024 for item in items)

    def test_trailing_partial_chunk(self, seeded, session, source, destination):
        seeded.put_object(source, b"x" * 2500)
        CopyOrchestrator(seeded, session).copy(source, destination, chunk_size=1024)

        _, items = seeded.manifests[-1]
        assert [item.size for item in items] == [1024, 1024, 452]

    def test_manifest_sorted_lexicographically(self, seeded, session, source, destination):
        """Test twelve parts sort as strings, not as numbers."""
        seeded.put_object(source, b"y" * 1200)
        CopyOrchestrator(seeded, session).copy(source, destination, chunk_size=100)

        paths = _manifest_paths(seeded)
        assert paths == sorted(paths)
        assert paths[:4] == ["testing/dest-0", "testing/dest-1", "testing/dest-10", "testing/dest-11"]
        assert seeded.get_object_data(destination) == b"y" * 1200

    def test_copy_object_function(self, seeded, session, source_data):
        result = copy_object(
            seeded,
            session,
            "IAD", "testing", "ubuntu.iso",
            "DFW", "testing", "copy.iso",
            chunk_size=4096,
            concurrency=2,
        )

        assert result is None
        assert seeded.get_object_data(ObjectLocation("DFW", "testing", "copy.iso")) == source_data

    def test_same_region_copy(self, orchestrator, seeded, source, source_data):
        destination = ObjectLocation("IAD", "backup", "ubuntu.iso")
        orchestrator.copy(source, destination)
        assert seeded.get_object_data(destination) == source_data


class TestIdempotence:
    """Re-running a copy uploads nothing new."""

    def test_second_run_uploads_nothing(self, orchestrator, seeded, source, destination):
        orchestrator.copy(source, destination)
        writes_after_first = seeded.calls.total("write")
        first_manifest = seeded.manifests[-1][1]

        job = orchestrator.copy(source, destination)

        assert seeded.calls.total("write") == writes_after_first
        assert all(result.skipped for result in job.results)
        assert seeded.manifests[-1][1] == first_manifest

    def test_rerun_after_failure_resumes(self, orchestrator, seeded, source, destination, source_data):
        """Test parts uploaded by a failed run are skipped by the retry."""
        seeded.inject_fault("dest-9", fail_write=True)
        with pytest.raises(TransferError):
            orchestrator.copy(source, destination, concurrency=1)
        assert seeded.manifests == []
        uploaded = {key for (op, key) in seeded.calls.counts if op == "write" and key != "dest-9"}

        seeded.clear_faults()
        job = orchestrator.copy(source, destination, concurrency=1)

        skipped = {result.destination_path.split("/")[1] for result in job.results if result.skipped}
        assert skipped == uploaded
        assert seeded.calls.for_key("write", "dest-9") == 2
        assert seeded.get_object_data(destination) == source_data

    def test_existing_part_only_stat_checked(self, orchestrator, seeded, source, destination, source_data):
        """Test a matching destination part is stat'ed but never written."""
        seeded.put_object(destination.part(0), source_data[:1024])

        job = orchestrator.copy(source, destination)

        assert seeded.calls.for_key("stat", "dest-0") == 1
        assert seeded.calls.for_key("write", "dest-0") == 0
        assert [r.index for r in job.results if r.skipped] == [0]


class TestFailures:
    """Failures surface the first error and suppress the manifest."""

    def test_integrity_error_blocks_manifest(self, orchestrator, seeded, source, destination):
        seeded.inject_fault("dest-2", corrupt_upload_etag=True)

        with pytest.raises(IntegrityError) as exc_info:
            orchestrator.copy(source, destination)

        assert exc_info.value.chunk_index == 2
        assert seeded.calls.total("write_manifest") == 0
        assert not seeded.has_object(destination)

    def test_missing_source(self, orchestrator, store, source, destination):
        with pytest.raises(NotFoundError):
            orchestrator.copy(source, destination)
        assert store.calls.total("read") == 0

    def test_empty_source(self, orchestrator, store, source, destination):
        store.put_object(source, b"")
        with pytest.raises(InvalidSizeError):
            orchestrator.copy(source, destination)

    def test_invalid_concurrency(self, orchestrator, seeded, source, destination):
        with pytest.raises(ValueError):
            orchestrator.copy(source, destination, concurrency=0)
        assert seeded.calls.total("read") == 0

    def test_stops_dispatch_after_first_failure(self, orchestrator, seeded, source, destination):
        """Test no new chunks start once a failure has been collected."""
        seeded.inject_fault("dest-0", fail_write=True)

        with pytest.raises(TransferError) as exc_info:
            orchestrator.copy(source, destination, concurrency=1)

        assert exc_info.value.stage == "upload"
        assert seeded.calls.total("read") == 1
        assert seeded.calls.total("write_manifest") == 0

    def test_first_error_wins(self, orchestrator, seeded, source, destination):
        """Test later failures do not replace the first one."""
        seeded.inject_fault("dest-0", corrupt_upload_etag=True)
        seeded.inject_fault("dest-1", fail_write=True, delay_seconds=0.2)

        with pytest.raises(IntegrityError):
            orchestrator.copy(source, destination, concurrency=2)

    def test_manifest_rejection(self, seeded, session, source, destination, transfer_config):
        class RejectingStore(InMemoryObjectStore):
            def write_manifest(self, session, location, items):
                raise ManifestError("Could not put cloud file manifest, status: 400")

        store = RejectingStore()
        store.put_object(source, b"z" * 3000)
        orchestrator = CopyOrchestrator(store, store.authorize(), config=transfer_config)

        with pytest.raises(ManifestError):
            orchestrator.copy(source, destination)

    def test_unusable_temp_dir(self, seeded, session, source, destination, tmp_path):
        config = TransferConfig(chunk_size=1024, concurrency=2, temp_dir=tmp_path / "missing")

        with pytest.raises(TransferError) as exc_info:
            CopyOrchestrator(seeded, session, config=config).copy(source, destination)

        assert exc_info.value.stage == "download"
        assert seeded.calls.total("write_manifest") == 0

    def test_unexpected_worker_error_propagates(self, orchestrator, seeded, source, destination, monkeypatch):
        def explode(self, spec):
            raise KeyError(spec.index)

        monkeypatch.setattr(ChunkTransferWorker, "transfer", explode)
        with pytest.raises(KeyError):
            orchestrator.copy(source, destination)
        assert seeded.calls.total("write_manifest") == 0


class TestConcurrency:
    """Concurrency bound, completion order and cancellation."""

    @pytest.mark.parametrize("cap", [1, 2, 4])
    def test_never_exceeds_cap(self, seeded, session, source, destination, monkeypatch, cap):
        lock = threading.Lock()
        state = {"active": 0, "peak": 0}
        original = ChunkTransferWorker.transfer

        def counting(self, spec):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            try:
                time.sleep(0.01)
                return original(self, spec)
            finally:
                with lock:
                    state["active"] -= 1

        monkeypatch.setattr(ChunkTransferWorker, "transfer", counting)
        seeded.put_object(source, b"q" * 4000)

        CopyOrchestrator(seeded, session).copy(source, destination, chunk_size=100, concurrency=cap)

        assert state["peak"] <= cap
        assert state["active"] == 0
        assert len(seeded.manifests[-1][1]) == 40

    def test_manifest_independent_of_completion_order(
        self, seeded, session, source, destination, monkeypatch
    ):
        """Test later chunks finishing first does not reorder the manifest."""
        original = ChunkTransferWorker.transfer
        finished = []

        def reversed_completion(self, spec):
            time.sleep((6 - spec.index) * 0.02)
            result = original(self, spec)
            finished.append(spec.index)
            return result

        monkeypatch.setattr(ChunkTransferWorker, "transfer", reversed_completion)
        seeded.put_object(source, b"r" * 600)

        CopyOrchestrator(seeded, session).copy(source, destination, chunk_size=100, concurrency=6)

        assert sorted(finished) == list(range(6))
        assert _manifest_paths(seeded) == [f"testing/dest-{i}" for i in range(6)]

    def test_cancel_before_start(self, orchestrator, seeded, source, destination):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(CopyCancelledError):
            orchestrator.copy(source, destination, cancel_event=cancel)

        assert seeded.calls.total("read") == 0
        assert seeded.calls.total("write_manifest") == 0

    def test_cancel_mid_copy_drains_in_flight(self, orchestrator, seeded, source, destination, monkeypatch):
        """Test cancellation stops new dispatch but lets running chunks finish."""
        cancel = threading.Event()
        original = ChunkTransferWorker.transfer

        def cancelling(self, spec):
            if spec.index == 2:
                cancel.set()
            return original(self, spec)

        monkeypatch.setattr(ChunkTransferWorker, "transfer", cancelling)

        with pytest.raises(CopyCancelledError):
            orchestrator.copy(source, destination, concurrency=1, cancel_event=cancel)

        assert seeded.calls.total("read") == 3
        assert seeded.has_object(destination.part(2))
        assert seeded.calls.total("write_manifest") == 0


class TestObservability:
    """Metrics recorded by the orchestrator."""

    def test_chunk_and_job_metrics(self, seeded, session, source, destination, transfer_config):
        registry = CollectorRegistry(auto_describe=True)
        orchestrator = CopyOrchestrator(
            seeded, session, config=transfer_config, metrics=CopyMetrics(registry=registry)
        )
        seeded.put_object(destination.part(0), seeded.get_object_data(source)[:1024])

        orchestrator.copy(source, destination)

        sample = registry.get_sample_value
        assert sample("object_copy_chunks_total", {"outcome": "uploaded"}) == 9
        assert sample("object_copy_chunks_total", {"outcome": "skipped"}) == 1
        assert sample("object_copy_bytes_downloaded_total") == 10_000
        assert sample("object_copy_bytes_uploaded_total") == 10_000 - 1024
        assert sample("object_copy_jobs_total", {"status": "completed"}) == 1
        assert sample("object_copy_manifest_writes_total", {"status": "success"}) == 1
        assert sample("object_copy_workers_active") == 0

    def test_failed_job_metrics(self, seeded, session, source, destination, transfer_config):
        registry = CollectorRegistry(auto_describe=True)
        orchestrator = CopyOrchestrator(
            seeded, session, config=transfer_config, metrics=CopyMetrics(registry=registry)
        )
        seeded.inject_fault("dest-1", corrupt_upload_etag=True)

        with pytest.raises(IntegrityError):
            orchestrator.copy(source, destination, concurrency=1)

        sample = registry.get_sample_value
        assert sample("object_copy_chunks_total", {"outcome": "failed"}) == 1
        assert sample("object_copy_jobs_total", {"status": "failed"}) == 1
        assert sample("object_copy_manifest_writes_total", {"status": "success"}) is None

    def test_log_context_bound_in_workers(self, orchestrator, seeded, source, destination, monkeypatch):
        """Test worker threads log with the job id and their chunk index."""
        original = ChunkTransferWorker.transfer
        seen = {}

        def capturing(self, spec):
            seen[spec.index] = structlog.contextvars.get_contextvars()
            return original(self, spec)

        monkeypatch.setattr(ChunkTransferWorker, "transfer", capturing)

        job = orchestrator.copy(source, destination)

        assert sorted(seen) == list(range(10))
        assert all(context["job_id"] == job.job_id for context in seen.values())
        assert all(context["chunk_index"] == index for index, context in seen.items())
        assert "job_id" not in structlog.contextvars.get_contextvars()
