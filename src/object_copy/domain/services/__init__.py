"""Domain services."""

from object_copy.domain.services.chunk_planner import DEFAULT_CHUNK_SIZE, plan_chunks
from object_copy.domain.services.chunk_transfer import ChunkStage, ChunkTransferWorker, HashingWriter
from object_copy.domain.services.concurrency_limiter import ConcurrencyLimiter
from object_copy.domain.services.manifest_assembler import ManifestAssembler, build_manifest
from object_copy.domain.services.result_aggregator import ResultAggregator

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "plan_chunks",
    "ChunkStage",
    "ChunkTransferWorker",
    "HashingWriter",
    "ConcurrencyLimiter",
    "ManifestAssembler",
    "build_manifest",
    "ResultAggregator",
]
