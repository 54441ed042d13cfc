"""Pytest configuration and shared fixtures for Object Copy tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from object_copy.adapters.outbound.in_memory_object_store import InMemoryObjectStore
from object_copy.domain.value_objects.identifiers import ObjectLocation
from object_copy.infrastructure.config import Config, TransferConfig
from object_copy.infrastructure.container import Container
from object_copy.infrastructure.metrics import CopyMetrics
from object_copy.ports.outbound import Session


@pytest.fixture(autouse=True)
def reset_container():
    """Reset the DI container before each test."""
    Container.reset()
    yield
    Container.reset()


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration."""
    return Config()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for chunk buffers."""
    with tempfile.TemporaryDirectory(prefix="object_copy_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def transfer_config(temp_dir: Path) -> TransferConfig:
    """Provide a transfer configuration with small chunks."""
    return TransferConfig(chunk_size=1024, concurrency=3, temp_dir=temp_dir)


@pytest.fixture
def store() -> InMemoryObjectStore:
    """Provide an in-memory object store with IAD and DFW regions."""
    return InMemoryObjectStore(regions=["IAD", "DFW"])


@pytest.fixture
def session(store: InMemoryObjectStore) -> Session:
    """Provide an authorized session for the in-memory store."""
    return store.authorize()


@pytest.fixture
def source() -> ObjectLocation:
    return ObjectLocation("IAD", "testing", "ubuntu.iso")


@pytest.fixture
def destination() -> ObjectLocation:
    return ObjectLocation("DFW", "testing", "dest")


@pytest.fixture
def source_data() -> bytes:
    """Provide 10,000 bytes of non-repeating data (10 chunks of 1 KiB)."""
    return bytes((i * 7 + i // 256) % 256 for i in range(10_000))


@pytest.fixture
def metrics() -> CopyMetrics:
    """Provide metrics bound to a fresh registry."""
    return CopyMetrics(registry=CollectorRegistry(auto_describe=True))


# Pytest markers
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: mark test as unit test")
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "property: mark test as property-based test")
