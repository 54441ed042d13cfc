"""Outbound adapters - implementations of ObjectStoreClientPort.

Provides the HTTP client for Swift / Cloud Files and an in-memory store
for testing and development.
"""

from object_copy.adapters.outbound.in_memory_object_store import (
    CallLog,
    FaultPlan,
    InMemoryObjectStore,
    StoredObject,
)
from object_copy.adapters.outbound.swift_object_store import SwiftObjectStore

__all__ = [
    # HTTP
    "SwiftObjectStore",
    # In-memory
    "InMemoryObjectStore",
    "StoredObject",
    "FaultPlan",
    "CallLog",
]
