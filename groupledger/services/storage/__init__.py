"""
Storage Services Package

Provides abstract interfaces and concrete implementations for record storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from groupledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    ProtectedRecordError,
    RecordSnapshot,
    RecordStoreInterface,
    SnapshotConflictError,
    StorageError,
)
from groupledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordSnapshot",
    "RecordStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "ProtectedRecordError",
    "SnapshotConflictError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
]
