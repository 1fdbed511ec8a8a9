"""Services package."""

from groupledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryRecordStore,
    NotFoundError,
    ProtectedRecordError,
    RecordSnapshot,
    RecordStoreInterface,
    SnapshotConflictError,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryRecordStore",
    "NotFoundError",
    "ProtectedRecordError",
    "RecordSnapshot",
    "RecordStoreInterface",
    "SnapshotConflictError",
    "StorageError",
]
