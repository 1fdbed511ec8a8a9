"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the record store.
This allows us to:
1. Keep the balance engine free of any storage or transport import
2. Use in-memory storage for testing
3. Put a real database behind the same calls later

The interface is intentionally simple - list, add, update, remove per
record kind, plus a version counter that changes on every write so callers
can tell when a cached ledger has gone stale.
"""

from abc import ABC, abstractmethod
from typing import NamedTuple, Optional
from uuid import UUID

from tenacity import retry, retry_if_exception_type, stop_after_attempt

from groupledger.models.audit import AuditEvent
from groupledger.models.records import (
    Category,
    Currency,
    Expense,
    Group,
    Person,
    Settlement,
)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Record not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate record."""
    pass


class ProtectedRecordError(StorageError):
    """Attempted to remove a record that may not be removed."""
    pass


class SnapshotConflictError(StorageError):
    """The store kept changing while a snapshot was being read."""
    pass


class RecordSnapshot(NamedTuple):
    """All record collections, read at the same store version."""

    version: int
    people: tuple[Person, ...]
    expenses: tuple[Expense, ...]
    settlements: tuple[Settlement, ...]
    currencies: tuple[Currency, ...]
    categories: tuple[Category, ...]
    groups: tuple[Group, ...]


class RecordStoreInterface(ABC):
    """
    Abstract interface for the record store.

    Any storage implementation must implement these methods. List methods
    return records in a stable order within one snapshot; no other ordering
    is promised.
    """

    @property
    @abstractmethod
    def version(self) -> int:
        """Counter that increases on every successful write."""
        pass

    # -- reads -----------------------------------------------------------

    @abstractmethod
    async def list_people(self) -> list[Person]:
        pass

    @abstractmethod
    async def list_expenses(self) -> list[Expense]:
        pass

    @abstractmethod
    async def list_settlements(self) -> list[Settlement]:
        pass

    @abstractmethod
    async def list_currencies(self) -> list[Currency]:
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def list_groups(self) -> list[Group]:
        pass

    @retry(
        retry=retry_if_exception_type(SnapshotConflictError),
        stop=stop_after_attempt(5),
        reraise=True,
    )
    async def snapshot(self) -> RecordSnapshot:
        """
        Read every collection for one balance computation.

        The default implementation reads the collections one after another
        and starts over if the version moved in between. Backends that can
        read atomically should override it.

        Raises:
            SnapshotConflictError: If every attempt saw a write land mid-read
        """
        version = self.version
        snapshot = RecordSnapshot(
            version=version,
            people=tuple(await self.list_people()),
            expenses=tuple(await self.list_expenses()),
            settlements=tuple(await self.list_settlements()),
            currencies=tuple(await self.list_currencies()),
            categories=tuple(await self.list_categories()),
            groups=tuple(await self.list_groups()),
        )
        if self.version != version:
            raise SnapshotConflictError(
                f"Store moved from version {version} to {self.version} during snapshot"
            )
        return snapshot

    # -- writes ----------------------------------------------------------

    @abstractmethod
    async def add_person(self, person: Person) -> Person:
        """
        Save a new person.

        Raises:
            DuplicateError: If the id is taken
        """
        pass

    @abstractmethod
    async def remove_person(self, person_id: str) -> None:
        """
        Remove a person and everything that references them.

        Expenses they paid or share in and settlements they are part of are
        removed; they are dropped from every group's member list.

        Raises:
            NotFoundError: If the person doesn't exist
        """
        pass

    @abstractmethod
    async def add_expense(self, expense: Expense) -> Expense:
        pass

    @abstractmethod
    async def update_expense(self, expense: Expense) -> Expense:
        """
        Replace an existing expense (matched by id).

        Raises:
            NotFoundError: If the expense doesn't exist
        """
        pass

    @abstractmethod
    async def remove_expense(self, expense_id: str) -> None:
        pass

    @abstractmethod
    async def add_group(self, group: Group) -> Group:
        pass

    @abstractmethod
    async def update_group(self, group: Group) -> Group:
        pass

    @abstractmethod
    async def remove_group(self, group_id: str) -> None:
        """
        Remove a group.

        Its expenses and settlements are kept but lose their group_id.
        """
        pass

    @abstractmethod
    async def add_settlement(self, settlement: Settlement) -> Settlement:
        pass

    @abstractmethod
    async def remove_settlement(self, settlement_id: str) -> None:
        pass

    @abstractmethod
    async def add_category(self, category: Category) -> Category:
        pass

    @abstractmethod
    async def remove_category(self, category_id: str) -> None:
        """
        Remove a custom category, moving its expenses to "other".

        Raises:
            ProtectedRecordError: If the category is built in
            NotFoundError: If the category doesn't exist
        """
        pass

    @abstractmethod
    async def add_currency(self, currency: Currency) -> Currency:
        pass

    async def get_person(self, person_id: str) -> Optional[Person]:
        return next((p for p in await self.list_people() if p.id == person_id), None)


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass
