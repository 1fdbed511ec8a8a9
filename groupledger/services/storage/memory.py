"""
In-Memory Storage Implementation

Keeps every record in insertion-ordered dicts. No method awaits anything
before it is done, so each call runs start to finish without another
coroutine seeing a half-applied write - snapshot() is therefore consistent
without locks.

Used for tests and for hosts that keep records in process memory.
"""

from collections.abc import Iterable
from typing import Optional
from uuid import UUID

import structlog

from groupledger.models.audit import AuditEvent
from groupledger.models.records import (
    OTHER_CATEGORY_ID,
    Category,
    Currency,
    Expense,
    Group,
    Person,
    Settlement,
    default_categories,
    default_currencies,
)
from groupledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    NotFoundError,
    ProtectedRecordError,
    RecordSnapshot,
    RecordStoreInterface,
)

logger = structlog.get_logger(__name__)


class InMemoryRecordStore(RecordStoreInterface):
    """
    Record store backed by plain dicts.

    Seeded with the built-in categories and default currencies unless
    told otherwise.
    """

    def __init__(
        self,
        people: Iterable[Person] = (),
        expenses: Iterable[Expense] = (),
        settlements: Iterable[Settlement] = (),
        groups: Iterable[Group] = (),
        categories: Optional[Iterable[Category]] = None,
        currencies: Optional[Iterable[Currency]] = None,
    ):
        self._people = {p.id: p for p in people}
        self._expenses = {e.id: e for e in expenses}
        self._settlements = {s.id: s for s in settlements}
        self._groups = {g.id: g for g in groups}
        self._categories = {
            c.id: c for c in (default_categories() if categories is None else categories)
        }
        self._currencies = {
            c.code: c for c in (default_currencies() if currencies is None else currencies)
        }
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def _bump(self) -> None:
        self._version += 1

    @staticmethod
    def _insert(table: dict, key: str, record, kind: str) -> None:
        if key in table:
            raise DuplicateError(f"{kind} already exists: {key}")
        table[key] = record

    @staticmethod
    def _require(table: dict, key: str, kind: str) -> None:
        if key not in table:
            raise NotFoundError(f"{kind} not found: {key}")

    # -- reads -----------------------------------------------------------

    async def list_people(self) -> list[Person]:
        return list(self._people.values())

    async def list_expenses(self) -> list[Expense]:
        return list(self._expenses.values())

    async def list_settlements(self) -> list[Settlement]:
        return list(self._settlements.values())

    async def list_currencies(self) -> list[Currency]:
        return list(self._currencies.values())

    async def list_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def list_groups(self) -> list[Group]:
        return list(self._groups.values())

    async def snapshot(self) -> RecordSnapshot:
        return RecordSnapshot(
            version=self._version,
            people=tuple(self._people.values()),
            expenses=tuple(self._expenses.values()),
            settlements=tuple(self._settlements.values()),
            currencies=tuple(self._currencies.values()),
            categories=tuple(self._categories.values()),
            groups=tuple(self._groups.values()),
        )

    # -- people ----------------------------------------------------------

    async def add_person(self, person: Person) -> Person:
        self._insert(self._people, person.id, person, "Person")
        self._bump()
        return person

    async def remove_person(self, person_id: str) -> None:
        self._require(self._people, person_id, "Person")
        del self._people[person_id]

        dropped_expenses = [e.id for e in self._expenses.values() if e.involves(person_id)]
        for expense_id in dropped_expenses:
            del self._expenses[expense_id]

        dropped_settlements = [s.id for s in self._settlements.values() if s.involves(person_id)]
        for settlement_id in dropped_settlements:
            del self._settlements[settlement_id]

        for group_id, group in self._groups.items():
            if person_id in group.members:
                self._groups[group_id] = group.model_copy(update={
                    "members": tuple(m for m in group.members if m != person_id),
                })

        self._bump()
        logger.info(
            "person_removed",
            person_id=person_id,
            expenses_removed=len(dropped_expenses),
            settlements_removed=len(dropped_settlements),
        )

    # -- expenses --------------------------------------------------------

    async def add_expense(self, expense: Expense) -> Expense:
        self._insert(self._expenses, expense.id, expense, "Expense")
        self._bump()
        return expense

    async def update_expense(self, expense: Expense) -> Expense:
        self._require(self._expenses, expense.id, "Expense")
        self._expenses[expense.id] = expense
        self._bump()
        return expense

    async def remove_expense(self, expense_id: str) -> None:
        self._require(self._expenses, expense_id, "Expense")
        del self._expenses[expense_id]
        self._bump()

    # -- groups ----------------------------------------------------------

    async def add_group(self, group: Group) -> Group:
        self._insert(self._groups, group.id, group, "Group")
        self._bump()
        return group

    async def update_group(self, group: Group) -> Group:
        self._require(self._groups, group.id, "Group")
        self._groups[group.id] = group
        self._bump()
        return group

    async def remove_group(self, group_id: str) -> None:
        self._require(self._groups, group_id, "Group")
        del self._groups[group_id]

        for expense_id, expense in self._expenses.items():
            if expense.group_id == group_id:
                self._expenses[expense_id] = expense.model_copy(update={"group_id": None})
        for settlement_id, settlement in self._settlements.items():
            if settlement.group_id == group_id:
                self._settlements[settlement_id] = settlement.model_copy(update={"group_id": None})

        self._bump()

    # -- settlements -----------------------------------------------------

    async def add_settlement(self, settlement: Settlement) -> Settlement:
        self._insert(self._settlements, settlement.id, settlement, "Settlement")
        self._bump()
        return settlement

    async def remove_settlement(self, settlement_id: str) -> None:
        self._require(self._settlements, settlement_id, "Settlement")
        del self._settlements[settlement_id]
        self._bump()

    # -- reference data --------------------------------------------------

    async def add_category(self, category: Category) -> Category:
        self._insert(self._categories, category.id, category, "Category")
        self._bump()
        return category

    async def remove_category(self, category_id: str) -> None:
        self._require(self._categories, category_id, "Category")
        if not self._categories[category_id].is_custom:
            raise ProtectedRecordError(f"Built-in category cannot be removed: {category_id}")
        del self._categories[category_id]

        for expense_id, expense in self._expenses.items():
            if expense.category_id == category_id:
                self._expenses[expense_id] = expense.model_copy(
                    update={"category_id": OTHER_CATEGORY_ID}
                )

        self._bump()

    async def add_currency(self, currency: Currency) -> Currency:
        self._insert(self._currencies, currency.code, currency, "Currency")
        self._bump()
        return currency


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
