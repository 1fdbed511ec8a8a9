"""
Main Orchestrator for Group Ledger

This module ties together the record store, the validator, the balance
engine and the audit logger.

DESIGN DECISION: The orchestrator enforces the boundaries:
- No record is written if validation reports an error
- The ledger is computed from one consistent snapshot of the store
- Every write is audited

The balance engine stays pure. This is the only place that knows a ledger
can go stale: it caches the last ledger per (store version, display
currency) and recomputes as soon as either changes.
"""

from typing import Optional
from uuid import UUID

from groupledger.audit import AuditLogger, create_correlation_id
from groupledger.config import get_settings
from groupledger.engine import (
    Ledger,
    balance_summary,
    category_totals,
    compute_ledger,
    max_settlement_amount,
    net_balance,
)
from groupledger.models.records import (
    Category,
    CategoryTotal,
    Currency,
    Expense,
    Group,
    Person,
    PersonBalance,
    Settlement,
)
from groupledger.models.validation import ValidationResult
from groupledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryRecordStore,
    RecordSnapshot,
    RecordStoreInterface,
    StorageError,
)
from groupledger.validation import RecordValidator


class RecordRejectedError(Exception):
    """A record failed validation and was not written."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"{result.entity_type} {result.entity_id} rejected: {messages}")


class LedgerService:
    """
    Front door for hosts: writes go through validation and audit, reads go
    through a cached ledger.

    Flow for a write:
    1. Snapshot the store
    2. Validate the record against the snapshot
    3. Reject (and audit) on errors, otherwise write and audit
    """

    def __init__(
        self,
        store: RecordStoreInterface,
        validator: Optional[RecordValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        display_currency: Optional[str] = None,
    ):
        settings = get_settings().ledger
        self._store = store
        self._validator = validator or RecordValidator(settings.split_tolerance)
        self._audit_logger = audit_logger
        self._display_currency = (display_currency or settings.default_currency).upper()
        self._settled_threshold = settings.settled_threshold
        self._cache_key: Optional[tuple[int, str]] = None
        self._cached_ledger: Optional[Ledger] = None

    @property
    def display_currency(self) -> str:
        return self._display_currency

    def set_display_currency(self, currency_code: str) -> None:
        """Switch the currency every computed amount is expressed in."""
        self._display_currency = currency_code.strip().upper()

    # -- reads -----------------------------------------------------------

    async def _snapshot(self) -> RecordSnapshot:
        try:
            return await self._store.snapshot()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    details={"store_version": self._store.version},
                )
            raise

    async def ledger(self, display_currency: Optional[str] = None) -> Ledger:
        """
        Current ledger, recomputed only when the store or currency changed.
        """
        currency = (display_currency or self._display_currency).upper()
        version = self._store.version
        if self._cached_ledger is not None and self._cache_key == (version, currency):
            return self._cached_ledger

        snapshot = await self._snapshot()
        ledger = compute_ledger(
            snapshot.people,
            snapshot.expenses,
            snapshot.settlements,
            snapshot.currencies,
            currency,
        )
        self._cache_key = (snapshot.version, currency)
        self._cached_ledger = ledger

        if self._audit_logger:
            await self._audit_logger.log_ledger_computed(
                version=snapshot.version,
                currency=currency,
                bucket_count=len(ledger),
            )
        return ledger

    async def net_balance(self, person_id: str, group_key: Optional[str] = None) -> float:
        return net_balance(person_id, group_key, await self.ledger())

    async def category_totals(self, group_key: Optional[str] = None) -> list[CategoryTotal]:
        snapshot = await self._snapshot()
        return category_totals(
            snapshot.expenses, group_key, snapshot.currencies, self._display_currency
        )

    async def balance_summary(self, group_key: Optional[str] = None) -> list[PersonBalance]:
        ledger = await self.ledger()
        people = await self._store.list_people()
        return balance_summary(people, group_key, ledger, self._settled_threshold)

    async def max_settlement_amount(
        self,
        from_person_id: str,
        to_person_id: str,
        group_key: Optional[str] = None,
    ) -> float:
        return max_settlement_amount(
            from_person_id, to_person_id, group_key, await self.ledger()
        )

    # -- writes ----------------------------------------------------------

    async def _reject(
        self,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_rejected(
                entity_type=result.entity_type,
                entity_id=result.entity_id,
                issues=[issue.model_dump() for issue in result.issues],
                correlation_id=correlation_id,
            )
        raise RecordRejectedError(result)

    async def _audit_added(self, entity_type: str, entity_id: str, label: str, **details) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_added(
                entity_type=entity_type,
                entity_id=entity_id,
                label=label,
                details=details,
            )

    async def _audit_removed(self, entity_type: str, entity_id: str) -> None:
        if self._audit_logger:
            await self._audit_logger.log_record_removed(
                entity_type=entity_type,
                entity_id=entity_id,
            )

    async def add_person(self, name: str) -> Person:
        person = await self._store.add_person(Person(name=name))
        await self._audit_added("person", person.id, person.name)
        return person

    async def remove_person(self, person_id: str) -> None:
        """Remove a person along with every expense and settlement they are in."""
        await self._store.remove_person(person_id)
        await self._audit_removed("person", person_id)

    async def add_expense(self, expense: Expense) -> tuple[Expense, ValidationResult]:
        """
        Validate and save an expense.

        Returns the saved expense and the validation result, whose warnings
        the caller may want to show.

        Raises:
            RecordRejectedError: If validation found errors
        """
        correlation_id = create_correlation_id()
        result = self._validator.validate_expense(expense, await self._snapshot())
        if result.has_errors:
            await self._reject(result, correlation_id)

        saved = await self._store.add_expense(expense)
        await self._audit_added(
            "expense",
            saved.id,
            saved.description or saved.id,
            amount=saved.amount,
            currency=saved.currency,
            paid_by=saved.paid_by,
        )
        return saved, result

    async def update_expense(self, expense: Expense) -> tuple[Expense, ValidationResult]:
        correlation_id = create_correlation_id()
        result = self._validator.validate_expense(expense, await self._snapshot())
        if result.has_errors:
            await self._reject(result, correlation_id)

        saved = await self._store.update_expense(expense)
        if self._audit_logger:
            await self._audit_logger.log_record_updated(
                entity_type="expense",
                entity_id=saved.id,
                label=saved.description or saved.id,
                correlation_id=correlation_id,
            )
        return saved, result

    async def remove_expense(self, expense_id: str) -> None:
        await self._store.remove_expense(expense_id)
        await self._audit_removed("expense", expense_id)

    async def add_group(
        self,
        name: str,
        members: tuple[str, ...] = (),
        description: Optional[str] = None,
    ) -> Group:
        group = await self._store.add_group(
            Group(name=name, members=members, description=description)
        )
        await self._audit_added("group", group.id, group.name, members=list(group.members))
        return group

    async def update_group(self, group: Group) -> Group:
        saved = await self._store.update_group(group)
        if self._audit_logger:
            await self._audit_logger.log_record_updated(
                entity_type="group",
                entity_id=saved.id,
                label=saved.name,
            )
        return saved

    async def remove_group(self, group_id: str) -> None:
        """Remove a group; its expenses and settlements move to "no-group"."""
        await self._store.remove_group(group_id)
        await self._audit_removed("group", group_id)

    async def add_settlement(self, settlement: Settlement) -> tuple[Settlement, ValidationResult]:
        """
        Validate and save a settlement.

        Overpaying is allowed but comes back as a warning.

        Raises:
            RecordRejectedError: If validation found errors
        """
        correlation_id = create_correlation_id()
        snapshot = await self._snapshot()
        result = self._validator.validate_settlement(settlement, snapshot, await self.ledger())
        if result.has_errors:
            await self._reject(result, correlation_id)

        saved = await self._store.add_settlement(settlement)
        await self._audit_added(
            "settlement",
            saved.id,
            f"{saved.from_person_id} -> {saved.to_person_id}",
            amount=saved.amount,
            currency=saved.currency,
        )
        return saved, result

    async def remove_settlement(self, settlement_id: str) -> None:
        await self._store.remove_settlement(settlement_id)
        await self._audit_removed("settlement", settlement_id)

    async def add_category(self, name: str) -> Category:
        category = await self._store.add_category(Category(name=name, is_custom=True))
        await self._audit_added("category", category.id, category.name)
        return category

    async def remove_category(self, category_id: str) -> None:
        """Remove a custom category; its expenses move to "other"."""
        await self._store.remove_category(category_id)
        await self._audit_removed("category", category_id)

    async def add_currency(self, currency: Currency) -> Currency:
        correlation_id = create_correlation_id()
        result = self._validator.validate_currency(currency, await self._snapshot())
        if result.has_errors:
            await self._reject(result, correlation_id)

        saved = await self._store.add_currency(currency)
        await self._audit_added(
            "currency", saved.code, saved.name or saved.code, exchange_rate=saved.exchange_rate
        )
        return saved


def create_app_components(
    store: Optional[RecordStoreInterface] = None,
    keep_audit_trail: bool = True,
) -> tuple[LedgerService, RecordStoreInterface, Optional[InMemoryAuditStorage]]:
    """
    Factory function to create all application components.

    Args:
        store: Record store to use. Defaults to a fresh in-memory store
               seeded with the built-in categories and currencies.
        keep_audit_trail: Whether audit events are stored in addition to
                          being logged.

    Returns:
        (ledger_service, store, audit_storage)
    """
    store = store or InMemoryRecordStore()
    audit_storage = InMemoryAuditStorage() if keep_audit_trail else None
    audit_logger = AuditLogger(audit_storage)

    service = LedgerService(store=store, audit_logger=audit_logger)
    return service, store, audit_storage
