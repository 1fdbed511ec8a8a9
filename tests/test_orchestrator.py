"""
Integration tests for LedgerService.

Runs the whole stack - in-memory store, validator, engine, audit log -
with no external services.
"""

import pytest

from groupledger.engine import Ledger
from groupledger.models import ALL_BUCKET, AuditEventType, AuditSeverity, Currency
from groupledger.orchestrator import LedgerService, RecordRejectedError, create_app_components
from groupledger.services.storage import (
    InMemoryRecordStore,
    ProtectedRecordError,
    SnapshotConflictError,
)

from factories import BusyStore, make_expense, make_settlement


@pytest.fixture
def components():
    store = InMemoryRecordStore(currencies=[
        Currency(code="USD", symbol="$", name="US Dollar", exchange_rate=1),
        Currency(code="EUR", symbol="€", name="Euro", exchange_rate=0.5),
    ])
    return create_app_components(store=store)


async def add_trio(service):
    asha = await service.add_person("Asha")
    ben = await service.add_person("Ben")
    chen = await service.add_person("Chen")
    return asha.id, ben.id, chen.id


async def event_types(audit_storage):
    return [e.event_type for e in reversed(await audit_storage.get_recent_events(limit=1000))]


class TestBalances:
    """Tests for the read side."""

    @pytest.mark.asyncio
    async def test_three_way_split(self, components):
        service, _, _ = components
        service.set_display_currency("usd")
        p1, p2, p3 = await add_trio(service)
        await service.add_expense(make_expense(p1, {p1: 30.0, p2: 30.0, p3: 30.0}))

        assert await service.net_balance(p1) == 60.0
        assert await service.net_balance(p2) == -30.0
        assert await service.max_settlement_amount(p2, p1) == 30.0

        summary = await service.balance_summary()
        assert [b.name for b in summary][0] == "Asha"

    @pytest.mark.asyncio
    async def test_settlement_clears(self, components):
        service, _, _ = components
        service.set_display_currency("USD")
        p1, p2, _ = await add_trio(service)
        await service.add_expense(make_expense(p1, {p2: 25.0}))
        _, result = await service.add_settlement(make_settlement(p2, p1, 25.0))

        assert result.issues == []
        ledger = await service.ledger()
        assert ledger[ALL_BUCKET][p2][p1] == 0.0
        assert await service.balance_summary() == []

    @pytest.mark.asyncio
    async def test_category_totals(self, components):
        service, _, _ = components
        service.set_display_currency("USD")
        p1, p2, _ = await add_trio(service)
        await service.add_expense(make_expense(p1, {p2: 10.0}, currency="EUR", category_id="food"))

        totals = await service.category_totals()
        assert [(t.category_id, t.amount, t.currency) for t in totals] == [("food", 20.0, "USD")]

    @pytest.mark.asyncio
    async def test_default_display_currency_from_settings(self, components):
        service, _, _ = components
        assert service.display_currency == "INR"


class TestLedgerCache:
    """Tests for memoization per store version and currency."""

    @pytest.mark.asyncio
    async def test_cached_until_write(self, components):
        service, _, _ = components
        p1, p2, _ = await add_trio(service)

        first = await service.ledger()
        assert await service.ledger() is first

        await service.add_expense(make_expense(p1, {p2: 5.0}))
        second = await service.ledger()
        assert second is not first
        assert isinstance(second, Ledger)

    @pytest.mark.asyncio
    async def test_currency_change_recomputes(self, components):
        service, _, _ = components
        p1, p2, _ = await add_trio(service)
        await service.add_expense(make_expense(p1, {p2: 5.0}, currency="USD"))

        in_usd = await service.ledger("USD")
        in_eur = await service.ledger("EUR")
        assert in_usd.currency == "USD"
        assert in_eur[ALL_BUCKET][p1][p2] == pytest.approx(2.5)

    @pytest.mark.asyncio
    async def test_recompute_is_audited(self, components):
        service, _, audit = components
        await service.ledger()
        await service.ledger()
        assert (await event_types(audit)).count(AuditEventType.LEDGER_COMPUTED) == 1


class TestWrites:
    """Tests for validation and audit on the write side."""

    @pytest.mark.asyncio
    async def test_rejected_expense_not_stored(self, components):
        service, store, audit = components
        p1, p2, _ = await add_trio(service)

        with pytest.raises(RecordRejectedError) as exc_info:
            await service.add_expense(make_expense(p1, {p2: 10.0}, amount=15.0))

        assert exc_info.value.result.has_errors
        assert await store.list_expenses() == []
        assert AuditEventType.RECORD_REJECTED in await event_types(audit)

    @pytest.mark.asyncio
    async def test_warnings_returned_not_raised(self, components):
        service, store, _ = components
        p1, _, _ = await add_trio(service)

        saved, result = await service.add_expense(make_expense(p1, {"ghost": 10.0}))
        assert result.is_valid
        assert result.warnings
        assert await store.list_expenses() == [saved]

    @pytest.mark.asyncio
    async def test_self_settlement_rejected(self, components):
        service, store, _ = components
        p1, _, _ = await add_trio(service)
        with pytest.raises(RecordRejectedError):
            await service.add_settlement(make_settlement(p1, p1, 10.0))
        assert await store.list_settlements() == []

    @pytest.mark.asyncio
    async def test_update_expense(self, components):
        service, store, audit = components
        p1, p2, _ = await add_trio(service)
        saved, _ = await service.add_expense(make_expense(p1, {p2: 10.0}))

        await service.update_expense(saved.model_copy(update={"description": "Lunch"}))
        assert (await store.list_expenses())[0].description == "Lunch"
        assert AuditEventType.EXPENSE_UPDATED in await event_types(audit)

    @pytest.mark.asyncio
    async def test_remove_person_cascades_into_balances(self, components):
        service, _, audit = components
        service.set_display_currency("USD")
        p1, p2, p3 = await add_trio(service)
        await service.add_expense(make_expense(p1, {p2: 10.0}))
        await service.add_expense(make_expense(p1, {p3: 4.0}))

        await service.remove_person(p2)

        assert await service.net_balance(p1) == 4.0
        assert AuditEventType.PERSON_REMOVED in await event_types(audit)

    @pytest.mark.asyncio
    async def test_groups(self, components):
        service, store, _ = components
        service.set_display_currency("USD")
        p1, p2, _ = await add_trio(service)
        trip = await service.add_group("Trip", members=(p1, p2))
        await service.add_expense(make_expense(p1, {p2: 10.0}, group_id=trip.id))
        assert await service.net_balance(p1, trip.id) == 10.0

        await service.update_group(trip.model_copy(update={"name": "Road trip"}))
        assert (await store.list_groups())[0].name == "Road trip"

        await service.remove_group(trip.id)
        assert await service.net_balance(p1, trip.id) == 0.0
        assert await service.net_balance(p1, "no-group") == 10.0

    @pytest.mark.asyncio
    async def test_categories(self, components):
        service, store, _ = components
        p1, p2, _ = await add_trio(service)
        pets = await service.add_category("Pets")
        await service.add_expense(make_expense(p1, {p2: 10.0}, category_id=pets.id))

        await service.remove_category(pets.id)
        assert (await store.list_expenses())[0].category_id == "other"

        with pytest.raises(ProtectedRecordError):
            await service.remove_category("other")

    @pytest.mark.asyncio
    async def test_add_currency(self, components):
        service, store, _ = components
        await service.add_currency(Currency(code="CHF", symbol="Fr", exchange_rate=0.9))
        assert "CHF" in {c.code for c in await store.list_currencies()}

        with pytest.raises(RecordRejectedError):
            await service.add_currency(Currency(code="CHF", exchange_rate=0.8))

    @pytest.mark.asyncio
    async def test_removals_audited(self, components):
        service, _, audit = components
        p1, p2, _ = await add_trio(service)
        expense, _ = await service.add_expense(make_expense(p1, {p2: 10.0}))
        settlement, _ = await service.add_settlement(make_settlement(p2, p1, 5.0))

        await service.remove_settlement(settlement.id)
        await service.remove_expense(expense.id)

        types = await event_types(audit)
        assert AuditEventType.SETTLEMENT_REMOVED in types
        assert AuditEventType.EXPENSE_REMOVED in types


class TestStorageFailures:
    """Tests for store errors surfacing through the service."""

    @pytest.mark.asyncio
    async def test_snapshot_conflict_audited_and_raised(self):
        service, _, audit = create_app_components(store=BusyStore(writes_during_read=100))

        with pytest.raises(SnapshotConflictError):
            await service.ledger("USD")

        events = await audit.get_recent_events()
        assert [e.event_type for e in events] == [AuditEventType.SYSTEM_ERROR]
        assert events[0].severity == AuditSeverity.ERROR
        assert events[0].description == "System error: SnapshotConflictError"
        assert "during snapshot" in events[0].error_message

    @pytest.mark.asyncio
    async def test_write_not_attempted_after_conflict(self):
        store = BusyStore(writes_during_read=100)
        service, _, _ = create_app_components(store=store)

        with pytest.raises(SnapshotConflictError):
            await service.add_expense(make_expense("p1", {"p2": 10.0}))
        assert await store.list_expenses() == []


class TestFactory:
    def test_defaults(self):
        service, store, audit = create_app_components()
        assert isinstance(service, LedgerService)
        assert isinstance(store, InMemoryRecordStore)
        assert audit is not None

    def test_without_audit_trail(self):
        _, _, audit = create_app_components(keep_audit_trail=False)
        assert audit is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
