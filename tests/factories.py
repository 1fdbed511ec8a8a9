"""Record builders and store doubles shared by the test modules."""

from datetime import date

from groupledger.models import Expense, Settlement, SplitShare
from groupledger.services.storage import InMemoryRecordStore, RecordStoreInterface


def make_expense(paid_by, shares, currency="USD", group_id=None, category_id="other", **kwargs):
    """Build an expense whose amount is the sum of the given shares."""
    split = [SplitShare(person_id=pid, amount=amt) for pid, amt in shares.items()]
    return Expense(
        description=kwargs.pop("description", "Test expense"),
        amount=kwargs.pop("amount", sum(shares.values())),
        currency=currency,
        paid_by=paid_by,
        date=kwargs.pop("date", date(2024, 6, 1)),
        category_id=category_id,
        group_id=group_id,
        split_among=split,
        **kwargs,
    )


def make_settlement(from_id, to_id, amount, currency="USD", group_id=None):
    return Settlement(
        from_person_id=from_id,
        to_person_id=to_id,
        amount=amount,
        currency=currency,
        group_id=group_id,
    )


class BusyStore(InMemoryRecordStore):
    """A store that reads collections one at a time and sees writes land mid-read."""

    snapshot = RecordStoreInterface.snapshot

    def __init__(self, writes_during_read, **kwargs):
        super().__init__(**kwargs)
        self._pending_writes = writes_during_read

    async def list_expenses(self):
        if self._pending_writes:
            self._pending_writes -= 1
            self._bump()
        return await super().list_expenses()
