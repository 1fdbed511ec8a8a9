"""
Balance Engine

Turns snapshots of people, expenses, settlements and currencies into a
debt ledger:

    ledger[bucket][a][b] -> float

Buckets are group ids, "no-group" for ungrouped records, and "all" for the
aggregate over everything. A cell is a's signed position against b in the
display currency: positive means b owes a, negative means a owes b.

DESIGN DECISION: The engine is a pure function. It recomputes the whole
ledger from scratch on every call, never mutates its inputs, and returns a
new read-only Ledger. Caching is the caller's business.

FAIL-OPEN: Unknown currency codes convert at rate 1, and person ids that are
not in the people snapshot ("ghost" ids) get their own rows and columns.
Both are logged as warnings; neither stops the computation.

LIMITATION: Netting only collapses direct pairs (A owes B and B owes A).
Chains such as A -> B -> C are left as they are.
"""

from collections.abc import Iterable, Iterator, Mapping
from itertools import combinations
from types import MappingProxyType
from typing import Optional

import structlog

from groupledger.engine.currency import convert, unknown_codes
from groupledger.models.records import (
    ALL_BUCKET,
    Currency,
    Expense,
    Person,
    Settlement,
)

logger = structlog.get_logger(__name__)

# bucket -> person -> other person -> amount
RawLedger = dict[str, dict[str, dict[str, float]]]


class Ledger(Mapping):
    """
    Read-only three-level debt ledger.

    Index it like the nested mapping it is (ledger["all"]["p1"]["p2"]), or
    use amount() for a lookup that tolerates missing buckets and people.
    Any attempt to modify it raises TypeError.
    """

    def __init__(self, buckets: Mapping, currency: str):
        self._buckets = MappingProxyType({
            bucket: MappingProxyType({
                person: MappingProxyType(dict(row))
                for person, row in matrix.items()
            })
            for bucket, matrix in buckets.items()
        })
        self._currency = currency

    @classmethod
    def from_dict(cls, data: Mapping, currency: str) -> "Ledger":
        """Build a ledger from plain nested dicts (no netting applied)."""
        return cls(data, currency)

    @property
    def currency(self) -> str:
        """Display currency every amount is expressed in."""
        return self._currency

    def __getitem__(self, bucket: str) -> Mapping:
        return self._buckets[bucket]

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Ledger):
            return self._currency == other._currency and self.to_dict() == other.to_dict()
        return super().__eq__(other)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Ledger(currency={self._currency!r}, buckets={list(self._buckets)!r})"

    def amount(self, bucket: str, person_id: str, other_id: str, default: float = 0.0) -> float:
        """Cell value, or default when the bucket or either person is missing."""
        return self._buckets.get(bucket, {}).get(person_id, {}).get(other_id, default)

    def people(self, bucket: str) -> list[str]:
        """Every person id with a row or column in the bucket."""
        matrix = self._buckets.get(bucket, {})
        seen = dict.fromkeys(matrix)
        for row in matrix.values():
            seen.update(dict.fromkeys(row))
        return list(seen)

    def to_dict(self) -> RawLedger:
        """Deep, mutable copy as plain nested dicts."""
        return {
            bucket: {person: dict(row) for person, row in matrix.items()}
            for bucket, matrix in self._buckets.items()
        }


# =============================================================================
# CONSTRUCTION
# =============================================================================

def _zero_matrix(person_ids: list[str]) -> dict[str, dict[str, float]]:
    return {
        person: {other: 0.0 for other in person_ids if other != person}
        for person in person_ids
    }


def _apply(
    raw: RawLedger,
    bucket: str,
    creditor: str,
    debtor: str,
    amount: float,
) -> None:
    """Book amount as owed by debtor to creditor, in bucket and in "all"."""
    keys = (bucket,) if bucket == ALL_BUCKET else (bucket, ALL_BUCKET)
    for key in keys:
        matrix = raw[key]
        creditor_row = matrix.setdefault(creditor, {})
        debtor_row = matrix.setdefault(debtor, {})
        creditor_row[debtor] = creditor_row.get(debtor, 0.0) + amount
        debtor_row[creditor] = debtor_row.get(creditor, 0.0) - amount


def net_mutual_debts(raw: RawLedger) -> RawLedger:
    """
    Collapse pairs where both directed cells are positive, in place.

    The larger cell keeps the difference and the smaller drops to zero, so
    afterwards at most one direction of every pair is positive. Running it
    again changes nothing.
    """
    for matrix in raw.values():
        person_ids = list(dict.fromkeys(
            [*matrix, *(other for row in matrix.values() for other in row)]
        ))
        for a, b in combinations(person_ids, 2):
            a_row = matrix.get(a, {})
            b_row = matrix.get(b, {})
            ab = a_row.get(b, 0.0)
            ba = b_row.get(a, 0.0)
            if ab > 0 and ba > 0:
                if ab > ba:
                    a_row[b] = ab - ba
                    b_row[a] = 0.0
                else:
                    b_row[a] = ba - ab
                    a_row[b] = 0.0
    return raw


def simplify_ledger(ledger: Ledger) -> Ledger:
    """Return a new ledger with mutual debts netted (see net_mutual_debts)."""
    return Ledger(net_mutual_debts(ledger.to_dict()), ledger.currency)


def compute_ledger(
    people: Iterable[Person],
    expenses: Iterable[Expense],
    settlements: Iterable[Settlement],
    currencies: Iterable[Currency],
    display_currency: str,
) -> Ledger:
    """
    Compute the full debt ledger in the display currency.

    Every bucket touched by an expense or a settlement starts as a zero
    matrix over all known people, and so does "all". For each expense share
    not paid by the payer, the share is booked as owed by the sharer to the
    payer. A settlement from A to B moves A's position against B up by the
    settled amount. A netting pass runs last.

    Self-shares and self-settlements book nothing. The display currency
    code is matched case-insensitively, like the codes on the records.
    An empty people snapshot yields an empty ledger.
    """
    display_currency = display_currency.strip().upper()
    person_ids = list(dict.fromkeys(person.id for person in people))
    expenses = tuple(expenses)
    settlements = tuple(settlements)
    currencies = tuple(currencies)

    if not person_ids:
        if expenses or settlements:
            logger.warning(
                "ledger_skipped_without_people",
                expense_count=len(expenses),
                settlement_count=len(settlements),
            )
        return Ledger({}, display_currency)

    for code in unknown_codes(
        [display_currency, *(e.currency for e in expenses), *(s.currency for s in settlements)],
        currencies,
    ):
        logger.warning("unknown_currency_code", currency=code, fallback_rate=1.0)

    known = set(person_ids)
    ghosts: list[str] = []

    def note_ghost(person_id: str, record_id: str) -> None:
        if person_id not in known and person_id not in ghosts:
            ghosts.append(person_id)
            logger.warning("ghost_person_referenced", person_id=person_id, record_id=record_id)

    raw: RawLedger = {ALL_BUCKET: _zero_matrix(person_ids)}

    def ensure_bucket(bucket: str) -> None:
        if bucket not in raw:
            raw[bucket] = _zero_matrix(person_ids)

    for expense in expenses:
        ensure_bucket(expense.bucket)
        note_ghost(expense.paid_by, expense.id)
        for share in expense.split_among:
            if share.person_id == expense.paid_by:
                continue
            note_ghost(share.person_id, expense.id)
            amount = convert(share.amount, expense.currency, display_currency, currencies)
            _apply(raw, expense.bucket, expense.paid_by, share.person_id, amount)

    for settlement in settlements:
        if settlement.from_person_id == settlement.to_person_id:
            continue
        ensure_bucket(settlement.bucket)
        note_ghost(settlement.from_person_id, settlement.id)
        note_ghost(settlement.to_person_id, settlement.id)
        amount = convert(settlement.amount, settlement.currency, display_currency, currencies)
        # the payer's position rises: booked as if the recipient now owes them
        _apply(raw, settlement.bucket, settlement.from_person_id, settlement.to_person_id, amount)

    net_mutual_debts(raw)

    logger.debug(
        "ledger_computed",
        currency=display_currency,
        buckets=len(raw),
        people=len(person_ids),
        ghosts=len(ghosts),
    )
    return Ledger(raw, display_currency)


def bucket_total(ledger: Ledger, bucket: str) -> Optional[float]:
    """Sum of every cell in a bucket; zero for a money-conserving ledger."""
    if bucket not in ledger:
        return None
    return sum(sum(row.values()) for row in ledger[bucket].values())
