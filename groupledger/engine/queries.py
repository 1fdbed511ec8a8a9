"""
Read-side queries over a computed ledger.

A group filter is always one of: None (the "all" bucket), a group id, or
the "no-group" sentinel. Every query tolerates buckets and people that are
missing from the ledger - they read as zero.
"""

from collections.abc import Iterable
from typing import Optional

import structlog

from groupledger.engine.currency import convert, unknown_codes
from groupledger.engine.ledger import Ledger
from groupledger.models.records import (
    ALL_BUCKET,
    CategoryTotal,
    Currency,
    Expense,
    Person,
    PersonBalance,
)

logger = structlog.get_logger(__name__)

UNKNOWN_PERSON_NAME = "Unknown"


def resolve_bucket(group_key: Optional[str]) -> str:
    return group_key or ALL_BUCKET


def person_name(person_id: str, people: Iterable[Person]) -> str:
    """Display name for a person id, "Unknown" for ghost ids."""
    for person in people:
        if person.id == person_id:
            return person.name
    return UNKNOWN_PERSON_NAME


def net_balance(person_id: str, group_key: Optional[str], ledger: Ledger) -> float:
    """
    A person's overall position in a bucket.

    Adds what others owe the person (their negative cells against the
    person) and subtracts what the person owes (the person's own negative
    cells). Positive: owed money overall. Negative: owes money overall.
    The exact float is returned; deciding what counts as settled is left
    to display code.
    """
    bucket = resolve_bucket(group_key)
    if bucket not in ledger or person_id not in ledger[bucket]:
        return 0.0

    matrix = ledger[bucket]
    total = 0.0

    for other_id, row in matrix.items():
        if other_id == person_id:
            continue
        cell = row.get(person_id, 0.0)
        if cell < 0:
            total += abs(cell)

    for cell in matrix[person_id].values():
        if cell < 0:
            total -= abs(cell)

    return total


def category_totals(
    expenses: Iterable[Expense],
    group_key: Optional[str],
    currencies: Iterable[Currency],
    display_currency: str,
) -> list[CategoryTotal]:
    """
    Expense totals per category, in the display currency.

    Only categories that at least one matching expense uses are returned,
    in order of first appearance.
    """
    display_currency = display_currency.strip().upper()
    currencies = tuple(currencies)
    bucket = resolve_bucket(group_key)
    selected = [
        expense for expense in expenses
        if bucket == ALL_BUCKET or expense.bucket == bucket
    ]

    for code in unknown_codes([e.currency for e in selected], currencies):
        logger.warning("unknown_currency_code", currency=code, fallback_rate=1.0)

    totals: dict[str, float] = {}
    for expense in selected:
        amount = convert(expense.amount, expense.currency, display_currency, currencies)
        totals[expense.category_id] = totals.get(expense.category_id, 0.0) + amount

    return [
        CategoryTotal(category_id=category_id, amount=amount, currency=display_currency)
        for category_id, amount in totals.items()
    ]


def balance_summary(
    people: Iterable[Person],
    group_key: Optional[str],
    ledger: Ledger,
    threshold: float = 0.01,
) -> list[PersonBalance]:
    """
    Everyone in the bucket who is not settled up, largest credit first.

    Each person's amount is the sum of their row: what they are owed minus
    what they owe. Magnitudes at or below threshold are left out.
    """
    bucket = resolve_bucket(group_key)
    if bucket not in ledger:
        return []

    people = tuple(people)
    result = []
    for person_id, row in ledger[bucket].items():
        amount = sum(row.values())
        if abs(amount) <= threshold:
            continue
        result.append(PersonBalance(
            person_id=person_id,
            name=person_name(person_id, people),
            amount=amount,
            currency=ledger.currency,
        ))

    return sorted(result, key=lambda balance: balance.amount, reverse=True)


def max_settlement_amount(
    from_person_id: str,
    to_person_id: str,
    group_key: Optional[str],
    ledger: Ledger,
) -> float:
    """Most that from_person can pay to_person without overpaying."""
    cell = ledger.amount(resolve_bucket(group_key), from_person_id, to_person_id)
    return max(0.0, -cell)


def debtors(group_key: Optional[str], ledger: Ledger) -> list[str]:
    """Ids of people who owe someone in the bucket."""
    bucket = resolve_bucket(group_key)
    if bucket not in ledger:
        return []
    return [
        person_id for person_id, row in ledger[bucket].items()
        if any(cell < 0 for cell in row.values())
    ]


def creditors_of(person_id: str, group_key: Optional[str], ledger: Ledger) -> list[str]:
    """Ids of people the given person owes in the bucket."""
    bucket = resolve_bucket(group_key)
    row = ledger.get(bucket, {}).get(person_id, {})
    return [other_id for other_id, cell in row.items() if cell < 0]
