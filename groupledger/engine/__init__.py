"""Balance engine package."""

from groupledger.engine.currency import convert, format_currency, rate_for
from groupledger.engine.ledger import (
    Ledger,
    bucket_total,
    compute_ledger,
    net_mutual_debts,
    simplify_ledger,
)
from groupledger.engine.queries import (
    UNKNOWN_PERSON_NAME,
    balance_summary,
    category_totals,
    creditors_of,
    debtors,
    max_settlement_amount,
    net_balance,
    person_name,
)

__all__ = [
    # Currency
    "convert",
    "format_currency",
    "rate_for",
    # Ledger
    "Ledger",
    "bucket_total",
    "compute_ledger",
    "net_mutual_debts",
    "simplify_ledger",
    # Queries
    "UNKNOWN_PERSON_NAME",
    "balance_summary",
    "category_totals",
    "creditors_of",
    "debtors",
    "max_settlement_amount",
    "net_balance",
    "person_name",
]
