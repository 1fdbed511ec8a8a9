"""
Currency conversion and display formatting.

Rates are static: each Currency carries the number of its units worth one
unit of an implicit base, so converting A -> B goes through that base.
"""

from collections.abc import Iterable

from groupledger.models.records import Currency


def rate_for(code: str, currencies: Iterable[Currency]) -> float:
    """
    Exchange rate for a currency code.

    Unknown codes get a rate of 1 rather than an error, so one bad record
    cannot take the whole ledger down.
    """
    for currency in currencies:
        if currency.code == code:
            return currency.exchange_rate
    return 1.0


def convert(
    amount: float,
    from_code: str,
    to_code: str,
    currencies: Iterable[Currency],
) -> float:
    """
    Convert an amount between two currencies.

    No rounding is applied; round only when displaying. A zero rate raises
    ZeroDivisionError - Currency refuses one, so it can only appear in
    records built without validation.
    """
    currencies = tuple(currencies)
    if from_code == to_code:
        return amount
    from_rate = rate_for(from_code, currencies)
    to_rate = rate_for(to_code, currencies)
    return (amount / from_rate) * to_rate


def unknown_codes(codes: Iterable[str], currencies: Iterable[Currency]) -> list[str]:
    """Codes (first-seen order, no repeats) missing from the currency set."""
    known = {currency.code for currency in currencies}
    missing = []
    for code in codes:
        if code not in known and code not in missing:
            missing.append(code)
    return missing


def format_currency(
    amount: float,
    currency_code: str,
    currencies: Iterable[Currency],
) -> str:
    """
    Format an amount for display, e.g. "₹1,234.50" or "-$3.00".

    Codes missing from the set are shown as a prefix ("CHF 12.00").
    """
    symbol = next(
        (c.symbol for c in currencies if c.code == currency_code and c.symbol),
        None,
    )
    sign = "-" if round(amount, 2) < 0 else ""
    magnitude = f"{abs(amount):,.2f}"
    if symbol is None:
        return f"{sign}{currency_code} {magnitude}"
    return f"{sign}{symbol}{magnitude}"
