"""Shared fixtures: a small cast of people and a currency set."""

import pytest

from groupledger.models import Currency, Person


@pytest.fixture
def people():
    return [
        Person(id="p1", name="Asha"),
        Person(id="p2", name="Ben"),
        Person(id="p3", name="Chen"),
    ]


@pytest.fixture
def currencies():
    return [
        Currency(code="USD", symbol="$", name="US Dollar", exchange_rate=1),
        Currency(code="EUR", symbol="€", name="Euro", exchange_rate=0.5),
        Currency(code="INR", symbol="₹", name="Indian Rupee", exchange_rate=80),
    ]
