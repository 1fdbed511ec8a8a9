"""
Record Models for Group Ledger

These are the records owned by the record store: people, currencies,
categories, groups, expenses and settlements. The balance engine only ever
sees them as read-only snapshots, so every model is frozen.

DESIGN DECISION: Attributes are snake_case, but each model also accepts the
camelCase names used by the JSON API (paidBy, splitAmong, exchangeRate...),
so stored records load without a translation layer.

Models check shape only (types, positivity, required fields). Cross-record
rules - shares summing to the expense amount, ids that must exist - live in
the validator, because the engine has to tolerate records that break them.
"""

from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# BUCKET KEYS
# =============================================================================

ALL_BUCKET = "all"
"""Ledger bucket aggregating every expense and settlement."""

NO_GROUP_BUCKET = "no-group"
"""Ledger bucket for expenses and settlements without a group."""

OTHER_CATEGORY_ID = "other"


def generate_id() -> str:
    """Generate a unique record id."""
    return uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class RecordModel(BaseModel):
    """Base for all stored records: immutable, camelCase-aware."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# REFERENCE DATA
# =============================================================================

class Person(RecordModel):
    """Identity only. Referenced by id everywhere else."""

    id: str = Field(default_factory=generate_id, min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )


class Currency(RecordModel):
    """
    A currency and its static exchange rate.

    exchange_rate is the number of units of this currency worth one unit of
    the implicit base shared by the whole currency set. A zero rate would
    make conversion divide by zero, so it is refused here.
    """

    code: str = Field(
        ...,
        min_length=1,
        max_length=10,
        description="Currency code, e.g. USD"
    )
    symbol: str = Field(
        default="",
        max_length=5,
        description="Display symbol, e.g. $"
    )
    name: str = Field(
        default="",
        max_length=100,
        description="Display name, e.g. US Dollar"
    )
    exchange_rate: float = Field(
        ...,
        gt=0,
        description="Units of this currency per one unit of the base"
    )

    @field_validator('code')
    @classmethod
    def uppercase_code(cls, v: str) -> str:
        return v.upper()


class Category(RecordModel):
    """Expense category. Built-in categories have is_custom=False."""

    id: str = Field(default_factory=generate_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    is_custom: bool = Field(
        default=True,
        description="Custom categories may be removed; built-ins may not"
    )


class Group(RecordModel):
    """
    A partition label for expenses and settlements.

    Membership is informational: expenses tagged with a group may still
    reference people outside its member list.
    """

    id: str = Field(default_factory=generate_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    members: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Person ids belonging to the group"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        alias="date",
        description="When the group was created"
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

class SplitShare(RecordModel):
    """One person's share of an expense, in the expense currency."""

    person_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)


class Expense(RecordModel):
    """
    A shared expense paid by one person on behalf of several.

    CRITICAL: The sum of split_among amounts should equal amount. The model
    does not enforce it - the validator reports it on the write path, and the
    engine accepts whatever it is given.
    """

    id: str = Field(default_factory=generate_id, min_length=1)
    description: str = Field(default="", max_length=200)
    amount: float = Field(
        ...,
        gt=0,
        description="Total amount, in currency"
    )
    currency: str = Field(..., min_length=1, max_length=10)
    paid_by: str = Field(
        ...,
        min_length=1,
        description="Id of the person who paid"
    )
    date: date
    category_id: str = Field(default=OTHER_CATEGORY_ID, min_length=1)
    group_id: Optional[str] = None
    split_among: tuple[SplitShare, ...] = Field(
        ...,
        min_length=1,
        description="Who shares the cost, and how much each"
    )

    @field_validator('currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def bucket(self) -> str:
        """Ledger bucket this expense is booked under."""
        return self.group_id or NO_GROUP_BUCKET

    @property
    def split_total(self) -> float:
        return sum(share.amount for share in self.split_among)

    def involves(self, person_id: str) -> bool:
        """True if the person paid for or shares in this expense."""
        return self.paid_by == person_id or any(
            share.person_id == person_id for share in self.split_among
        )


class Settlement(RecordModel):
    """A real-world payment that reduces what from_person owes to_person."""

    id: str = Field(default_factory=generate_id, min_length=1)
    from_person_id: str = Field(..., min_length=1, description="Payer")
    to_person_id: str = Field(..., min_length=1, description="Recipient")
    amount: float = Field(..., gt=0)
    currency: str = Field(..., min_length=1, max_length=10)
    date: datetime = Field(default_factory=utc_now)
    group_id: Optional[str] = None

    @field_validator('currency')
    @classmethod
    def uppercase_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def bucket(self) -> str:
        return self.group_id or NO_GROUP_BUCKET

    def involves(self, person_id: str) -> bool:
        return person_id in (self.from_person_id, self.to_person_id)


# =============================================================================
# DERIVED VALUES
# =============================================================================

class CategoryTotal(BaseModel):
    """Summed expense amount for one category, in the display currency."""

    model_config = ConfigDict(frozen=True)

    category_id: str
    amount: float
    currency: str


class PersonBalance(BaseModel):
    """
    A person's overall position in one ledger bucket.

    Positive amount: the person gets money back.
    Negative amount: the person owes money.
    """

    model_config = ConfigDict(frozen=True)

    person_id: str
    name: str
    amount: float
    currency: str

    @property
    def status(self) -> str:
        if self.amount > 0:
            return "owed"
        if self.amount < 0:
            return "owes"
        return "settled"


# =============================================================================
# DEFAULTS
# =============================================================================

def default_categories() -> list[Category]:
    """The eight built-in categories."""
    return [
        Category(id="food", name="Food", is_custom=False),
        Category(id="transportation", name="Transportation", is_custom=False),
        Category(id="accommodation", name="Accommodation", is_custom=False),
        Category(id="entertainment", name="Entertainment", is_custom=False),
        Category(id="shopping", name="Shopping", is_custom=False),
        Category(id="utilities", name="Utilities", is_custom=False),
        Category(id="health", name="Health", is_custom=False),
        Category(id=OTHER_CATEGORY_ID, name="Other", is_custom=False),
    ]


def default_currencies() -> list[Currency]:
    """Default currency set, with rates relative to the Indian Rupee."""
    return [
        Currency(code="INR", symbol="₹", name="Indian Rupee", exchange_rate=1),
        Currency(code="USD", symbol="$", name="US Dollar", exchange_rate=0.012),
        Currency(code="EUR", symbol="€", name="Euro", exchange_rate=0.011),
        Currency(code="GBP", symbol="£", name="British Pound", exchange_rate=0.0095),
        Currency(code="JPY", symbol="¥", name="Japanese Yen", exchange_rate=1.83),
    ]
