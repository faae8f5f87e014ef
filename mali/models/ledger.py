"""
Core Data Models for the Mali ledger

These models define the schemas for everything persisted or
aggregated by the ledger. They are designed to:
1. Enforce type safety at runtime
2. Keep money in fixed-point Decimal (2 decimal places)
3. Be serializable to plain JSON records for the record store

DESIGN DECISION: Amounts are Decimal quantized to minor units.
Repeated partial payments on floats drift (0.1 + 0.2 != 0.3);
Decimal does not.
"""

from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


MONEY_QUANTUM = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """
    Convert a user-supplied amount to a 2-place Decimal.

    Floats go through ``str`` so that 0.1 becomes Decimal("0.10")
    and not 0.1000000000000000055511151231257827.

    Raises:
        ValueError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a valid amount: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a valid amount: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a valid amount: {value!r}")
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class EntryDirection(str, Enum):
    """
    Which way the money flows.

    CREDIT: the counterparty owes the user
    DEBT:   the user owes the counterparty
    """
    CREDIT = "credit"
    DEBT = "debt"


class EntryStatus(str, Enum):
    """Settlement status of a ledger entry."""
    PENDING = "pending"
    SETTLED = "settled"


# =============================================================================
# ACCOUNTS & SESSIONS
# =============================================================================

class Account(BaseModel):
    """
    A registered user of the ledger.

    The credential is an opaque string compared for equality.
    Accounts are immutable once created.
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique account ID"
    )
    username: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Login name (unique, case-sensitive)"
    )
    credential: str = Field(
        ...,
        min_length=1,
        description="Opaque secret"
    )
    display_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name shown to the user and to the advice service"
    )


class Session(BaseModel):
    """
    The current session pointer.

    Holds only the account ID; the account itself is resolved on
    read so a stale copy can never diverge from the stored record.
    """

    account_id: str
    started_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# LEDGER ENTRY
# =============================================================================

class LedgerEntry(BaseModel):
    """
    A single debt or credit between the user and a counterparty.

    Only ``paid_amount`` and ``status`` ever change after creation.
    """
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique entry ID"
    )
    owner_account_id: str = Field(
        ...,
        min_length=1,
        description="Account that owns this entry"
    )
    direction: EntryDirection
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Face amount of the obligation"
    )
    paid_amount: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Cumulative amount paid so far"
    )
    currency: str = Field(
        default="SAR",
        min_length=1,
        max_length=10,
        description="Free-form currency code (not converted)"
    )
    counterparty: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Name of the other party; used as a grouping key"
    )
    description: str = Field(
        default="",
        max_length=1000,
    )
    created_at: datetime = Field(default_factory=utcnow)
    due_date: Optional[date] = None
    status: EntryStatus = EntryStatus.PENDING

    @field_validator("amount", "paid_amount", mode="before")
    @classmethod
    def quantize_money(cls, v: Any) -> Decimal:
        return to_money(v)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @computed_field
    @property
    def remaining(self) -> Decimal:
        """Amount still open. Never negative."""
        return max(self.amount - self.paid_amount, ZERO)

    @property
    def is_fully_paid(self) -> bool:
        return self.paid_amount >= self.amount

    @property
    def is_settled(self) -> bool:
        return self.status == EntryStatus.SETTLED

    def is_overdue(self, today: Optional[date] = None) -> bool:
        """Pending entry whose due date has passed."""
        if self.is_settled or self.due_date is None:
            return False
        return self.due_date < (today or utcnow().date())

    def to_record(self) -> dict:
        """Serialize for the record store (computed fields excluded)."""
        return self.model_dump(mode="json", exclude={"remaining"})

    @classmethod
    def from_record(cls, record: dict) -> "LedgerEntry":
        data = {k: v for k, v in record.items() if k != "remaining"}
        return cls(**data)


# =============================================================================
# AGGREGATES
# =============================================================================

class LedgerSummary(BaseModel):
    """
    Pending-only totals.

    Currencies are added as raw numbers; there is no conversion.
    """

    total_credit: Decimal = ZERO
    total_debt: Decimal = ZERO

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.total_credit - self.total_debt


class CounterpartySummary(BaseModel):
    """Pending-only totals for one counterparty."""

    counterparty: str
    credit: Decimal = ZERO
    debt: Decimal = ZERO

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.credit - self.debt


class CounterpartyDetail(LedgerSummary):
    """Every entry for one counterparty plus its pending-only totals."""

    counterparty: str
    entries: list[LedgerEntry] = Field(default_factory=list)


# =============================================================================
# ADVICE SNAPSHOT
# =============================================================================

class AdviceSampleItem(BaseModel):
    """One pending entry as shown to the advice service."""

    direction: EntryDirection
    total: Decimal
    paid: Decimal
    remaining: Decimal
    currency: str
    counterparty: str


class AdviceSnapshot(BaseModel):
    """
    Bounded view of the ledger sent to the advice service.

    Only aggregates and a small sample leave the process.
    """

    display_name: str
    pending_count: int = Field(ge=0)
    total_debt_remaining: Decimal
    total_credit_remaining: Decimal
    sample: list[AdviceSampleItem] = Field(default_factory=list)
