"""
Core Data Models for Pocketbook

These models define the strict schemas for every record the ledger
engine reads and writes:
1. Users and their wallet balance
2. Transactions (realized entries and recurring templates)
3. Friends and their running balance
4. Splits of a shared expense

DESIGN DECISION: Amounts are Decimal, never float.
Balances are compared against a hard limit and summed across many
records, so binary rounding would eventually show up as a ledger drift.
"""

import datetime as dt
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction's effect on the wallet."""
    INCOME = "income"
    EXPENSE = "expense"


class Frequency(str, Enum):
    """How often a recurring template is realized."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class RecurrenceStatus(str, Enum):
    """
    Lifecycle of a recurring template.

    Only ACTIVE templates are realized by the scheduler.
    """
    ACTIVE = "active"
    PAUSED = "paused"
    DELETED = "deleted"


# =============================================================================
# USERS
# =============================================================================

class User(BaseModel):
    """
    Owner of a wallet.

    CRITICAL: wallet_balance is only ever changed by the balance mutator.
    Callers never assign it directly.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=200)
    wallet_balance: Decimal = Field(
        default=Decimal("0"),
        description="Signed running total of all realized transactions"
    )
    created_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class RecurringDetails(BaseModel):
    """Schedule attached to a recurring template."""

    frequency: Frequency
    next_date: date = Field(
        ...,
        description="First day on which the template is due again"
    )
    status: RecurrenceStatus = RecurrenceStatus.ACTIVE


class Transaction(BaseModel):
    """
    A single income or expense entry.

    A transaction with is_recurring=True is a template: it describes
    future entries and never touches the wallet itself. Everything else
    is a realized transaction whose amount is reflected in the wallet.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    type: TransactionType
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    date: dt.date
    is_recurring: bool = False
    recurring_details: Optional[RecurringDetails] = None
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_recurrence(self) -> 'Transaction':
        """Recurring details are required exactly when the entry recurs."""
        if self.is_recurring and self.recurring_details is None:
            raise ValueError("Recurring transactions need recurring details")
        if not self.is_recurring and self.recurring_details is not None:
            raise ValueError("Recurring details are only allowed on recurring transactions")
        return self

    @property
    def is_realized(self) -> bool:
        return not self.is_recurring

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the wallet if this entry is realized."""
        if self.type == TransactionType.INCOME:
            return self.amount
        return -self.amount

    def apply_patch(self, patch: "TransactionPatch") -> "Transaction":
        """
        Return a new transaction with the patch merged in.

        The merged record is validated again as a whole, so a patch
        that would leave it inconsistent raises a ValidationError.
        """
        data = self.model_dump()
        data.update(patch.changes())
        if not data["is_recurring"]:
            data["recurring_details"] = None
        return Transaction.model_validate(data)


class TransactionPatch(BaseModel):
    """
    Partial update of a transaction.

    Only fields that were explicitly set (and are not None) are applied.
    Identity, owner and timestamps cannot be patched.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    date: Optional[dt.date] = None
    is_recurring: Optional[bool] = None
    recurring_details: Optional[RecurringDetails] = None

    def changes(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


# =============================================================================
# FRIENDS
# =============================================================================

class Friend(BaseModel):
    """
    Someone the user shares expenses with.

    balance > 0: the friend owes the user.
    balance < 0: the user owes the friend.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=200)
    balance: Decimal = Field(default=Decimal("0"))
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator('email')
    @classmethod
    def normalise_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError(f"Not an email address: {v}")
        return v.lower()


class FriendPatch(BaseModel):
    """Editable friend fields. The balance is deliberately absent."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, min_length=3, max_length=200)

    def changes(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None
        }


# =============================================================================
# SPLITS
# =============================================================================

class SplitLine(BaseModel):
    """One participant's share of a split: either a user or a friend."""

    user_id: Optional[UUID] = None
    friend_id: Optional[UUID] = None
    amount: Decimal = Field(..., ge=0, decimal_places=2)
    is_paid: bool = False

    @model_validator(mode='after')
    def validate_participant(self) -> 'SplitLine':
        if (self.user_id is None) == (self.friend_id is None):
            raise ValueError("A split line names exactly one user or one friend")
        return self


class Split(BaseModel):
    """A shared expense divided between the payer and friends."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    paid_by: UUID
    created_by: UUID = Field(
        ...,
        description="User whose friends list the split was recorded against"
    )
    total_amount: Decimal = Field(..., ge=0, decimal_places=2)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=500)
    date: dt.date
    splits: list[SplitLine] = Field(default_factory=list)
    settled: bool = False
    created_at: datetime = Field(default_factory=utcnow)

    def involves(self, user_id: UUID) -> bool:
        """True if the user paid for or takes part in this split."""
        if self.paid_by == user_id or self.created_by == user_id:
            return True
        return any(line.user_id == user_id for line in self.splits)


# =============================================================================
# OPERATION RESULTS
# =============================================================================

class TransactionResult(BaseModel):
    """Outcome of creating or updating a transaction."""

    transaction: Transaction
    wallet_balance: Decimal


class DeletionResult(BaseModel):
    transaction_id: UUID
    wallet_balance: Decimal


class RecurringRunResult(BaseModel):
    """Realized transactions produced by one scheduler run."""

    transactions: list[Transaction] = Field(default_factory=list)
    wallet_balance: Decimal

    @property
    def processed_count(self) -> int:
        return len(self.transactions)


class SettlementResult(BaseModel):
    friend: Friend
    transaction: Transaction
    wallet_balance: Decimal


class MonthlyTotals(BaseModel):
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")


class LedgerStatistics(BaseModel):
    """
    Income/expense totals for a user.

    monthly is keyed "YYYY-M" (month without zero padding).
    """

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    monthly: dict[str, MonthlyTotals] = Field(default_factory=dict)

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expenses
