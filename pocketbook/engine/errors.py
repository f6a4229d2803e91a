"""
Ledger Fault Taxonomy

Every refusal of the ledger engine is one of four kinds:

VALIDATION FAULT - the input itself is malformed or out of range.
PRECONDITION FAULT - the input is fine but the wallet cannot cover it.
INVARIANT FAULT - applying the operation would leave an unrealistic balance.
NOT-FOUND FAULT - the record is missing or belongs to another user.

All four are raised before the operation's first write, so a caller that
catches one knows nothing was persisted. The API layer maps them to
user-facing messages.
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pocketbook.models.audit import AuditEventType


class LedgerError(Exception):
    """Base exception for ledger faults."""

    audit_event_type: AuditEventType = AuditEventType.VALIDATION_FAILED

    def __init__(self, message: str, details: Optional[dict] = None):
        self.details = details or {}
        super().__init__(message)


class LedgerValidationError(LedgerError):
    """Input rejected before any mutation."""
    pass


class DuplicateFriendError(LedgerValidationError):
    """A friend with this email already exists for the user."""

    def __init__(self, email: str):
        super().__init__(f"Friend already exists: {email}", {"email": email})


class InsufficientFundsError(LedgerError):
    """An expense is larger than the wallet balance it would draw from."""

    audit_event_type = AuditEventType.INSUFFICIENT_FUNDS

    def __init__(self, amount: Decimal, wallet_balance: Decimal):
        self.amount = amount
        self.wallet_balance = wallet_balance
        super().__init__(
            f"Insufficient wallet balance: {amount} requested, {wallet_balance} available",
            {"amount": str(amount), "wallet_balance": str(wallet_balance)},
        )


class UnrealisticBalanceError(LedgerError):
    """The resulting wallet balance would exceed the configured limit."""

    audit_event_type = AuditEventType.UNREALISTIC_BALANCE

    def __init__(self, wallet_balance: Decimal, limit: Decimal):
        self.wallet_balance = wallet_balance
        self.limit = limit
        super().__init__(
            f"Unrealistic wallet balance detected: {wallet_balance} (limit {limit})",
            {"wallet_balance": str(wallet_balance), "limit": str(limit)},
        )


class RecordNotFoundError(LedgerError):
    """
    Record is absent or not owned by the caller.

    The two cases are deliberately indistinguishable.
    """

    audit_event_type = AuditEventType.NOT_FOUND

    def __init__(self, entity_type: str, entity_id: UUID):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type.capitalize()} not found: {entity_id}",
            {"entity_type": entity_type, "entity_id": str(entity_id)},
        )
