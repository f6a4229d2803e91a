"""
Data Models Package

This package contains all Pydantic models used by Pocketbook.
Every record the ledger stores must conform to these schemas.
"""

from pocketbook.models.ledger import (
    DeletionResult,
    Frequency,
    Friend,
    FriendPatch,
    LedgerStatistics,
    MonthlyTotals,
    RecurrenceStatus,
    RecurringDetails,
    RecurringRunResult,
    SettlementResult,
    Split,
    SplitLine,
    Transaction,
    TransactionPatch,
    TransactionResult,
    TransactionType,
    User,
)
from pocketbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DeletionResult",
    "Frequency",
    "Friend",
    "FriendPatch",
    "LedgerStatistics",
    "MonthlyTotals",
    "RecurrenceStatus",
    "RecurringDetails",
    "RecurringRunResult",
    "SettlementResult",
    "Split",
    "SplitLine",
    "Transaction",
    "TransactionPatch",
    "TransactionResult",
    "TransactionType",
    "User",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
