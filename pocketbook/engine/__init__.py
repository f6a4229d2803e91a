"""Ledger consistency engine."""

from pocketbook.engine.balance import BalanceMutator, signed_amount, to_decimal
from pocketbook.engine.errors import (
    DuplicateFriendError,
    InsufficientFundsError,
    LedgerError,
    LedgerValidationError,
    RecordNotFoundError,
    UnrealisticBalanceError,
)
from pocketbook.engine.friends import FriendDirectory
from pocketbook.engine.recurrence import RecurrenceScheduler, next_occurrence
from pocketbook.engine.settlement import SettlementHandler
from pocketbook.engine.splits import SplitEngine, share_amounts
from pocketbook.engine.transactions import TransactionManager

__all__ = [
    "BalanceMutator",
    "DuplicateFriendError",
    "FriendDirectory",
    "InsufficientFundsError",
    "LedgerError",
    "LedgerValidationError",
    "RecordNotFoundError",
    "RecurrenceScheduler",
    "SettlementHandler",
    "SplitEngine",
    "TransactionManager",
    "UnrealisticBalanceError",
    "next_occurrence",
    "share_amounts",
    "signed_amount",
    "to_decimal",
]
