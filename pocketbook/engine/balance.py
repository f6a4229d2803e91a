"""
Balance Mutator

The only code allowed to change a wallet balance.

apply() and reverse() are exact inverses and are pure arithmetic on an
in-memory User; nothing here touches storage. Callers work on a copy
of the stored user, run every apply/reverse their operation needs,
call ensure_realistic() and only then persist. A rejected operation
simply drops its copy.

IMPORTANT: An out-of-range balance is reported, never clamped.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from pocketbook.config import get_settings
from pocketbook.engine.errors import LedgerValidationError, UnrealisticBalanceError
from pocketbook.models.ledger import TransactionType, User


def to_decimal(value) -> Decimal:
    """Coerce a user-supplied amount to a finite Decimal."""
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as e:
            raise LedgerValidationError(f"Not a valid amount: {value!r}") from e
    if not result.is_finite():
        raise LedgerValidationError(f"Not a valid amount: {value!r}")
    return result


def signed_amount(transaction_type: TransactionType, amount: Decimal) -> Decimal:
    """Income adds to the wallet, expense subtracts."""
    if transaction_type == TransactionType.INCOME:
        return amount
    return -amount


class BalanceMutator:
    """Applies and reverses transaction effects, enforcing the balance limit."""

    def __init__(self, limit: Optional[Decimal] = None):
        self._limit = limit if limit is not None else get_settings().ledger.max_wallet_balance

    @property
    def limit(self) -> Decimal:
        return self._limit

    def apply(self, user: User, transaction_type: TransactionType, amount) -> User:
        user.wallet_balance += signed_amount(transaction_type, to_decimal(amount))
        return user

    def reverse(self, user: User, transaction_type: TransactionType, amount) -> User:
        user.wallet_balance -= signed_amount(transaction_type, to_decimal(amount))
        return user

    def apply_delta(self, user: User, delta: Decimal) -> User:
        """Apply an already-signed, accumulated change."""
        user.wallet_balance += delta
        return user

    def is_realistic(self, balance: Decimal) -> bool:
        return abs(balance) <= self._limit

    def ensure_realistic(self, user: User) -> None:
        """
        Raise UnrealisticBalanceError if the user's balance is out of range.

        Must run after the last mutation and before the first persist.
        """
        if not self.is_realistic(user.wallet_balance):
            raise UnrealisticBalanceError(user.wallet_balance, self._limit)
