"""
Settlement Handler

Records a manual payment between the user and a friend outside the
split flow.

The friend's balance drops by the settled amount. The offsetting entry
is an income when the friend still owes the user afterwards and an
expense otherwise, for the absolute amount, in the "Settlement"
category. That entry is a realized transaction and moves the wallet
like any other; the insufficient-funds block is not applied to it.
"""

from datetime import date
from typing import Callable, Optional
from uuid import UUID

from pocketbook.audit import AuditLogger
from pocketbook.config import get_settings
from pocketbook.engine.balance import to_decimal
from pocketbook.engine.errors import LedgerError, RecordNotFoundError
from pocketbook.engine.transactions import TransactionManager
from pocketbook.models.ledger import SettlementResult, TransactionType
from pocketbook.services.storage import LedgerStoreInterface


class SettlementHandler:
    """Settles up with a friend."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        transactions: TransactionManager,
        audit_logger: Optional[AuditLogger] = None,
        today: Callable[[], date] = date.today,
    ):
        self._store = store
        self._transactions = transactions
        self._audit_logger = audit_logger
        self._today = today
        self._settings = get_settings().ledger

    async def settle(
        self,
        user_id: UUID,
        friend_id: UUID,
        amount,
        correlation_id: Optional[UUID] = None,
    ) -> SettlementResult:
        """
        Apply a payment of amount against the friend's balance.

        The sign of amount is not checked: a negative amount increases
        what the friend owes.

        Raises:
            RecordNotFoundError: friend missing or not the user's
            UnrealisticBalanceError: the settlement entry would push the
                wallet past the limit
        """
        try:
            amount = to_decimal(amount)
            friend = await self._store.get_friend(friend_id, user_id)
            if friend is None:
                raise RecordNotFoundError("friend", friend_id)

            friend.balance -= amount
            transaction_type = (
                TransactionType.INCOME if friend.balance > 0 else TransactionType.EXPENSE
            )
            transaction, user = await self._transactions.prepare(
                user_id=user_id,
                transaction_type=transaction_type,
                amount=abs(amount),
                category=self._settings.settlement_category,
                description=f"Settled with {friend.name}",
                transaction_date=self._today(),
                enforce_funds=False,
            )
        except LedgerError as e:
            if self._audit_logger:
                await self._audit_logger.log_rejection(
                    event_type=e.audit_event_type,
                    user_id=user_id,
                    operation="settle_up",
                    error=e,
                    correlation_id=correlation_id,
                )
            raise

        await self._store.save_friend(friend)
        result = await self._transactions.commit(transaction, user, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_settlement(
                friend=friend,
                amount=amount,
                transaction=result.transaction,
                correlation_id=correlation_id,
            )

        return SettlementResult(
            friend=friend,
            transaction=result.transaction,
            wallet_balance=result.wallet_balance,
        )
