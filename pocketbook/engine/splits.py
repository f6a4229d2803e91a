"""
Split Engine

Divides a shared expense equally between the requesting user and a list
of friends, records the split and moves each friend's running balance.

Shares are whole cents. Each friend's share is the equal share rounded
down to the cent; whatever is left over stays on the requester's own
line, so the lines always add up to the total exactly.

When the requester paid, each friend now owes them their share and the
requester's wallet pays the full total (an expense entry prefixed
"Split: "). When someone else paid, the requester owes each friend.

Friend ids that are unknown or belong to another user are skipped
without failing the split.
"""

from datetime import date
from decimal import ROUND_DOWN, Decimal
from typing import Optional
from uuid import UUID

from pydantic import ValidationError

from pocketbook.audit import AuditLogger
from pocketbook.config import get_settings
from pocketbook.engine.balance import to_decimal
from pocketbook.engine.errors import LedgerError, LedgerValidationError
from pocketbook.engine.transactions import TransactionManager
from pocketbook.models.ledger import Split, SplitLine, TransactionType
from pocketbook.services.storage import LedgerStoreInterface


CENT = Decimal("0.01")


def share_amounts(total: Decimal, friend_count: int) -> tuple[Decimal, Decimal]:
    """
    Split total between friend_count friends and the requester.

    Returns:
        (per-friend share, requester's share)
    """
    participants = friend_count + 1
    per_person = (total / participants).quantize(CENT, rounding=ROUND_DOWN)
    return per_person, total - per_person * friend_count


class SplitEngine:
    """Creates splits and keeps friend balances in step with them."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        transactions: TransactionManager,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._transactions = transactions
        self._audit_logger = audit_logger
        self._settings = get_settings().ledger

    async def create_split(
        self,
        user_id: UUID,
        total_amount,
        category: str,
        description: str,
        split_date: date,
        friend_ids: list[UUID],
        paid_by: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Split:
        """
        Record a shared expense.

        Args:
            user_id: The requesting user; friends are looked up in their list
            paid_by: Who paid; defaults to the requester

        Raises:
            LedgerValidationError: negative total, no friends, malformed fields
            UnrealisticBalanceError: the payer's expense would push the
                wallet past the limit
        """
        paid_by = paid_by or user_id
        requester_paid = paid_by == user_id

        try:
            total = to_decimal(total_amount)
            if total < 0:
                raise LedgerValidationError("Amount must be positive", {"amount": str(total)})
            if not friend_ids:
                raise LedgerValidationError("Must split with at least one friend")

            per_person, own_share = share_amounts(total, len(friend_ids))
            try:
                lines = [SplitLine(friend_id=friend_id, amount=per_person) for friend_id in friend_ids]
                lines.append(SplitLine(user_id=user_id, amount=own_share, is_paid=requester_paid))
                split = Split(
                    paid_by=paid_by,
                    created_by=user_id,
                    total_amount=total,
                    category=category,
                    description=description,
                    date=split_date,
                    splits=lines,
                )
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid split: {e}") from e

            payer_expense = None
            if requester_paid:
                # The wallet guard runs before the split is written
                payer_expense = await self._transactions.prepare(
                    user_id=user_id,
                    transaction_type=TransactionType.EXPENSE,
                    amount=total,
                    category=category,
                    description=f"{self._settings.split_description_prefix}{description}",
                    transaction_date=split_date,
                    enforce_funds=False,
                )
            else:
                await self._transactions.load_user(user_id)
        except LedgerError as e:
            if self._audit_logger:
                await self._audit_logger.log_rejection(
                    event_type=e.audit_event_type,
                    user_id=user_id,
                    operation="create_split",
                    error=e,
                    correlation_id=correlation_id,
                )
            raise

        await self._store.save_split(split)

        updated: list[UUID] = []
        skipped: list[UUID] = []
        for friend_id in friend_ids:
            friend = await self._store.get_friend(friend_id, user_id)
            if friend is None:
                skipped.append(friend_id)
                continue
            if requester_paid:
                friend.balance += per_person
            else:
                friend.balance -= per_person
            await self._store.save_friend(friend)
            updated.append(friend_id)

        if payer_expense is not None:
            transaction, user = payer_expense
            await self._transactions.commit(transaction, user, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_split_created(
                user_id=user_id,
                split=split,
                per_person=per_person,
                updated_friends=updated,
                skipped_friends=skipped,
                correlation_id=correlation_id,
            )

        return split

    async def list_splits(self, user_id: UUID) -> list[Split]:
        """Splits the user paid for or takes part in, newest first."""
        splits = await self._store.list_splits(user_id)
        splits.sort(key=lambda s: (s.date, s.created_at), reverse=True)
        return splits
