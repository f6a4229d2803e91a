"""
Transaction Lifecycle Manager

Creates, updates and deletes transactions while keeping the wallet
balance equal to the signed sum of the user's realized transactions.

THE CENTRAL RULE: a transaction's effect is reversed before it is
re-applied whenever its amount or type changes, and reversed when it is
deleted.

Each operation runs in three phases:
1. Load - read the records involved (not-found faults happen here)
2. Check - compute the new balance on a copy of the user and run the
   funds and limit guards (validation, precondition, invariant faults)
3. Persist - write the records

Nothing is written before phase 3, so a refused operation leaves the
store exactly as it was.

Recurring templates never touch the wallet. Only realized transactions
are applied, reversed, or checked against the balance.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError

from pocketbook.audit import AuditLogger
from pocketbook.engine.balance import BalanceMutator, to_decimal
from pocketbook.engine.errors import (
    InsufficientFundsError,
    LedgerError,
    LedgerValidationError,
    RecordNotFoundError,
)
from pocketbook.models.ledger import (
    DeletionResult,
    LedgerStatistics,
    MonthlyTotals,
    RecurringDetails,
    Transaction,
    TransactionPatch,
    TransactionResult,
    TransactionType,
    User,
)
from pocketbook.services.storage import LedgerStoreInterface


class TransactionManager:
    """Lifecycle of a user's transactions and the wallet they feed."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        mutator: Optional[BalanceMutator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._mutator = mutator or BalanceMutator()
        self._audit_logger = audit_logger

    @property
    def mutator(self) -> BalanceMutator:
        return self._mutator

    async def load_user(self, user_id: UUID) -> User:
        user = await self._store.get_user(user_id)
        if user is None:
            raise RecordNotFoundError("user", user_id)
        return user

    async def _reject(
        self,
        operation: str,
        user_id: UUID,
        error: LedgerError,
        correlation_id: Optional[UUID],
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_rejection(
                event_type=error.audit_event_type,
                user_id=user_id,
                operation=operation,
                error=error,
                correlation_id=correlation_id,
            )

    @staticmethod
    def _check_funds(transaction: Transaction, wallet_balance: Decimal) -> None:
        if (
            transaction.is_realized
            and transaction.type == TransactionType.EXPENSE
            and transaction.amount > wallet_balance
        ):
            raise InsufficientFundsError(transaction.amount, wallet_balance)

    # =========================================================================
    # CREATE
    # =========================================================================

    async def prepare(
        self,
        user_id: UUID,
        transaction_type: TransactionType,
        amount,
        category: str,
        description: str = "",
        transaction_date: Optional[date] = None,
        recurrence: Optional[RecurringDetails] = None,
        enforce_funds: bool = True,
    ) -> tuple[Transaction, User]:
        """
        Build a new transaction and the user's balance after it, without writing.

        Args:
            enforce_funds: When False, an expense may take the wallet below
                zero. Split and settlement entries are created this way.

        Returns:
            (transaction, user copy carrying the new balance)

        Raises:
            LedgerValidationError: amount < 0 or malformed fields
            InsufficientFundsError: realized expense larger than the balance
            UnrealisticBalanceError: resulting balance beyond the limit
            RecordNotFoundError: unknown user
        """
        amount = to_decimal(amount)
        if amount < 0:
            raise LedgerValidationError("Amount must be positive", {"amount": str(amount)})

        try:
            transaction = Transaction(
                user_id=user_id,
                type=transaction_type,
                amount=amount,
                category=category,
                description=description,
                date=transaction_date or date.today(),
                is_recurring=recurrence is not None,
                recurring_details=recurrence,
            )
        except ValidationError as e:
            raise LedgerValidationError(f"Invalid transaction: {e}") from e

        user = await self.load_user(user_id)
        if enforce_funds:
            self._check_funds(transaction, user.wallet_balance)

        working = user.model_copy()
        if transaction.is_realized:
            self._mutator.apply(working, transaction.type, transaction.amount)
        self._mutator.ensure_realistic(working)
        return transaction, working

    async def commit(
        self,
        transaction: Transaction,
        user: User,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionResult:
        """Persist a prepared transaction, then the user's new balance."""
        await self._store.save_transaction(transaction)
        await self._store.save_user(user)

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction=transaction,
                wallet_balance=user.wallet_balance,
                correlation_id=correlation_id,
            )

        return TransactionResult(transaction=transaction, wallet_balance=user.wallet_balance)

    async def create(
        self,
        user_id: UUID,
        transaction_type: TransactionType,
        amount,
        category: str,
        description: str = "",
        transaction_date: Optional[date] = None,
        recurrence: Optional[RecurringDetails] = None,
        enforce_funds: bool = True,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionResult:
        """
        Record a transaction and apply it to the wallet.

        A recurring template (recurrence given) is stored but does not
        move the balance; the scheduler realizes it later.
        """
        try:
            transaction, user = await self.prepare(
                user_id=user_id,
                transaction_type=transaction_type,
                amount=amount,
                category=category,
                description=description,
                transaction_date=transaction_date,
                recurrence=recurrence,
                enforce_funds=enforce_funds,
            )
        except LedgerError as e:
            await self._reject("create_transaction", user_id, e, correlation_id)
            raise

        return await self.commit(transaction, user, correlation_id)

    # =========================================================================
    # UPDATE
    # =========================================================================

    async def update(
        self,
        transaction_id: UUID,
        user_id: UUID,
        patch: Union[TransactionPatch, dict],
        correlation_id: Optional[UUID] = None,
    ) -> TransactionResult:
        """
        Apply a partial update, moving the wallet by the difference.

        Order is reverse -> validate -> apply. If the patched expense does
        not fit in the balance left after reversing the old effect, the
        update is refused and neither the transaction nor the balance
        changes.
        """
        try:
            if isinstance(patch, dict):
                try:
                    patch = TransactionPatch.model_validate(patch)
                except ValidationError as e:
                    raise LedgerValidationError(f"Invalid transaction update: {e}") from e

            existing = await self._store.get_transaction(transaction_id, user_id)
            if existing is None:
                raise RecordNotFoundError("transaction", transaction_id)
            user = await self.load_user(user_id)

            working = user.model_copy()
            if existing.is_realized:
                self._mutator.reverse(working, existing.type, existing.amount)

            try:
                updated = existing.apply_patch(patch)
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid transaction update: {e}") from e

            self._check_funds(updated, working.wallet_balance)
            if updated.is_realized:
                self._mutator.apply(working, updated.type, updated.amount)
            self._mutator.ensure_realistic(working)
        except LedgerError as e:
            await self._reject("update_transaction", user_id, e, correlation_id)
            raise

        await self._store.save_transaction(updated)
        await self._store.save_user(working)

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                transaction=updated,
                changed_fields=sorted(patch.changes()),
                wallet_balance=working.wallet_balance,
                correlation_id=correlation_id,
            )

        return TransactionResult(transaction=updated, wallet_balance=working.wallet_balance)

    # =========================================================================
    # DELETE
    # =========================================================================

    async def delete(
        self,
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> DeletionResult:
        """Reverse a transaction's effect, save the balance, then drop the record."""
        try:
            existing = await self._store.get_transaction(transaction_id, user_id)
            if existing is None:
                raise RecordNotFoundError("transaction", transaction_id)
            user = await self.load_user(user_id)

            working = user.model_copy()
            if existing.is_realized:
                self._mutator.reverse(working, existing.type, existing.amount)
            self._mutator.ensure_realistic(working)
        except LedgerError as e:
            await self._reject("delete_transaction", user_id, e, correlation_id)
            raise

        await self._store.save_user(working)
        await self._store.delete_transaction(transaction_id, user_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                user_id=user_id,
                transaction_id=transaction_id,
                wallet_balance=working.wallet_balance,
                correlation_id=correlation_id,
            )

        return DeletionResult(transaction_id=transaction_id, wallet_balance=working.wallet_balance)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def list_transactions(
        self,
        user_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions, newest first.

        month and year together restrict the listing to one calendar month;
        either one alone is ignored.
        """
        date_from = date_to = None
        if month is not None and year is not None:
            if not 1 <= month <= 12:
                raise LedgerValidationError(f"Invalid month: {month}")
            date_from = date(year, month, 1)
            date_to = date(year, month, calendar.monthrange(year, month)[1])

        transactions = await self._store.list_transactions(
            user_id,
            transaction_type=transaction_type,
            date_from=date_from,
            date_to=date_to,
        )
        transactions.sort(key=lambda t: (t.date, t.created_at), reverse=True)
        return transactions

    async def statistics(self, user_id: UUID) -> LedgerStatistics:
        """Income and expense totals over realized transactions, overall and per month."""
        stats = LedgerStatistics()
        for transaction in await self._store.list_transactions(user_id, is_recurring=False):
            month_key = f"{transaction.date.year}-{transaction.date.month}"
            monthly = stats.monthly.setdefault(month_key, MonthlyTotals())
            if transaction.type == TransactionType.INCOME:
                stats.total_income += transaction.amount
                monthly.income += transaction.amount
            else:
                stats.total_expenses += transaction.amount
                monthly.expenses += transaction.amount
        return stats
