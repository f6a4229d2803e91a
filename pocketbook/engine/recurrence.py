"""
Recurrence Scheduler

Turns due recurring templates into realized transactions.

A run:
1. Selects the user's ACTIVE templates whose next_date is on or before
   the as-of day, in store order
2. Builds one realized copy of each, dated today, and sums their signed
   amounts into a single balance change
3. Checks the resulting balance against the limit
4. Persists each realized copy and its template with next_date moved one
   period ahead, then persists the user once

A template that is several periods behind is realized once per run, not
once per missed period.

Month and year steps use dateutil's relativedelta, which keeps the day
of month when it exists and otherwise lands on the last day of the
target month (Jan 31 -> Feb 28/29).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta

from pocketbook.audit import AuditLogger
from pocketbook.engine.errors import LedgerError, LedgerValidationError, RecordNotFoundError
from pocketbook.engine.transactions import TransactionManager
from pocketbook.models.ledger import (
    Frequency,
    RecurrenceStatus,
    RecurringRunResult,
    Transaction,
)
from pocketbook.services.storage import LedgerStoreInterface


FREQUENCY_STEPS = {
    Frequency.DAILY: relativedelta(days=1),
    Frequency.WEEKLY: relativedelta(weeks=1),
    Frequency.MONTHLY: relativedelta(months=1),
    Frequency.YEARLY: relativedelta(years=1),
}


def next_occurrence(current: date, frequency: Frequency) -> date:
    """The day one period after current."""
    return current + FREQUENCY_STEPS[Frequency(frequency)]


def is_due(template: Transaction, as_of: date) -> bool:
    details = template.recurring_details
    return (
        template.is_recurring
        and details is not None
        and details.status == RecurrenceStatus.ACTIVE
        and details.next_date <= as_of
    )


class RecurrenceScheduler:
    """Realizes due templates and manages their schedule."""

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

    async def process_due(
        self,
        user_id: UUID,
        as_of: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> RecurringRunResult:
        """
        Realize every due template of the user.

        Raises:
            UnrealisticBalanceError: the combined change would exceed the
                limit; nothing is written in that case
            RecordNotFoundError: unknown user
        """
        today = self._today()
        if as_of is None:
            as_of = today
        elif isinstance(as_of, datetime):
            as_of = as_of.date()

        mutator = self._transactions.mutator
        try:
            user = await self._transactions.load_user(user_id)
            templates = await self._store.list_transactions(user_id, is_recurring=True)
            due = [template for template in templates if is_due(template, as_of)]

            realized: list[Transaction] = []
            balance_change = Decimal("0")
            for template in due:
                realized.append(Transaction(
                    user_id=template.user_id,
                    type=template.type,
                    amount=template.amount,
                    category=template.category,
                    description=template.description,
                    date=today,
                ))
                balance_change += template.signed_amount

            working = user.model_copy()
            mutator.apply_delta(working, balance_change)
            mutator.ensure_realistic(working)
        except LedgerError as e:
            await self._reject("process_recurring", user_id, e, correlation_id)
            raise

        for template, transaction in zip(due, realized):
            await self._store.save_transaction(transaction)
            details = template.recurring_details
            details.next_date = next_occurrence(details.next_date, details.frequency)
            await self._store.save_transaction(template)

        await self._store.save_user(working)

        if self._audit_logger:
            await self._audit_logger.log_recurring_processed(
                user_id=user_id,
                realized=realized,
                balance_change=balance_change,
                wallet_balance=working.wallet_balance,
                correlation_id=correlation_id,
            )

        return RecurringRunResult(transactions=realized, wallet_balance=working.wallet_balance)

    async def list_templates(self, user_id: UUID) -> list[Transaction]:
        """All of the user's recurring templates, soonest next_date first."""
        templates = await self._store.list_transactions(user_id, is_recurring=True)
        templates.sort(key=lambda t: t.recurring_details.next_date)
        return templates

    async def set_status(
        self,
        transaction_id: UUID,
        user_id: UUID,
        status: RecurrenceStatus,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """Change a template's status. Realized transactions have no schedule."""
        try:
            template = await self._store.get_transaction(transaction_id, user_id)
            if template is None:
                raise RecordNotFoundError("transaction", transaction_id)
            if not template.is_recurring:
                raise LedgerValidationError(
                    f"Transaction {transaction_id} is not recurring",
                    {"transaction_id": str(transaction_id)},
                )
        except LedgerError as e:
            await self._reject("set_recurring_status", user_id, e, correlation_id)
            raise

        template.recurring_details.status = RecurrenceStatus(status)
        await self._store.save_transaction(template)

        if self._audit_logger:
            await self._audit_logger.log_recurring_status_changed(
                template=template,
                correlation_id=correlation_id,
            )
        return template

    async def pause(
        self,
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        return await self.set_status(transaction_id, user_id, RecurrenceStatus.PAUSED, correlation_id)

    async def resume(
        self,
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        return await self.set_status(transaction_id, user_id, RecurrenceStatus.ACTIVE, correlation_id)

    async def stop(
        self,
        transaction_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        return await self.set_status(transaction_id, user_id, RecurrenceStatus.DELETED, correlation_id)
