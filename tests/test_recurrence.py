"""Tests for recurring templates and the scheduler that realizes them."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from pocketbook.audit import AuditLogger
from pocketbook.engine import (
    BalanceMutator,
    LedgerValidationError,
    RecordNotFoundError,
    RecurrenceScheduler,
    UnrealisticBalanceError,
    next_occurrence,
)
from pocketbook.models.audit import AuditEventType
from pocketbook.models.ledger import (
    Frequency,
    RecurrenceStatus,
    RecurringDetails,
    TransactionType,
)
from pocketbook.orchestrator import LedgerService


TODAY = date(2024, 3, 15)


@pytest.fixture
def scheduler(store, service, audit_storage):
    return RecurrenceScheduler(
        store,
        service.transactions,
        AuditLogger(audit_storage),
        today=lambda: TODAY,
    )


async def add_template(service, user_id, amount, next_date, frequency=Frequency.MONTHLY,
                       transaction_type=TransactionType.EXPENSE, category="Rent"):
    details = RecurringDetails(frequency=frequency, next_date=next_date)
    result = await service.create_transaction(
        user_id, transaction_type, Decimal(amount), category, recurrence=details
    )
    return result.transaction


class TestNextOccurrence:

    @pytest.mark.parametrize("frequency, current, expected", [
        (Frequency.DAILY, date(2024, 2, 28), date(2024, 2, 29)),
        (Frequency.WEEKLY, date(2024, 12, 28), date(2025, 1, 4)),
        (Frequency.MONTHLY, date(2024, 3, 15), date(2024, 4, 15)),
        (Frequency.MONTHLY, date(2023, 1, 31), date(2023, 2, 28)),
        (Frequency.MONTHLY, date(2024, 1, 31), date(2024, 2, 29)),
        (Frequency.YEARLY, date(2024, 2, 29), date(2025, 2, 28)),
    ])
    def test_steps(self, frequency, current, expected):
        assert next_occurrence(current, frequency) == expected

    def test_accepts_frequency_strings(self):
        assert next_occurrence(date(2024, 1, 1), "weekly") == date(2024, 1, 8)


class TestProcessDue:

    @pytest.mark.asyncio
    async def test_monthly_template_due_today(self, scheduler, service, funded_user, store, ledger_total):
        template = await add_template(service, funded_user.id, "30.00", TODAY)

        result = await scheduler.process_due(funded_user.id)

        assert result.processed_count == 1
        [realized] = result.transactions
        assert realized.type == TransactionType.EXPENSE
        assert realized.amount == Decimal("30.00")
        assert realized.category == "Rent"
        assert realized.date == TODAY
        assert not realized.is_recurring
        assert result.wallet_balance == Decimal("70.00")

        stored = await store.get_transaction(template.id, funded_user.id)
        assert stored.recurring_details.next_date == date(2024, 4, 15)
        assert await ledger_total(funded_user.id) == Decimal("70.00")

    @pytest.mark.asyncio
    async def test_second_run_same_day_does_nothing(self, scheduler, service, funded_user):
        await add_template(service, funded_user.id, "30.00", TODAY)

        await scheduler.process_due(funded_user.id)
        result = await scheduler.process_due(funded_user.id)

        assert result.processed_count == 0
        assert result.wallet_balance == Decimal("70.00")

    @pytest.mark.asyncio
    async def test_future_templates_are_not_due(self, scheduler, service, funded_user):
        await add_template(service, funded_user.id, "30.00", date(2024, 3, 16))

        result = await scheduler.process_due(funded_user.id)

        assert result.processed_count == 0

    @pytest.mark.asyncio
    async def test_as_of_is_truncated_to_a_day(self, scheduler, service, funded_user):
        await add_template(service, funded_user.id, "30.00", date(2024, 3, 10))

        result = await scheduler.process_due(funded_user.id, as_of=datetime(2024, 3, 10, 23, 59))

        assert result.processed_count == 1
        assert result.transactions[0].date == TODAY

    @pytest.mark.asyncio
    async def test_overdue_template_is_realized_once_per_run(self, scheduler, service, funded_user, store):
        template = await add_template(service, funded_user.id, "10.00", date(2024, 1, 15))

        result = await scheduler.process_due(funded_user.id)

        assert result.processed_count == 1
        stored = await store.get_transaction(template.id, funded_user.id)
        assert stored.recurring_details.next_date == date(2024, 2, 15)

    @pytest.mark.asyncio
    async def test_expenses_may_overdraw(self, scheduler, service, funded_user, ledger_total):
        await add_template(service, funded_user.id, "250.00", TODAY)

        result = await scheduler.process_due(funded_user.id)

        assert result.wallet_balance == Decimal("-150.00")
        assert await ledger_total(funded_user.id) == Decimal("-150.00")

    @pytest.mark.asyncio
    async def test_delta_is_summed_across_templates(self, scheduler, service, funded_user):
        await add_template(service, funded_user.id, "1000.00", TODAY,
                           transaction_type=TransactionType.INCOME, category="Salary")
        await add_template(service, funded_user.id, "400.00", date(2024, 3, 1), Frequency.WEEKLY)

        result = await scheduler.process_due(funded_user.id)

        assert result.processed_count == 2
        assert result.wallet_balance == Decimal("700.00")
        assert (await service.get_user(funded_user.id)).wallet_balance == Decimal("700.00")

    @pytest.mark.asyncio
    async def test_limit_breach_writes_nothing(self, store):
        service = LedgerService(store=store, mutator=BalanceMutator(limit=Decimal("1000")))
        scheduler = RecurrenceScheduler(store, service.transactions, today=lambda: TODAY)
        user = await service.register_user("Asha")
        first = await add_template(service, user.id, "600.00", TODAY, transaction_type=TransactionType.INCOME)
        second = await add_template(service, user.id, "600.00", TODAY, transaction_type=TransactionType.INCOME)

        with pytest.raises(UnrealisticBalanceError):
            await scheduler.process_due(user.id)

        assert await store.list_transactions(user.id, is_recurring=False) == []
        for template in (first, second):
            stored = await store.get_transaction(template.id, user.id)
            assert stored.recurring_details.next_date == TODAY
        assert (await store.get_user(user.id)).wallet_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_run_is_audited(self, scheduler, service, funded_user, audit_storage):
        await add_template(service, funded_user.id, "30.00", TODAY)

        await scheduler.process_due(funded_user.id)

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.RECURRING_PROCESSED
        assert event.details["balance_change"] == "-30.00"


class TestTemplateStatus:

    @pytest.mark.asyncio
    async def test_paused_templates_are_skipped_until_resumed(self, scheduler, service, funded_user):
        template = await add_template(service, funded_user.id, "30.00", TODAY)

        paused = await service.pause_recurring(template.id, funded_user.id)
        assert paused.recurring_details.status == RecurrenceStatus.PAUSED
        assert (await scheduler.process_due(funded_user.id)).processed_count == 0

        await service.resume_recurring(template.id, funded_user.id)
        assert (await scheduler.process_due(funded_user.id)).processed_count == 1

    @pytest.mark.asyncio
    async def test_stopped_templates_are_never_realized(self, scheduler, service, funded_user):
        template = await add_template(service, funded_user.id, "30.00", TODAY)

        stopped = await service.stop_recurring(template.id, funded_user.id)

        assert stopped.recurring_details.status == RecurrenceStatus.DELETED
        assert (await scheduler.process_due(funded_user.id)).processed_count == 0

    @pytest.mark.asyncio
    async def test_realized_transactions_have_no_schedule(self, service, funded_user, audit_storage):
        [income] = await service.list_transactions(funded_user.id)

        with pytest.raises(LedgerValidationError):
            await service.pause_recurring(income.id, funded_user.id)

        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["operation"] == "set_recurring_status"

    @pytest.mark.asyncio
    async def test_foreign_template_is_not_found(self, service, store, funded_user, audit_storage):
        template = await add_template(service, funded_user.id, "30.00", TODAY)
        intruder = await service.register_user("Mallory")

        with pytest.raises(RecordNotFoundError):
            await service.stop_recurring(template.id, intruder.id)

        assert audit_storage.events[-1].event_type == AuditEventType.NOT_FOUND
        stored = await store.get_transaction(template.id, funded_user.id)
        assert stored.recurring_details.status == RecurrenceStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_list_templates_soonest_first(self, scheduler, service, funded_user):
        later = await add_template(service, funded_user.id, "5.00", date(2024, 6, 1))
        sooner = await add_template(service, funded_user.id, "5.00", date(2024, 4, 1))

        templates = await scheduler.list_templates(funded_user.id)

        assert [t.id for t in templates] == [sooner.id, later.id]
