"""Tests for splitting shared expenses with friends."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio

from pocketbook.engine import (
    BalanceMutator,
    LedgerValidationError,
    UnrealisticBalanceError,
    share_amounts,
)
from pocketbook.models.audit import AuditEventType, AuditSeverity
from pocketbook.models.ledger import TransactionType
from pocketbook.orchestrator import LedgerService


DINNER = date(2024, 3, 9)


@pytest_asyncio.fixture
async def friends(service, funded_user):
    ravi = await service.add_friend(funded_user.id, "Ravi", "ravi@example.com")
    mei = await service.add_friend(funded_user.id, "Mei", "mei@example.com")
    return ravi, mei


async def friend_balance(store, friend, user_id):
    return (await store.get_friend(friend.id, user_id)).balance


class TestShareAmounts:

    def test_even_split(self):
        assert share_amounts(Decimal("300"), 2) == (Decimal("100.00"), Decimal("100.00"))

    def test_remainder_stays_with_requester(self):
        per_person, own_share = share_amounts(Decimal("100"), 2)
        assert per_person == Decimal("33.33")
        assert own_share == Decimal("33.34")
        assert per_person * 2 + own_share == Decimal("100")

    def test_zero_total(self):
        assert share_amounts(Decimal("0"), 3) == (Decimal("0"), Decimal("0"))


class TestCreateSplit:

    @pytest.mark.asyncio
    async def test_requester_pays(self, service, store, funded_user, friends, ledger_total):
        ravi, mei = friends

        split = await service.create_split(
            funded_user.id, Decimal("300.00"), "Food", "Dinner", DINNER, [ravi.id, mei.id]
        )

        assert split.paid_by == funded_user.id
        assert [line.amount for line in split.splits] == [Decimal("100.00")] * 3
        assert split.splits[-1].user_id == funded_user.id
        assert split.splits[-1].is_paid is True
        assert await friend_balance(store, ravi, funded_user.id) == Decimal("100.00")
        assert await friend_balance(store, mei, funded_user.id) == Decimal("100.00")

        [expense] = await service.list_transactions(funded_user.id, transaction_type=TransactionType.EXPENSE)
        assert expense.amount == Decimal("300.00")
        assert expense.description == "Split: Dinner"
        assert expense.date == DINNER

        # The payer's expense is not blocked by the wallet being short
        wallet = (await service.get_user(funded_user.id)).wallet_balance
        assert wallet == Decimal("-200.00")
        assert wallet == await ledger_total(funded_user.id)

    @pytest.mark.asyncio
    async def test_someone_else_paid(self, service, store, funded_user, friends):
        ravi, mei = friends

        split = await service.create_split(
            funded_user.id, Decimal("90.00"), "Travel", "Taxi", DINNER, [ravi.id, mei.id],
            paid_by=ravi.id,
        )

        assert split.splits[-1].is_paid is False
        assert await friend_balance(store, ravi, funded_user.id) == Decimal("-30.00")
        assert await friend_balance(store, mei, funded_user.id) == Decimal("-30.00")
        assert (await service.get_user(funded_user.id)).wallet_balance == Decimal("100.00")
        assert len(await service.list_transactions(funded_user.id)) == 1

    @pytest.mark.asyncio
    async def test_uneven_total_rounds_down_for_friends(self, service, store, funded_user, friends):
        ravi, mei = friends

        split = await service.create_split(
            funded_user.id, Decimal("100.00"), "Food", "Lunch", DINNER, [ravi.id, mei.id]
        )

        assert [line.amount for line in split.splits] == [
            Decimal("33.33"), Decimal("33.33"), Decimal("33.34"),
        ]
        assert sum(line.amount for line in split.splits) == split.total_amount
        assert await friend_balance(store, mei, funded_user.id) == Decimal("33.33")

    @pytest.mark.asyncio
    async def test_unknown_and_foreign_friends_are_skipped(
        self, service, store, funded_user, friends, audit_storage
    ):
        ravi, _ = friends
        stranger = await service.register_user("Mallory")
        foreign = await service.add_friend(stranger.id, "Ravi", "ravi@example.com")
        missing = uuid4()

        split = await service.create_split(
            funded_user.id, Decimal("120.00"), "Food", "Brunch", DINNER, [ravi.id, foreign.id, missing]
        )

        assert len(split.splits) == 4
        assert await friend_balance(store, ravi, funded_user.id) == Decimal("30.00")
        assert await friend_balance(store, foreign, stranger.id) == Decimal("0")

        event = next(e for e in audit_storage.events if e.event_type == AuditEventType.SPLIT_CREATED)
        assert event.severity == AuditSeverity.WARNING
        assert event.details["skipped_friends"] == [str(foreign.id), str(missing)]

    @pytest.mark.asyncio
    async def test_split_and_expense_share_a_correlation_id(self, service, funded_user, friends, audit_storage):
        ravi, _ = friends

        await service.create_split(funded_user.id, Decimal("20.00"), "Food", "Snacks", DINNER, [ravi.id])

        created = next(e for e in audit_storage.events if e.event_type == AuditEventType.TRANSACTION_CREATED
                       and e.details["amount"] == "20.00")
        split_event = audit_storage.events[-1]
        assert split_event.event_type == AuditEventType.SPLIT_CREATED
        assert created.correlation_id == split_event.correlation_id

    @pytest.mark.asyncio
    async def test_needs_at_least_one_friend(self, service, store, funded_user):
        with pytest.raises(LedgerValidationError, match="at least one friend"):
            await service.create_split(funded_user.id, Decimal("10.00"), "Food", "Solo", DINNER, [])
        assert await store.list_splits(funded_user.id) == []

    @pytest.mark.asyncio
    async def test_negative_total_is_refused(self, service, store, funded_user, friends):
        ravi, _ = friends
        with pytest.raises(LedgerValidationError):
            await service.create_split(funded_user.id, Decimal("-10.00"), "Food", "Oops", DINNER, [ravi.id])
        assert await store.list_splits(funded_user.id) == []

    @pytest.mark.asyncio
    async def test_sub_cent_total_is_refused(self, service, store, funded_user, friends, audit_storage):
        ravi, _ = friends

        with pytest.raises(LedgerValidationError, match="Invalid split"):
            await service.create_split(
                funded_user.id, Decimal("10.005"), "Food", "Odd", DINNER, [ravi.id]
            )

        assert await store.list_splits(funded_user.id) == []
        assert await friend_balance(store, ravi, funded_user.id) == Decimal("0")
        event = audit_storage.events[-1]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["operation"] == "create_split"

    @pytest.mark.asyncio
    async def test_limit_breach_writes_nothing(self, store):
        service = LedgerService(store=store, mutator=BalanceMutator(limit=Decimal("1000")))
        user = await service.register_user("Asha")
        ravi = await service.add_friend(user.id, "Ravi", "ravi@example.com")

        with pytest.raises(UnrealisticBalanceError):
            await service.create_split(user.id, Decimal("2000.00"), "Travel", "Flights", DINNER, [ravi.id])

        assert await store.list_splits(user.id) == []
        assert await friend_balance(store, ravi, user.id) == Decimal("0")
        assert (await store.get_user(user.id)).wallet_balance == Decimal("0")


class TestListSplits:

    @pytest.mark.asyncio
    async def test_newest_first_and_scoped_to_user(self, service, funded_user, friends):
        ravi, _ = friends
        older = await service.create_split(
            funded_user.id, Decimal("10.00"), "Food", "Tea", date(2024, 3, 1), [ravi.id]
        )
        newer = await service.create_split(
            funded_user.id, Decimal("10.00"), "Food", "Cake", date(2024, 3, 2), [ravi.id]
        )
        stranger = await service.register_user("Mallory")

        assert [s.id for s in await service.list_splits(funded_user.id)] == [newer.id, older.id]
        assert await service.list_splits(stranger.id) == []
