"""
Tests for the storage backends.

The Google Sheets store runs against an in-process stand-in for the
worksheets, so no API calls are made.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from pocketbook.models.ledger import (
    Frequency,
    Friend,
    RecurrenceStatus,
    RecurringDetails,
    Split,
    SplitLine,
    Transaction,
    TransactionType,
    User,
)
from pocketbook.orchestrator import LedgerService, create_ledger_service
from pocketbook.services.storage import GoogleSheetsLedgerStore, InMemoryLedgerStore
from pocketbook.services.storage.google_sheets import (
    AUDIT_COLUMNS,
    FRIEND_COLUMNS,
    SPLIT_COLUMNS,
    TRANSACTION_COLUMNS,
    USER_COLUMNS,
    row_to_split,
    row_to_transaction,
    split_to_row,
    transaction_to_row,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the ledger store."""

    def __init__(self, title, columns):
        self.title = title
        self.rows = [list(columns)]

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, row, value_input_option=None):
        self.rows.append([str(cell) for cell in row])

    def update(self, values, range_name):
        index = int(range_name[1:]) - 1
        self.rows[index] = [str(cell) for cell in values[0]]

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:

    def __init__(self):
        self.sheets = {
            "users": FakeWorksheet("Users", USER_COLUMNS),
            "transactions": FakeWorksheet("Transactions", TRANSACTION_COLUMNS),
            "friends": FakeWorksheet("Friends", FRIEND_COLUMNS),
            "splits": FakeWorksheet("Splits", SPLIT_COLUMNS),
            "audit": FakeWorksheet("AuditLog", AUDIT_COLUMNS),
        }

    def users_sheet(self):
        return self.sheets["users"]

    def transactions_sheet(self):
        return self.sheets["transactions"]

    def friends_sheet(self):
        return self.sheets["friends"]

    def splits_sheet(self):
        return self.sheets["splits"]

    def audit_sheet(self):
        return self.sheets["audit"]


class TestRowConversion:

    def test_recurring_transaction_row(self):
        template = Transaction(
            user_id=uuid4(),
            type=TransactionType.EXPENSE,
            amount=Decimal("12.50"),
            category="Gym",
            date=date(2024, 1, 31),
            is_recurring=True,
            recurring_details=RecurringDetails(
                frequency=Frequency.MONTHLY,
                next_date=date(2024, 2, 29),
                status=RecurrenceStatus.PAUSED,
            ),
        )

        row = transaction_to_row(template)
        assert len(row) == len(TRANSACTION_COLUMNS)
        assert row_to_transaction(row) == template

    def test_split_lines_survive_json(self):
        user_id, friend_id = uuid4(), uuid4()
        split = Split(
            paid_by=user_id,
            created_by=user_id,
            total_amount=Decimal("100.00"),
            category="Food",
            description="Lunch",
            date=date(2024, 3, 9),
            splits=[
                SplitLine(friend_id=friend_id, amount=Decimal("50.00")),
                SplitLine(user_id=user_id, amount=Decimal("50.00"), is_paid=True),
            ],
        )

        assert row_to_split(split_to_row(split)) == split


class TestGoogleSheetsLedgerStore:

    @pytest.mark.asyncio
    async def test_save_replaces_existing_row(self):
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        user = User(name="Asha")

        await store.save_user(user)
        user.wallet_balance = Decimal("42.00")
        await store.save_user(user)

        assert len(client.sheets["users"].rows) == 2
        assert (await store.get_user(user.id)).wallet_balance == Decimal("42.00")

    @pytest.mark.asyncio
    async def test_records_are_scoped_to_owner(self):
        store = GoogleSheetsLedgerStore(FakeSheetsClient())
        owner, intruder = uuid4(), uuid4()
        friend = Friend(user_id=owner, name="Ravi", email="ravi@example.com")
        await store.save_friend(friend)

        assert await store.get_friend(friend.id, intruder) is None
        assert await store.delete_friend(friend.id, intruder) is False
        assert (await store.find_friend_by_email(owner, "RAVI@example.com")).id == friend.id

    @pytest.mark.asyncio
    async def test_malformed_rows_are_skipped(self):
        client = FakeSheetsClient()
        store = GoogleSheetsLedgerStore(client)
        user_id = uuid4()
        client.sheets["transactions"].rows.append(["not-a-uuid", str(user_id), "income"])

        assert await store.list_transactions(user_id) == []

    @pytest.mark.asyncio
    async def test_ledger_flow_over_sheets(self):
        service = LedgerService(store=GoogleSheetsLedgerStore(FakeSheetsClient()))
        user = await service.register_user("Asha")
        ravi = await service.add_friend(user.id, "Ravi", "ravi@example.com")

        await service.create_transaction(user.id, TransactionType.INCOME, Decimal("200.00"), "Salary")
        expense = await service.create_transaction(user.id, TransactionType.EXPENSE, Decimal("50.00"), "Food")
        await service.create_split(user.id, Decimal("40.00"), "Food", "Pizza", date(2024, 3, 9), [ravi.id])
        await service.delete_transaction(expense.transaction.id, user.id)

        assert (await service.get_user(user.id)).wallet_balance == Decimal("160.00")
        assert (await service.list_friends(user.id))[0].balance == Decimal("20.00")
        assert len(await service.list_splits(user.id)) == 1


class TestServiceFactory:

    def test_memory_backend(self):
        service = create_ledger_service("memory")
        assert isinstance(service._store, InMemoryLedgerStore)

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown storage backend"):
            create_ledger_service("postgres")
