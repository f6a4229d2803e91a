"""Shared fixtures: an in-memory ledger and a user with some money."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from pocketbook.audit import AuditLogger
from pocketbook.models.ledger import TransactionType
from pocketbook.orchestrator import LedgerService
from pocketbook.services.storage import InMemoryAuditStorage, InMemoryLedgerStore


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def service(store, audit_storage):
    return LedgerService(store=store, audit_logger=AuditLogger(audit_storage))


@pytest_asyncio.fixture
async def user(service):
    return await service.register_user("Asha", "asha@example.com")


@pytest_asyncio.fixture
async def funded_user(service, user):
    """User whose wallet holds 100.00 from a single income."""
    await service.create_transaction(
        user.id,
        TransactionType.INCOME,
        Decimal("100.00"),
        "Salary",
        transaction_date=date(2024, 1, 1),
    )
    return await service.get_user(user.id)


@pytest.fixture
def ledger_total(store):
    """Signed sum of a user's realized transactions, straight from the store."""
    async def _total(user_id):
        transactions = await store.list_transactions(user_id, is_recurring=False)
        return sum((t.signed_amount for t in transactions), Decimal("0"))
    return _total
