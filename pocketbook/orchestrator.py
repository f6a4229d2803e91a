"""
Main Orchestrator for Pocketbook

This module ties the ledger components together over one store and one
audit logger and exposes the operations an API layer calls:

1. Transactions (create / update / delete / list / statistics)
2. Recurring templates (process due, pause / resume / stop)
3. Friends (add / list / update / delete)
4. Splits and settlements

DESIGN DECISION: Every operation gets a correlation id here, so all
audit events of one call (including the transaction a split creates)
can be traced together.

Every operation is scoped to one user id. Records belonging to anyone
else behave as if they did not exist.
"""

from datetime import date
from typing import Optional, Union
from uuid import UUID

import structlog

from pocketbook.audit import AuditLogger, create_correlation_id
from pocketbook.config import get_settings
from pocketbook.engine import (
    BalanceMutator,
    FriendDirectory,
    RecurrenceScheduler,
    SettlementHandler,
    SplitEngine,
    TransactionManager,
)
from pocketbook.models.ledger import (
    DeletionResult,
    Friend,
    FriendPatch,
    LedgerStatistics,
    RecurringDetails,
    RecurringRunResult,
    SettlementResult,
    Split,
    Transaction,
    TransactionPatch,
    TransactionResult,
    TransactionType,
    User,
)
from pocketbook.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStore,
    InMemoryAuditStorage,
    InMemoryLedgerStore,
    LedgerStoreInterface,
)


logger = structlog.get_logger(__name__)


class LedgerService:
    """
    Facade over the ledger engine.

    Flow for a wallet-changing call:
    1. Load the records it touches
    2. Guard (funds, balance limit) on in-memory copies
    3. Persist
    4. Audit
    """

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
        mutator: Optional[BalanceMutator] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger or AuditLogger()
        self.transactions = TransactionManager(store, mutator, self._audit_logger)
        self.recurrence = RecurrenceScheduler(store, self.transactions, self._audit_logger)
        self.splits = SplitEngine(store, self.transactions, self._audit_logger)
        self.settlements = SettlementHandler(store, self.transactions, self._audit_logger)
        self.friends = FriendDirectory(store, self._audit_logger)

    # -- users ---------------------------------------------------------------

    async def register_user(self, name: str, email: Optional[str] = None) -> User:
        """
        Create a user with an empty wallet.

        There is no opening balance: money enters the wallet only through
        income transactions.
        """
        user = User(name=name, email=email)
        await self._store.save_user(user)
        logger.info("user_registered", user_id=str(user.id))
        return user

    async def get_user(self, user_id: UUID) -> User:
        return await self.transactions.load_user(user_id)

    # -- transactions --------------------------------------------------------

    async def create_transaction(
        self,
        user_id: UUID,
        transaction_type: TransactionType,
        amount,
        category: str,
        description: str = "",
        transaction_date: Optional[date] = None,
        recurrence: Optional[RecurringDetails] = None,
    ) -> TransactionResult:
        return await self.transactions.create(
            user_id=user_id,
            transaction_type=transaction_type,
            amount=amount,
            category=category,
            description=description,
            transaction_date=transaction_date,
            recurrence=recurrence,
            correlation_id=create_correlation_id(),
        )

    async def update_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
        patch: Union[TransactionPatch, dict],
    ) -> TransactionResult:
        return await self.transactions.update(
            transaction_id,
            user_id,
            patch,
            correlation_id=create_correlation_id(),
        )

    async def delete_transaction(self, transaction_id: UUID, user_id: UUID) -> DeletionResult:
        return await self.transactions.delete(
            transaction_id,
            user_id,
            correlation_id=create_correlation_id(),
        )

    async def list_transactions(
        self,
        user_id: UUID,
        month: Optional[int] = None,
        year: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
    ) -> list[Transaction]:
        return await self.transactions.list_transactions(user_id, month, year, transaction_type)

    async def get_statistics(self, user_id: UUID) -> LedgerStatistics:
        return await self.transactions.statistics(user_id)

    # -- recurring -----------------------------------------------------------

    async def process_recurring(
        self,
        user_id: UUID,
        as_of: Optional[date] = None,
    ) -> RecurringRunResult:
        return await self.recurrence.process_due(
            user_id,
            as_of,
            correlation_id=create_correlation_id(),
        )

    async def pause_recurring(self, transaction_id: UUID, user_id: UUID) -> Transaction:
        return await self.recurrence.pause(transaction_id, user_id, create_correlation_id())

    async def resume_recurring(self, transaction_id: UUID, user_id: UUID) -> Transaction:
        return await self.recurrence.resume(transaction_id, user_id, create_correlation_id())

    async def stop_recurring(self, transaction_id: UUID, user_id: UUID) -> Transaction:
        return await self.recurrence.stop(transaction_id, user_id, create_correlation_id())

    # -- friends -------------------------------------------------------------

    async def add_friend(self, user_id: UUID, name: str, email: str) -> Friend:
        return await self.friends.add(user_id, name, email, create_correlation_id())

    async def list_friends(self, user_id: UUID) -> list[Friend]:
        return await self.friends.list_friends(user_id)

    async def update_friend(
        self,
        friend_id: UUID,
        user_id: UUID,
        patch: Union[FriendPatch, dict],
    ) -> Friend:
        return await self.friends.update(friend_id, user_id, patch, create_correlation_id())

    async def delete_friend(self, friend_id: UUID, user_id: UUID) -> None:
        await self.friends.delete(friend_id, user_id, create_correlation_id())

    # -- splits --------------------------------------------------------------

    async def create_split(
        self,
        user_id: UUID,
        total_amount,
        category: str,
        description: str,
        split_date: date,
        friend_ids: list[UUID],
        paid_by: Optional[UUID] = None,
    ) -> Split:
        return await self.splits.create_split(
            user_id=user_id,
            total_amount=total_amount,
            category=category,
            description=description,
            split_date=split_date,
            friend_ids=friend_ids,
            paid_by=paid_by,
            correlation_id=create_correlation_id(),
        )

    async def list_splits(self, user_id: UUID) -> list[Split]:
        return await self.splits.list_splits(user_id)

    async def settle_up(self, user_id: UUID, friend_id: UUID, amount) -> SettlementResult:
        return await self.settlements.settle(
            user_id,
            friend_id,
            amount,
            correlation_id=create_correlation_id(),
        )


def create_ledger_service(backend: Optional[str] = None) -> LedgerService:
    """
    Factory function to create a ready-to-use ledger service.

    Args:
        backend: "memory" or "google_sheets". Defaults to the
                 configured storage_backend setting.

    Returns:
        A LedgerService wired to the chosen store and audit sink
    """
    backend = backend or get_settings().app.storage_backend

    if backend == "google_sheets":
        sheets_client = GoogleSheetsClient()
        store = GoogleSheetsLedgerStore(sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
    elif backend == "memory":
        store = InMemoryLedgerStore()
        audit_logger = AuditLogger(InMemoryAuditStorage())
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    logger.info("ledger_service_created", backend=backend)
    return LedgerService(store=store, audit_logger=audit_logger)
