"""
In-Memory Storage Implementation

Keeps every record in process-local dictionaries. Used by the test
suite and when no external backend is configured.

Records are deep-copied on the way in and on the way out, so a caller
that edits a returned model has not changed anything until it saves.
This mirrors what a real backend does and keeps the engine honest
about its persist calls.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from pocketbook.models.audit import AuditEvent
from pocketbook.models.ledger import (
    Friend,
    Split,
    Transaction,
    TransactionType,
    User,
)
from pocketbook.services.storage.interface import (
    AuditStorageInterface,
    LedgerStoreInterface,
)


class InMemoryLedgerStore(LedgerStoreInterface):
    """Dictionary-backed ledger store. Dicts keep insertion order."""

    def __init__(self):
        self._users: dict[UUID, User] = {}
        self._transactions: dict[UUID, Transaction] = {}
        self._friends: dict[UUID, Friend] = {}
        self._splits: dict[UUID, Split] = {}

    # -- users ---------------------------------------------------------------

    async def get_user(self, user_id: UUID) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    async def save_user(self, user: User) -> bool:
        self._users[user.id] = user.model_copy(deep=True)
        return True

    # -- transactions --------------------------------------------------------

    async def save_transaction(self, transaction: Transaction) -> bool:
        self._transactions[transaction.id] = transaction.model_copy(deep=True)
        return True

    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            return None
        return transaction.model_copy(deep=True)

    async def delete_transaction(self, transaction_id: UUID, user_id: UUID) -> bool:
        transaction = self._transactions.get(transaction_id)
        if transaction is None or transaction.user_id != user_id:
            return False
        del self._transactions[transaction_id]
        return True

    async def list_transactions(
        self,
        user_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        is_recurring: Optional[bool] = None,
    ) -> list[Transaction]:
        results = []
        for transaction in self._transactions.values():
            if transaction.user_id != user_id:
                continue
            if transaction_type and transaction.type != transaction_type:
                continue
            if date_from and transaction.date < date_from:
                continue
            if date_to and transaction.date > date_to:
                continue
            if is_recurring is not None and transaction.is_recurring != is_recurring:
                continue
            results.append(transaction.model_copy(deep=True))
        return results

    # -- friends -------------------------------------------------------------

    async def save_friend(self, friend: Friend) -> bool:
        self._friends[friend.id] = friend.model_copy(deep=True)
        return True

    async def get_friend(self, friend_id: UUID, user_id: UUID) -> Optional[Friend]:
        friend = self._friends.get(friend_id)
        if friend is None or friend.user_id != user_id:
            return None
        return friend.model_copy(deep=True)

    async def find_friend_by_email(self, user_id: UUID, email: str) -> Optional[Friend]:
        email = email.strip().lower()
        for friend in self._friends.values():
            if friend.user_id == user_id and friend.email == email:
                return friend.model_copy(deep=True)
        return None

    async def list_friends(self, user_id: UUID) -> list[Friend]:
        return [
            friend.model_copy(deep=True)
            for friend in self._friends.values()
            if friend.user_id == user_id
        ]

    async def delete_friend(self, friend_id: UUID, user_id: UUID) -> bool:
        friend = self._friends.get(friend_id)
        if friend is None or friend.user_id != user_id:
            return False
        del self._friends[friend_id]
        return True

    # -- splits --------------------------------------------------------------

    async def save_split(self, split: Split) -> bool:
        self._splits[split.id] = split.model_copy(deep=True)
        return True

    async def list_splits(self, user_id: UUID) -> list[Split]:
        return [
            split.model_copy(deep=True)
            for split in self._splits.values()
            if split.involves(user_id)
        ]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
