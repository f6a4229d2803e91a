"""
Abstract Storage Interface

DESIGN DECISION: The ledger engine talks to storage only through this
interface. This allows us to:
1. Keep Google Sheets (or a real database) behind one seam
2. Use in-memory storage for testing
3. Keep the balance rules decoupled from persistence mechanics

The store offers atomic single-record reads and writes and nothing
more. There are no multi-record transactions: the engine orders its
writes so that a rejected operation never reaches the store.

Every lookup is scoped by owner. A record owned by someone else is
reported exactly like a missing one.
"""

from abc import ABC, abstractmethod
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


class LedgerStoreInterface(ABC):
    """
    Abstract interface for ledger record storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods. Records returned are copies: changing
    them has no effect until they are saved again.
    """

    # -- users ---------------------------------------------------------------

    @abstractmethod
    async def get_user(self, user_id: UUID) -> Optional[User]:
        """Return the user, or None if unknown."""
        pass

    @abstractmethod
    async def save_user(self, user: User) -> bool:
        """
        Insert or replace a user record.

        Raises:
            StorageError: If the write fails
        """
        pass

    # -- transactions --------------------------------------------------------

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> bool:
        """Insert or replace a transaction record."""
        pass

    @abstractmethod
    async def get_transaction(
        self,
        transaction_id: UUID,
        user_id: UUID,
    ) -> Optional[Transaction]:
        """
        Retrieve a transaction owned by user_id.

        Returns:
            The transaction if it exists and belongs to the user, None otherwise
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: UUID, user_id: UUID) -> bool:
        """
        Delete a transaction owned by user_id.

        Returns:
            True if a record was removed
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        user_id: UUID,
        transaction_type: Optional[TransactionType] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        is_recurring: Optional[bool] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions with optional filters.

        Args:
            user_id: Owner of the transactions
            transaction_type: Only income or only expense
            date_from: Transactions dated on or after this day
            date_to: Transactions dated on or before this day
            is_recurring: Only templates (True) or only realized entries (False)

        Returns:
            Matching transactions in insertion order
        """
        pass

    # -- friends -------------------------------------------------------------

    @abstractmethod
    async def save_friend(self, friend: Friend) -> bool:
        """Insert or replace a friend record."""
        pass

    @abstractmethod
    async def get_friend(self, friend_id: UUID, user_id: UUID) -> Optional[Friend]:
        """Retrieve a friend belonging to user_id."""
        pass

    @abstractmethod
    async def find_friend_by_email(self, user_id: UUID, email: str) -> Optional[Friend]:
        """Retrieve a user's friend by (case-insensitive) email."""
        pass

    @abstractmethod
    async def list_friends(self, user_id: UUID) -> list[Friend]:
        """List all friends of a user in insertion order."""
        pass

    @abstractmethod
    async def delete_friend(self, friend_id: UUID, user_id: UUID) -> bool:
        """Delete a friend belonging to user_id."""
        pass

    # -- splits --------------------------------------------------------------

    @abstractmethod
    async def save_split(self, split: Split) -> bool:
        """Insert or replace a split record."""
        pass

    @abstractmethod
    async def list_splits(self, user_id: UUID) -> list[Split]:
        """
        List splits the user paid for, recorded, or takes part in.

        Returns:
            Matching splits in insertion order
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events of one logical operation in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_user(
        self,
        user_id: UUID,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get a user's most recent events (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
