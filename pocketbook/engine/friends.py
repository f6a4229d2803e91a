"""
Friend Directory

Adds, renames and removes a user's friends. Emails are unique per user
(case-insensitive). Friend balances are not editable here; only splits
and settlements move them.
"""

from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError

from pocketbook.audit import AuditLogger
from pocketbook.engine.errors import (
    DuplicateFriendError,
    LedgerError,
    LedgerValidationError,
    RecordNotFoundError,
)
from pocketbook.models.audit import AuditEventType
from pocketbook.models.ledger import Friend, FriendPatch
from pocketbook.services.storage import LedgerStoreInterface


class FriendDirectory:
    """CRUD over a user's friends list."""

    def __init__(
        self,
        store: LedgerStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger

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

    async def add(
        self,
        user_id: UUID,
        name: str,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> Friend:
        try:
            try:
                friend = Friend(user_id=user_id, name=name, email=email)
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid friend: {e}") from e

            if await self._store.find_friend_by_email(user_id, friend.email):
                raise DuplicateFriendError(friend.email)
        except LedgerError as e:
            await self._reject("add_friend", user_id, e, correlation_id)
            raise

        await self._store.save_friend(friend)
        if self._audit_logger:
            await self._audit_logger.log_friend_changed(
                AuditEventType.FRIEND_ADDED, friend, correlation_id
            )
        return friend

    async def get(self, friend_id: UUID, user_id: UUID) -> Friend:
        friend = await self._store.get_friend(friend_id, user_id)
        if friend is None:
            raise RecordNotFoundError("friend", friend_id)
        return friend

    async def list_friends(self, user_id: UUID) -> list[Friend]:
        return await self._store.list_friends(user_id)

    async def update(
        self,
        friend_id: UUID,
        user_id: UUID,
        patch: Union[FriendPatch, dict],
        correlation_id: Optional[UUID] = None,
    ) -> Friend:
        """Change a friend's name and/or email."""
        try:
            try:
                if isinstance(patch, dict):
                    patch = FriendPatch.model_validate(patch)
                friend = await self.get(friend_id, user_id)
                updated = Friend.model_validate({**friend.model_dump(), **patch.changes()})
            except ValidationError as e:
                raise LedgerValidationError(f"Invalid friend update: {e}") from e

            if updated.email != friend.email:
                existing = await self._store.find_friend_by_email(user_id, updated.email)
                if existing and existing.id != friend_id:
                    raise DuplicateFriendError(updated.email)
        except LedgerError as e:
            await self._reject("update_friend", user_id, e, correlation_id)
            raise

        await self._store.save_friend(updated)
        if self._audit_logger:
            await self._audit_logger.log_friend_changed(
                AuditEventType.FRIEND_UPDATED, updated, correlation_id
            )
        return updated

    async def delete(
        self,
        friend_id: UUID,
        user_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        try:
            friend = await self.get(friend_id, user_id)
        except LedgerError as e:
            await self._reject("delete_friend", user_id, e, correlation_id)
            raise

        await self._store.delete_friend(friend_id, user_id)
        if self._audit_logger:
            await self._audit_logger.log_friend_changed(
                AuditEventType.FRIEND_DELETED, friend, correlation_id
            )
