"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every rejection is logged.
This provides:
1. Traceability of how each balance was reached
2. Debugging capability for refused operations
3. A record of multi-step operations that stopped half way

The audit logger:
- Is async so it fits the store's call style
- Gracefully handles failures (a broken audit sink never fails a ledger write)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from pocketbook.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from pocketbook.models.ledger import Friend, Split, Transaction
from pocketbook.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("pocketbook.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_transaction_created(
        self,
        transaction: Transaction,
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_created(
            user_id=transaction.user_id,
            transaction_id=transaction.id,
            transaction_type=transaction.type.value,
            amount=transaction.amount,
            wallet_balance=wallet_balance,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction: Transaction,
        changed_fields: list[str],
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(
            user_id=transaction.user_id,
            transaction_id=transaction.id,
            changed_fields=changed_fields,
            wallet_balance=wallet_balance,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        user_id: UUID,
        transaction_id: UUID,
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            user_id=user_id,
            transaction_id=transaction_id,
            wallet_balance=wallet_balance,
            correlation_id=correlation_id,
        ))

    async def log_recurring_processed(
        self,
        user_id: UUID,
        realized: list[Transaction],
        balance_change: Decimal,
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_processed(
            user_id=user_id,
            realized_ids=[t.id for t in realized],
            balance_change=balance_change,
            wallet_balance=wallet_balance,
            correlation_id=correlation_id,
        ))

    async def log_recurring_status_changed(
        self,
        template: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.recurring_status_changed(
            user_id=template.user_id,
            transaction_id=template.id,
            status=template.recurring_details.status.value,
            correlation_id=correlation_id,
        ))

    async def log_friend_changed(
        self,
        event_type: AuditEventType,
        friend: Friend,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.friend_changed(
            event_type=event_type,
            user_id=friend.user_id,
            friend_id=friend.id,
            email=friend.email,
            correlation_id=correlation_id,
        ))

    async def log_split_created(
        self,
        user_id: UUID,
        split: Split,
        per_person: Decimal,
        updated_friends: list[UUID],
        skipped_friends: list[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.split_created(
            user_id=user_id,
            split_id=split.id,
            total_amount=split.total_amount,
            per_person=per_person,
            updated_friends=updated_friends,
            skipped_friends=skipped_friends,
            correlation_id=correlation_id,
        ))

    async def log_settlement(
        self,
        friend: Friend,
        amount: Decimal,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_recorded(
            user_id=friend.user_id,
            friend_id=friend.id,
            amount=amount,
            friend_balance=friend.balance,
            transaction_id=transaction.id,
            correlation_id=correlation_id,
        ))

    async def log_rejection(
        self,
        event_type: AuditEventType,
        user_id: Optional[UUID],
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an operation the ledger refused."""
        await self.log(AuditEventBuilder.rejected(
            event_type=event_type,
            user_id=user_id,
            operation=operation,
            error_message=str(error),
            details=getattr(error, "details", None),
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of one logical ledger operation and pass it
    through every step.
    """
    return uuid4()
