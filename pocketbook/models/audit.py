"""
Audit Models for Pocketbook

Every balance-changing operation, and every operation the ledger
refuses, is recorded as an audit event. This provides:
1. A trail that explains how a wallet reached its current balance
2. Debugging information when a rejection surprises the user
3. Evidence of partially applied multi-step operations

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from pocketbook.models.ledger import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Recurrence
    RECURRING_PROCESSED = "recurring_processed"
    RECURRING_STATUS_CHANGED = "recurring_status_changed"

    # Friends and splits
    FRIEND_ADDED = "friend_added"
    FRIEND_UPDATED = "friend_updated"
    FRIEND_DELETED = "friend_deleted"
    SPLIT_CREATED = "split_created"
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Rejections
    VALIDATION_FAILED = "validation_failed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNREALISTIC_BALANCE = "unrealistic_balance"
    NOT_FOUND = "not_found"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Who and what
    user_id: Optional[UUID] = Field(
        default=None,
        description="Wallet owner the operation was scoped to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'friend', 'split')"
    )
    entity_id: Optional[UUID] = None

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one logical operation"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, user_id, entity_type,
         entity_id, correlation_id, description, details_json, error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.user_id) if self.user_id else "",
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Amounts are passed as Decimal and stored as strings in details
    so the JSON column never holds a float.
    """

    @staticmethod
    def transaction_created(
        user_id: UUID,
        transaction_id: UUID,
        transaction_type: str,
        amount: Decimal,
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction created: {transaction_type} {amount}",
            details={
                "type": transaction_type,
                "amount": str(amount),
                "wallet_balance": str(wallet_balance),
            },
        )

    @staticmethod
    def transaction_updated(
        user_id: UUID,
        transaction_id: UUID,
        changed_fields: list[str],
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
                "wallet_balance": str(wallet_balance),
            },
        )

    @staticmethod
    def transaction_deleted(
        user_id: UUID,
        transaction_id: UUID,
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            details={"wallet_balance": str(wallet_balance)},
        )

    @staticmethod
    def recurring_processed(
        user_id: UUID,
        realized_ids: list[UUID],
        balance_change: Decimal,
        wallet_balance: Decimal,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_PROCESSED,
            user_id=user_id,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Processed {len(realized_ids)} recurring transactions",
            details={
                "realized": [str(i) for i in realized_ids],
                "balance_change": str(balance_change),
                "wallet_balance": str(wallet_balance),
            },
        )

    @staticmethod
    def recurring_status_changed(
        user_id: UUID,
        transaction_id: UUID,
        status: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_STATUS_CHANGED,
            user_id=user_id,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recurring transaction is now {status}",
            details={"status": status},
        )

    @staticmethod
    def friend_changed(
        event_type: AuditEventType,
        user_id: UUID,
        friend_id: UUID,
        email: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        verb = event_type.value.split("_", 1)[1]
        return AuditEvent(
            event_type=event_type,
            user_id=user_id,
            entity_type="friend",
            entity_id=friend_id,
            correlation_id=correlation_id,
            description=f"Friend {verb}: {email}",
            details={"email": email},
        )

    @staticmethod
    def split_created(
        user_id: UUID,
        split_id: UUID,
        total_amount: Decimal,
        per_person: Decimal,
        updated_friends: list[UUID],
        skipped_friends: list[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_CREATED,
            severity=AuditSeverity.WARNING if skipped_friends else AuditSeverity.INFO,
            user_id=user_id,
            entity_type="split",
            entity_id=split_id,
            correlation_id=correlation_id,
            description=f"Split of {total_amount} created ({per_person} per person)",
            details={
                "total_amount": str(total_amount),
                "per_person": str(per_person),
                "updated_friends": [str(i) for i in updated_friends],
                "skipped_friends": [str(i) for i in skipped_friends],
            },
        )

    @staticmethod
    def settlement_recorded(
        user_id: UUID,
        friend_id: UUID,
        amount: Decimal,
        friend_balance: Decimal,
        transaction_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            user_id=user_id,
            entity_type="friend",
            entity_id=friend_id,
            correlation_id=correlation_id,
            description=f"Settled {amount} with friend",
            details={
                "amount": str(amount),
                "friend_balance": str(friend_balance),
                "transaction_id": str(transaction_id),
            },
        )

    @staticmethod
    def rejected(
        event_type: AuditEventType,
        user_id: Optional[UUID],
        operation: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        severity = (
            AuditSeverity.ERROR
            if event_type == AuditEventType.UNREALISTIC_BALANCE
            else AuditSeverity.WARNING
        )
        return AuditEvent(
            event_type=event_type,
            severity=severity,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{operation} rejected",
            details={"operation": operation, **(details or {})},
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
