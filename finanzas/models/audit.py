"""
Audit Models for Finanzas Pro

Every mutation and every call to an external service is recorded.
This gives us:
1. A trail of what the user did and when
2. Visibility into local state that diverged from the remote store
3. Debugging information when the AI advisor fails

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    USER_REGISTERED = "user_registered"
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    LOGIN_FAILED = "login_failed"

    # Records
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_DELETED = "transaction_deleted"
    DEBT_CREATED = "debt_created"
    DEBT_PAYMENT_RECORDED = "debt_payment_recorded"
    DEBT_DELETED = "debt_deleted"
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"
    GOAL_DELETED = "goal_deleted"
    TAG_CREATED = "tag_created"

    # Persistence
    DATA_LOADED = "data_loaded"
    PERSISTENCE_FAILED = "persistence_failed"

    # Advisory
    ADVICE_REQUESTED = "advice_requested"
    ADVICE_GENERATED = "advice_generated"
    ADVICE_FAILED = "advice_failed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "user_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class AuditEvent(BaseModel):
    """
    One line of the audit trail.

    entity_id may still be a "tmp-" id when the store rejected the record.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="UTC")

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # transaction, debt, goal, tag, user or advice
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    user_id: Optional[str] = None

    # Shared by every event one user action produced
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def _cells(self) -> dict[str, Any]:
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
        }

    def to_log_dict(self) -> dict:
        """Fields as structlog key/values."""
        return {
            **self._cells(),
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """Cells in AUDIT_COLUMNS order, blanks for missing values."""
        cells = [value or "" for value in self._cells().values()]
        return cells + [
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]

    @classmethod
    def from_sheets_row(cls, row: list) -> "AuditEvent":
        def safe_get(index: int) -> str:
            try:
                return row[index] or ""
            except IndexError:
                return ""

        return cls(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            user_id=safe_get(6) or None,
            correlation_id=UUID(safe_get(7)) if safe_get(7) else None,
            description=safe_get(8),
            details=json.loads(safe_get(9)) if safe_get(9) else {},
            error_message=safe_get(10) or None,
            is_user_action=safe_get(11).lower() == "true",
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("debt", debt_id, user_id, "Tarjeta")
        event = AuditEventBuilder.persistence_failed("transaction", tmp_id, user_id, "create", err)
    """

    _CREATED = {
        "transaction": AuditEventType.TRANSACTION_CREATED,
        "debt": AuditEventType.DEBT_CREATED,
        "goal": AuditEventType.GOAL_CREATED,
        "tag": AuditEventType.TAG_CREATED,
    }
    _DELETED = {
        "transaction": AuditEventType.TRANSACTION_DELETED,
        "debt": AuditEventType.DEBT_DELETED,
        "goal": AuditEventType.GOAL_DELETED,
    }

    @staticmethod
    def user_registered(user_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description=f"User registered: {username}",
            is_user_action=True,
        )

    @staticmethod
    def user_logged_in(user_id: str, username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_IN,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description=f"User logged in: {username}",
            is_user_action=True,
        )

    @staticmethod
    def user_logged_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_OUT,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User logged out",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            description=f"Login failed for: {username}",
            is_user_action=True,
        )

    @classmethod
    def record_created(
        cls,
        entity_type: str,
        entity_id: str,
        user_id: str,
        summary: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=cls._CREATED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} created: {summary}",
            is_user_action=True,
        )

    @classmethod
    def record_deleted(
        cls,
        entity_type: str,
        entity_id: str,
        user_id: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=cls._DELETED[entity_type],
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            description=f"{entity_type.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def debt_payment_recorded(
        debt_id: str,
        user_id: str,
        amount: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_PAYMENT_RECORDED,
            entity_type="debt",
            entity_id=debt_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Debt payment of {amount}",
            details={
                "amount": amount,
                "new_balance": new_balance,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_updated(goal_id: str, user_id: str, current_amount: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_UPDATED,
            entity_type="goal",
            entity_id=goal_id,
            user_id=user_id,
            description=f"Goal funds set to {current_amount}",
            details={"current_amount": current_amount},
            is_user_action=True,
        )

    @staticmethod
    def data_loaded(user_id: str, counts: dict[str, int]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            description="User data loaded from storage",
            details=counts,
        )

    @staticmethod
    def persistence_failed(
        entity_type: str,
        entity_id: Optional[str],
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Could not {operation} {entity_type}; local state kept",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def advice_requested(
        kind: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_REQUESTED,
            entity_type="advice",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Advice requested: {kind}",
            details={"kind": kind},
            is_user_action=True,
        )

    @staticmethod
    def advice_generated(
        kind: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            entity_type="advice",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Advice generated: {kind}",
            details={"kind": kind},
        )

    @staticmethod
    def advice_failed(
        kind: str,
        error_type: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="advice",
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Advice failed: {kind}",
            details={"kind": kind, "error_type": error_type},
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

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
