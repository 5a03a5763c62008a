"""
Audit Logger

DESIGN DECISION: Every mutation and every advice request is logged.
Optimistic updates mean local state can drift from the store, so the
log is where a failed write becomes visible after the fact.

The audit logger:
- Logs locally through structlog first, always
- Never raises if the audit table is unreachable
- Threads correlation IDs so a debt payment and its expense line up
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finanzas.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from finanzas.services.storage import AuditStorageInterface


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
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) at the given level."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


_SEVERITY_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Writes audit events to the local log and, when a backend is given,
    to the audit table. Severity picks the structlog level.
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("finanzas.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Record one event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        method = _SEVERITY_METHODS.get(event.severity, "info")
        getattr(self._logger, method)("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            # Audit writes must never take the app down with them.
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def log_user_registered(self, user_id: str, username: str) -> None:
        await self.log(AuditEventBuilder.user_registered(user_id, username))

    async def log_user_logged_in(self, user_id: str, username: str) -> None:
        await self.log(AuditEventBuilder.user_logged_in(user_id, username))

    async def log_user_logged_out(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.user_logged_out(user_id))

    async def log_login_failed(self, username: str) -> None:
        await self.log(AuditEventBuilder.login_failed(username))

    async def log_record_created(
        self,
        entity_type: str,
        entity_id: str,
        user_id: str,
        summary: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a record that the store accepted."""
        event = AuditEventBuilder.record_created(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            summary=summary,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(self, entity_type: str, entity_id: str, user_id: str) -> None:
        await self.log(AuditEventBuilder.record_deleted(entity_type, entity_id, user_id))

    async def log_debt_payment(
        self,
        debt_id: str,
        user_id: str,
        amount: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.debt_payment_recorded(
            debt_id=debt_id,
            user_id=user_id,
            amount=amount,
            new_balance=new_balance,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_goal_updated(self, goal_id: str, user_id: str, current_amount: str) -> None:
        await self.log(AuditEventBuilder.goal_updated(goal_id, user_id, current_amount))

    async def log_data_loaded(self, user_id: str, counts: dict[str, int]) -> None:
        await self.log(AuditEventBuilder.data_loaded(user_id, counts))

    async def log_persistence_failed(
        self,
        entity_type: str,
        entity_id: Optional[str],
        user_id: Optional[str],
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a store write that failed while local state kept the change."""
        event = AuditEventBuilder.persistence_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_advice_requested(
        self, kind: str, user_id: Optional[str], correlation_id: UUID
    ) -> None:
        await self.log(AuditEventBuilder.advice_requested(kind, user_id, correlation_id))

    async def log_advice_generated(
        self, kind: str, user_id: Optional[str], correlation_id: UUID
    ) -> None:
        await self.log(AuditEventBuilder.advice_generated(kind, user_id, correlation_id))

    async def log_advice_failed(
        self,
        kind: str,
        error_type: str,
        error_message: str,
        user_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.advice_failed(
            kind=kind,
            error_type=error_type,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    New id shared by every event of one user action.

    Use one per user action (e.g. a debt payment) and pass it through
    every write that action causes.
    """
    return uuid4()
