"""Tests for the audit logger."""

import asyncio

from finanzas.audit import AuditLogger, create_correlation_id
from finanzas.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from finanzas.services.storage import InMemoryAuditStorage


class BrokenAuditStorage(InMemoryAuditStorage):
    async def append_event(self, event):
        raise RuntimeError("audit sheet unreachable")


class TestAuditLogger:
    """Tests for local-first audit logging."""

    def test_without_storage(self):
        logger = AuditLogger()
        assert asyncio.run(logger.log(AuditEventBuilder.user_logged_out("u1"))) is True

    def test_writes_to_storage(self, audit_logger, audit_storage):
        asyncio.run(audit_logger.log_user_registered("u1", "ana"))
        asyncio.run(audit_logger.log_user_logged_in("u1", "ana"))

        assert [e.event_type for e in audit_storage.events] == [
            AuditEventType.USER_REGISTERED,
            AuditEventType.USER_LOGGED_IN,
        ]

    def test_storage_failure_is_swallowed(self):
        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEventBuilder.login_failed("ana")
        assert asyncio.run(logger.log(event)) is False
        # Helpers never raise either.
        asyncio.run(logger.log_login_failed("ana"))


class TestAuditHelpers:
    """Tests for the typed helper methods."""

    def test_record_events_by_entity(self, audit_logger, audit_storage):
        asyncio.run(audit_logger.log_record_created("debt", "d1", "u1", "Carro"))
        asyncio.run(audit_logger.log_record_created("tag", "Mascotas", "u1", "Mascotas"))
        asyncio.run(audit_logger.log_record_deleted("goal", "g1", "u1"))

        assert [e.event_type for e in audit_storage.events] == [
            AuditEventType.DEBT_CREATED,
            AuditEventType.TAG_CREATED,
            AuditEventType.GOAL_DELETED,
        ]

    def test_debt_payment_carries_correlation(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        asyncio.run(audit_logger.log_debt_payment("d1", "u1", "100", "900", correlation_id))
        asyncio.run(audit_logger.log_record_created(
            "transaction", "t1", "u1", "Pago a: Carro", correlation_id=correlation_id,
        ))

        payment, expense = audit_storage.events
        assert payment.correlation_id == expense.correlation_id == correlation_id
        assert payment.details == {"amount": "100", "new_balance": "900"}

    def test_persistence_failure_is_a_warning(self, audit_logger, audit_storage):
        asyncio.run(audit_logger.log_persistence_failed(
            "transaction", "tmp-abc", "u1", "create", "quota exceeded",
        ))
        [event] = audit_storage.events
        assert event.event_type is AuditEventType.PERSISTENCE_FAILED
        assert event.severity is AuditSeverity.WARNING
        assert event.error_message == "quota exceeded"
        assert event.details == {"operation": "create"}

    def test_advice_events(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        asyncio.run(audit_logger.log_advice_requested("snapshot", "u1", correlation_id))
        asyncio.run(audit_logger.log_advice_failed(
            "snapshot", "AdvisoryParseError", "sin JSON", "u1", correlation_id,
        ))

        requested, failed = audit_storage.events
        assert requested.details == {"kind": "snapshot"}
        assert failed.severity is AuditSeverity.ERROR
        assert failed.details["error_type"] == "AdvisoryParseError"

    def test_system_and_external_errors(self, audit_logger, audit_storage):
        asyncio.run(audit_logger.log_error("ValueError", "boom"))
        asyncio.run(audit_logger.log_external_service_error("google_sheets", "timeout"))

        assert [e.event_type for e in audit_storage.events] == [
            AuditEventType.SYSTEM_ERROR,
            AuditEventType.EXTERNAL_SERVICE_ERROR,
        ]
        assert audit_storage.events[1].details == {"service": "google_sheets"}

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()
