"""Tests for the auth and advisory flows and the component factory."""

import asyncio
import json
from datetime import date

import pytest

from conftest import FakeModel, make_transaction
from finanzas.agents import AdvisoryParseError, FinancialAdvisorAgent
from finanzas.config import GeminiSettings
from finanzas.models.audit import AuditEventType
from finanzas.models.finance import Theme, Timeframe, TransactionType
from finanzas.orchestrator import (
    AdvisoryFlow,
    AuthError,
    AuthFlow,
    create_app_components,
)
from finanzas.services.session import MappingStore, MemoryStore, SessionManager
from finanzas.services.storage import InMemoryAuditStorage, InMemoryFinanceStorage
from finanzas.state import FinanceState


@pytest.fixture
def session():
    return SessionManager(MemoryStore())


@pytest.fixture
def gateway():
    return InMemoryFinanceStorage()


@pytest.fixture
def auth(gateway, session, audit_logger):
    return AuthFlow(gateway, session, audit_logger)


def _event_types(audit_storage):
    return [e.event_type for e in audit_storage.events]


class TestAuthFlow:
    """Tests for registration, login and logout."""

    def test_register_logs_in(self, auth, session, audit_storage):
        user = asyncio.run(auth.register(" ana ", "secreto"))
        assert user.username == "ana"
        assert session.current_user() == user
        assert _event_types(audit_storage) == [AuditEventType.USER_REGISTERED]

    def test_register_duplicate(self, auth):
        asyncio.run(auth.register("ana", "secreto"))
        with pytest.raises(AuthError, match="ya existe"):
            asyncio.run(auth.register("ana", "otra-clave"))

    def test_register_invalid_form(self, auth, gateway):
        with pytest.raises(AuthError) as exc_info:
            asyncio.run(auth.register("ana", "abc"))
        assert exc_info.value.validation is not None
        assert exc_info.value.validation.issues[0].field == "password"
        assert gateway.rows("users") == []

    def test_login(self, auth, session, audit_storage):
        asyncio.run(auth.register("ana", "secreto"))
        session.logout()

        user = asyncio.run(auth.login("ana", "secreto"))
        assert session.current_user() == user
        assert _event_types(audit_storage)[-1] is AuditEventType.USER_LOGGED_IN

    def test_wrong_password(self, auth, session, audit_storage):
        asyncio.run(auth.register("ana", "secreto"))
        session.logout()

        with pytest.raises(AuthError, match="incorrectos"):
            asyncio.run(auth.login("ana", "otra"))
        assert session.current_user() is None
        assert _event_types(audit_storage)[-1] is AuditEventType.LOGIN_FAILED

    def test_login_requires_both_fields(self, auth):
        with pytest.raises(AuthError):
            asyncio.run(auth.login("", ""))

    def test_logout(self, auth, session, audit_storage):
        user = asyncio.run(auth.register("ana", "secreto"))
        asyncio.run(auth.logout())

        assert session.current_user() is None
        last = audit_storage.events[-1]
        assert last.event_type is AuditEventType.USER_LOGGED_OUT
        assert last.user_id == user.id

    def test_open_state_loads_records(self, auth, gateway):
        user = asyncio.run(auth.register("ana", "secreto"))
        asyncio.run(gateway.create_transaction(user.id, make_transaction("40")))

        state = asyncio.run(auth.open_state(user))
        assert state.loaded
        assert len(state.transactions) == 1


SNAPSHOT_REPLY = json.dumps({
    "analysis": "Vas bien.",
    "savingsTarget": "$ 100",
    "recommendations": [],
    "alert": "",
})

PERIOD_REPLY = json.dumps({
    "summary": "Mes positivo.",
    "expenseAnalysis": "Poco gasto.",
    "investmentTip": "Ahorra.",
    "actionItem": "Sigue así.",
})


def _flow(model, audit_logger):
    agent = FinancialAdvisorAgent(GeminiSettings(api_key="test-key"), model=model)
    return AdvisoryFlow(agent, audit_logger)


class TestAdvisoryFlow:
    """Tests for advice requests through the flow."""

    def test_snapshot_advice(self, state, audit_logger, audit_storage):
        asyncio.run(state.add_transaction(
            make_transaction("1000", type_=TransactionType.INCOME, category="Salario")
        ))
        model = FakeModel(SNAPSHOT_REPLY)

        advice = asyncio.run(_flow(model, audit_logger).snapshot_advice(state))
        assert advice.analysis == "Vas bien."
        assert "ana" in model.prompts[0]
        assert "1000" in model.prompts[0]

        requested, generated = audit_storage.events[-2:]
        assert requested.event_type is AuditEventType.ADVICE_REQUESTED
        assert generated.event_type is AuditEventType.ADVICE_GENERATED
        assert requested.correlation_id == generated.correlation_id

    def test_period_advice_uses_window(self, state, audit_logger, audit_storage):
        asyncio.run(state.add_transaction(make_transaction("50", on=date(2024, 6, 10))))
        asyncio.run(state.add_transaction(make_transaction("70", on=date(2023, 1, 10))))
        model = FakeModel(PERIOD_REPLY)

        report, advice = asyncio.run(
            _flow(model, audit_logger).period_advice(state, Timeframe.ONE_MONTH, as_of=date(2024, 6, 15))
        )
        assert report.expense == 50
        assert advice.action_item == "Sigue así."
        assert "Mensual" in model.prompts[0]
        assert audit_storage.events[-1].details == {"kind": "period:1M"}

    def test_failure_is_audited_and_raised(self, state, audit_logger, audit_storage):
        with pytest.raises(AdvisoryParseError):
            asyncio.run(_flow(FakeModel("sin json"), audit_logger).snapshot_advice(state))

        failed = audit_storage.events[-1]
        assert failed.event_type is AuditEventType.ADVICE_FAILED
        assert failed.details["error_type"] == "AdvisoryParseError"


class TestFactory:
    """Tests for component wiring."""

    def test_offline_components(self):
        components = create_app_components(use_storage=False)
        session = components.session_for(MemoryStore())

        assert components.is_offline
        assert isinstance(components.storage, InMemoryFinanceStorage)

        auth = components.auth_flow(session)
        user = asyncio.run(auth.register("ana", "secreto"))
        state = asyncio.run(auth.open_state(user))
        assert isinstance(state, FinanceState)
        assert session.current_user() == user

    def test_components_hold_no_login(self):
        components = create_app_components(use_storage=False)
        browser_a = components.session_for(MappingStore({}))
        browser_b = components.session_for(MappingStore({}))

        asyncio.run(components.auth_flow(browser_a).register("alice", "secreto"))
        assert browser_a.current_user().username == "alice"
        assert browser_b.current_user() is None

        asyncio.run(components.auth_flow(browser_b).logout())
        assert browser_a.current_user() is not None

    def test_session_uses_configured_theme(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_THEME", "light")
        components = create_app_components(use_storage=False)
        assert components.session_for(MemoryStore()).theme() is Theme.LIGHT

    def test_offline_audit_goes_to_memory(self):
        components = create_app_components(use_storage=False)
        asyncio.run(components.audit_logger.log_login_failed("nadie"))
        assert isinstance(components.audit_logger._storage, InMemoryAuditStorage)
        assert len(components.audit_logger._storage.events) == 1
