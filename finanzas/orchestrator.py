"""
Main Orchestrator for Finanzas Pro

This module ties the components together and defines the flows the UI
drives:
1. Auth (register / login → session → state loaded)
2. Advisory (state → aggregated figures → AI advice)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The AI only ever receives aggregated figures, never raw records
- Credentials never leave the storage gateway
- Every step is audited

Record mutations live in FinanceState; this module only wires it.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional

import structlog

from finanzas.agents import AdvisoryError, FinancialAdvisorAgent
from finanzas.audit import AuditLogger, configure_logging, create_correlation_id
from finanzas.config import get_settings
from finanzas.models.advice import FinancialAdvice, PeriodReportAdvice
from finanzas.models.finance import PeriodReport, Theme, Timeframe, User, ValidationResult
from finanzas.reports.aggregator import compute_period_report
from finanzas.services.session import KeyValueStore, SessionManager
from finanzas.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    StorageError,
)
from finanzas.state import FinanceState
from finanzas.validation import FormValidator


logger = structlog.get_logger(__name__)


class AuthError(Exception):
    """Login or registration was refused. The message is user-facing."""

    def __init__(self, message: str, validation: Optional[ValidationResult] = None):
        super().__init__(message)
        self.validation = validation


class AuthFlow:
    """
    Orchestrates registration, login and logout.

    Flow:
    1. Validate the form
    2. Ask the gateway (create_user / authenticate)
    3. Write the user into the session store
    4. Build and load a FinanceState for that user
    """

    def __init__(
        self,
        storage: FinanceStorageInterface,
        session: SessionManager,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[FormValidator] = None,
    ):
        self._storage = storage
        self._session = session
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or FormValidator()

    async def register(self, username: str, password: str) -> User:
        """
        Create an account and log it in.

        Raises:
            AuthError: Invalid form or username already taken
        """
        validation = self._validator.validate_registration(username, password)
        if validation.has_errors:
            raise AuthError("; ".join(validation.messages()), validation)

        try:
            user = await self._storage.create_user(username.strip(), password)
        except DuplicateError as e:
            raise AuthError("El usuario ya existe") from e

        await self._audit_logger.log_user_registered(user.id, user.username)
        self._session.login(user)
        return user

    async def login(self, username: str, password: str) -> User:
        """
        Authenticate and persist the session.

        Raises:
            AuthError: Invalid form or wrong credentials
        """
        validation = self._validator.validate_login(username, password)
        if validation.has_errors:
            raise AuthError("; ".join(validation.messages()), validation)

        user = await self._storage.authenticate(username.strip(), password)
        if user is None:
            await self._audit_logger.log_login_failed(username)
            raise AuthError("Usuario o contraseña incorrectos")

        await self._audit_logger.log_user_logged_in(user.id, user.username)
        self._session.login(user)
        return user

    async def logout(self) -> None:
        """Clear the current user. The theme preference stays."""
        user = self._session.current_user()
        self._session.logout()
        await self._audit_logger.log_user_logged_out(user.id if user else None)

    async def open_state(self, user: User) -> FinanceState:
        """Build the state container for a user and load it."""
        state = FinanceState(user, self._storage, self._audit_logger)
        await state.load()
        return state


class AdvisoryFlow:
    """
    Orchestrates advice requests.

    CRITICAL BOUNDARIES:
    1. Figures are computed here by the aggregator, not by the model
    2. Failures are audited and re-raised for the UI to show
    """

    def __init__(
        self,
        agent: Optional[FinancialAdvisorAgent] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._agent = agent or FinancialAdvisorAgent()
        self._audit_logger = audit_logger or AuditLogger()

    async def snapshot_advice(
        self,
        state: FinanceState,
        today: Optional[date] = None,
    ) -> FinancialAdvice:
        """Holistic advice over the whole history of the user."""
        correlation_id = create_correlation_id()
        await self._audit_logger.log_advice_requested("snapshot", state.user.id, correlation_id)

        try:
            advice = await self._agent.get_financial_advice(
                state.summary(today=today),
                user_name=state.user.username,
            )
        except AdvisoryError as e:
            await self._audit_logger.log_advice_failed(
                "snapshot", type(e).__name__, str(e), state.user.id, correlation_id
            )
            raise

        await self._audit_logger.log_advice_generated("snapshot", state.user.id, correlation_id)
        return advice

    async def period_advice(
        self,
        state: FinanceState,
        timeframe: Timeframe,
        as_of: Optional[date] = None,
    ) -> tuple[PeriodReport, PeriodReportAdvice]:
        """Audit one reporting window. Returns the figures with the advice."""
        correlation_id = create_correlation_id()
        kind = f"period:{timeframe.value}"
        report = compute_period_report(state.transactions, timeframe, as_of=as_of)
        await self._audit_logger.log_advice_requested(kind, state.user.id, correlation_id)

        try:
            advice = await self._agent.get_period_report_advice(report)
        except AdvisoryError as e:
            await self._audit_logger.log_advice_failed(
                kind, type(e).__name__, str(e), state.user.id, correlation_id
            )
            raise

        await self._audit_logger.log_advice_generated(kind, state.user.id, correlation_id)
        return report, advice


@dataclass
class AppComponents:
    """
    Process-wide services the UI needs, built once and cached.

    Nothing here belongs to one browser: the session of each browser is
    built per request with session_for() and handed to auth_flow().
    """

    storage: FinanceStorageInterface
    audit_logger: AuditLogger
    advisory_flow: AdvisoryFlow
    default_theme: Theme = Theme.DARK
    sheets_client: Optional[GoogleSheetsClient] = None

    @property
    def is_offline(self) -> bool:
        return self.sheets_client is None

    def session_for(self, store: KeyValueStore) -> SessionManager:
        """Session manager over one browser's key/value store."""
        return SessionManager(store, default_theme=self.default_theme)

    def auth_flow(self, session: SessionManager) -> AuthFlow:
        return AuthFlow(self.storage, session, self.audit_logger)


def create_app_components(use_storage: bool = True) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use Google Sheets storage.
                     When False, or when Sheets is not configured, data is
                     kept in memory for the lifetime of the process.
    """
    settings = get_settings()
    app_settings = settings.app
    configure_logging(app_settings.log_level)

    sheets_client: Optional[GoogleSheetsClient] = None
    storage: FinanceStorageInterface
    audit_storage: AuditStorageInterface

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.connect()
            storage = GoogleSheetsFinanceStorage(sheets_client)
            audit_storage = GoogleSheetsAuditStorage(sheets_client)
        except (StorageError, ValueError) as e:
            # ValueError covers missing GOOGLE_SHEETS_* settings.
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryFinanceStorage()
            audit_storage = InMemoryAuditStorage()
    else:
        storage = InMemoryFinanceStorage()
        audit_storage = InMemoryAuditStorage()

    audit_logger = AuditLogger(audit_storage)

    return AppComponents(
        storage=storage,
        audit_logger=audit_logger,
        advisory_flow=AdvisoryFlow(audit_logger=audit_logger),
        default_theme=Theme(app_settings.default_theme),
        sheets_client=sheets_client,
    )
