"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the hosted table store (Google Sheets) swappable
2. Use in-memory storage for testing and offline mode
3. Keep the state container decoupled from the storage implementation

The interface mirrors the five hosted tables: users, transactions,
debts, savings_goals and tags. Every read is scoped by user id.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from finanzas.models.audit import AuditEvent
from finanzas.models.finance import (
    Debt,
    SavingsGoal,
    Tag,
    Transaction,
    TransactionType,
    User,
)


class FinanceStorageInterface(ABC):
    """
    Abstract interface for the persistence gateway.

    Create operations return the stored record carrying the identifier
    assigned by the store. Any backend failure is raised as StorageError.
    """

    # --- Users ---

    @abstractmethod
    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """
        Look up a user by credentials.

        Returns:
            The user if username and password match, None otherwise
        """

    @abstractmethod
    async def create_user(self, username: str, password: str) -> User:
        """
        Register a new user.

        Raises:
            DuplicateError: If the username is taken
        """

    # --- Transactions ---

    @abstractmethod
    async def list_transactions(self, user_id: str) -> list[Transaction]:
        """All transactions of a user, newest first."""

    @abstractmethod
    async def create_transaction(self, user_id: str, transaction: Transaction) -> Transaction:
        """Insert a transaction; the client-side id is discarded."""

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """Delete by id. Returns False if nothing matched."""

    # --- Debts ---

    @abstractmethod
    async def list_debts(self, user_id: str) -> list[Debt]:
        pass

    @abstractmethod
    async def create_debt(self, user_id: str, debt: Debt) -> Debt:
        pass

    @abstractmethod
    async def update_debt_balance(self, debt_id: str, balance: Decimal) -> bool:
        """
        Overwrite the remaining balance of a debt.

        Raises:
            NotFoundError: If the debt doesn't exist
        """

    @abstractmethod
    async def delete_debt(self, debt_id: str) -> bool:
        pass

    # --- Savings goals ---

    @abstractmethod
    async def list_goals(self, user_id: str) -> list[SavingsGoal]:
        pass

    @abstractmethod
    async def create_goal(self, user_id: str, goal: SavingsGoal) -> SavingsGoal:
        pass

    @abstractmethod
    async def update_goal_current_amount(self, goal_id: str, current_amount: Decimal) -> bool:
        """
        Persist the saved amount of a goal. Other fields are not written.

        Raises:
            NotFoundError: If the goal doesn't exist
        """

    @abstractmethod
    async def delete_goal(self, goal_id: str) -> bool:
        pass

    # --- Tags ---

    @abstractmethod
    async def list_tags(self, user_id: str, type_: TransactionType) -> list[str]:
        """Tag names of one type, in insertion order."""

    @abstractmethod
    async def create_tag(self, user_id: str, type_: TransactionType, name: str) -> Tag:
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

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).

        Args:
            limit: Maximum number of events to return
            user_id: Only events of this user, if given
        """


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
