"""
Table-Backed Persistence Gateway

The hosted store only offers four row-level operations:
filtered read, insert-returning-row, update-by-id and delete-by-id.
TableFinanceStorage implements the whole FinanceStorageInterface on top
of those four primitives plus the record shaping in records.py.
Backends (Google Sheets, in-memory) only implement the primitives.

The primitives are synchronous. With Google Sheets each one is a
blocking HTTP round trip, so gateway coroutines never overlap.
"""

from abc import abstractmethod
from decimal import Decimal
from typing import Callable, Optional, TypeVar

import structlog

from finanzas.models.finance import (
    Debt,
    SavingsGoal,
    Tag,
    Transaction,
    TransactionType,
    User,
)
from finanzas.services.storage import records
from finanzas.services.storage.interface import (
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
)
from finanzas.services.storage.records import Row


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class TableFinanceStorage(FinanceStorageInterface):
    """
    Persistence gateway over a table store.

    Subclasses provide the row primitives. Rows are dicts of string cells
    keyed by the column names in records.TABLE_COLUMNS.
    """

    # --- Row primitives ---

    @abstractmethod
    def _select(self, table: str, **filters: str) -> list[Row]:
        """Rows whose cells equal every filter value, in table order."""

    @abstractmethod
    def _insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it with the store-assigned id."""

    @abstractmethod
    def _update(self, table: str, record_id: str, fields: Row) -> bool:
        """Overwrite some cells of one row. False if the id is unknown."""

    @abstractmethod
    def _delete(self, table: str, record_id: str) -> bool:
        """Remove one row. False if the id is unknown."""

    # --- Helpers ---

    def _parse_rows(self, table: str, rows: list[Row], parse: Callable[[Row], T]) -> list[T]:
        """Convert rows, skipping (and logging) malformed ones."""
        parsed = []
        for row in rows:
            try:
                parsed.append(parse(row))
            except (ValueError, KeyError, ArithmeticError) as e:
                logger.warning(
                    "malformed_row_skipped",
                    table=table,
                    row_id=row.get("id"),
                    error=str(e),
                )
        return parsed

    # --- Users ---

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        for row in self._select(records.USERS, username=username):
            if records.verify_password(password, row):
                return records.row_to_user(row)
        return None

    async def create_user(self, username: str, password: str) -> User:
        if self._select(records.USERS, username=username):
            raise DuplicateError(f"Username already registered: {username}")
        row = self._insert(records.USERS, records.user_to_row(username, password))
        return records.row_to_user(row)

    # --- Transactions ---

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        rows = self._select(records.TRANSACTIONS, user_id=user_id)
        transactions = self._parse_rows(records.TRANSACTIONS, rows, records.row_to_transaction)
        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    async def create_transaction(self, user_id: str, transaction: Transaction) -> Transaction:
        row = self._insert(
            records.TRANSACTIONS,
            records.transaction_to_row(user_id, transaction),
        )
        return records.row_to_transaction(row)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._delete(records.TRANSACTIONS, transaction_id)

    # --- Debts ---

    async def list_debts(self, user_id: str) -> list[Debt]:
        rows = self._select(records.DEBTS, user_id=user_id)
        return self._parse_rows(records.DEBTS, rows, records.row_to_debt)

    async def create_debt(self, user_id: str, debt: Debt) -> Debt:
        row = self._insert(records.DEBTS, records.debt_to_row(user_id, debt))
        return records.row_to_debt(row)

    async def update_debt_balance(self, debt_id: str, balance: Decimal) -> bool:
        if not self._update(records.DEBTS, debt_id, {"balance": str(balance)}):
            raise NotFoundError(f"Debt not found: {debt_id}")
        return True

    async def delete_debt(self, debt_id: str) -> bool:
        return self._delete(records.DEBTS, debt_id)

    # --- Savings goals ---

    async def list_goals(self, user_id: str) -> list[SavingsGoal]:
        rows = self._select(records.GOALS, user_id=user_id)
        return self._parse_rows(records.GOALS, rows, records.row_to_goal)

    async def create_goal(self, user_id: str, goal: SavingsGoal) -> SavingsGoal:
        row = self._insert(records.GOALS, records.goal_to_row(user_id, goal))
        return records.row_to_goal(row)

    async def update_goal_current_amount(self, goal_id: str, current_amount: Decimal) -> bool:
        fields = {"current_amount": str(current_amount)}
        if not self._update(records.GOALS, goal_id, fields):
            raise NotFoundError(f"Goal not found: {goal_id}")
        return True

    async def delete_goal(self, goal_id: str) -> bool:
        return self._delete(records.GOALS, goal_id)

    # --- Tags ---

    async def list_tags(self, user_id: str, type_: TransactionType) -> list[str]:
        rows = self._select(records.TAGS, user_id=user_id, type=type_.value)
        return [row["name"] for row in rows if row.get("name")]

    async def create_tag(self, user_id: str, type_: TransactionType, name: str) -> Tag:
        row = self._insert(records.TAGS, records.tag_to_row(user_id, type_, name))
        return records.row_to_tag(row)
