"""Shared fixtures. No test talks to a real network service."""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from finanzas.audit import AuditLogger
from finanzas.models.finance import Debt, SavingsGoal, Transaction, TransactionType, User
from finanzas.services.storage import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    StorageError,
)
from finanzas.services.storage.records import Row
from finanzas.state import FinanceState


class FlakyFinanceStorage(InMemoryFinanceStorage):
    """
    In-memory store whose primitives can be told to fail.

    ``failing`` holds primitive names: "select", "insert", "update", "delete".
    """

    def __init__(self, failing: Optional[set[str]] = None):
        super().__init__()
        self.failing: set[str] = set(failing or ())
        self.calls: list[tuple[str, str]] = []

    def _check(self, op: str, table: str) -> None:
        self.calls.append((op, table))
        if op in self.failing:
            raise StorageError(f"{op} on {table} is unavailable")

    def _select(self, table: str, **filters: str) -> list[Row]:
        self._check("select", table)
        return super()._select(table, **filters)

    def _insert(self, table: str, row: Row) -> Row:
        self._check("insert", table)
        return super()._insert(table, row)

    def _update(self, table: str, record_id: str, fields: Row) -> bool:
        self._check("update", table)
        return super()._update(table, record_id, fields)

    def _delete(self, table: str, record_id: str) -> bool:
        self._check("delete", table)
        return super()._delete(table, record_id)


class SlowFinanceStorage(FlakyFinanceStorage):
    """Creates only land after yielding to the event loop a few times."""

    async def _settle(self) -> None:
        for _ in range(3):
            await asyncio.sleep(0)

    async def create_transaction(self, user_id: str, transaction: Transaction) -> Transaction:
        await self._settle()
        return await super().create_transaction(user_id, transaction)

    async def create_debt(self, user_id: str, debt: Debt) -> Debt:
        await self._settle()
        return await super().create_debt(user_id, debt)

    async def create_goal(self, user_id: str, goal: SavingsGoal) -> SavingsGoal:
        await self._settle()
        return await super().create_goal(user_id, goal)


class FakeResponse:
    def __init__(self, text: Optional[str] = None, error: Optional[Exception] = None):
        self._text = text
        self._error = error

    @property
    def text(self) -> str:
        if self._error is not None:
            raise self._error
        return self._text


class FakeModel:
    """Stands in for a generative model; records prompts, returns canned replies."""

    def __init__(self, text: Optional[str] = None, raises: Optional[Exception] = None,
                 response: Optional[FakeResponse] = None):
        self.prompts: list[str] = []
        self._response = response or FakeResponse(text)
        self._raises = raises

    async def generate_content_async(self, prompt: str):
        self.prompts.append(prompt)
        if self._raises is not None:
            raise self._raises
        return self._response


@pytest.fixture
def user() -> User:
    return User(id="user-1", username="ana")


@pytest.fixture
def storage() -> FlakyFinanceStorage:
    return FlakyFinanceStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage) -> AuditLogger:
    return AuditLogger(audit_storage)


@pytest.fixture
def state(user, storage, audit_logger) -> FinanceState:
    return FinanceState(user, storage, audit_logger)


def make_transaction(
    amount: str,
    type_: TransactionType = TransactionType.EXPENSE,
    category: str = "Comida",
    on: date = date(2024, 6, 1),
    description: str = "",
    **kwargs,
) -> Transaction:
    return Transaction(
        date=on,
        type=type_,
        category=category,
        amount=Decimal(amount),
        description=description,
        **kwargs,
    )


def make_debt(
    name: str = "Tarjeta",
    total: str = "1000",
    balance: Optional[str] = None,
    deadline: Optional[date] = None,
    **kwargs,
) -> Debt:
    return Debt(
        name=name,
        total_amount=Decimal(total),
        balance=Decimal(balance if balance is not None else total),
        deadline=deadline,
        **kwargs,
    )


def make_goal(
    name: str = "Viaje",
    target: str = "1000",
    current: str = "0",
    deadline: date = date(2024, 12, 31),
    **kwargs,
) -> SavingsGoal:
    return SavingsGoal(
        name=name,
        target_amount=Decimal(target),
        current_amount=Decimal(current),
        deadline=deadline,
        **kwargs,
    )
