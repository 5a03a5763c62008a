"""
Application State Container

Holds one user's transactions, debts, savings goals and tag vocabularies
and applies every change optimistically: local state first, then the
persistence gateway.

DESIGN DECISION: A failed write never rolls local state back and never
raises to the UI. It is reported as a FAILED MutationResult, the record
is marked stale, and the failure is audited. Records created locally
carry a temporary id until the store answers with the durable one.

Concurrency notes:
- Each mutation replaces its record by the id it was created with, so
  two in-flight creations never overwrite each other.
- Deleting a record whose create is still in flight removes the stored
  row once the create lands.
- There is no locking. Concurrent edits of the same remote row are
  last-write-wins.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Optional, TypeVar
from uuid import UUID

import structlog

from finanzas.audit import AuditLogger, create_correlation_id
from finanzas.models.finance import (
    Debt,
    FinancialSummary,
    MutationResult,
    SavingsGoal,
    Transaction,
    TransactionType,
    User,
    is_temp_id,
    to_money,
)
from finanzas.reports.aggregator import compute_summary
from finanzas.services.storage import FinanceStorageInterface, StorageError


logger = structlog.get_logger(__name__)

DEFAULT_TAGS: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.INCOME: ("Salario", "Negocio", "Extra"),
    TransactionType.EXPENSE: ("Comida", "Arriendo", "Servicios", "Transporte", "Deudas"),
}

DEBT_PAYMENT_CATEGORY = "Deudas"

R = TypeVar("R", Transaction, Debt, SavingsGoal)


def _index_of(records: list[R], record_id: str) -> Optional[int]:
    for idx, record in enumerate(records):
        if record.id == record_id:
            return idx
    return None


def _replace(records: list[R], record_id: str, new: R) -> bool:
    """Swap the record with the given id in place. False if it is gone."""
    idx = _index_of(records, record_id)
    if idx is None:
        return False
    records[idx] = new
    return True


class FinanceState:
    """
    In-memory view of one user's finances.

    All mutating methods are coroutines returning MutationResult.
    Reads (attributes, summary) are plain and synchronous.
    """

    def __init__(
        self,
        user: User,
        storage: FinanceStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self.user = user
        self._storage = storage
        self._audit = audit_logger or AuditLogger()

        self.transactions: list[Transaction] = []
        self.debts: list[Debt] = []
        self.goals: list[SavingsGoal] = []
        self.tags: dict[TransactionType, list[str]] = {
            type_: list(names) for type_, names in DEFAULT_TAGS.items()
        }
        self.loaded = False
        self._stale: set[str] = set()
        # Temporary ids whose create has not settled yet.
        self._creating: set[str] = set()
        self._deleted_while_creating: set[str] = set()

    # --- Loading ---

    async def load(self) -> bool:
        """
        Fetch every collection of the user, one read per collection.

        The reads are gathered, but table-backed stores answer them one
        after another: their primitives block (see storage/tables.py).

        Returns False (and leaves state untouched) if any read fails.
        """
        try:
            transactions, debts, goals, income_tags, expense_tags = await asyncio.gather(
                self._storage.list_transactions(self.user.id),
                self._storage.list_debts(self.user.id),
                self._storage.list_goals(self.user.id),
                self._storage.list_tags(self.user.id, TransactionType.INCOME),
                self._storage.list_tags(self.user.id, TransactionType.EXPENSE),
            )
        except StorageError as e:
            logger.error("state_load_failed", user_id=self.user.id, error=str(e))
            await self._audit.log_persistence_failed(
                entity_type="user",
                entity_id=self.user.id,
                user_id=self.user.id,
                operation="load",
                error_message=str(e),
            )
            return False

        self.transactions = list(transactions)
        self.debts = list(debts)
        self.goals = list(goals)
        for type_, stored in (
            (TransactionType.INCOME, income_tags),
            (TransactionType.EXPENSE, expense_tags),
        ):
            names = list(DEFAULT_TAGS[type_])
            for name in stored:
                if name not in names:
                    names.append(name)
            self.tags[type_] = names

        self._stale.clear()
        self.loaded = True
        await self._audit.log_data_loaded(
            self.user.id,
            {
                "transactions": len(self.transactions),
                "debts": len(self.debts),
                "goals": len(self.goals),
            },
        )
        return True

    # --- Staleness ---

    def is_stale(self, record_id: str) -> bool:
        """True if the local record was not confirmed by the store."""
        return record_id in self._stale

    @property
    def stale_ids(self) -> frozenset[str]:
        return frozenset(self._stale)

    async def _failed(
        self,
        entity_type: str,
        record_id: str,
        operation: str,
        error: Exception,
        record=None,
        correlation_id: Optional[UUID] = None,
        mark_stale: bool = True,
    ) -> MutationResult:
        if mark_stale:
            self._stale.add(record_id)
        logger.warning(
            "state_persist_failed",
            entity_type=entity_type,
            record_id=record_id,
            operation=operation,
            error=str(error),
        )
        await self._audit.log_persistence_failed(
            entity_type=entity_type,
            entity_id=record_id,
            user_id=self.user.id,
            operation=operation,
            error_message=str(error),
            correlation_id=correlation_id,
        )
        return MutationResult.failed(record_id, str(error), record)

    # --- Transactions ---

    async def add_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """Show the transaction first (newest on top), then persist it."""
        self.transactions.insert(0, transaction)
        return await self._create_remote(
            "transaction",
            self.transactions,
            transaction,
            self._storage.create_transaction,
            self._storage.delete_transaction,
            lambda t: f"{t.type.value} {t.amount} {t.category}",
            correlation_id,
        )

    async def _create_remote(
        self,
        entity_type: str,
        records: list[R],
        record: R,
        create,
        delete,
        describe,
        correlation_id: Optional[UUID] = None,
    ) -> MutationResult:
        """
        Persist a record already shown locally and swap in the stored one.

        A record deleted while its create was in flight is deleted from
        the store as soon as the create lands, and the result is SKIPPED.
        """
        temp_id = record.id
        self._creating.add(temp_id)
        try:
            created = await create(self.user.id, record)
        except StorageError as e:
            self._creating.discard(temp_id)
            gone = temp_id in self._deleted_while_creating
            self._deleted_while_creating.discard(temp_id)
            return await self._failed(
                entity_type, temp_id, "create", e, record, correlation_id, mark_stale=not gone
            )
        self._creating.discard(temp_id)

        await self._audit.log_record_created(
            entity_type,
            created.id,
            self.user.id,
            describe(created),
            correlation_id=correlation_id,
        )

        if temp_id in self._deleted_while_creating:
            self._deleted_while_creating.discard(temp_id)
            deleted = await self._delete_remote(entity_type, created.id, created, delete)
            if not deleted.ok:
                return deleted
            return MutationResult.skipped(created.id, "deleted while saving")

        _replace(records, temp_id, created)
        return MutationResult.success(created.id, created)

    async def delete_transaction(self, transaction_id: str) -> MutationResult:
        idx = _index_of(self.transactions, transaction_id)
        if idx is None:
            return MutationResult.skipped(transaction_id, "not found")
        removed = self.transactions.pop(idx)
        return await self._delete_remote(
            "transaction", transaction_id, removed, self._storage.delete_transaction
        )

    async def _delete_remote(self, entity_type: str, record_id: str, removed, delete) -> MutationResult:
        """Best-effort remote delete after the record left local state."""
        self._stale.discard(record_id)
        if is_temp_id(record_id):
            if record_id in self._creating:
                # Deleted remotely by _create_remote once the row exists.
                self._deleted_while_creating.add(record_id)
            return MutationResult.success(record_id, removed)
        try:
            await delete(record_id)
        except StorageError as e:
            return await self._failed(
                entity_type, record_id, "delete", e, removed, mark_stale=False
            )
        await self._audit.log_record_deleted(entity_type, record_id, self.user.id)
        return MutationResult.success(record_id, removed)

    # --- Debts ---

    async def add_debt(self, debt: Debt) -> MutationResult:
        self.debts.append(debt)
        return await self._create_remote(
            "debt",
            self.debts,
            debt,
            self._storage.create_debt,
            self._storage.delete_debt,
            lambda d: d.name,
        )

    async def delete_debt(self, debt_id: str) -> MutationResult:
        idx = _index_of(self.debts, debt_id)
        if idx is None:
            return MutationResult.skipped(debt_id, "not found")
        removed = self.debts.pop(idx)
        return await self._delete_remote("debt", debt_id, removed, self._storage.delete_debt)

    async def pay_debt(
        self,
        debt_id: str,
        amount: Decimal,
        today: Optional[date] = None,
    ) -> tuple[MutationResult, MutationResult]:
        """
        Record a payment against a debt.

        Lowers the balance by exactly ``amount`` (it may go negative) and
        adds one expense transaction for the same amount, so the payment
        also reduces the net balance.

        Returns:
            (balance_result, expense_result)

        Raises:
            ValueError: If amount is not positive or finer than a cent.
                Nothing is changed in that case.
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Payment amount must be greater than zero")

        idx = _index_of(self.debts, debt_id)
        if idx is None:
            return (
                MutationResult.failed(debt_id, "Debt not found"),
                MutationResult.skipped(reason="Debt not found"),
            )

        debt = self.debts[idx]
        # Built before the balance moves so a rejected expense changes nothing.
        expense = Transaction(
            date=today or date.today(),
            type=TransactionType.EXPENSE,
            category=debt.category or DEBT_PAYMENT_CATEGORY,
            description=f"Pago a: {debt.name}",
            amount=amount,
        )

        correlation_id = create_correlation_id()
        updated = debt.model_copy(update={"balance": debt.balance - amount})
        self.debts[idx] = updated

        try:
            await self._storage.update_debt_balance(debt_id, updated.balance)
        except StorageError as e:
            balance_result = await self._failed(
                "debt", debt_id, "update", e, updated, correlation_id
            )
        else:
            self._stale.discard(debt_id)
            balance_result = MutationResult.success(debt_id, updated)
            await self._audit.log_debt_payment(
                debt_id=debt_id,
                user_id=self.user.id,
                amount=str(amount),
                new_balance=str(updated.balance),
                correlation_id=correlation_id,
            )

        expense_result = await self.add_transaction(expense, correlation_id=correlation_id)
        return balance_result, expense_result

    # --- Savings goals ---

    async def add_goal(self, goal: SavingsGoal) -> MutationResult:
        self.goals.append(goal)
        return await self._create_remote(
            "goal",
            self.goals,
            goal,
            self._storage.create_goal,
            self._storage.delete_goal,
            lambda g: g.name,
        )

    async def update_goal(self, goal: SavingsGoal) -> MutationResult:
        """
        Replace a goal locally.

        Only current_amount is written to the store; other edits stay local.
        """
        if not _replace(self.goals, goal.id, goal):
            return MutationResult.failed(goal.id, "Goal not found")

        try:
            await self._storage.update_goal_current_amount(goal.id, goal.current_amount)
        except StorageError as e:
            return await self._failed("goal", goal.id, "update", e, goal)

        self._stale.discard(goal.id)
        await self._audit.log_goal_updated(goal.id, self.user.id, str(goal.current_amount))
        return MutationResult.success(goal.id, goal)

    async def contribute_to_goal(
        self,
        goal_id: str,
        amount: Decimal,
    ) -> tuple[MutationResult, bool]:
        """
        Add funds to a goal.

        Returns:
            (result, just_completed) where just_completed is True when this
            contribution reached the target.

        Raises:
            ValueError: If amount is not positive or finer than a cent
        """
        amount = to_money(amount)
        if amount <= 0:
            raise ValueError("Contribution amount must be greater than zero")

        idx = _index_of(self.goals, goal_id)
        if idx is None:
            return MutationResult.failed(goal_id, "Goal not found"), False

        goal = self.goals[idx]
        updated = goal.model_copy(update={"current_amount": goal.current_amount + amount})
        just_completed = updated.is_completed and not goal.is_completed
        return await self.update_goal(updated), just_completed

    async def delete_goal(self, goal_id: str) -> MutationResult:
        idx = _index_of(self.goals, goal_id)
        if idx is None:
            return MutationResult.skipped(goal_id, "not found")
        removed = self.goals.pop(idx)
        return await self._delete_remote("goal", goal_id, removed, self._storage.delete_goal)

    # --- Tags ---

    async def add_tag(self, type_: TransactionType, name: str) -> MutationResult:
        """
        Add a category label to a vocabulary.

        Exact-match duplicates are skipped without touching storage.
        """
        name = name.strip()
        if not name:
            return MutationResult.skipped(reason="empty tag")
        names = self.tags[type_]
        if name in names:
            return MutationResult.skipped(name, "duplicate")

        names.append(name)
        try:
            tag = await self._storage.create_tag(self.user.id, type_, name)
        except StorageError as e:
            return await self._failed("tag", name, "create", e, name)

        await self._audit.log_record_created("tag", name, self.user.id, f"{type_.value}:{name}")
        return MutationResult.success(name, tag)

    # --- Derived ---

    def summary(self, today: Optional[date] = None) -> FinancialSummary:
        return compute_summary(self.transactions, self.debts, today=today)
