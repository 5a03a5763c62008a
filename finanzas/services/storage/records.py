"""
Record Shaping for the Hosted Tables

Every table row is a flat mapping of snake_case column name to string
cell. This module owns the translation between those rows and the
domain models, in both directions, so every backend stores exactly the
same shape.

The client-side id of a new record is never written: the store assigns
the durable id on insert.
"""

import hashlib
import hmac
import secrets
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from finanzas.models.finance import (
    Debt,
    SavingsGoal,
    Tag,
    Transaction,
    TransactionType,
    User,
)


Row = dict[str, str]

USERS = "users"
TRANSACTIONS = "transactions"
DEBTS = "debts"
GOALS = "savings_goals"
TAGS = "tags"

TABLE_COLUMNS: dict[str, list[str]] = {
    USERS: [
        "id",
        "username",
        "password_hash",
        "salt",
        "created_at",
    ],
    TRANSACTIONS: [
        "id",
        "user_id",
        "date",
        "type",
        "category",
        "amount",
        "description",
    ],
    DEBTS: [
        "id",
        "user_id",
        "name",
        "total_amount",
        "balance",
        "deadline",
        "category",
        "interest_rate",
        "payment_day",
    ],
    GOALS: [
        "id",
        "user_id",
        "name",
        "target_amount",
        "current_amount",
        "deadline",
        "color",
    ],
    TAGS: [
        "id",
        "user_id",
        "type",
        "name",
    ],
}

PBKDF2_ITERATIONS = 200_000


# =============================================================================
# CELL CODECS
# =============================================================================

def _opt_str(value) -> str:
    return "" if value is None else str(value)


def _opt_date(cell: str) -> Optional[date]:
    return date.fromisoformat(cell) if cell else None


def _opt_decimal(cell: str) -> Optional[Decimal]:
    return Decimal(cell) if cell else None


def _opt_int(cell: str) -> Optional[int]:
    return int(cell) if cell else None


# =============================================================================
# USERS
# =============================================================================

def hash_password(password: str, salt: Optional[str] = None) -> tuple[str, str]:
    """Return (hash, salt). A fresh salt is generated when none is given."""
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256",
        password.encode("utf-8"),
        bytes.fromhex(salt),
        PBKDF2_ITERATIONS,
    )
    return digest.hex(), salt


def verify_password(password: str, row: Row) -> bool:
    expected = row.get("password_hash", "")
    if not expected or not row.get("salt"):
        return False
    candidate, _ = hash_password(password, row["salt"])
    return hmac.compare_digest(candidate, expected)


def user_to_row(username: str, password: str) -> Row:
    password_hash, salt = hash_password(password)
    return {
        "username": username,
        "password_hash": password_hash,
        "salt": salt,
        "created_at": datetime.utcnow().isoformat(),
    }


def row_to_user(row: Row) -> User:
    return User(
        id=row["id"],
        username=row["username"],
        created_at=datetime.fromisoformat(row["created_at"]) if row.get("created_at") else None,
    )


# =============================================================================
# TRANSACTIONS
# =============================================================================

def transaction_to_row(user_id: str, transaction: Transaction) -> Row:
    return {
        "user_id": user_id,
        "date": transaction.date.isoformat(),
        "type": transaction.type.value,
        "category": transaction.category,
        "amount": str(transaction.amount),
        "description": transaction.description,
    }


def row_to_transaction(row: Row) -> Transaction:
    return Transaction(
        id=row["id"],
        date=date.fromisoformat(row["date"]),
        type=TransactionType(row["type"]),
        category=row["category"],
        amount=Decimal(row["amount"]),
        description=row.get("description", ""),
    )


# =============================================================================
# DEBTS
# =============================================================================

def debt_to_row(user_id: str, debt: Debt) -> Row:
    return {
        "user_id": user_id,
        "name": debt.name,
        "total_amount": str(debt.total_amount),
        "balance": str(debt.balance),
        "deadline": debt.deadline.isoformat() if debt.deadline else "",
        "category": debt.category,
        "interest_rate": _opt_str(debt.interest_rate),
        "payment_day": _opt_str(debt.payment_day),
    }


def row_to_debt(row: Row) -> Debt:
    return Debt(
        id=row["id"],
        name=row["name"],
        total_amount=Decimal(row["total_amount"]),
        balance=Decimal(row["balance"]),
        deadline=_opt_date(row.get("deadline", "")),
        category=row.get("category", ""),
        interest_rate=_opt_decimal(row.get("interest_rate", "")),
        payment_day=_opt_int(row.get("payment_day", "")),
    )


# =============================================================================
# SAVINGS GOALS
# =============================================================================

def goal_to_row(user_id: str, goal: SavingsGoal) -> Row:
    return {
        "user_id": user_id,
        "name": goal.name,
        "target_amount": str(goal.target_amount),
        "current_amount": str(goal.current_amount),
        "deadline": goal.deadline.isoformat(),
        "color": goal.color,
    }


def row_to_goal(row: Row) -> SavingsGoal:
    return SavingsGoal(
        id=row["id"],
        name=row["name"],
        target_amount=Decimal(row["target_amount"]),
        current_amount=Decimal(row.get("current_amount") or "0"),
        deadline=date.fromisoformat(row["deadline"]),
        color=row.get("color") or "#0ea5e9",
    )


# =============================================================================
# TAGS
# =============================================================================

def tag_to_row(user_id: str, type_: TransactionType, name: str) -> Row:
    return {
        "user_id": user_id,
        "type": type_.value,
        "name": name,
    }


def row_to_tag(row: Row) -> Tag:
    return Tag(
        user_id=row["user_id"],
        type=TransactionType(row["type"]),
        name=row["name"],
    )
