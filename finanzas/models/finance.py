"""
Core Data Models for Finanzas Pro

These models define the schemas for every record the app keeps:
transactions, debts, savings goals, tags and users, plus the derived
values the aggregator produces.

DESIGN DECISION: Records are frozen. A change is always a new object
that replaces the old one in the state container, so an in-flight
persistence call can never observe a half-edited record.
"""

from datetime import date, datetime
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)


TEMP_ID_PREFIX = "tmp-"


def generate_temp_id() -> str:
    """Client-side identifier used until the store assigns a durable one."""
    return f"{TEMP_ID_PREFIX}{uuid4().hex}"


def is_temp_id(record_id: str) -> bool:
    return record_id.startswith(TEMP_ID_PREFIX)


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer, halves towards positive infinity."""
    return int((value + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR))


CENT = Decimal("0.01")


def has_sub_cents(value: Decimal) -> bool:
    """True for amounts like 10.005 that no money column can hold."""
    return value.normalize().as_tuple().exponent < -2


def to_money(value: Any) -> Decimal:
    """
    Convert an amount to a Decimal with at most two decimal places.

    Floats go through str() so 0.1 stays 0.1. Trailing zeros past the
    cent ("10.500") are dropped.

    Raises:
        ValueError: Not a finite number, or finer than a cent
    """
    try:
        amount = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    if has_sub_cents(amount):
        raise ValueError(f"Amount is finer than a cent: {value!r}")
    if amount.as_tuple().exponent < -2:
        return amount.quantize(CENT)
    return amount


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction. Tags are scoped by the same values."""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def label(self) -> str:
        return "Ingresos" if self is TransactionType.INCOME else "Gastos"


class SavingsCadence(str, Enum):
    """How the required savings amount for a goal should be read."""
    COMPLETED = "completed"
    MONTHLY = "monthly"
    WEEKLY = "weekly"
    OVERDUE = "overdue"

    @property
    def label(self) -> str:
        return {
            SavingsCadence.COMPLETED: "¡Meta completada!",
            SavingsCadence.MONTHLY: "Mensualmente:",
            SavingsCadence.WEEKLY: "Semanalmente:",
            SavingsCadence.OVERDUE: "¡Vencida! Necesitas:",
        }[self]


class Timeframe(str, Enum):
    """Reporting windows, counted back from the reference day."""
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"

    @property
    def months(self) -> int:
        return {"1M": 1, "3M": 3, "6M": 6, "1Y": 12}[self.value]

    @property
    def period_name(self) -> str:
        return {
            "1M": "Mensual",
            "3M": "Trimestral",
            "6M": "Semestral",
            "1Y": "Anual",
        }[self.value]


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class MutationStatus(str, Enum):
    """Outcome of a state-container mutation."""
    SUCCESS = "success"
    FAILED = "failed"    # Local state applied, remote store not updated
    SKIPPED = "skipped"  # Nothing to do (e.g. duplicate tag)


# =============================================================================
# STORED RECORDS
# =============================================================================

class User(BaseModel):
    """A logged-in user. Credentials stay inside the storage gateway."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str
    username: str = Field(..., min_length=1, max_length=100)
    created_at: Optional[datetime] = None


class Transaction(BaseModel):
    """
    A single income or expense entry.

    Immutable once created; the only way to change one is to delete it.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=generate_temp_id)
    date: date
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text tag from the user's vocabulary"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount in the user's currency"
    )
    description: str = Field(default="", max_length=500)


class Debt(BaseModel):
    """
    A debt or recurring commitment.

    The balance is not floored at zero: an over-payment
    leaves a negative balance.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=generate_temp_id)
    name: str = Field(..., min_length=1, max_length=200)
    total_amount: Decimal = Field(..., ge=0, description="Original amount owed")
    balance: Decimal = Field(..., description="Remaining balance")
    deadline: Optional[date] = Field(
        default=None,
        description="Payment deadline"
    )
    category: str = Field(default="Otro", max_length=100)
    interest_rate: Optional[Decimal] = Field(default=None, ge=0)
    payment_day: Optional[int] = Field(
        default=None,
        ge=1,
        le=31,
        description="Recurring day of month shown on the calendar"
    )

    @property
    def is_paid(self) -> bool:
        return self.balance <= 0

    def days_left(self, today: Optional[date] = None) -> Optional[int]:
        """Whole days until the deadline; negative once it has passed."""
        if self.deadline is None:
            return None
        return (self.deadline - (today or date.today())).days


class SavingsGoal(BaseModel):
    """
    A savings target.

    current_amount is a virtual ledger: it is not linked to transactions.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=generate_temp_id)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    deadline: date
    color: str = Field(default="#0ea5e9", pattern="^#[0-9a-fA-F]{6}$")

    @computed_field
    @property
    def progress(self) -> int:
        """Percentage towards the target, capped at 100."""
        return min(100, round_half_up(self.current_amount / self.target_amount * 100))

    @property
    def is_completed(self) -> bool:
        return self.current_amount >= self.target_amount


class Tag(BaseModel):
    """A user-scoped category label. Append-only."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    user_id: str
    type: TransactionType
    name: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# DERIVED VALUES (never persisted)
# =============================================================================

class FinancialSummary(BaseModel):
    """Dashboard figures derived from transactions and debts."""

    total_income: Decimal
    total_expense: Decimal
    net_balance: Decimal
    savings_rate: int = Field(description="Percent of income left over")
    total_debt: Decimal
    projected_savings: Decimal
    upcoming_payments: list[Debt] = Field(default_factory=list)


class CategoryTotal(BaseModel):
    category: str
    total: Decimal


class BalancePoint(BaseModel):
    date: date
    balance: Decimal


class DayBucket(BaseModel):
    """Everything that happens on one calendar day."""

    income_total: Decimal = Decimal("0")
    expense_total: Decimal = Decimal("0")
    events: list[str] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)


class RequiredSavings(BaseModel):
    amount: Decimal
    cadence: SavingsCadence

    @property
    def label(self) -> str:
        return self.cadence.label


class PeriodReport(BaseModel):
    """Totals for a reporting window, input of the period advice prompt."""

    timeframe: Timeframe
    start: date
    end: date
    income: Decimal
    expense: Decimal
    balance: Decimal
    top_categories: list[CategoryTotal] = Field(default_factory=list)

    @property
    def period_name(self) -> str:
        return self.timeframe.period_name


# =============================================================================
# MUTATION OUTCOMES
# =============================================================================

class MutationResult(BaseModel):
    """
    What happened to a state-container mutation.

    A FAILED result means the local change was kept but the remote
    store did not confirm it; the record is marked stale.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: MutationStatus
    record_id: Optional[str] = None
    record: Optional[Any] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is MutationStatus.SUCCESS

    @classmethod
    def success(cls, record_id: Optional[str], record: Any = None) -> "MutationResult":
        return cls(status=MutationStatus.SUCCESS, record_id=record_id, record=record)

    @classmethod
    def failed(
        cls,
        record_id: Optional[str],
        error: str,
        record: Any = None,
    ) -> "MutationResult":
        return cls(
            status=MutationStatus.FAILED,
            record_id=record_id,
            record=record,
            error=error,
        )

    @classmethod
    def skipped(cls, record_id: Optional[str] = None, reason: Optional[str] = None) -> "MutationResult":
        return cls(status=MutationStatus.SKIPPED, record_id=record_id, error=reason)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single problem found in a form submission."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of checking a form before submission."""

    form: str
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")

    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]
