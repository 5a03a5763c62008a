"""
Financial Aggregator

DESIGN DECISION: Every figure the app displays is computed here by a
pure function over the in-memory collections. No I/O, no hidden state,
no caching: the same inputs always give the same outputs.

Anything that depends on "today" takes it as an argument so callers
(and tests) can pin the reference day.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from dateutil.relativedelta import relativedelta

from finanzas.models.finance import (
    BalancePoint,
    CategoryTotal,
    DayBucket,
    Debt,
    FinancialSummary,
    PeriodReport,
    RequiredSavings,
    SavingsCadence,
    SavingsGoal,
    Timeframe,
    Transaction,
    TransactionType,
    round_half_up,
)
from finanzas.reports.formatting import days_in_month


ZERO = Decimal("0")


def _total(transactions: Iterable[Transaction], type_: TransactionType) -> Decimal:
    return sum((t.amount for t in transactions if t.type == type_), ZERO)


def compute_summary(
    transactions: Sequence[Transaction],
    debts: Sequence[Debt],
    today: Optional[date] = None,
) -> FinancialSummary:
    """Dashboard totals, savings rate and upcoming debt deadlines."""
    today = today or date.today()

    total_income = _total(transactions, TransactionType.INCOME)
    total_expense = _total(transactions, TransactionType.EXPENSE)
    net_balance = total_income - total_expense

    savings_rate = 0
    if total_income > 0:
        savings_rate = round_half_up(net_balance / total_income * 100)

    total_debt = sum((d.balance for d in debts), ZERO)

    upcoming = sorted(
        (d for d in debts if d.deadline is not None and d.deadline >= today),
        key=lambda d: d.deadline,
    )

    return FinancialSummary(
        total_income=total_income,
        total_expense=total_expense,
        net_balance=net_balance,
        savings_rate=savings_rate,
        total_debt=total_debt,
        projected_savings=max(net_balance, ZERO),
        upcoming_payments=upcoming,
    )


def compute_income_vs_expense(transactions: Sequence[Transaction]) -> dict[TransactionType, Decimal]:
    return {
        TransactionType.INCOME: _total(transactions, TransactionType.INCOME),
        TransactionType.EXPENSE: _total(transactions, TransactionType.EXPENSE),
    }


def compute_category_totals(
    transactions: Sequence[Transaction],
    type_: TransactionType = TransactionType.EXPENSE,
) -> list[CategoryTotal]:
    """
    Sum amounts per category, largest first.

    Python's sort is stable, so categories with equal totals keep the
    order in which they were first seen.
    """
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.type != type_:
            continue
        totals[t.category] = totals.get(t.category, ZERO) + t.amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryTotal(category=name, total=total) for name, total in ranked]


def compute_required_savings(
    goal: SavingsGoal,
    as_of: Optional[date] = None,
) -> RequiredSavings:
    """
    How much has to be put aside to reach a goal by its deadline.

    - Remaining <= 0: completed.
    - At least one calendar month left: remaining / months.
    - Deadline today or already passed: the whole remaining amount.
    - Same month, still ahead: remaining / (days / 7). The divisor is
      not rounded, so this is a continuous weekly rate.
    """
    as_of = as_of or date.today()
    remaining = goal.target_amount - goal.current_amount

    if remaining <= 0:
        return RequiredSavings(amount=ZERO, cadence=SavingsCadence.COMPLETED)

    months = (goal.deadline.year - as_of.year) * 12 + (goal.deadline.month - as_of.month)
    if months >= 1:
        return RequiredSavings(amount=remaining / months, cadence=SavingsCadence.MONTHLY)

    days = (goal.deadline - as_of).days
    if days <= 0:
        return RequiredSavings(amount=remaining, cadence=SavingsCadence.OVERDUE)

    weeks = Decimal(days) / Decimal(7)
    return RequiredSavings(amount=remaining / weeks, cadence=SavingsCadence.WEEKLY)


def compute_calendar_buckets(
    transactions: Sequence[Transaction],
    debts: Sequence[Debt],
    year: int,
    month: int,
) -> dict[int, DayBucket]:
    """
    Group one month of activity by day of month.

    Debts with a payment day add a reminder on that day every month,
    regardless of the debt's deadline or transaction history. A payment
    day that does not exist in the month (e.g. 31 in April) is skipped.
    """
    buckets: dict[int, DayBucket] = {}

    for t in transactions:
        if t.date.year != year or t.date.month != month:
            continue
        bucket = buckets.setdefault(t.date.day, DayBucket())
        if t.type == TransactionType.INCOME:
            bucket.income_total += t.amount
        else:
            bucket.expense_total += t.amount
        bucket.transactions.append(t)

    last_day = days_in_month(year, month)
    for d in debts:
        if d.payment_day and d.payment_day <= last_day:
            buckets.setdefault(d.payment_day, DayBucket()).events.append(
                f"Vencimiento: {d.name}"
            )

    return buckets


def compute_balance_series(transactions: Sequence[Transaction]) -> list[BalancePoint]:
    """
    Cumulative balance over time, one point per distinct date.

    Several transactions on the same date collapse into a single point
    holding the running total after the last of them.
    """
    running = ZERO
    points: dict[date, Decimal] = {}

    for t in sorted(transactions, key=lambda t: t.date):
        if t.type == TransactionType.INCOME:
            running += t.amount
        else:
            running -= t.amount
        points[t.date] = running

    return [BalancePoint(date=day, balance=value) for day, value in points.items()]


def transactions_of_type(
    transactions: Sequence[Transaction],
    type_: TransactionType,
) -> list[Transaction]:
    """Transactions of one type, newest first."""
    return sorted(
        (t for t in transactions if t.type == type_),
        key=lambda t: t.date,
        reverse=True,
    )


def search_transactions(
    transactions: Sequence[Transaction],
    term: str,
    limit: int = 5,
    min_length: int = 2,
) -> list[Transaction]:
    """Case-insensitive match on description or category."""
    term = term.strip().lower()
    if len(term) < min_length:
        return []

    matches = [
        t for t in transactions
        if term in t.description.lower() or term in t.category.lower()
    ]
    return matches[:limit]


def active_debt_count(debts: Sequence[Debt]) -> int:
    return sum(1 for d in debts if d.balance > 0)


def timeframe_start(timeframe: Timeframe, as_of: Optional[date] = None) -> date:
    """First day included in a reporting window."""
    as_of = as_of or date.today()
    return as_of - relativedelta(months=timeframe.months)


def filter_by_timeframe(
    transactions: Sequence[Transaction],
    timeframe: Timeframe,
    as_of: Optional[date] = None,
) -> list[Transaction]:
    start = timeframe_start(timeframe, as_of)
    return [t for t in transactions if t.date >= start]


def compute_period_report(
    transactions: Sequence[Transaction],
    timeframe: Timeframe,
    as_of: Optional[date] = None,
    top: int = 3,
) -> PeriodReport:
    """Income, expense, cash flow and top expense categories for a window."""
    as_of = as_of or date.today()
    window = filter_by_timeframe(transactions, timeframe, as_of)

    income = _total(window, TransactionType.INCOME)
    expense = _total(window, TransactionType.EXPENSE)

    return PeriodReport(
        timeframe=timeframe,
        start=timeframe_start(timeframe, as_of),
        end=as_of,
        income=income,
        expense=expense,
        balance=income - expense,
        top_categories=compute_category_totals(window, TransactionType.EXPENSE)[:top],
    )
