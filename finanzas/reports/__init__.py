"""Aggregation and formatting package."""

from finanzas.reports.aggregator import (
    active_debt_count,
    compute_balance_series,
    compute_calendar_buckets,
    compute_category_totals,
    compute_income_vs_expense,
    compute_period_report,
    compute_required_savings,
    compute_summary,
    filter_by_timeframe,
    search_transactions,
    timeframe_start,
    transactions_of_type,
)
from finanzas.reports.formatting import (
    days_in_month,
    first_weekday_of_month,
    format_currency,
    month_name,
)

__all__ = [
    "active_debt_count",
    "compute_balance_series",
    "compute_calendar_buckets",
    "compute_category_totals",
    "compute_income_vs_expense",
    "compute_period_report",
    "compute_required_savings",
    "compute_summary",
    "days_in_month",
    "filter_by_timeframe",
    "first_weekday_of_month",
    "format_currency",
    "month_name",
    "search_transactions",
    "timeframe_start",
    "transactions_of_type",
]
