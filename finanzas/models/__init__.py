"""
Data Models Package

This package contains all Pydantic models used in Finanzas Pro.
All data flowing through the system must conform to these schemas.
"""

from finanzas.models.finance import (
    BalancePoint,
    CategoryTotal,
    DayBucket,
    Debt,
    FinancialSummary,
    MutationResult,
    MutationStatus,
    PeriodReport,
    RequiredSavings,
    SavingsCadence,
    SavingsGoal,
    Tag,
    Theme,
    Timeframe,
    Transaction,
    TransactionType,
    User,
    ValidationIssue,
    ValidationResult,
    generate_temp_id,
    has_sub_cents,
    is_temp_id,
    round_half_up,
    to_money,
)
from finanzas.models.advice import (
    FinancialAdvice,
    PeriodReportAdvice,
    Recommendation,
)
from finanzas.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "BalancePoint",
    "CategoryTotal",
    "DayBucket",
    "Debt",
    "FinancialSummary",
    "MutationResult",
    "MutationStatus",
    "PeriodReport",
    "RequiredSavings",
    "SavingsCadence",
    "SavingsGoal",
    "Tag",
    "Theme",
    "Timeframe",
    "Transaction",
    "TransactionType",
    "User",
    "ValidationIssue",
    "ValidationResult",
    "generate_temp_id",
    "has_sub_cents",
    "is_temp_id",
    "round_half_up",
    "to_money",
    # Advice models
    "FinancialAdvice",
    "PeriodReportAdvice",
    "Recommendation",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
