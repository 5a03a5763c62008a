"""AI agents package."""

from finanzas.agents.advisor import (
    AdvisoryConfigurationError,
    AdvisoryError,
    AdvisoryParseError,
    AdvisoryServiceError,
    FinancialAdvisorAgent,
    ModelNotFoundError,
    build_financial_prompt,
    build_period_prompt,
)

__all__ = [
    "AdvisoryConfigurationError",
    "AdvisoryError",
    "AdvisoryParseError",
    "AdvisoryServiceError",
    "FinancialAdvisorAgent",
    "ModelNotFoundError",
    "build_financial_prompt",
    "build_period_prompt",
]
