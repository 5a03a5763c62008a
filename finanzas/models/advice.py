"""
Advisory Reply Models

The AI endpoint is asked to answer with bare JSON. These models are the
shape we accept; anything else is a parse error.

The JSON keys are camelCase because that is what the prompts ask for.
Python code reads the snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Recommendation(_CamelModel):
    """One investment or savings suggestion."""

    type: str = Field(description="Instrument kind (CDT, ETF, fondo, deuda...)")
    title: str
    description: str
    risk_level: str = Field(default="", description="Bajo, Medio o Alto")


class FinancialAdvice(_CamelModel):
    """Reply to the holistic snapshot prompt."""

    analysis: str
    savings_target: str
    recommendations: list[Recommendation] = Field(default_factory=list)
    alert: str = ""

    @property
    def has_alert(self) -> bool:
        return bool(self.alert)


class PeriodReportAdvice(_CamelModel):
    """Reply to the bounded period report prompt."""

    summary: str
    expense_analysis: str
    investment_tip: str
    action_item: str
