"""
Financial Advisor Agent

DESIGN DECISION: The advisor is a single stateless call per request.
Prompts are built deterministically from figures the aggregator already
computed; the model only turns those figures into prose and suggestions.

CRITICAL BOUNDARIES:

1. The LLM NEVER sees raw transactions, only aggregated totals.
2. The LLM NEVER writes to storage. Its reply is displayed and discarded.
3. Replies MUST be bare JSON in the shape of the advice models.
   Anything else is a parse error shown to the user, never a guess.

There is no retry and no caching. A failed call is reported and the
user can ask again.
"""

import json
from typing import Any, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from pydantic import ValidationError

from finanzas.config import get_settings
from finanzas.config.settings import GeminiSettings
from finanzas.models.advice import FinancialAdvice, PeriodReportAdvice
from finanzas.models.finance import FinancialSummary, PeriodReport


logger = structlog.get_logger(__name__)


class AdvisoryError(Exception):
    """Base error for everything the advisor can fail with."""


class AdvisoryConfigurationError(AdvisoryError):
    """No API key is configured; nothing was sent."""


class AdvisoryServiceError(AdvisoryError):
    """The AI service rejected or failed the request."""


class ModelNotFoundError(AdvisoryServiceError):
    """The configured model does not exist or the key has no access to it."""


class AdvisoryParseError(AdvisoryError):
    """The reply was empty, not JSON, or not in the expected shape."""


def _amount(value) -> str:
    return f"{value:f}"


def build_financial_prompt(summary: FinancialSummary, user_name: str = "Usuario") -> str:
    """Prompt for the holistic snapshot of the user's finances."""
    return f"""Actúa como un asesor financiero experto personal.
Analiza estos datos financieros de {user_name}:

- Ingresos Totales Históricos: {_amount(summary.total_income)}
- Gastos Totales Históricos: {_amount(summary.total_expense)}
- Balance Disponible (Caja actual): {_amount(summary.net_balance)}
- Tasa de Ahorro (Margen Libre): {summary.savings_rate}%
- Deuda Total Pendiente: {_amount(summary.total_debt)}

IMPORTANTE: Devuelve SOLAMENTE un objeto JSON válido con esta estructura exacta (sin markdown, sin bloques de código):
{{
  "analysis": "Un resumen de 2 frases sobre la salud financiera actual. Sé directo y empático.",
  "savingsTarget": "Un monto sugerido de ahorro mensual en formato moneda (ej. '$ 200.000 COP').",
  "recommendations": [
    {{
      "type": "Tipo (ej. CDT, ETF, Fondo, Deuda)",
      "title": "Título corto de la recomendación",
      "description": "Explicación breve de por qué conviene esto ahora.",
      "riskLevel": "Bajo, Medio o Alto"
    }}
  ],
  "alert": "Si la deuda es > 40% de ingresos o el balance es negativo, pon una alerta aquí. Si no, déjalo vacío."
}}"""


def build_period_prompt(report: PeriodReport) -> str:
    """Prompt auditing one reporting window."""
    if report.top_categories:
        top = ", ".join(
            f"{c.category} (${_amount(c.total)})" for c in report.top_categories
        )
    else:
        top = "Sin gastos registrados"

    return f"""Actúa como un analista financiero auditando el periodo: {report.period_name}.

Datos del periodo:
- Ingresos: {_amount(report.income)}
- Gastos: {_amount(report.expense)}
- Flujo de Caja (Balance): {_amount(report.balance)}
- Categorías donde más se gastó: {top}

IMPORTANTE: Devuelve SOLAMENTE un objeto JSON válido con esta estructura exacta:
{{
  "summary": "Opinión profesional sobre el desempeño en este periodo (¿fue bueno, malo, regular? ¿por qué?).",
  "expenseAnalysis": "Analiza las categorías top. ¿Son gastos necesarios o caprichos? Dame un consejo para reducir el más alto.",
  "investmentTip": "Si el flujo de caja es positivo, sugiere qué hacer con ese excedente específico. Si es negativo, sugiere cómo cubrir el déficit.",
  "actionItem": "Una sola acción concreta y realizable para aplicar en el siguiente periodo similar."
}}"""


class FinancialAdvisorAgent:
    """
    Asks the generative model for advice on aggregated figures.

    RESPONSIBILITIES:
    - Build the prompt for each kind of advice
    - Make exactly one model call per request
    - Validate the JSON reply into an advice model

    BOUNDARIES:
    - NEVER retries
    - NEVER invents a reply when the model fails
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Optional[Any] = None,
    ):
        """
        Initialize the agent.

        Args:
            settings: Gemini settings; loaded from the environment if None.
            model: Pre-built model exposing ``generate_content_async``.
                   If None, one is created on first use.
        """
        self._settings = settings or get_settings().gemini
        self._model = model

    def _get_model(self):
        if self._model is not None:
            return self._model

        if not self._settings.is_configured:
            raise AdvisoryConfigurationError(
                "API Key no configurada. Define GEMINI_API_KEY en el entorno."
            )

        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            },
        )
        return self._model

    async def _generate_json(self, prompt: str) -> dict:
        model = self._get_model()

        try:
            response = await model.generate_content_async(prompt)
        except google_exceptions.NotFound as e:
            logger.error("advisor_model_not_found", model=self._settings.model_name)
            raise ModelNotFoundError(
                f"El modelo de IA ({self._settings.model_name}) no está disponible. "
                "Verifica que tu API Key tenga acceso a este modelo."
            ) from e
        except google_exceptions.GoogleAPIError as e:
            logger.error("advisor_service_error", error=str(e))
            raise AdvisoryServiceError(str(e) or "Error de conexión con el Asesor Inteligente.") from e

        try:
            text = (response.text or "").strip()
        except ValueError as e:
            # Raised by the SDK when the reply has no text parts.
            raise AdvisoryParseError("La IA no devolvió respuesta válida.") from e

        if not text:
            raise AdvisoryParseError("La IA no devolvió respuesta válida.")

        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise AdvisoryParseError("La respuesta de la IA no es un objeto JSON.")

        try:
            data = json.loads(text[start:end])
        except json.JSONDecodeError as e:
            raise AdvisoryParseError("La respuesta de la IA no es un objeto JSON.") from e

        if not isinstance(data, dict):
            raise AdvisoryParseError("La respuesta de la IA no es un objeto JSON.")
        return data

    async def get_financial_advice(
        self,
        summary: FinancialSummary,
        user_name: str = "Usuario",
    ) -> FinancialAdvice:
        """Holistic advice for the whole history of the user."""
        data = await self._generate_json(build_financial_prompt(summary, user_name))
        try:
            return FinancialAdvice.model_validate(data)
        except ValidationError as e:
            raise AdvisoryParseError(f"Respuesta con formato inesperado: {e.error_count()} errores") from e

    async def get_period_report_advice(self, report: PeriodReport) -> PeriodReportAdvice:
        """Audit of a single reporting window."""
        data = await self._generate_json(build_period_prompt(report))
        try:
            return PeriodReportAdvice.model_validate(data)
        except ValidationError as e:
            raise AdvisoryParseError(f"Respuesta con formato inesperado: {e.error_count()} errores") from e
