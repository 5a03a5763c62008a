"""Display helpers shared by the UI and the advisory prompts."""

import calendar
from decimal import ROUND_HALF_UP, Decimal
from typing import Union


MONTH_NAMES = [
    "Enero", "Febrero", "Marzo", "Abril", "Mayo", "Junio",
    "Julio", "Agosto", "Septiembre", "Octubre", "Noviembre", "Diciembre",
]


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def first_weekday_of_month(year: int, month: int) -> int:
    """Weekday of the 1st, Sunday = 0 (calendar grid offset)."""
    return (calendar.weekday(year, month, 1) + 1) % 7


def month_name(month: int) -> str:
    return MONTH_NAMES[month - 1]


def format_currency(amount: Union[Decimal, int, float], symbol: str = "$") -> str:
    """
    Format an amount as Colombian pesos: no decimals, dot thousands.

    >>> format_currency(Decimal("1234567.6"))
    '$ 1.234.568'
    """
    value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    digits = f"{abs(value):,}".replace(",", ".")
    return f"{sign}{symbol} {digits}"
