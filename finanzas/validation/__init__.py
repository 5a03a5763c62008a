"""Form validation package."""

from finanzas.validation.validator import FormValidator, parse_amount

__all__ = ["FormValidator", "parse_amount"]
