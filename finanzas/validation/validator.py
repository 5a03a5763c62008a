"""
Form Validation

DESIGN DECISION: Forms are checked before anything touches local state.
A submission that fails here never becomes an optimistic update, so the
UI can show every problem at once instead of failing on the first one.

IMPORTANT: Validation NEVER silently fixes values. Defaults that the
forms apply (category 'General', debt category 'Otro') are applied by the
caller after validation passes; this module only reports.
"""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from finanzas.models.finance import ValidationIssue, ValidationResult, has_sub_cents


AmountInput = Union[Decimal, int, float, str, None]

MIN_PASSWORD_LENGTH = 4


def parse_amount(raw: AmountInput) -> Optional[Decimal]:
    """
    Turn a form value into a Decimal.

    Returns None for blanks and anything that is not a finite number.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    try:
        value = Decimal(str(raw))
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


class FormValidator:
    """Checks each entry form of the app and returns every issue found."""

    @staticmethod
    def _amount_issues(
        field: str,
        raw: AmountInput,
        label: str,
        allow_zero: bool = False,
    ) -> list[ValidationIssue]:
        amount = parse_amount(raw)
        if amount is None:
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} es obligatorio",
            )]
        if amount < 0 or (amount == 0 and not allow_zero):
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{label} debe ser mayor que cero",
            )]
        if has_sub_cents(amount):
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{label} admite como máximo dos decimales",
            )]
        return []

    @staticmethod
    def _required_text(field: str, value: Optional[str], label: str) -> list[ValidationIssue]:
        if value is None or not value.strip():
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} es obligatorio",
            )]
        return []

    def validate_transaction_form(
        self,
        amount: AmountInput,
        category: Optional[str],
        tx_date: Optional[date] = None,
    ) -> ValidationResult:
        """Amount > 0 and a category are required."""
        issues = self._amount_issues("amount", amount, "El monto")
        issues += self._required_text("category", category, "La categoría")
        if tx_date is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="La fecha es obligatoria",
            ))
        return ValidationResult(form="transaction", issues=issues)

    def validate_debt_form(
        self,
        name: Optional[str],
        total_amount: AmountInput,
        interest_rate: AmountInput = None,
        payment_day: Optional[int] = None,
    ) -> ValidationResult:
        """
        Name and total amount are required.

        Interest rate and payment day are optional but must be sensible
        when given.
        """
        issues = self._required_text("name", name, "El nombre")
        issues += self._amount_issues("total_amount", total_amount, "El monto total")

        if interest_rate is not None and interest_rate != "":
            rate = parse_amount(interest_rate)
            if rate is None or rate < 0:
                issues.append(ValidationIssue(
                    field="interest_rate",
                    issue_type="invalid_value",
                    message="La tasa de interés no es válida",
                ))

        if payment_day is not None and not 1 <= payment_day <= 31:
            issues.append(ValidationIssue(
                field="payment_day",
                issue_type="invalid_value",
                message="El día de pago debe estar entre 1 y 31",
            ))

        return ValidationResult(form="debt", issues=issues)

    def validate_goal_form(
        self,
        name: Optional[str],
        target_amount: AmountInput,
        deadline: Optional[date],
        today: Optional[date] = None,
    ) -> ValidationResult:
        """Name, target amount and deadline are required."""
        issues = self._required_text("name", name, "El nombre")
        issues += self._amount_issues("target_amount", target_amount, "La meta")

        if deadline is None:
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="missing",
                message="La fecha límite es obligatoria",
            ))
        elif deadline < (today or date.today()):
            # Allowed: the goal simply shows as overdue.
            issues.append(ValidationIssue(
                field="deadline",
                issue_type="past_date",
                message="La fecha límite ya pasó",
                severity="warning",
            ))

        return ValidationResult(form="goal", issues=issues)

    def validate_amount(self, amount: AmountInput, form: str = "payment") -> ValidationResult:
        """Debt payments and goal contributions must be > 0."""
        return ValidationResult(
            form=form,
            issues=self._amount_issues("amount", amount, "El monto"),
        )

    def validate_registration(
        self,
        username: Optional[str],
        password: Optional[str],
    ) -> ValidationResult:
        issues = self._required_text("username", username, "El usuario")
        if not password:
            issues.append(ValidationIssue(
                field="password",
                issue_type="missing",
                message="La contraseña es obligatoria",
            ))
        elif len(password) < MIN_PASSWORD_LENGTH:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_short",
                message=f"La contraseña debe tener al menos {MIN_PASSWORD_LENGTH} caracteres",
            ))
        return ValidationResult(form="registration", issues=issues)

    def validate_login(
        self,
        username: Optional[str],
        password: Optional[str],
    ) -> ValidationResult:
        issues = self._required_text("username", username, "El usuario")
        if not password:
            issues.append(ValidationIssue(
                field="password",
                issue_type="missing",
                message="La contraseña es obligatoria",
            ))
        return ValidationResult(form="login", issues=issues)
