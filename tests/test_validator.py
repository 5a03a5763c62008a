"""Tests for form validation."""

from datetime import date
from decimal import Decimal

import pytest

from finanzas.validation import FormValidator, parse_amount


@pytest.fixture
def validator():
    return FormValidator()


class TestParseAmount:
    """Tests for turning form input into Decimal."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("1500", Decimal("1500")),
            (" 12.5 ", Decimal("12.5")),
            (250, Decimal("250")),
            (0.5, Decimal("0.5")),
            (Decimal("3"), Decimal("3")),
        ],
    )
    def test_valid(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   ", "abc", "NaN", "Infinity"])
    def test_invalid(self, raw):
        assert parse_amount(raw) is None


class TestTransactionForm:
    """Tests for income/expense forms."""

    def test_valid(self, validator):
        result = validator.validate_transaction_form("100", "Comida", date(2024, 1, 1))
        assert result.is_valid
        assert result.issues == []

    @pytest.mark.parametrize("amount", ["0", "-5", "", None])
    def test_amount_must_be_positive(self, validator, amount):
        result = validator.validate_transaction_form(amount, "Comida", date(2024, 1, 1))
        assert not result.is_valid
        assert result.issues[0].field == "amount"

    def test_category_required(self, validator):
        result = validator.validate_transaction_form("10", "  ", date(2024, 1, 1))
        assert [i.field for i in result.issues] == ["category"]

    def test_reports_every_issue(self, validator):
        result = validator.validate_transaction_form(None, None, None)
        assert {i.field for i in result.issues} == {"amount", "category", "date"}
        assert result.error_count == 3


class TestDebtForm:
    """Tests for the debt form."""

    def test_valid_minimal(self, validator):
        assert validator.validate_debt_form("Tarjeta", "1000").is_valid

    def test_name_and_amount_required(self, validator):
        result = validator.validate_debt_form("", "")
        assert {i.field for i in result.issues} == {"name", "total_amount"}

    def test_optional_fields_checked_when_present(self, validator):
        result = validator.validate_debt_form("Tarjeta", "1000", interest_rate="-1", payment_day=40)
        assert {i.field for i in result.issues} == {"interest_rate", "payment_day"}

    def test_zero_interest_is_fine(self, validator):
        assert validator.validate_debt_form("Tarjeta", "1000", interest_rate=0.0).is_valid


class TestGoalForm:
    """Tests for the savings goal form."""

    def test_valid(self, validator):
        result = validator.validate_goal_form("Viaje", "5000", date(2024, 12, 1), today=date(2024, 6, 1))
        assert result.is_valid

    def test_required_fields(self, validator):
        result = validator.validate_goal_form(None, "0", None)
        assert {i.field for i in result.issues} == {"name", "target_amount", "deadline"}

    def test_past_deadline_is_only_a_warning(self, validator):
        result = validator.validate_goal_form("Viaje", "5000", date(2024, 1, 1), today=date(2024, 6, 1))
        assert result.is_valid
        assert result.issues[0].severity == "warning"


class TestAmountsAndAccounts:
    """Tests for payments, contributions and account forms."""

    def test_payment_amount(self, validator):
        assert validator.validate_amount("50").is_valid
        assert not validator.validate_amount("0").is_valid
        assert validator.validate_amount("1", form="contribution").form == "contribution"

    @pytest.mark.parametrize("amount", ["10.005", 0.001, "0.009"])
    def test_amounts_finer_than_a_cent(self, validator, amount):
        result = validator.validate_amount(amount)
        assert not result.is_valid
        assert "dos decimales" in result.issues[0].message

    def test_cents_and_float_input_are_fine(self, validator):
        assert validator.validate_amount("10.50").is_valid
        assert validator.validate_amount(0.1).is_valid
        assert validator.validate_transaction_form(12.25, "Comida", date(2024, 6, 1)).is_valid

    def test_registration(self, validator):
        assert validator.validate_registration("ana", "secreto").is_valid
        result = validator.validate_registration(" ", "abc")
        assert {i.field for i in result.issues} == {"username", "password"}

    def test_login(self, validator):
        assert validator.validate_login("ana", "x").is_valid
        assert not validator.validate_login("ana", "").is_valid
