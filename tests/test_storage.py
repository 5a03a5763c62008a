"""
Tests for the persistence gateway.

The same gateway logic runs over two backends: the in-memory tables and
the Google Sheets tables (driven here through a fake worksheet client).
"""

import asyncio
from datetime import date
from decimal import Decimal

import gspread
import pytest
from tenacity import wait_none

from conftest import make_debt, make_goal, make_transaction
from finanzas.config import GoogleSheetsSettings
from finanzas.models.audit import AUDIT_COLUMNS, AuditEventBuilder
from finanzas.models.finance import TransactionType, is_temp_id
from finanzas.services.storage import (
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
    google_sheets,
)
from finanzas.services.storage import records
from finanzas.services.storage.records import TABLE_COLUMNS


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the gateway."""

    def __init__(self, header: list[str]):
        self.values: list[list[str]] = [list(header)]
        self.broken = False

    def _check(self):
        if self.broken:
            raise gspread.exceptions.GSpreadException("quota exceeded")

    def get_all_values(self):
        self._check()
        return [list(row) for row in self.values]

    def append_row(self, values, value_input_option=None):
        self._check()
        self.values.append([str(v) for v in values])

    def update_cell(self, row, col, value):
        self._check()
        self.values[row - 1][col - 1] = value

    def delete_rows(self, index):
        self._check()
        del self.values[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheets: dict[str, FakeWorksheet] = {}

    def get_table_sheet(self, table):
        return self.sheets.setdefault(table, FakeWorksheet(TABLE_COLUMNS[table]))

    def get_audit_sheet(self):
        return self.sheets.setdefault("audit", FakeWorksheet(AUDIT_COLUMNS))


@pytest.fixture(params=["memory", "sheets"])
def gateway(request):
    if request.param == "memory":
        return InMemoryFinanceStorage()
    return GoogleSheetsFinanceStorage(FakeSheetsClient())


class TestUsers:
    """Tests for registration and login."""

    def test_register_and_authenticate(self, gateway):
        user = asyncio.run(gateway.create_user("ana", "secreto"))
        assert user.username == "ana"

        found = asyncio.run(gateway.authenticate("ana", "secreto"))
        assert found is not None
        assert found.id == user.id

    def test_wrong_password(self, gateway):
        asyncio.run(gateway.create_user("ana", "secreto"))
        assert asyncio.run(gateway.authenticate("ana", "otro")) is None
        assert asyncio.run(gateway.authenticate("nadie", "secreto")) is None

    def test_duplicate_username(self, gateway):
        asyncio.run(gateway.create_user("ana", "secreto"))
        with pytest.raises(DuplicateError):
            asyncio.run(gateway.create_user("ana", "otra"))

    def test_password_is_not_stored_in_clear(self):
        storage = InMemoryFinanceStorage()
        asyncio.run(storage.create_user("ana", "secreto"))
        row = storage.rows(records.USERS)[0]
        assert "secreto" not in row.values()
        assert row["password_hash"] and row["salt"]


class TestTransactions:
    """Tests for transaction rows."""

    def test_create_assigns_store_id(self, gateway):
        t = make_transaction("12.50", description="almuerzo")
        created = asyncio.run(gateway.create_transaction("u1", t))
        assert not is_temp_id(created.id)
        assert created.amount == Decimal("12.50")
        assert created.description == "almuerzo"

    def test_list_is_scoped_and_newest_first(self, gateway):
        asyncio.run(gateway.create_transaction("u1", make_transaction("1", on=date(2024, 1, 1))))
        asyncio.run(gateway.create_transaction("u1", make_transaction("2", on=date(2024, 3, 1))))
        asyncio.run(gateway.create_transaction("u2", make_transaction("3")))

        listed = asyncio.run(gateway.list_transactions("u1"))
        assert [t.amount for t in listed] == [Decimal("2"), Decimal("1")]

    def test_delete(self, gateway):
        created = asyncio.run(gateway.create_transaction("u1", make_transaction("1")))
        assert asyncio.run(gateway.delete_transaction(created.id)) is True
        assert asyncio.run(gateway.delete_transaction(created.id)) is False
        assert asyncio.run(gateway.list_transactions("u1")) == []


class TestDebtsAndGoals:
    """Tests for debt and goal rows."""

    def test_debt_round_trip_keeps_optional_fields(self, gateway):
        debt = make_debt(
            "Carro",
            total="5000",
            balance="4200",
            deadline=date(2025, 1, 31),
            interest_rate=Decimal("1.8"),
            payment_day=15,
            category="Transporte",
        )
        asyncio.run(gateway.create_debt("u1", debt))
        [loaded] = asyncio.run(gateway.list_debts("u1"))
        assert loaded.balance == Decimal("4200")
        assert loaded.interest_rate == Decimal("1.8")
        assert loaded.payment_day == 15
        assert loaded.deadline == date(2025, 1, 31)
        assert loaded.category == "Transporte"

    def test_debt_without_optionals(self, gateway):
        asyncio.run(gateway.create_debt("u1", make_debt()))
        [loaded] = asyncio.run(gateway.list_debts("u1"))
        assert loaded.deadline is None
        assert loaded.interest_rate is None
        assert loaded.payment_day is None

    def test_update_debt_balance(self, gateway):
        created = asyncio.run(gateway.create_debt("u1", make_debt(total="100")))
        asyncio.run(gateway.update_debt_balance(created.id, Decimal("-5")))
        [loaded] = asyncio.run(gateway.list_debts("u1"))
        assert loaded.balance == Decimal("-5")

    def test_update_unknown_debt(self, gateway):
        with pytest.raises(NotFoundError):
            asyncio.run(gateway.update_debt_balance("missing", Decimal("1")))

    def test_goal_update_and_delete(self, gateway):
        created = asyncio.run(gateway.create_goal("u1", make_goal(color="#ff0000")))
        asyncio.run(gateway.update_goal_current_amount(created.id, Decimal("300")))
        [loaded] = asyncio.run(gateway.list_goals("u1"))
        assert loaded.current_amount == Decimal("300")
        assert loaded.color == "#ff0000"

        assert asyncio.run(gateway.delete_goal(created.id)) is True
        with pytest.raises(NotFoundError):
            asyncio.run(gateway.update_goal_current_amount(created.id, Decimal("1")))


class TestTags:
    """Tests for tag rows."""

    def test_tags_are_scoped_by_type(self, gateway):
        asyncio.run(gateway.create_tag("u1", TransactionType.INCOME, "Bonos"))
        asyncio.run(gateway.create_tag("u1", TransactionType.EXPENSE, "Mascotas"))
        asyncio.run(gateway.create_tag("u2", TransactionType.EXPENSE, "Otro"))

        assert asyncio.run(gateway.list_tags("u1", TransactionType.INCOME)) == ["Bonos"]
        assert asyncio.run(gateway.list_tags("u1", TransactionType.EXPENSE)) == ["Mascotas"]


class TestRowShaping:
    """Tests for the string-cell row format."""

    def test_rows_are_snake_case_strings(self):
        storage = InMemoryFinanceStorage()
        asyncio.run(storage.create_debt("u1", make_debt(total="100", payment_day=3)))
        row = storage.rows(records.DEBTS)[0]
        assert set(row) == set(TABLE_COLUMNS[records.DEBTS])
        assert all(isinstance(cell, str) for cell in row.values())
        assert row["total_amount"] == "100"
        assert row["payment_day"] == "3"
        assert row["interest_rate"] == ""

    def test_malformed_rows_are_skipped(self):
        storage = InMemoryFinanceStorage()
        asyncio.run(storage.create_transaction("u1", make_transaction("5")))
        storage._tables[records.TRANSACTIONS].append({
            "id": "bad",
            "user_id": "u1",
            "date": "not-a-date",
            "type": "expense",
            "category": "Comida",
            "amount": "5",
            "description": "",
        })
        listed = asyncio.run(storage.list_transactions("u1"))
        assert len(listed) == 1


class TestGoogleSheetsBackend:
    """Tests specific to the Sheets backend."""

    def test_backend_errors_become_storage_errors(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsFinanceStorage(client)
        client.get_table_sheet(records.TRANSACTIONS).broken = True

        with pytest.raises(StorageError):
            asyncio.run(storage.list_transactions("u1"))
        with pytest.raises(StorageError):
            asyncio.run(storage.create_transaction("u1", make_transaction("1")))

    def test_rows_written_in_column_order(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsFinanceStorage(client)
        asyncio.run(storage.create_tag("u1", TransactionType.EXPENSE, "Mascotas"))

        header, row = client.get_table_sheet(records.TAGS).values
        assert header == TABLE_COLUMNS[records.TAGS]
        assert row[1:] == ["u1", "expense", "Mascotas"]

    def test_short_rows_are_padded(self):
        client = FakeSheetsClient()
        storage = GoogleSheetsFinanceStorage(client)
        sheet = client.get_table_sheet(records.DEBTS)
        sheet.values.append(["d1", "u1", "Luz", "100", "100"])

        [debt] = asyncio.run(storage.list_debts("u1"))
        assert debt.deadline is None
        assert debt.payment_day is None

    def test_connect_is_retried_then_raises(self, monkeypatch):
        attempts = []

        class FailingCredentials:
            @staticmethod
            def from_service_account_file(path, scopes):
                attempts.append(path)
                raise FileNotFoundError(path)

        monkeypatch.setattr(google_sheets, "Credentials", FailingCredentials)
        monkeypatch.setattr(GoogleSheetsClient.connect.retry, "wait", wait_none())

        with pytest.warns(UserWarning):
            settings = GoogleSheetsSettings(
                credentials_path="/nonexistent/creds.json",
                spreadsheet_id="sheet-id",
            )
        client = GoogleSheetsClient(settings)

        with pytest.raises(StorageConnectionError):
            client.connect()
        assert len(attempts) == 3


class TestAuditStorage:
    """Tests for audit persistence."""

    def test_in_memory_recent_events_filtered(self):
        storage = InMemoryAuditStorage()
        asyncio.run(storage.append_event(AuditEventBuilder.user_logged_in("u1", "ana")))
        asyncio.run(storage.append_event(AuditEventBuilder.user_logged_in("u2", "luis")))

        events = asyncio.run(storage.get_recent_events(user_id="u1"))
        assert [e.user_id for e in events] == ["u1"]

    def test_sheets_audit_round_trip(self):
        storage = GoogleSheetsAuditStorage(FakeSheetsClient())
        event = AuditEventBuilder.record_created("debt", "d1", "u1", "Carro")
        assert asyncio.run(storage.append_event(event)) is True

        [loaded] = asyncio.run(storage.get_recent_events())
        assert loaded.event_id == event.event_id
        assert loaded.entity_id == "d1"

    def test_sheets_audit_failure_returns_false(self):
        client = FakeSheetsClient()
        client.get_audit_sheet().broken = True
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEventBuilder.user_logged_out("u1")
        assert asyncio.run(storage.append_event(event)) is False
