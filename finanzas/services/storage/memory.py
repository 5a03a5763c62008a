"""
In-Memory Storage

Same row primitives as the Google Sheets backend, kept in dicts.
Used by the tests and as the offline fallback when Sheets is not
configured. Data lives for the lifetime of the process.
"""

from typing import Optional
from uuid import uuid4

from finanzas.models.audit import AuditEvent
from finanzas.services.storage.interface import AuditStorageInterface
from finanzas.services.storage.records import TABLE_COLUMNS, Row
from finanzas.services.storage.tables import TableFinanceStorage


class InMemoryFinanceStorage(TableFinanceStorage):
    """Table store held in process memory."""

    def __init__(self):
        self._tables: dict[str, list[Row]] = {table: [] for table in TABLE_COLUMNS}

    def rows(self, table: str) -> list[Row]:
        """Copies of the raw rows of a table, for inspection."""
        return [dict(row) for row in self._tables[table]]

    def _select(self, table: str, **filters: str) -> list[Row]:
        return [
            dict(row) for row in self._tables[table]
            if all(row.get(column) == value for column, value in filters.items())
        ]

    def _insert(self, table: str, row: Row) -> Row:
        columns = TABLE_COLUMNS[table]
        stored = {column: row.get(column, "") for column in columns}
        stored["id"] = str(uuid4())
        self._tables[table].append(stored)
        return dict(stored)

    def _update(self, table: str, record_id: str, fields: Row) -> bool:
        for row in self._tables[table]:
            if row["id"] == record_id:
                row.update(fields)
                return True
        return False

    def _delete(self, table: str, record_id: str) -> bool:
        rows = self._tables[table]
        for idx, row in enumerate(rows):
            if row["id"] == record_id:
                del rows[idx]
                return True
        return False


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log held in process memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_recent_events(
        self,
        limit: int = 100,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = [e for e in self.events if user_id is None or e.user_id == user_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
