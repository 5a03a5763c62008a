"""
Storage Services Package

Provides the persistence gateway interface and its implementations.
Google Sheets is the hosted backend; the in-memory store backs tests
and offline mode.
"""

from finanzas.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)
from finanzas.services.storage.tables import TableFinanceStorage
from finanzas.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
)
from finanzas.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "FinanceStorageInterface",
    "TableFinanceStorage",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
]
