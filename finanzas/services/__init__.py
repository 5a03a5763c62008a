"""Services package."""

from finanzas.services.session import (
    KeyValueStore,
    MappingStore,
    MemoryStore,
    SessionManager,
)
from finanzas.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    FinanceStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsFinanceStorage,
    InMemoryAuditStorage,
    InMemoryFinanceStorage,
    NotFoundError,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    # Session services
    "KeyValueStore",
    "MappingStore",
    "MemoryStore",
    "SessionManager",
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "FinanceStorageInterface",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsFinanceStorage",
    "InMemoryAuditStorage",
    "InMemoryFinanceStorage",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
]
