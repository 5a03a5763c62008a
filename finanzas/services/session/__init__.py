"""Client-side session persistence package."""

from finanzas.services.session.manager import SESSION_KEY, THEME_KEY, SessionManager
from finanzas.services.session.store import KeyValueStore, MappingStore, MemoryStore

__all__ = [
    "KeyValueStore",
    "MappingStore",
    "MemoryStore",
    "SESSION_KEY",
    "SessionManager",
    "THEME_KEY",
]
