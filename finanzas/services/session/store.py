"""
Key/Value Session Store

Client state (theme, current user) belongs to one browser session.
It goes through this small interface so the UI never touches the
storage medium and nothing in it is shared between browsers.
"""

from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from typing import Optional


class KeyValueStore(ABC):
    """String keys to string values."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class MappingStore(KeyValueStore):
    """
    Writes through to a mapping owned by someone else.

    The Streamlit app passes ``st.session_state``, which Streamlit keeps
    per browser session.
    """

    def __init__(self, mapping: MutableMapping):
        self._data = mapping

    def get(self, key: str) -> Optional[str]:
        value = self._data.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]


class MemoryStore(MappingStore):
    """A private dict; used by tests and scripts."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__(dict(initial or {}))
