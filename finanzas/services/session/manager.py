"""Theme preference and logged-in user of one browser session."""

from typing import Optional

import structlog
from pydantic import ValidationError

from finanzas.models.finance import Theme, User
from finanzas.services.session.store import KeyValueStore


logger = structlog.get_logger(__name__)

THEME_KEY = "fp_theme"
SESSION_KEY = "fp_current_session"


class SessionManager:
    """
    Reads and writes the two client-side session keys.

    Logging out clears the user only; the theme survives.
    """

    def __init__(self, store: KeyValueStore, default_theme: Theme = Theme.DARK):
        self._store = store
        self._default_theme = default_theme

    def theme(self) -> Theme:
        saved = self._store.get(THEME_KEY)
        try:
            return Theme(saved) if saved else self._default_theme
        except ValueError:
            logger.warning("unknown_theme_ignored", value=saved)
            return self._default_theme

    def set_theme(self, theme: Theme) -> None:
        self._store.set(THEME_KEY, theme.value)

    def toggle_theme(self) -> Theme:
        theme = Theme.LIGHT if self.theme() is Theme.DARK else Theme.DARK
        self.set_theme(theme)
        return theme

    def current_user(self) -> Optional[User]:
        raw = self._store.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return User.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("session_user_invalid", error=str(e))
            return None

    def login(self, user: User) -> None:
        self._store.set(SESSION_KEY, user.model_dump_json())

    def logout(self) -> None:
        self._store.delete(SESSION_KEY)
