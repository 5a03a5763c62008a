"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from finanzas.config import AppSettings, GeminiSettings, validate_all_settings


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "GEMINI_API_KEY",
        "GEMINI_MODEL_NAME",
        "GOOGLE_SHEETS_CREDENTIALS_PATH",
        "GOOGLE_SHEETS_SPREADSHEET_ID",
        "DEFAULT_THEME",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestSettings:
    """Tests for the settings sections."""

    def test_app_defaults(self, clean_env):
        settings = AppSettings()
        assert settings.default_theme == "dark"
        assert settings.currency_symbol == "$"

    def test_app_reads_environment(self, clean_env):
        clean_env.setenv("DEFAULT_THEME", "light")
        assert AppSettings().default_theme == "light"

    def test_unknown_theme_rejected(self, clean_env):
        clean_env.setenv("DEFAULT_THEME", "sepia")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_gemini_key_optional(self, clean_env):
        settings = GeminiSettings()
        assert not settings.is_configured
        assert settings.model_name == "gemini-2.5-flash"

    def test_validate_all_reports_missing_sections(self, clean_env):
        results = validate_all_settings()
        assert results["app"] is True
        assert results["google_sheets"] is False
        assert results["gemini"] is False
        assert results["gemini_error"] == "GEMINI_API_KEY is not set"
