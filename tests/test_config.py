"""
Tests for settings loading and the startup check.
"""

import pytest

from expense_tracker.config import get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("EXPENSE_STORAGE_KEY", raising=False)
        monkeypatch.delenv("EXPENSE_PERIOD_BUCKET_LIMIT", raising=False)
        settings = get_settings()
        assert settings.storage.key == "expense_tracker_expenses"
        assert settings.app.period_bucket_limit == 14
        assert settings.app.import_note_placeholder == "Imported"

    def test_storage_path_expanded(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORAGE_PATH", "~/ledger.json")
        assert "~" not in str(get_settings().storage.path)

    def test_log_level_normalized(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_LOG_LEVEL", " debug ")
        assert get_settings().app.log_level == "DEBUG"


class TestValidateAllSettings:
    """Tests for the startup check shown on the Settings page."""

    def test_all_valid(self, monkeypatch, tmp_path):
        monkeypatch.setenv("EXPENSE_STORAGE_PATH", str(tmp_path / "s.json"))
        assert validate_all_settings() == {"storage": True, "app": True}

    def test_bad_storage_setting_reported(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_STORAGE_RETRY_ATTEMPTS", "0")

        status = validate_all_settings()

        assert status["storage"] is False
        assert "retry_attempts" in status["storage_error"]
        assert status["app"] is True

    def test_bad_log_level_reported(self, monkeypatch):
        monkeypatch.setenv("EXPENSE_LOG_LEVEL", "loud")

        status = validate_all_settings()

        assert status["app"] is False
        assert "Unknown log level" in status["app_error"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
