"""Tests for application settings."""

import pytest

from faceroster.core.config import Settings, get_settings


class TestSettings:
    """Tests for Settings defaults and derived flags."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("SUPABASE_URL", "SUPABASE_KEY", "SUPABASE_SERVICE_KEY", "GEMINI_API_KEY", "DEBUG"):
            monkeypatch.delenv(var, raising=False)

        settings = Settings(_env_file=None)

        assert settings.supabase_batch_rpc == "apply_write_batch"
        assert settings.merge_suggestion_timeout == 45.0
        assert settings.similarity_high_name_threshold == 0.9
        assert settings.similarity_medium_name_threshold == 0.7
        assert settings.is_configured is False
        assert settings.is_gemini_configured is False

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "anon-key")
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
        monkeypatch.setenv("MERGE_SUGGESTION_TIMEOUT", "5")

        settings = Settings(_env_file=None)

        assert settings.is_configured is True
        assert settings.is_gemini_configured is True
        assert settings.merge_suggestion_timeout == 5.0

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_service_key_alone_is_configured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
        monkeypatch.delenv("SUPABASE_KEY", raising=False)
        monkeypatch.setenv("SUPABASE_SERVICE_KEY", "service-role-key")

        settings = Settings(_env_file=None)

        assert settings.is_configured is True
