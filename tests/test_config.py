"""Tests for configuration management."""

import pytest
from pydantic import ValidationError

from tutor_api.config import Settings, get_settings


class TestSettings:
    """Test Settings class validation and loading."""

    def test_settings_with_valid_env_vars(self, monkeypatch):
        """Test that Settings loads successfully with valid environment variables."""
        monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "test-supabase-key")

        settings = Settings()

        assert settings.supabase_url == "https://test.supabase.co"
        assert settings.supabase_key == "test-supabase-key"
        assert settings.supabase_service_role_key is None
        assert settings.trusted_proxies is None
        assert settings.max_batch_size == 50  # default
        assert settings.log_level == "INFO"  # default

    def test_missing_supabase_url_raises_error(self, monkeypatch):
        """Test that missing SUPABASE_URL raises ValidationError."""
        monkeypatch.delenv("SUPABASE_URL", raising=False)

        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)

        assert "supabase_url" in str(exc_info.value).lower()

    def test_http_supabase_url_raises_error(self, monkeypatch):
        """Test that a non-https SUPABASE_URL is rejected."""
        monkeypatch.setenv("SUPABASE_URL", "http://test.supabase.co")

        with pytest.raises(ValidationError) as exc_info:
            Settings()

        assert "https://" in str(exc_info.value)

    def test_supabase_url_is_stripped(self, monkeypatch):
        """Test that surrounding whitespace is removed from SUPABASE_URL."""
        monkeypatch.setenv("SUPABASE_URL", "  https://test.supabase.co  ")

        assert Settings().supabase_url == "https://test.supabase.co"

    def test_empty_supabase_key_raises_error(self, monkeypatch):
        """Test that a blank SUPABASE_KEY raises ValidationError."""
        monkeypatch.setenv("SUPABASE_KEY", "   ")

        with pytest.raises(ValidationError) as exc_info:
            Settings()

        assert "SUPABASE_KEY must be set" in str(exc_info.value)

    def test_service_role_key(self, monkeypatch):
        """Test that the service role key is loaded and stripped."""
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", " service-key ")

        assert Settings().supabase_service_role_key == "service-key"

    def test_blank_service_role_key_is_none(self, monkeypatch):
        """Test that a blank service role key is treated as unset."""
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "")

        assert Settings().supabase_service_role_key is None

    def test_custom_max_batch_size(self, monkeypatch):
        monkeypatch.setenv("MAX_BATCH_SIZE", "10")

        assert Settings().max_batch_size == 10

    @pytest.mark.parametrize("value", ["0", "51", "lots"])
    def test_invalid_max_batch_size(self, monkeypatch, value):
        """Test that batch size outside 1-50 is rejected."""
        monkeypatch.setenv("MAX_BATCH_SIZE", value)

        with pytest.raises(ValidationError):
            Settings()

    def test_max_problem_length(self, monkeypatch):
        assert Settings().max_problem_length == 10000

        monkeypatch.setenv("MAX_PROBLEM_LENGTH", "500")

        assert Settings().max_problem_length == 500

    def test_invalid_max_problem_length(self, monkeypatch):
        monkeypatch.setenv("MAX_PROBLEM_LENGTH", "0")

        with pytest.raises(ValidationError):
            Settings()

    def test_log_level_is_normalised(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")

        assert Settings().log_level == "DEBUG"

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ValidationError) as exc_info:
            Settings()

        assert "LOG_LEVEL" in str(exc_info.value)

    def test_env_var_names_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("trusted_proxies", "10.0.0.1")

        assert Settings().trusted_proxies == "10.0.0.1"


class TestGetSettings:
    """Test the cached settings accessor."""

    def test_returns_cached_instance(self):
        """Test that get_settings returns the same instance on repeated calls."""
        assert get_settings() is get_settings()

    def test_cache_clear_reloads(self, monkeypatch):
        """Test that clearing the cache picks up new environment values."""
        first = get_settings()
        monkeypatch.setenv("MAX_BATCH_SIZE", "5")
        get_settings.cache_clear()

        second = get_settings()

        assert second is not first
        assert second.max_batch_size == 5
