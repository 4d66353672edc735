"""Shared pytest fixtures."""

import pytest

from tutor_api.config import get_settings
from tutor_api.db.supabase_client import reset_supabase_client
from tutor_api.middleware.rate_limit import get_limiter


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Provide valid settings and a clean limiter/client for every test."""
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-supabase-key")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.delenv("TRUSTED_PROXIES", raising=False)
    monkeypatch.delenv("MAX_BATCH_SIZE", raising=False)
    monkeypatch.delenv("MAX_PROBLEM_LENGTH", raising=False)
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    get_settings.cache_clear()
    reset_supabase_client()
    get_limiter().reset()

    yield

    get_settings.cache_clear()
    reset_supabase_client()
