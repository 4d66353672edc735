"""Tests for Supabase client initialization."""

import pytest
from unittest.mock import patch, MagicMock

from tutor_api.config import get_settings
from tutor_api.db.supabase_client import get_supabase_client, reset_supabase_client


class TestGetSupabaseClient:
    """Tests for get_supabase_client function."""

    @patch("tutor_api.db.supabase_client.create_client")
    def test_successful_client_creation(self, mock_create_client):
        """Test successful Supabase client creation with valid credentials."""
        # Arrange
        mock_client = MagicMock()
        mock_create_client.return_value = mock_client

        # Act
        client = get_supabase_client()

        # Assert
        assert client is mock_client
        mock_create_client.assert_called_once_with(
            "https://test-project.supabase.co",
            "test-supabase-key"
        )

    @patch("tutor_api.db.supabase_client.create_client")
    def test_prefers_service_role_key(self, mock_create_client, monkeypatch):
        """Test that the service role key is used when configured."""
        monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role-key")
        get_settings.cache_clear()

        get_supabase_client()

        mock_create_client.assert_called_once_with(
            "https://test-project.supabase.co",
            "service-role-key"
        )

    @patch("tutor_api.db.supabase_client.create_client")
    def test_client_is_singleton(self, mock_create_client):
        """Test that the client is created once and reused."""
        mock_create_client.return_value = MagicMock()

        first = get_supabase_client()
        second = get_supabase_client()

        assert first is second
        mock_create_client.assert_called_once()

    @patch("tutor_api.db.supabase_client.create_client")
    def test_reset_creates_new_client(self, mock_create_client):
        """Test that reset_supabase_client drops the cached client."""
        mock_create_client.side_effect = [MagicMock(), MagicMock()]

        first = get_supabase_client()
        reset_supabase_client()
        second = get_supabase_client()

        assert first is not second
        assert mock_create_client.call_count == 2

    @patch("tutor_api.db.supabase_client.create_client")
    def test_client_creation_failure(self, mock_create_client):
        """Test that client creation errors are wrapped in ValueError."""
        # Arrange
        mock_create_client.side_effect = Exception("Invalid API key")

        # Act & Assert
        with pytest.raises(ValueError) as exc_info:
            get_supabase_client()

        assert "Failed to create Supabase client" in str(exc_info.value)
        assert "Invalid API key" in str(exc_info.value)

    def test_missing_settings(self, monkeypatch):
        """Test that missing credentials surface when the client is first requested."""
        monkeypatch.delenv("SUPABASE_KEY")
        get_settings.cache_clear()

        with pytest.raises(Exception):
            get_supabase_client()
