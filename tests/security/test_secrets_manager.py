"""Tests for SecretsManager."""

import pytest

from ha_gateway.security.secrets_manager import SecretsManager


class TestSecretsManager:
    """Test SecretsManager functionality."""

    def test_get_secret_from_file(self, tmp_path):
        """Test loading secret from Docker Secrets file."""
        (tmp_path / "ha_token").write_text("my_secret_value")

        manager = SecretsManager(secrets_path=tmp_path)

        assert manager.get_secret("ha_token", required=True) == "my_secret_value"

    def test_get_secret_from_env_fallback(self, tmp_path, monkeypatch):
        """Test fallback to environment variable when file doesn't exist."""
        monkeypatch.setenv("TEST_SECRET", "env_value")

        manager = SecretsManager(secrets_path=tmp_path)

        assert manager.get_secret("test_secret", required=False) == "env_value"

    def test_empty_file_falls_back_to_env(self, tmp_path, monkeypatch):
        """Test an empty secret file does not shadow the environment."""
        (tmp_path / "ha_token").write_text("\n")
        monkeypatch.setenv("HA_TOKEN", "env_value")

        manager = SecretsManager(secrets_path=tmp_path)

        assert manager.get_secret("ha_token") == "env_value"

    def test_get_secret_required_missing(self, tmp_path):
        """Test error when required secret is missing."""
        manager = SecretsManager(secrets_path=tmp_path)

        with pytest.raises(ValueError, match="Secret 'missing_secret' not found"):
            manager.get_secret("missing_secret", required=True)

    def test_get_secret_optional_missing(self, tmp_path):
        """Test None returned when optional secret is missing."""
        manager = SecretsManager(secrets_path=tmp_path)

        assert manager.get_secret("missing_secret", required=False) is None

    def test_secret_caching(self, tmp_path):
        """Test that secrets are cached for the lifetime of the manager."""
        secret_file = tmp_path / "cached_token"
        secret_file.write_text("original_value")

        manager = SecretsManager(secrets_path=tmp_path)
        assert manager.get_secret("cached_token") == "original_value"

        secret_file.write_text("updated_value")
        assert manager.get_secret("cached_token") == "original_value"

        # A fresh manager sees the rotated token
        assert SecretsManager(secrets_path=tmp_path).get_secret("cached_token") == "updated_value"

    def test_secret_whitespace_stripped(self, tmp_path):
        """Test that secrets with whitespace are stripped."""
        (tmp_path / "whitespace_token").write_text("  token_with_spaces  \n")

        manager = SecretsManager(secrets_path=tmp_path)

        assert manager.get_secret("whitespace_token") == "token_with_spaces"
