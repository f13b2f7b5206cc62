"""Credential loading with Docker Secrets and environment variable fallback."""

from pathlib import Path
from typing import Optional
import os
import logging

logger = logging.getLogger(__name__)


class SecretsManager:
    """Load credentials from Docker Secrets or environment variables.

    Values are cached per instance; construct a new manager to pick up a
    rotated token.
    """

    def __init__(self, secrets_path: Path = Path("/run/secrets")):
        self.secrets_path = secrets_path
        self._cache: dict[str, str] = {}

    def get_secret(self, key: str, required: bool = True) -> Optional[str]:
        """
        Get a credential from Docker Secrets or an environment variable.

        Priority:
        1. Docker Secret (/run/secrets/{key}), if non-empty
        2. Environment variable ({KEY})
        3. Raise error if required

        Args:
            key: Secret key name (e.g., 'ha_token')
            required: If True, raise error when secret not found

        Returns:
            Secret value or None

        Raises:
            ValueError: If required=True and secret not found
        """
        if key in self._cache:
            return self._cache[key]

        secret_file = self.secrets_path / key
        value = self._read_secret_file(secret_file)
        source = "Docker Secrets"

        env_key = key.upper()
        if not value:
            value = os.getenv(env_key)
            source = "environment"

        if value:
            self._cache[key] = value
            logger.info(f"Loaded secret '{key}' from {source}")
            return value

        if required:
            raise ValueError(
                f"Secret '{key}' not found in Docker Secrets or environment. "
                f"Create {secret_file} or set {env_key} environment variable."
            )

        return None

    @staticmethod
    def _read_secret_file(secret_file: Path) -> Optional[str]:
        if not secret_file.exists():
            return None
        try:
            return secret_file.read_text().strip()
        except OSError as e:
            logger.error(f"Failed to read Docker Secret '{secret_file.name}': {e}")
            return None
