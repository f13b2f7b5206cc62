"""Configuration model for HA Gateway.

Loaded once at startup and shared read-only by every component.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict, Field

from ha_gateway.security.secrets_manager import SecretsManager

logger = logging.getLogger(__name__)


class Config(BaseModel):
    """Application configuration.

    Attributes:
        ha_base_url: Home Assistant base URL (http or https)
        ha_token: Long-lived access token for Home Assistant
        rate_limit_window: Rate limit window length in seconds
        rate_limit_max_requests: Operations allowed per caller per window
        ha_timeout: Per-request HTTP timeout in seconds
        retry_attempts: Attempts per remote call (including the first)
        retry_delay: Fixed delay between attempts in seconds
        negotiation_timeout: Deadline for a WebSocket config flow in seconds
        log_level: Logging level name
    """

    model_config = ConfigDict(frozen=True)

    ha_base_url: str = Field(
        default="http://homeassistant.local:8123",
        description="Home Assistant base URL",
    )
    ha_token: str = Field(..., min_length=1, description="Home Assistant access token")
    rate_limit_window: float = Field(default=60.0, gt=0, description="Window length (s)")
    rate_limit_max_requests: int = Field(default=100, gt=0, description="Requests per window")
    ha_timeout: float = Field(default=10.0, gt=0, description="HTTP timeout (s)")
    retry_attempts: int = Field(default=3, ge=1, description="Attempts per remote call")
    retry_delay: float = Field(default=1.0, ge=0, description="Delay between attempts (s)")
    negotiation_timeout: float = Field(default=10.0, gt=0, description="Config flow deadline (s)")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def websocket_url(self) -> str:
        """WebSocket endpoint derived from the REST base URL."""
        base = self.ha_base_url.rstrip("/")
        if base.startswith("https://"):
            return "wss://" + base[len("https://"):] + "/api/websocket"
        if base.startswith("http://"):
            return "ws://" + base[len("http://"):] + "/api/websocket"
        return f"ws://{base}/api/websocket"

    @classmethod
    def from_env(cls, secrets: SecretsManager | None = None) -> Config:
        """Load configuration from environment variables and secrets.

        Args:
            secrets: Optional secrets manager (defaults to /run/secrets)

        Returns:
            Config instance

        Raises:
            ValueError: If the Home Assistant token is missing
            pydantic.ValidationError: If a numeric value is out of bounds
        """
        secrets = secrets or SecretsManager()
        token = secrets.get_secret("ha_token", required=True)

        return cls(
            ha_base_url=os.getenv("HA_URL", "http://homeassistant.local:8123"),
            ha_token=token,
            rate_limit_window=float(os.getenv("RATE_LIMIT_WINDOW", "60")),
            rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100")),
            ha_timeout=float(os.getenv("HA_TIMEOUT", "10")),
            retry_attempts=int(os.getenv("RETRY_ATTEMPTS", "3")),
            retry_delay=float(os.getenv("RETRY_DELAY", "1")),
            negotiation_timeout=float(os.getenv("NEGOTIATION_TIMEOUT", "10")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def log_status(self) -> None:
        """Log the effective configuration (without the token)."""
        logger.info(f"Home Assistant URL: {self.ha_base_url}")
        logger.info(
            f"Rate limit: {self.rate_limit_max_requests} requests / {self.rate_limit_window}s"
        )
        logger.info(
            f"Retry policy: {self.retry_attempts} attempts, {self.retry_delay}s delay, "
            f"timeout {self.ha_timeout}s"
        )
