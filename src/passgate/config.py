"""Configuration management with pydantic-settings."""

from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from passgate import __version__


class PassgateSettings(BaseSettings):
    """passgate application settings loaded from environment variables.

    All settings use the PASSGATE_ prefix for environment variables.
    """

    config_dir: Path = Field(
        default=Path.home() / ".config" / "passgate",
        description="Configuration directory holding the persistent key/value store",
    )

    # Logging configuration
    log_level: str = Field(default="WARNING", description="Logging level")
    log_format: str = Field(
        default="console",
        description="Log output format: console or json",
    )

    # Login endpoint configuration
    server: str = Field(
        default="lastpass.com",
        description="Primary login server host name",
    )
    alternate_server: str = Field(
        default="lastpass.eu",
        description="Regional server the primary may redirect an account to",
    )
    max_redirects: int = Field(
        default=1,
        ge=0,
        description="Maximum regional redirects followed during one login attempt",
    )
    oob_max_polls: int | None = Field(
        default=None,
        ge=1,
        description="Maximum out-of-band approval polls (unset = wait until the server answers)",
    )
    http_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Per-request timeout in seconds (unset = no client-side timeout)",
    )
    user_agent: str = Field(
        default=f"passgate/{__version__}",
        description="User-Agent header sent with every login request",
    )

    model_config = SettingsConfigDict(
        env_prefix="PASSGATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def __init__(self, **kwargs: Any) -> None:
        """Initialize settings and create config directory."""
        super().__init__(**kwargs)
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @property
    def store_dir(self) -> Path:
        """Get the key/value store directory."""
        return self.config_dir / "store"


# Global settings instance
_settings: PassgateSettings | None = None


def get_settings() -> PassgateSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = PassgateSettings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None
