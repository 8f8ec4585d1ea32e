"""
Configuration management for the sequence poller.

Settings are read from environment variables (prefix ``SEQUENCE_POLLER_``) and
an optional ``.env`` file using Pydantic Settings.
"""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .options import DEFAULT_POLLING_TIMEOUT
from .registry import PollingRegistry, PollingRegistryFactory


class Settings(BaseSettings):
    """Main poller settings."""

    model_config = SettingsConfigDict(
        env_prefix="SEQUENCE_POLLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    default_timeout_seconds: float = Field(
        default=DEFAULT_POLLING_TIMEOUT,
        ge=0,
        description="Delay between iterations when options do not set one",
    )

    # Logging configuration
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format")

    registry_backend: str = Field(
        default="memory", description="Registration store backend"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        allowed_formats = {"json", "console"}
        if v.lower() not in allowed_formats:
            raise ValueError(f"Invalid log format: {v}")
        return v.lower()

    @field_validator("registry_backend")
    @classmethod
    def validate_registry_backend(cls, v: str) -> str:
        """Validate registry backend."""
        if v.lower() not in PollingRegistryFactory.get_supported_backends():
            raise ValueError(f"Unsupported registry backend: {v}")
        return v.lower()

    def create_registry(self) -> PollingRegistry:
        """Create the registration store for the configured backend."""
        return PollingRegistryFactory.create_registry(self.registry_backend)


# Global settings instance - initialized lazily
_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating it if necessary."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def __getattr__(name: str) -> Any:
    """Allow module-level access to settings attributes."""
    if name == "settings":
        return get_settings()
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
