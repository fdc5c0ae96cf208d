"""Configuration management using pydantic-settings.

Settings come from (highest precedence first) explicit values, environment
variables, a ``.env`` file, and defaults. ``load_settings`` additionally
reads a YAML or JSON config file shaped like::

    server:
      host: 0.0.0.0
      port: 50051
    bybit:
      base_url: https://api.bybit.com
      api_key: ...
      api_secret: ...
      debug: false
    logger:
      level: info
      output: stderr
"""

import os
import stat
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bybitgw.logging import get_logger

logger = get_logger("config")

DEFAULT_BASE_URL = "https://api.bybit.com"
TESTNET_BASE_URL = "https://api-testnet.bybit.com"

# Owner read/write only, the file holds the API secret
SECURE_PERMS = stat.S_IRUSR | stat.S_IWUSR


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or validated."""


class BybitConfig(BaseSettings):
    """Vendor API connection settings."""

    model_config = SettingsConfigDict(env_prefix="BYBIT_")

    base_url: str = Field(default=DEFAULT_BASE_URL, description="REST API base URL")
    api_key: str = Field(default="", description="API key")
    api_secret: SecretStr = Field(default=SecretStr(""), description="API secret")
    debug: bool = Field(default=False, description="Log request and response details")
    timeout: float = Field(default=10.0, gt=0, description="HTTP request timeout in seconds")
    get_retries: int = Field(
        default=0, ge=0, le=5, description="Retries for idempotent GET calls (0 disables)"
    )

    @field_validator("base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so endpoint joins are predictable."""
        return v.rstrip("/")


class ServerConfig(BaseSettings):
    """Service wrapper bind address."""

    model_config = SettingsConfigDict(env_prefix="BYBITGW_SERVER_")

    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=50051, ge=1, le=65535, description="Port to bind to")


class LoggerConfig(BaseSettings):
    """Logging destination and level."""

    model_config = SettingsConfigDict(env_prefix="BYBITGW_LOGGER_")

    level: str = Field(default="info", description="debug, info, warn or error")
    output: str = Field(default="stderr", description="stdout, stderr or a file path")


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="BYBITGW_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    bybit: BybitConfig = Field(default_factory=BybitConfig)
    logger: LoggerConfig = Field(default_factory=LoggerConfig)


def load_settings(path: Path) -> Settings:
    """Load settings from a YAML/JSON file, falling back to defaults.

    Args:
        path: Config file path

    Returns:
        Settings built from the file (or defaults when it does not exist)

    Raises:
        ConfigError: If the file exists but cannot be parsed or validated
    """
    if not path.exists():
        logger.warning(f"Config file {path} not found, using defaults")
        return Settings()

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def settings_to_dict(settings: Settings, reveal_secret: bool = False) -> dict[str, Any]:
    """Dump settings as plain data.

    Args:
        settings: Settings to dump
        reveal_secret: Write the real API secret instead of a mask
    """
    data = settings.model_dump(mode="json")
    if reveal_secret:
        data["bybit"]["api_secret"] = settings.bybit.api_secret.get_secret_value()
    return data


def save_settings(settings: Settings, path: Path) -> Path:
    """Save settings to a YAML file readable only by the owner.

    Returns:
        Path to saved file
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(settings_to_dict(settings, reveal_secret=True), f, sort_keys=False)

    try:
        os.chmod(path, SECURE_PERMS)
    except OSError as e:
        logger.warning(f"Could not set secure permissions on {path}: {e}")

    logger.info(f"Saved config to {path}")
    return path


# Global settings instance (lazy loaded)
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Install settings loaded elsewhere (e.g. from ``--config``)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings instance (useful for testing)."""
    global _settings
    _settings = None
