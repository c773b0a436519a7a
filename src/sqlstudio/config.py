"""
Configuration loading for sqlstudio.

Sources, highest priority first:
1. Explicit overrides (CLI flags)
2. SQLSTUDIO_* environment variables and .env
3. YAML config file (sqlstudio.yaml)
4. Defaults
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.errors import ConfigError

DEFAULT_CONFIG_PATH = Path("sqlstudio.yaml")


class Settings(BaseSettings):
    """Process settings."""

    # Database
    database: str = Field(default="")
    verbose: bool = Field(default=False)  # echo SQL through SQLAlchemy

    # Server
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=4000, ge=1, le=65535)
    port_attempts: int = Field(default=10, ge=1)

    # Transports
    enable_websocket: bool = Field(default=True)
    enable_http: bool = Field(default=True)
    websocket_path: str = Field(default="/")

    # Socket credential, generated per process when unset
    token: Optional[str] = Field(default=None)

    # HTTP basic auth, enabled when username is set
    username: Optional[str] = Field(default=None)
    password: Optional[str] = Field(default=None)

    # Editor
    studio_url: str = Field(default="https://libsqlstudio.com")
    cors_origins: List[str] = Field(default_factory=lambda: ["https://libsqlstudio.com"])

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="SQLSTUDIO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def basic_auth_enabled(self) -> bool:
        return bool(self.username)


def read_config_file(path: Path | str) -> dict[str, Any]:
    """
    Read settings from a YAML file.

    Raises:
        ConfigError: If the file does not hold a mapping
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_settings(path: Path | str | None = None, **overrides: Any) -> Settings:
    """
    Build Settings from an optional YAML file plus overrides.

    Args:
        path: YAML file; sqlstudio.yaml in the working directory is used if present
        **overrides: Values that win over every other source (None is ignored)

    Raises:
        ConfigError: If a given file is missing or malformed
    """
    file_values: dict[str, Any] = {}
    if path is not None:
        if not Path(path).exists():
            raise ConfigError(f"Config file not found: {path}")
        file_values = read_config_file(path)
    elif DEFAULT_CONFIG_PATH.exists():
        file_values = read_config_file(DEFAULT_CONFIG_PATH)

    explicit = {key: value for key, value in overrides.items() if value is not None}

    # Environment beats the file, so only pass file values the environment lacks
    environment = Settings(**explicit)
    merged = {
        key: value
        for key, value in file_values.items()
        if key in Settings.model_fields and key not in environment.model_fields_set
    }
    merged.update(explicit)
    return Settings(**merged)
