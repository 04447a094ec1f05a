"""Configuration management."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from manuals.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILE_STEM = ".manuals"
CONFIG_FILE_SUFFIXES = (".yaml", ".yml")

DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_OUTPUT_FORMAT = "table"


def _config_search_dirs() -> list[Path]:
    """Directories searched for a config file, in priority order.

    1. The user's home directory
    2. The current directory
    3. $XDG_CONFIG_HOME/manuals, or ~/.config/manuals
    """
    home = Path.home()
    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    xdg_dir = Path(xdg_config) / "manuals" if xdg_config else home / ".config" / "manuals"
    return [home, Path.cwd(), xdg_dir]


def find_config_file(search_dirs: list[Path] | None = None) -> Path | None:
    """Return the first config file found, or None."""
    for directory in search_dirs if search_dirs is not None else _config_search_dirs():
        for suffix in CONFIG_FILE_SUFFIXES:
            candidate = directory / f"{CONFIG_FILE_STEM}{suffix}"
            if candidate.is_file():
                return candidate
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a mapping of settings."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"error reading config: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"error parsing config: {path} must contain a mapping")
    return data


class ManualsConfig(BaseSettings):
    """Configuration for the manuals CLI."""

    model_config = SettingsConfigDict(
        env_prefix="MANUALS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API settings
    api_url: str = DEFAULT_API_URL
    api_key: str = ""

    # Output settings
    output_format: str = DEFAULT_OUTPUT_FORMAT

    # Logging
    verbose: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Init kwargs carry config file values, so the environment wins over them.
        return env_settings, dotenv_settings, init_settings

    def validate_for_api(self) -> None:
        """Check that settings required to talk to the API are present.

        Raises:
            ConfigError: If the API key is missing.
        """
        if not self.api_key:
            raise ConfigError(
                "API key required: set MANUALS_API_KEY or add api_key to config file"
            )


def load_config(
    config_file: str | Path | None = None,
    **overrides: Any,
) -> ManualsConfig:
    """Load configuration.

    Precedence, highest first: ``overrides`` (CLI flags), ``MANUALS_*``
    environment variables, the config file, built-in defaults.

    Args:
        config_file: Explicit config file. When omitted, the standard
            locations are searched and a missing file is not an error.
        **overrides: Values that take precedence over every other source.
            ``None`` and empty values are ignored.

    Raises:
        ConfigError: If the config file cannot be read or holds invalid values.
    """
    if config_file is not None:
        path: Path | None = Path(config_file).expanduser()
        if not path.is_file():
            raise ConfigError(f"error reading config: {path} not found")
    else:
        path = find_config_file()

    file_values: dict[str, Any] = {}
    if path is not None:
        logger.debug("Loading config from %s", path)
        file_values = _read_config_file(path)

    try:
        config = ManualsConfig(**file_values)
    except PydanticValidationError as e:
        raise ConfigError(f"error parsing config: {e}") from e

    update = {key: value for key, value in overrides.items() if value}
    if update:
        config = config.model_copy(update=update)
    return config
