"""Configuration management for torrentmeta.

ConfigManager loads configuration hierarchically: defaults -> TOML config
file -> environment variables. Codec calls only see that configuration after
an explicit init_config(); otherwise they use defaults. Explicit keyword
arguments passed to codec calls override all of these.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import toml
from pydantic import ValidationError as PydanticValidationError

from torrentmeta.models import BencodeConfig, Config, ObservabilityConfig
from torrentmeta.utils.exceptions import ConfigurationError
from torrentmeta.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "torrentmeta.toml"

# Environment variable -> dotted config path
ENV_MAPPINGS: dict[str, str] = {
    "TORRENTMETA_MAX_DEPTH": "bencode.max_depth",
    "TORRENTMETA_TEXT_ENCODING": "bencode.text_encoding",
    "TORRENTMETA_SORT_KEYS": "bencode.sort_keys",
    "TORRENTMETA_STRICT": "bencode.strict",
    "TORRENTMETA_LOG_LEVEL": "observability.log_level",
    "TORRENTMETA_LOG_FILE": "observability.log_file",
    "TORRENTMETA_STRUCTURED_LOGGING": "observability.structured_logging",
    "TORRENTMETA_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# Global configuration, and the manager that loaded it when init_config was used
_config: Config | None = None
_config_manager: ConfigManager | None = None


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(
        self,
        config_file: str | Path | None = None,
        configure_logging: bool = True,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for torrentmeta.toml
            configure_logging: Whether to apply the observability settings to
                the ``logging`` module

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        if configure_logging:
            self._setup_logging()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILENAME,
            Path.home() / ".config" / "torrentmeta" / CONFIG_FILENAME,
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Config file not found: {self.config_file}"
                raise ConfigurationError(msg)
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except toml.TomlDecodeError as e:
                msg = f"Invalid TOML in {self.config_file}: {e}"
                raise ConfigurationError(msg) from e
            logger.debug("Loaded configuration from %s", self.config_file)

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except PydanticValidationError as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        for env_var, config_path in ENV_MAPPINGS.items():
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            section, key = config_path.split(".", 1)
            env_config.setdefault(section, {})[key] = self._parse_env_value(raw)

        return env_config

    @staticmethod
    def _parse_env_value(raw: str) -> Any:
        """Convert an environment string to bool or int where it looks like one."""
        lowered = raw.strip().lower()
        if lowered in {"true", "yes", "on"}:
            return True
        if lowered in {"false", "no", "off"}:
            return False
        try:
            return int(raw)
        except ValueError:
            return raw

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)

    def export(self) -> str:
        """Export current configuration as TOML."""
        data = self.config.model_dump(mode="json", exclude_none=True)
        return toml.dumps(data)


def get_config() -> Config:
    """Get the global configuration instance.

    Until :func:`init_config` or :func:`set_config` is called this is plain
    defaults; no files or environment variables are read.
    """
    global _config
    if _config is None:
        _config = Config()
    return _config


def init_config(
    config_file: str | Path | None = None,
    configure_logging: bool = True,
) -> ConfigManager:
    """Load configuration from file and environment and make it global."""
    global _config, _config_manager
    _config_manager = ConfigManager(config_file, configure_logging=configure_logging)
    _config = _config_manager.config
    return _config_manager


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime."""
    global _config
    _config = new_config
    if _config_manager is not None:
        _config_manager.config = new_config


def reset_config() -> None:
    """Drop the global configuration so the next access returns defaults."""
    global _config, _config_manager
    _config = None
    _config_manager = None


def get_bencode_config() -> BencodeConfig:
    """Get codec configuration."""
    return get_config().bencode


def get_observability_config() -> ObservabilityConfig:
    """Get observability configuration."""
    return get_config().observability
