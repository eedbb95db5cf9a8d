"""Configuration management for btlite.

Provides centralized configuration with TOML support, validation, and
hierarchical loading from defaults -> config file -> environment.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import toml

from btlite.models import Config
from btlite.utils.exceptions import ConfigurationError
from btlite.utils.logging_config import setup_logging

CONFIG_FILE_NAME = "btlite.toml"

# Mapping of environment variables to config paths
ENV_MAPPINGS: dict[str, str] = {
    # Network
    "BTLITE_LISTEN_PORT": "network.listen_port",
    "BTLITE_PEER_ID": "network.peer_id",
    "BTLITE_PEER_ID_PREFIX": "network.peer_id_prefix",
    "BTLITE_TRACKER_TIMEOUT": "network.tracker_timeout",
    "BTLITE_CONNECTION_TIMEOUT": "network.connection_timeout",
    "BTLITE_HANDSHAKE_TIMEOUT": "network.handshake_timeout",
    "BTLITE_USER_AGENT": "network.user_agent",
    # Protocol
    "BTLITE_PROTOCOL_NAME": "protocol.protocol_name",
    "BTLITE_MAX_BENCODE_DEPTH": "protocol.max_bencode_depth",
    # Observability
    "BTLITE_LOG_LEVEL": "observability.log_level",
    "BTLITE_LOG_FILE": "observability.log_file",
    "BTLITE_STRUCTURED_LOGGING": "observability.structured_logging",
    "BTLITE_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# Values that must stay strings even when they look numeric
_STRING_PATHS = frozenset(
    {
        "network.peer_id",
        "network.peer_id_prefix",
        "network.user_agent",
        "protocol.protocol_name",
        "observability.log_file",
    }
)

_config_manager: ConfigManager | None = None

logger = logging.getLogger(__name__)


def _parse_env_value(raw: str) -> bool | int | float | str:
    low = raw.lower()
    if low in {"true", "yes", "on"}:
        return True
    if low in {"false", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for btlite.toml

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        self._setup_logging()

    def _find_config_file(self, config_file: str | Path | None) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILE_NAME,
            Path.home() / ".config" / "btlite" / CONFIG_FILE_NAME,
            Path.home() / f".{CONFIG_FILE_NAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                logger.warning("Failed to load config file %s: %s", self.config_file, e)

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            value = raw if cfg_path in _STRING_PATHS else _parse_env_value(raw)
            _set_nested(env_config, cfg_path, value)

        return env_config

    def _merge_config(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def export(self, fmt: str = "toml") -> str:
        """Export current configuration as a string in the given format.

        Args:
            fmt: one of "toml" or "json"

        """
        data = self.config.model_dump(mode="json", exclude_none=True)
        fmt = (fmt or "toml").lower()
        if fmt == "toml":
            return toml.dumps(data)
        if fmt == "json":
            return json.dumps(data, indent=2)
        msg = f"Unsupported export format: {fmt}"
        raise ConfigurationError(msg)

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager


def reload_config() -> Config:
    """Reload configuration from file."""
    if _config_manager is None:
        msg = "Configuration not initialized"
        raise ConfigurationError(msg)

    _config_manager.config = _config_manager._load_config()
    _config_manager._setup_logging()
    return _config_manager.config


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime.

    Reconfigures logging based on the new config.
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None)
    _config_manager.config = new_config
    _config_manager._setup_logging()


def reset_config() -> None:
    """Drop the global configuration manager (next get_config reloads)."""
    global _config_manager
    _config_manager = None
