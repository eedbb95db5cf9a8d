"""Configuration package for btlite."""

from __future__ import annotations

from btlite.config.config import (
    ConfigManager,
    get_config,
    init_config,
    reload_config,
    reset_config,
    set_config,
)
from btlite.models import Config

__all__ = [
    "Config",
    "ConfigManager",
    "get_config",
    "init_config",
    "reload_config",
    "reset_config",
    "set_config",
]
