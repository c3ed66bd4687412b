"""Core utility modules for ssoinventory."""

# Configuration utilities
from .config import (
    CONFIG_DIR,
    CONFIG_FILE_YAML,
    DEFAULT_INVENTORY_CONFIG,
    Config,
    InventorySettings,
)

# Logging utilities
from .logging_config import LogFormat, LoggingConfig, LogLevel, get_logger, setup_logging

__all__ = [
    "CONFIG_DIR",
    "CONFIG_FILE_YAML",
    "DEFAULT_INVENTORY_CONFIG",
    "Config",
    "InventorySettings",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "get_logger",
    "setup_logging",
]
