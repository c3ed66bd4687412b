"""Configuration utilities for ssoinventory."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from rich.console import Console

from .logging_config import LogFormat, LoggingConfig, LogLevel

console = Console()

CONFIG_DIR = Path.home() / ".ssoinventory"
CONFIG_FILE_YAML = CONFIG_DIR / "config.yaml"

DEFAULT_REGION = "us-west-2"

# Default inventory configuration
DEFAULT_INVENTORY_CONFIG = {
    "region": None,  # Resolved from AWS_REGION / AWS_DEFAULT_REGION when unset
    "concurrency": 10,
    "max_retries": 5,
    "initial_delay_ms": 1000,
    "jitter_max_ms": 1000,
    "output_file": "sso-assignments.csv",
    "continue_on_error": False,
    "progress": True,
}

# Default logging configuration, read from the "logging" section
DEFAULT_LOGGING_CONFIG = {
    "file_logging": False,
    "log_directory": str(CONFIG_DIR / "logs"),
    "max_file_size_mb": 10,
    "backup_count": 5,
    "aws_requests": False,
}


@dataclass
class InventorySettings:
    """Typed settings for one inventory run."""

    region: str = DEFAULT_REGION
    profile: Optional[str] = None
    concurrency: int = 10
    max_retries: int = 5
    initial_delay_ms: int = 1000
    jitter_max_ms: int = 1000
    output_file: str = "sso-assignments.csv"
    continue_on_error: bool = False
    progress: bool = True

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "InventorySettings":
        known = {key: value for key, value in values.items() if key in cls.__dataclass_fields__}
        if not known.get("region"):
            known.pop("region", None)
        return cls(**known)

    @property
    def initial_delay_seconds(self) -> float:
        return self.initial_delay_ms / 1000

    @property
    def jitter_max_seconds(self) -> float:
        return self.jitter_max_ms / 1000

    def validate(self) -> List[str]:
        """
        Validate the settings.

        Returns:
            List of validation errors
        """
        errors = []

        if not isinstance(self.concurrency, int) or self.concurrency < 1:
            errors.append("concurrency must be an integer >= 1")
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            errors.append("max_retries must be an integer >= 0")
        if not isinstance(self.initial_delay_ms, int) or self.initial_delay_ms < 0:
            errors.append("initial_delay_ms must be an integer >= 0")
        if not isinstance(self.jitter_max_ms, int) or self.jitter_max_ms < 0:
            errors.append("jitter_max_ms must be an integer >= 0")
        if not self.output_file:
            errors.append("output_file is required")
        if not self.region:
            errors.append("region is required")

        return errors


class Config:
    """Manages ssoinventory configuration from YAML and environment variables."""

    def __init__(self, config_file: Optional[Path] = None):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path of the YAML configuration file. Defaults to
                ~/.ssoinventory/config.yaml.
        """
        self.config_file = config_file or CONFIG_FILE_YAML
        self.config_data: Dict[str, Any] = {}
        self._config_loaded = False

    def _ensure_config_loaded(self):
        """Ensure configuration is loaded from file."""
        if not self._config_loaded:
            self._load_config()
            self._config_loaded = True

    def _load_config(self):
        """Load configuration from the YAML file, if there is one."""
        if not self.config_file.exists():
            self.config_data = {}
            return

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            console.print(
                f"[red]Error: Configuration file {self.config_file} is not valid YAML: {e}[/red]"
            )
            data = {}
        except OSError as e:
            console.print(f"[red]Error reading configuration file {self.config_file}: {e}[/red]")
            data = {}

        if not isinstance(data, dict):
            console.print(
                f"[yellow]Warning: Ignoring configuration file {self.config_file}, "
                "expected a mapping at the top level[/yellow]"
            )
            data = {}
        self.config_data = data

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value with dot notation support.

        Args:
            key: Configuration key (supports dot notation like "inventory.concurrency")
            default: Default value if key doesn't exist

        Returns:
            Configuration value
        """
        self._ensure_config_loaded()

        value: Any = self.config_data
        for k in key.split("."):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def get_inventory_config(self) -> Dict[str, Any]:
        """
        Get inventory configuration with defaults and environment variable overrides.

        Returns:
            Inventory configuration dictionary
        """
        self._ensure_config_loaded()
        inventory_config = DEFAULT_INVENTORY_CONFIG.copy()

        # Override with config file values if they exist
        file_inventory_config = self.config_data.get("inventory", {})
        if isinstance(file_inventory_config, dict):
            inventory_config.update(file_inventory_config)

        # Override with environment variables
        inventory_config["region"] = (
            os.environ.get("SSOINVENTORY_REGION")
            or inventory_config["region"]
            or os.environ.get("AWS_REGION")
            or os.environ.get("AWS_DEFAULT_REGION")
            or DEFAULT_REGION
        )
        for key in ("concurrency", "max_retries", "initial_delay_ms", "jitter_max_ms"):
            inventory_config[key] = self._get_env_int(
                f"SSOINVENTORY_{key.upper()}", inventory_config[key]
            )
        inventory_config["output_file"] = os.environ.get(
            "SSOINVENTORY_OUTPUT_FILE", inventory_config["output_file"]
        )
        inventory_config["continue_on_error"] = self._get_env_bool(
            "SSOINVENTORY_CONTINUE_ON_ERROR", inventory_config["continue_on_error"]
        )
        inventory_config["progress"] = self._get_env_bool(
            "SSOINVENTORY_PROGRESS", inventory_config["progress"]
        )

        return inventory_config

    def get_inventory_settings(self, **overrides: Any) -> InventorySettings:
        """
        Build typed settings, applying CLI overrides that are not None.

        Returns:
            InventorySettings for the run
        """
        values = self.get_inventory_config()
        values.update({key: value for key, value in overrides.items() if value is not None})
        return InventorySettings.from_dict(values)

    def get_logging_config(
        self, verbose: bool = False, format_type: LogFormat = LogFormat.DETAILED
    ) -> LoggingConfig:
        """
        Build the logging configuration from the "logging" section.

        ``SSOINVENTORY_LOG_FILE`` turns the rotating log file on or off.

        Args:
            verbose: Log at DEBUG instead of WARNING
            format_type: Console output format

        Returns:
            LoggingConfig for the run
        """
        self._ensure_config_loaded()
        logging_config = DEFAULT_LOGGING_CONFIG.copy()

        file_logging_config = self.config_data.get("logging", {})
        if isinstance(file_logging_config, dict):
            logging_config.update(file_logging_config)

        for key in ("max_file_size_mb", "backup_count"):
            if not isinstance(logging_config[key], int) or logging_config[key] < 1:
                console.print(
                    f"Warning: Invalid value for logging.{key}: {logging_config[key]}. "
                    f"Using default: {DEFAULT_LOGGING_CONFIG[key]}"
                )
                logging_config[key] = DEFAULT_LOGGING_CONFIG[key]

        return LoggingConfig(
            level=LogLevel.DEBUG if verbose else LogLevel.WARNING,
            format_type=format_type,
            enable_file_logging=self._get_env_bool(
                "SSOINVENTORY_LOG_FILE", bool(logging_config["file_logging"])
            ),
            log_directory=str(logging_config["log_directory"]),
            max_file_size_mb=logging_config["max_file_size_mb"],
            backup_count=logging_config["backup_count"],
            log_aws_requests=bool(logging_config["aws_requests"]),
        )

    def _get_env_bool(self, env_var: str, default: bool) -> bool:
        """
        Get boolean value from environment variable.

        Args:
            env_var: Environment variable name
            default: Default value if env var is not set

        Returns:
            Boolean value
        """
        value = os.environ.get(env_var)
        if value is None:
            return default
        return value.lower() in ("true", "1", "yes", "on")

    def _get_env_int(self, env_var: str, default: int) -> int:
        """
        Get integer value from environment variable.

        Args:
            env_var: Environment variable name
            default: Default value if env var is not set

        Returns:
            Integer value
        """
        value = os.environ.get(env_var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            console.print(
                f"Warning: Invalid integer value for {env_var}: {value}. Using default: {default}"
            )
            return default
