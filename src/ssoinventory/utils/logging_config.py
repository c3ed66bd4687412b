"""Logging configuration for ssoinventory."""

import json
import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "ssoinventory"


class LogLevel(str, Enum):
    """Log levels for configuration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    SIMPLE = "simple"
    DETAILED = "detailed"
    JSON = "json"


@dataclass
class LoggingConfig:
    """Configuration for logging system."""

    level: LogLevel = LogLevel.WARNING
    format_type: LogFormat = LogFormat.DETAILED
    enable_console_logging: bool = True
    enable_file_logging: bool = False
    log_directory: str = "~/.ssoinventory/logs"
    log_filename: str = "ssoinventory.log"
    max_file_size_mb: int = 10
    backup_count: int = 5
    console_colors: bool = True
    log_aws_requests: bool = False


# Attributes present on every LogRecord; anything else was passed through ``extra``.
_STANDARD_ATTRS = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
}


class StructuredFormatter(logging.Formatter):
    """Formatter for structured logging with JSON output."""

    def __init__(self, include_extra: bool = True) -> None:
        """
        Initialize the structured formatter.

        Args:
            include_extra: Whether to include extra fields from log records
        """
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_data = {}
            for key, value in record.__dict__.items():
                if key in _STANDARD_ATTRS or key.startswith("_"):
                    continue
                try:
                    json.dumps(value)
                    extra_data[key] = value
                except (TypeError, ValueError):
                    extra_data[key] = str(value)
            if extra_data:
                log_data["extra"] = extra_data

        return json.dumps(log_data, default=str)


class ColoredConsoleFormatter(logging.Formatter):
    """Console formatter with color support."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",
    }

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and self._supports_color()

    def _supports_color(self) -> bool:
        """Check if the terminal supports colors."""
        return (
            hasattr(sys.stderr, "isatty")
            and sys.stderr.isatty()
            and os.environ.get("TERM") != "dumb"
        )

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        if self.use_colors:
            color = self.COLORS.get(record.levelname, "")
            reset = self.COLORS["RESET"]
            formatted = (
                f"{color}[{timestamp}] {record.levelname:<8}{reset} - "
                f"{record.name} - {record.getMessage()}"
            )
        else:
            formatted = (
                f"[{timestamp}] {record.levelname:<8} - {record.name} - {record.getMessage()}"
            )

        if record.exc_info:
            formatted += f"\n{self.formatException(record.exc_info)}"
        return formatted


class CurrentStderrHandler(logging.StreamHandler):
    """Stream handler that writes to whatever ``sys.stderr`` is when a record is emitted.

    A live progress display swaps ``sys.stderr`` for a proxy that prints above
    the display; a handler bound to the original stream would draw through it.
    """

    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property  # type: ignore[override]
    def stream(self):
        return sys.stderr


class LoggingManager:
    """
    Installs handlers on the ``ssoinventory`` logger.

    Modules log through ``logging.getLogger(__name__)``; everything below the
    package logger inherits the handlers configured here.
    """

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._handlers_configured = False

    def setup_logging(self) -> None:
        """Set up logging configuration for all components."""
        if self._handlers_configured:
            return

        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(getattr(logging, self.config.level.value))
        root_logger.handlers.clear()
        root_logger.propagate = False

        if self.config.enable_console_logging:
            root_logger.addHandler(self._create_console_handler())

        if self.config.enable_file_logging:
            root_logger.addHandler(self._create_file_handler())

        self._configure_aws_logging()
        self._handlers_configured = True

    def _create_console_handler(self) -> logging.Handler:
        """Create console handler with appropriate formatter."""
        handler = CurrentStderrHandler()
        handler.setLevel(getattr(logging, self.config.level.value))

        formatter: logging.Formatter
        if self.config.format_type == LogFormat.JSON:
            formatter = StructuredFormatter()
        elif self.config.format_type == LogFormat.SIMPLE:
            formatter = logging.Formatter("%(levelname)s: %(message)s")
        else:
            formatter = ColoredConsoleFormatter(use_colors=self.config.console_colors)

        handler.setFormatter(formatter)
        return handler

    def _create_file_handler(self) -> logging.Handler:
        """Create rotating file handler."""
        log_dir = Path(self.config.log_directory).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_dir / self.config.log_filename),
            maxBytes=self.config.max_file_size_mb * 1024 * 1024,
            backupCount=self.config.backup_count,
            encoding="utf-8",
        )
        handler.setLevel(getattr(logging, self.config.level.value))
        handler.setFormatter(StructuredFormatter())
        return handler

    def _configure_aws_logging(self) -> None:
        """Configure AWS SDK logging."""
        for logger_name in ("boto3", "botocore", "urllib3", "urllib3.connectionpool"):
            logger = logging.getLogger(logger_name)
            logger.setLevel(logging.DEBUG if self.config.log_aws_requests else logging.WARNING)


def setup_logging(
    verbose: bool = False,
    format_type: LogFormat = LogFormat.DETAILED,
    config: Optional[LoggingConfig] = None,
) -> LoggingManager:
    """
    Set up logging for a CLI invocation.

    Args:
        verbose: Log at DEBUG instead of WARNING
        format_type: Console output format
        config: Full logging configuration, overrides ``verbose`` and ``format_type``

    Returns:
        The installed logging manager
    """
    if config is None:
        config = LoggingConfig(
            level=LogLevel.DEBUG if verbose else LogLevel.WARNING,
            format_type=format_type,
        )
    manager = LoggingManager(config)
    manager.setup_logging()
    return manager


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger below the ``ssoinventory`` package logger.

    Args:
        name: Logger name (usually module name)

    Returns:
        logging.Logger: Logger instance
    """
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)
