"""
Logging configuration with verbosity control and multiple handlers.

Supports console, plain file and rotating file output in simple, detailed
or structured (JSON) formats, configured from CLI options or environment
variables. Console output always goes to stderr by default because stdout
carries the encoded documents.
"""

import logging
import logging.handlers
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from b64filter.app_logger import AppLogger, LogContext, format_log_message


class LogHandler(Enum):
    """Available log handler types."""

    CONSOLE = "console"
    FILE = "file"
    ROTATING_FILE = "rotating_file"
    NULL = "null"


class LogFormat(Enum):
    """Available log format types."""

    STRUCTURED = "structured"  # JSON format
    SIMPLE = "simple"  # Human-readable text
    DETAILED = "detailed"  # Text with timestamps and source location


class VerbosityLevel(Enum):
    """Verbosity levels for controlling log output."""

    SILENT = 0  # CRITICAL only
    QUIET = 1  # Errors and warnings only
    NORMAL = 2  # Info, warnings, errors
    VERBOSE = 3  # Debug and up


_VERBOSITY_LEVELS = {
    VerbosityLevel.SILENT: "CRITICAL",
    VerbosityLevel.QUIET: "WARNING",
    VerbosityLevel.NORMAL: "INFO",
    VerbosityLevel.VERBOSE: "DEBUG",
}

_FORMAT_NAMES = {
    "json": LogFormat.STRUCTURED,
    "structured": LogFormat.STRUCTURED,
    "simple": LogFormat.SIMPLE,
    "detailed": LogFormat.DETAILED,
}


@dataclass
class HandlerConfig:
    """Configuration for a single log handler."""

    type: LogHandler
    level: Optional[str] = None  # If None, uses global level
    format: Optional[LogFormat] = None  # If None, uses global format

    # File handler specific options
    filename: Optional[str] = None
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    # Console specific options
    stream: str = "stderr"

    date_format: str = "%Y/%m/%d %H:%M:%S"


@dataclass
class LoggingConfig:
    """Complete logging configuration."""

    verbosity: VerbosityLevel = VerbosityLevel.NORMAL
    global_level: Optional[str] = None  # Overrides verbosity when set
    global_format: LogFormat = LogFormat.SIMPLE
    logger_name: str = "b64filter"

    handlers: List[HandlerConfig] = field(
        default_factory=lambda: [HandlerConfig(type=LogHandler.CONSOLE)]
    )

    @property
    def effective_level(self) -> str:
        """The level applied to the logger and to handlers without their own."""
        return (self.global_level or _VERBOSITY_LEVELS[self.verbosity]).upper()


class ConfigurableAppLogger:
    """AppLogger backed by a Python logger built from a LoggingConfig."""

    def __init__(self, config: Optional[LoggingConfig] = None):
        self.config = config or LoggingConfig()
        self._python_logger: logging.Logger = logging.getLogger(self.config.logger_name)
        self._handlers: List[logging.Handler] = []
        self._setup_logging()

    def _setup_logging(self) -> None:
        """Set up Python logging based on configuration."""
        self._python_logger.setLevel(self.config.effective_level)

        # Replace whatever an earlier configuration attached
        self.close()
        self._python_logger.handlers.clear()

        for handler_config in self.config.handlers:
            handler = self._create_handler(handler_config)
            self._handlers.append(handler)
            self._python_logger.addHandler(handler)

        # Prevent propagation to root logger to avoid duplicate messages
        self._python_logger.propagate = False

    def _create_handler(self, config: HandlerConfig) -> logging.Handler:
        """Create a logging handler from configuration."""
        if config.type == LogHandler.CONSOLE:
            stream = sys.stdout if config.stream == "stdout" else sys.stderr
            handler: logging.Handler = logging.StreamHandler(stream)
        elif config.type in (LogHandler.FILE, LogHandler.ROTATING_FILE):
            if not config.filename:
                raise ValueError(f"{config.type.value} handler requires filename")
            Path(config.filename).parent.mkdir(parents=True, exist_ok=True)
            if config.type == LogHandler.FILE:
                handler = logging.FileHandler(config.filename)
            else:
                handler = logging.handlers.RotatingFileHandler(
                    filename=config.filename,
                    maxBytes=config.max_bytes,
                    backupCount=config.backup_count,
                )
        elif config.type == LogHandler.NULL:
            handler = logging.NullHandler()
        else:
            raise ValueError(f"Unknown handler type: {config.type}")

        handler.setLevel((config.level or self.config.effective_level).upper())
        handler.setFormatter(
            self._create_formatter(config.format or self.config.global_format, config)
        )
        return handler

    @staticmethod
    def _create_formatter(
        format_type: LogFormat, config: HandlerConfig
    ) -> logging.Formatter:
        if format_type == LogFormat.STRUCTURED:
            # The message is already a JSON document
            return logging.Formatter("%(message)s")
        if format_type == LogFormat.DETAILED:
            return logging.Formatter(
                fmt="%(asctime)s %(threadName)s [%(levelname)s] %(message)s",
                datefmt=config.date_format,
            )
        return logging.Formatter(
            fmt="%(asctime)s %(message)s", datefmt=config.date_format
        )

    def close(self) -> None:
        """Detach and close all handlers created by this logger."""
        for handler in self._handlers:
            self._python_logger.removeHandler(handler)
            handler.close()
        self._handlers.clear()

    def _format(self, message: str, context: Optional[LogContext], **kwargs) -> str:
        structured = self.config.global_format == LogFormat.STRUCTURED
        return format_log_message(message, context, structured, **kwargs)

    def debug(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        if self._python_logger.isEnabledFor(logging.DEBUG):
            self._python_logger.debug(self._format(message, context, **kwargs))

    def info(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._python_logger.info(self._format(message, context, **kwargs))

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None:
        self._python_logger.warning(self._format(message, context, **kwargs))

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._python_logger.error(
            self._format(message, context, **kwargs), exc_info=exc_info
        )

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        self._python_logger.critical(
            self._format(message, context, **kwargs), exc_info=exc_info
        )


def parse_log_format(name: str) -> LogFormat:
    """Map a user-facing format name to a LogFormat."""
    try:
        return _FORMAT_NAMES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown log format: {name}") from None


def build_handler_configs(names: str, log_file: Optional[str]) -> List[HandlerConfig]:
    """
    Build handler configurations from a comma-separated list of names.

    Args:
        names: Handler names, any of console, file, rotating, null
        log_file: Filename used by file and rotating handlers

    Returns:
        List of handler configurations, in the order given
    """
    filename = log_file or "logs/b64filter.log"
    configs = []
    for name in names.split(","):
        name = name.strip().lower()
        if name == "console":
            configs.append(HandlerConfig(type=LogHandler.CONSOLE))
        elif name == "file":
            configs.append(HandlerConfig(type=LogHandler.FILE, filename=filename))
        elif name == "rotating":
            configs.append(
                HandlerConfig(type=LogHandler.ROTATING_FILE, filename=filename)
            )
        elif name == "null":
            configs.append(HandlerConfig(type=LogHandler.NULL))
        elif name:
            raise ValueError(f"Unknown log handler: {name}")
    return configs


def logging_config_from_env() -> LoggingConfig:
    """Build a LoggingConfig from B64FILTER_LOG_* environment variables."""
    config = LoggingConfig()

    verbosity_map = {
        "silent": VerbosityLevel.SILENT,
        "quiet": VerbosityLevel.QUIET,
        "normal": VerbosityLevel.NORMAL,
        "verbose": VerbosityLevel.VERBOSE,
        "v": VerbosityLevel.VERBOSE,
    }
    verbosity_str = os.getenv("B64FILTER_LOG_VERBOSITY", "normal").lower()
    config.verbosity = verbosity_map.get(verbosity_str, VerbosityLevel.NORMAL)

    if level := os.getenv("B64FILTER_LOG_LEVEL"):
        config.global_level = level.upper()

    config.global_format = _FORMAT_NAMES.get(
        os.getenv("B64FILTER_LOG_FORMAT", "simple").lower(), LogFormat.SIMPLE
    )

    handler_configs = build_handler_configs(
        os.getenv("B64FILTER_LOG_HANDLERS", "console"), os.getenv("B64FILTER_LOG_FILE")
    )
    if handler_configs:
        config.handlers = handler_configs

    return config


def create_logger_from_env() -> AppLogger:
    """Create logger from B64FILTER_LOG_* environment variables."""
    return ConfigurableAppLogger(logging_config_from_env())
