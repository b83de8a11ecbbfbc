"""
Application logger interface passed explicitly to each pipeline component.

Components accept an AppLogger at construction time and only fall back to
the process default when none is given, so tests and embedding code can
observe or silence a single stage.
"""

import json
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol


@dataclass
class LogContext:
    """Structured log context information."""

    component: str
    operation: Optional[str] = None
    document_index: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging, dropping unset fields."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class AppLogger(Protocol):
    """Protocol for application logging interface."""

    def debug(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def info(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def warning(
        self, message: str, context: Optional[LogContext] = None, **kwargs
    ) -> None: ...

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None: ...

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None: ...


def format_log_message(
    message: str,
    context: Optional[LogContext] = None,
    structured: bool = False,
    **kwargs,
) -> str:
    """
    Render a message with its context and keyword fields.

    Args:
        message: Human-readable message
        context: Optional component context
        structured: Emit a JSON object instead of plain text
        **kwargs: Additional fields attached to the record

    Returns:
        The formatted message string
    """
    if structured:
        log_data: Dict[str, Any] = {"message": message, "timestamp": time.time()}
        if context:
            log_data.update(context.to_dict())
        if kwargs:
            log_data["additional"] = kwargs
        return json.dumps(log_data, default=str)

    parts = []
    if context:
        if context.operation:
            parts.append(f"{context.component}.{context.operation}:")
        else:
            parts.append(f"{context.component}:")
        if context.document_index is not None:
            parts.append(f"doc={context.document_index}")
    parts.append(message)
    if kwargs:
        parts.append("[" + ", ".join(f"{k}={v}" for k, v in kwargs.items()) + "]")
    return " ".join(parts)


class NullAppLogger:
    """Null object implementation for testing or disabled logging."""

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs) -> None:
        pass

    def error(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        pass

    def critical(
        self,
        message: str,
        context: Optional[LogContext] = None,
        exc_info: bool = False,
        **kwargs,
    ) -> None:
        pass


_default_logger: Optional[AppLogger] = None


def get_default_logger() -> AppLogger:
    """Get the default application logger, creating it from the environment."""
    global _default_logger
    if _default_logger is None:
        from b64filter.logging_config import create_logger_from_env

        _default_logger = create_logger_from_env()
    return _default_logger


def set_default_logger(logger: Optional[AppLogger]) -> None:
    """Set (or with None, reset) the default application logger."""
    global _default_logger
    _default_logger = logger
