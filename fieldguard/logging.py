"""Logging utilities for fieldguard.

A small structured logging layer used by the validation engine. It supports:

- Structured fields passed as keyword arguments
- Context propagation (session id, field, rule) through ``LogContext``
- Masking of sensitive field values (passwords, tokens) before output
- Text and JSON formatting, plus a stdlib ``logging`` bridge

Loggers are quiet by default: until ``configure_logging`` is called or a
handler is attached, records are discarded.

Example:
    >>> from fieldguard.logging import get_logger, LogContext
    >>> logger = get_logger(__name__)
    >>> with LogContext(operation="validate", session="3f2a"):
    ...     logger.debug("Rule failed", field="age", rule="min")
"""

from __future__ import annotations

import json
import logging
import re
import sys
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Protocol,
    Self,
    runtime_checkable,
)


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


# =============================================================================
# Constants and Configuration
# =============================================================================


class LogLevel(Enum):
    """Log severity levels with numeric values for comparison."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    def to_stdlib(self) -> int:
        """Convert to stdlib logging level."""
        return self.value

    @classmethod
    def from_string(cls, level: str) -> LogLevel:
        """Create from string representation, defaulting to INFO."""
        try:
            return cls[level.upper()]
        except KeyError:
            return cls.INFO


# Field names whose values never reach a log line in clear text
DEFAULT_SENSITIVE_KEYS: frozenset[str] = frozenset({
    "password",
    "passwd",
    "pwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "access_token",
    "refresh_token",
    "private_key",
    "secret_key",
    "credentials",
})


# =============================================================================
# Context Management
# =============================================================================


@dataclass(frozen=True, slots=True)
class LogContextData:
    """Immutable container for log context data.

    Attributes:
        operation: Current operation name.
        session: Validation session identifier.
        extra: Additional context fields.
    """

    operation: str | None = None
    session: str | None = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def merge(self, other: LogContextData) -> LogContextData:
        """Create a new context with merged data (other takes precedence)."""
        return LogContextData(
            operation=other.operation or self.operation,
            session=other.session or self.session,
            extra={**self.extra, **other.extra},
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        if self.operation:
            result["operation"] = self.operation
        if self.session:
            result["session"] = self.session
        result.update(self.extra)
        return result


_log_context: ContextVar[LogContextData] = ContextVar("fieldguard_log_context")


class LogContext:
    """Context manager for log context propagation.

    Nested contexts merge with the enclosing one.

    Example:
        >>> with LogContext(operation="validate", session="3f2a"):
        ...     logger.info("Starting")
        ...     with LogContext(field="email"):
        ...         logger.debug("Filtering")
    """

    def __init__(
        self,
        *,
        operation: str | None = None,
        session: str | None = None,
        **extra: Any,
    ) -> None:
        self._new_context = LogContextData(
            operation=operation,
            session=session,
            extra=extra,
        )
        self._token: Any = None

    def __enter__(self) -> Self:
        merged = get_current_context().merge(self._new_context)
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)


def get_current_context() -> LogContextData:
    """Get the current log context (empty if none set)."""
    return _log_context.get(LogContextData())


# =============================================================================
# Log Record
# =============================================================================


@dataclass(slots=True)
class LogRecord:
    """Structured log record.

    Attributes:
        level: Log severity level.
        message: Log message.
        logger_name: Name of the logger.
        timestamp: When the log was created.
        context: Associated context data.
        extra: Additional structured fields.
        exc_info: Exception information if any.
    """

    level: LogLevel
    message: str
    logger_name: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    context: LogContextData = field(default_factory=LogContextData)
    extra: dict[str, Any] = field(default_factory=dict)
    exc_info: BaseException | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = {
            "level": self.level.name,
            "message": self.message,
            "logger": self.logger_name,
            "timestamp": self.timestamp.isoformat(),
            **self.context.to_dict(),
            **self.extra,
        }
        if self.exc_info:
            result["exception"] = str(self.exc_info)
            result["exception_type"] = type(self.exc_info).__name__
        return result


# =============================================================================
# Protocols
# =============================================================================


@runtime_checkable
class LogHandler(Protocol):
    """Protocol for log handlers."""

    def handle(self, record: LogRecord) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class LogFormatter(Protocol):
    """Protocol for log formatters."""

    def format(self, record: LogRecord) -> str: ...


# =============================================================================
# Sensitive Data Masking
# =============================================================================


class SensitiveDataMasker:
    """Masks values of sensitive keys in structured log fields.

    A log call such as ``logger.debug("Rule failed", field="password",
    value="hunter2")`` has its ``value`` masked because the field it
    describes is sensitive.

    Example:
        >>> masker = SensitiveDataMasker()
        >>> masker.mask_dict({"password": "secret", "name": "test"})
        {'password': '***MASKED***', 'name': 'test'}
    """

    MASK_VALUE: ClassVar[str] = "***MASKED***"

    def __init__(
        self,
        sensitive_keys: frozenset[str] | None = None,
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self._sensitive_keys = sensitive_keys or DEFAULT_SENSITIVE_KEYS

    def is_sensitive(self, name: str) -> bool:
        """Check whether a key or dotted field path names sensitive data."""
        leaf = name.rsplit(".", 1)[-1]
        return re.sub(r"(?<!^)(?=[A-Z])", "_", leaf).lower() in self._sensitive_keys

    def mask_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """Mask sensitive data in a dictionary of log fields."""
        if not self.enabled:
            return data

        described = data.get("field")
        mask_value = isinstance(described, str) and self.is_sensitive(described)

        result: dict[str, Any] = {}
        for key, value in data.items():
            if self.is_sensitive(key) or (mask_value and key == "value"):
                result[key] = self.MASK_VALUE
            elif isinstance(value, dict):
                result[key] = self.mask_dict(value)
            else:
                result[key] = value
        return result

    def add_sensitive_key(self, key: str) -> None:
        """Add a key to be masked."""
        self._sensitive_keys = self._sensitive_keys | {key.lower()}


_default_masker = SensitiveDataMasker()


def get_masker() -> SensitiveDataMasker:
    """Get the default sensitive data masker."""
    return _default_masker


# =============================================================================
# Formatters
# =============================================================================


class TextFormatter:
    """Plain text log formatter.

    Example output:
        2024-01-15T10:30:45.123456+00:00 [DEBUG] fieldguard.session: Rule failed | session=3f2a | field=age rule=min
    """

    def __init__(self, include_context: bool = True, include_extra: bool = True) -> None:
        self.include_context = include_context
        self.include_extra = include_extra

    def format(self, record: LogRecord) -> str:
        parts = [
            record.timestamp.isoformat(),
            f"[{record.level.name}]",
            f"{record.logger_name}:",
            record.message,
        ]

        if self.include_context:
            context_dict = record.context.to_dict()
            if context_dict:
                parts.append("| " + " ".join(f"{k}={v}" for k, v in context_dict.items()))

        if self.include_extra and record.extra:
            parts.append("| " + " ".join(f"{k}={v}" for k, v in record.extra.items()))

        if record.exc_info:
            parts.append(f"| exception={record.exc_info!r}")

        return " ".join(parts)


class JSONFormatter:
    """JSON log formatter for structured logging systems."""

    def __init__(self, indent: int | None = None) -> None:
        self._indent = indent

    def format(self, record: LogRecord) -> str:
        return json.dumps(record.to_dict(), indent=self._indent, default=str, ensure_ascii=False)


# =============================================================================
# Handlers
# =============================================================================


class StreamHandler:
    """Handler that writes formatted records to a stream (stderr by default)."""

    def __init__(
        self,
        stream: Any = None,
        formatter: LogFormatter | None = None,
        level: LogLevel = LogLevel.DEBUG,
    ) -> None:
        self._stream = stream or sys.stderr
        self._formatter = formatter or TextFormatter()
        self._level = level
        self._closed = False

    def handle(self, record: LogRecord) -> None:
        if self._closed or record.level.value < self._level.value:
            return
        self._stream.write(self._formatter.format(record) + "\n")

    def flush(self) -> None:
        if not self._closed and hasattr(self._stream, "flush"):
            self._stream.flush()

    def close(self) -> None:
        self.flush()
        self._closed = True


class BufferingHandler:
    """Handler that keeps records in memory.

    Handy in tests and for shipping a session's log lines in one batch.
    """

    def __init__(
        self,
        capacity: int = 1000,
        flush_callback: Callable[[list[LogRecord]], None] | None = None,
    ) -> None:
        self._capacity = capacity
        self._flush_callback = flush_callback
        self.records: list[LogRecord] = []

    def handle(self, record: LogRecord) -> None:
        self.records.append(record)
        if len(self.records) >= self._capacity:
            self.flush()

    def flush(self) -> None:
        if self.records and self._flush_callback:
            self._flush_callback(list(self.records))
            self.records.clear()

    def close(self) -> None:
        self.flush()


class NullHandler:
    """Handler that discards all records."""

    def handle(self, record: LogRecord) -> None:
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class StdlibHandler:
    """Bridge that forwards records to Python's standard ``logging`` module."""

    def __init__(self, stdlib_logger: logging.Logger | None = None) -> None:
        self._logger = stdlib_logger

    def handle(self, record: LogRecord) -> None:
        target = self._logger or logging.getLogger(record.logger_name)
        fields = {**record.context.to_dict(), **record.extra}
        message = record.message
        if fields:
            message += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        target.log(record.level.to_stdlib(), message, exc_info=record.exc_info)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


# =============================================================================
# Logger Implementation
# =============================================================================


class ValidationLogger:
    """Structured logger used throughout fieldguard.

    Example:
        >>> logger = ValidationLogger("fieldguard.session")
        >>> logger.debug("Filter applied", field="email", rule="trim")
    """

    def __init__(
        self,
        name: str,
        level: LogLevel = LogLevel.INFO,
        handlers: list[LogHandler] | None = None,
        masker: SensitiveDataMasker | None = None,
    ) -> None:
        self.name = name
        self.level = level
        self.handlers: list[LogHandler] = handlers or []
        self._masker = masker or _default_masker
        self.disabled = False

    def add_handler(self, handler: LogHandler) -> None:
        if handler not in self.handlers:
            self.handlers.append(handler)

    def remove_handler(self, handler: LogHandler) -> None:
        if handler in self.handlers:
            self.handlers.remove(handler)

    def is_enabled_for(self, level: LogLevel) -> bool:
        return not self.disabled and bool(self.handlers) and level.value >= self.level.value

    def _log(
        self,
        level: LogLevel,
        message: str,
        exc_info: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        if not self.is_enabled_for(level):
            return

        record = LogRecord(
            level=level,
            message=message,
            logger_name=self.name,
            context=get_current_context(),
            extra=self._masker.mask_dict(kwargs),
            exc_info=exc_info,
        )
        for handler in self.handlers:
            handler.handle(record)

    def debug(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: BaseException | None = None, **kwargs: Any) -> None:
        self._log(LogLevel.ERROR, message, exc_info=exc_info, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log the exception currently being handled at ERROR level."""
        self._log(LogLevel.ERROR, message, exc_info=sys.exc_info()[1], **kwargs)


# =============================================================================
# Logger Registry
# =============================================================================


class LoggerRegistry:
    """Registry handing out one logger per name and applying global settings."""

    def __init__(self) -> None:
        self._loggers: dict[str, ValidationLogger] = {}
        self._root_handlers: list[LogHandler] = []
        self._root_level: LogLevel = LogLevel.INFO

    def get_logger(self, name: str, level: LogLevel | None = None) -> ValidationLogger:
        if name not in self._loggers:
            self._loggers[name] = ValidationLogger(
                name=name,
                level=level or self._root_level,
                handlers=list(self._root_handlers),
            )
        return self._loggers[name]

    def configure(
        self,
        level: LogLevel = LogLevel.INFO,
        handlers: list[LogHandler] | None = None,
        format: str = "text",
    ) -> None:
        self._root_level = level
        if handlers is not None:
            self._root_handlers = list(handlers)
        else:
            formatter: LogFormatter = JSONFormatter() if format == "json" else TextFormatter()
            self._root_handlers = [StreamHandler(formatter=formatter, level=level)]

        for logger in self._loggers.values():
            logger.level = level
            logger.handlers = list(self._root_handlers)

    def disable(self) -> None:
        for logger in self._loggers.values():
            logger.disabled = True

    def enable(self) -> None:
        for logger in self._loggers.values():
            logger.disabled = False


_registry = LoggerRegistry()


def get_logger(name: str, level: LogLevel | None = None) -> ValidationLogger:
    """Get a logger by name.

    Example:
        >>> logger = get_logger(__name__)
    """
    return _registry.get_logger(name, level)


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    handlers: list[LogHandler] | None = None,
    format: str = "text",
) -> None:
    """Configure global logging settings.

    Args:
        level: Default log level (LogLevel or string).
        handlers: Handlers to install; a stderr stream handler when omitted.
        format: Format for the default handler ('text' or 'json').

    Example:
        >>> configure_logging(level="DEBUG", format="json")
    """
    if isinstance(level, str):
        level = LogLevel.from_string(level)
    _registry.configure(level=level, handlers=handlers, format=format)
