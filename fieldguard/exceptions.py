"""Exception hierarchy for fieldguard.

This module provides a structured exception hierarchy for consistent error
handling across the validation engine. All exceptions inherit from
FieldGuardError so callers can catch any engine-related error at a single
point.

Per-field validation failures are *not* exceptions: they accumulate in an
ErrorCollection and are inspected after the run. The classes below cover
configuration mistakes (fail fast), access failures on the explicit write
path, and misuse of a session's lifecycle.

Exception Hierarchy:
    FieldGuardError (base)
    ├── ConfigurationError
    │   ├── InvalidConfigValueError
    │   ├── MissingConfigError
    │   └── RuleConfigError
    │       ├── RuleSyntaxError
    │       ├── UnknownRuleError
    │       └── RuleArityError
    ├── AccessError
    │   ├── NotSettableError
    │   ├── ConvertFailedError
    │   └── FieldNotFoundError
    ├── SessionStateError
    └── SerializationError
        └── DeserializeError

Example:
    >>> try:
    ...     session.string_rule("age", "required|between:1")
    ... except RuleArityError as e:
    ...     logger.error(f"Bad rule: {e}")
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Sequence


class FieldGuardError(Exception):
    """Base exception for all fieldguard errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
        cause: Optional original exception that caused this error.

    Example:
        >>> try:
        ...     raise FieldGuardError("Something went wrong", details={"key": "value"})
        ... except FieldGuardError as e:
        ...     print(f"Error: {e.message}, Details: {e.details}")
    """

    def __init__(
        self,
        message: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
            cause: Optional original exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return string representation with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )

    def with_context(self, **kwargs: Any) -> FieldGuardError:
        """Create a new base exception with additional context details.

        The original instance is left untouched.

        Args:
            **kwargs: Additional context to add to details.

        Returns:
            New FieldGuardError with merged details.

        Example:
            >>> e = FieldGuardError("Error", details={"key": "value"})
            >>> e.with_context(field="name").details
            {'key': 'value', 'field': 'name'}
        """
        merged_details = {**self.details, **kwargs}
        return FieldGuardError(self.message, details=merged_details, cause=self.cause)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(FieldGuardError):
    """Exception for configuration-related errors.

    Attributes:
        config_key: Optional key that caused the configuration error.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, cause=cause)
        self.config_key = config_key


class InvalidConfigValueError(ConfigurationError):
    """Exception for invalid configuration values.

    Attributes:
        config_key: The configuration key with invalid value.
        value: The invalid value that was provided.
        expected: Description of what was expected.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str,
        value: Any = None,
        expected: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        details["value"] = value
        if expected:
            details["expected"] = expected
        super().__init__(message, config_key=config_key, details=details, cause=cause)
        self.value = value
        self.expected = expected


class MissingConfigError(ConfigurationError):
    """Exception for missing required configuration."""

    def __init__(
        self,
        config_key: str,
        *,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        message = f"Required configuration key '{config_key}' is missing"
        super().__init__(message, config_key=config_key, details=details, cause=cause)


class RuleConfigError(ConfigurationError):
    """Exception for malformed rule chains.

    Raised while a rule chain is built, never while data is validated.

    Attributes:
        rule_name: Name of the offending rule, if known.
        field: Field the rule was declared on, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        rule_name: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if rule_name:
            details["rule_name"] = rule_name
        if field:
            details["field"] = field
        super().__init__(message, details=details, cause=cause)
        self.rule_name = rule_name
        self.field = field


class RuleSyntaxError(RuleConfigError):
    """Exception raised when a rule or message string cannot be parsed.

    Attributes:
        text: The rule string being parsed.
    """

    def __init__(
        self,
        message: str,
        *,
        text: str,
        rule_name: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["text"] = text
        super().__init__(message, rule_name=rule_name, field=field, details=details)
        self.text = text


class UnknownRuleError(RuleConfigError):
    """Exception raised when a rule name is not registered.

    Attributes:
        available: Names that are registered.
    """

    def __init__(
        self,
        rule_name: str,
        *,
        kind: str = "validator",
        available: Sequence[str] | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.available = sorted(available) if available else []
        self.kind = kind
        message = f"Unknown {kind} '{rule_name}'"
        if field:
            message += f" on field '{field}'"
        super().__init__(message, rule_name=rule_name, field=field, details=details)


class RuleArityError(RuleConfigError):
    """Exception raised when a rule gets the wrong number of arguments.

    Attributes:
        given: Number of arguments supplied.
        min_args: Minimum accepted.
        max_args: Maximum accepted, None when unbounded.
    """

    def __init__(
        self,
        rule_name: str,
        *,
        given: int,
        min_args: int,
        max_args: int | None,
        field: str | None = None,
    ) -> None:
        if max_args is None:
            expected = f"at least {min_args}"
        elif min_args == max_args:
            expected = f"exactly {min_args}"
        else:
            expected = f"{min_args} to {max_args}"
        message = f"Rule '{rule_name}' takes {expected} argument(s), got {given}"
        super().__init__(
            message,
            rule_name=rule_name,
            field=field,
            details={"given": given, "expected": expected},
        )
        self.given = given
        self.min_args = min_args
        self.max_args = max_args


# =============================================================================
# Access Errors
# =============================================================================


class ErrorKind(Enum):
    """Reason a write through the data accessor failed."""

    NOT_SETTABLE = "not_settable"
    CONVERT_FAILED = "convert_failed"
    FIELD_NOT_FOUND = "field_not_found"


class AccessError(FieldGuardError):
    """Exception for failed reads or writes through a DataAccessor.

    Attributes:
        kind: The ErrorKind describing the failure.
        field: Path of the field involved.
    """

    kind: ErrorKind = ErrorKind.NOT_SETTABLE

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details=details, cause=cause)
        self.field = field


class NotSettableError(AccessError):
    """Raised when writing through an input that was not passed by reference."""

    kind = ErrorKind.NOT_SETTABLE


class ConvertFailedError(AccessError):
    """Raised when a value cannot be converted to the field's declared type."""

    kind = ErrorKind.CONVERT_FAILED

    def __init__(
        self,
        message: str = "convert value type error",
        *,
        field: str | None = None,
        target_type: str | None = None,
        value: Any = None,
        cause: Exception | None = None,
    ) -> None:
        details: dict[str, Any] = {"value": value}
        if target_type:
            details["target_type"] = target_type
        super().__init__(message, field=field, details=details, cause=cause)
        self.target_type = target_type
        self.value = value


class FieldNotFoundError(AccessError):
    """Raised when a field path does not exist on the input."""

    kind = ErrorKind.FIELD_NOT_FOUND

    def __init__(self, field: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Field '{field}' does not exist", field=field, details=details)


# =============================================================================
# Session Errors
# =============================================================================


class SessionStateError(FieldGuardError):
    """Raised when a session is used outside the state that allows it.

    Attributes:
        state: Name of the state the session was in.
    """

    def __init__(
        self,
        message: str,
        *,
        state: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if state:
            details["state"] = state
        super().__init__(message, details=details)
        self.state = state


# =============================================================================
# Serialization Errors
# =============================================================================


class SerializationError(FieldGuardError):
    """Base exception for serialization and deserialization errors.

    Attributes:
        target_type: Optional type being serialized to/from.
    """

    def __init__(
        self,
        message: str,
        *,
        target_type: str | None = None,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        details = details or {}
        if target_type:
            details["target_type"] = target_type
        super().__init__(message, details=details, cause=cause)
        self.target_type = target_type


class DeserializeError(SerializationError):
    """Raised when raw input cannot be decoded into a mapping."""

    pass


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(
    exception: Exception,
    wrapper_class: type[FieldGuardError] = FieldGuardError,
    message: str | None = None,
    **kwargs: Any,
) -> FieldGuardError:
    """Wrap an arbitrary exception in a FieldGuardError.

    Args:
        exception: The original exception to wrap.
        wrapper_class: The exception class to wrap with.
        message: Optional custom message. Defaults to original exception message.
        **kwargs: Additional arguments to pass to the wrapper class.

    Returns:
        A new exception instance wrapping the original.

    Example:
        >>> try:
        ...     json.loads("{")
        ... except ValueError as e:
        ...     raise wrap_exception(e, DeserializeError, target_type="mapping")
    """
    msg = message if message is not None else str(exception)
    return wrapper_class(msg, cause=exception, **kwargs)
