"""Configuration management for fieldguard.

This module provides the option set that shapes every validation run:
- which metadata key supplies field aliases (display names / external keys)
- the default skip-empty policy and fail-fast policies
- whether filtered values are written back into mutable inputs
- process-wide message overrides

Options can be built explicitly, loaded from environment variables or a
JSON/YAML file, or taken from the process-wide holder.

Configuration Precedence (highest to lowest):
    1. Explicit ``options=`` passed to a session
    2. Environment variables (when using ``ValidateOptions.load``)
    3. Configuration file
    4. Default values

The process-wide holder (``configure``/``reset_options``) is meant to be set
up once at startup. Changing it while sessions are validating on other
threads is not supported: a session snapshots the options when it is built.

Example:
    >>> from fieldguard.config import configure, reset_options
    >>> configure(field_tag="")          # use declared field names in messages
    >>> session = new(form)
    >>> reset_options()
"""

from __future__ import annotations

import json
import os
import threading
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from fieldguard.exceptions import ConfigurationError, InvalidConfigValueError, MissingConfigError


if TYPE_CHECKING:
    from collections.abc import Callable, Mapping


# =============================================================================
# Constants
# =============================================================================

DEFAULT_ENV_PREFIX = "FIELDGUARD"
CONFIG_FILE_NAMES = ("fieldguard.json", "fieldguard.yaml", "fieldguard.yml", ".fieldguard.json")


# =============================================================================
# Environment Variable Utilities
# =============================================================================


class EnvReader:
    """Utility class for reading environment variables with prefix support.

    Example:
        >>> reader = EnvReader(prefix="FIELDGUARD")
        >>> tag = reader.get("FIELD_TAG", default="json")
        >>> skip = reader.get_bool("SKIP_EMPTY", default=True)
    """

    def __init__(self, prefix: str = DEFAULT_ENV_PREFIX) -> None:
        self.prefix = prefix

    def _make_key(self, name: str) -> str:
        """Create full environment variable key with prefix."""
        if self.prefix:
            return f"{self.prefix}_{name}"
        return name

    def get(self, name: str, default: str | None = None) -> str | None:
        """Get a string environment variable.

        Args:
            name: Variable name (without prefix).
            default: Default value if not set.

        Returns:
            Environment variable value or default.
        """
        return os.environ.get(self._make_key(name), default)

    def get_required(self, name: str) -> str:
        """Get a required string environment variable.

        Raises:
            MissingConfigError: If variable is not set.
        """
        key = self._make_key(name)
        value = os.environ.get(key)
        if value is None:
            raise MissingConfigError(key)
        return value

    def get_bool(self, name: str, default: bool | None = None) -> bool | None:
        """Get a boolean environment variable.

        Truthy values: "1", "true", "yes", "on" (case-insensitive)
        Falsy values: "0", "false", "no", "off" (case-insensitive)

        Raises:
            InvalidConfigValueError: If value cannot be parsed as bool.
        """
        value = self.get(name)
        if value is None:
            return default
        lower_value = value.lower()
        if lower_value in ("1", "true", "yes", "on"):
            return True
        if lower_value in ("0", "false", "no", "off"):
            return False
        raise InvalidConfigValueError(
            f"Invalid boolean value for {self._make_key(name)}",
            config_key=self._make_key(name),
            value=value,
            expected="boolean (1/0, true/false, yes/no, on/off)",
        )

    def get_json(self, name: str, default: Any = None) -> Any:
        """Get a JSON-encoded environment variable.

        Raises:
            InvalidConfigValueError: If value cannot be parsed as JSON.
        """
        value = self.get(name)
        if value is None:
            return default
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise InvalidConfigValueError(
                f"Invalid JSON value for {self._make_key(name)}",
                config_key=self._make_key(name),
                value=value,
                expected="valid JSON",
                cause=e,
            ) from e


# =============================================================================
# File Configuration Utilities
# =============================================================================


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML configuration file.

    Raises:
        ConfigurationError: If YAML parsing fails.
    """
    import yaml

    try:
        with path.open() as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse YAML configuration: {path}",
            details={"path": str(path)},
            cause=e,
        ) from e


def _load_json(path: Path) -> dict[str, Any]:
    """Load JSON configuration file.

    Raises:
        ConfigurationError: If JSON parsing fails.
    """
    try:
        with path.open() as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Failed to parse JSON configuration: {path}",
            details={"path": str(path)},
            cause=e,
        ) from e


def load_config_file(path: Path) -> dict[str, Any]:
    """Load configuration from a file (JSON or YAML).

    Args:
        path: Path to configuration file.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigurationError: If file cannot be loaded.
    """
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path}",
            details={"path": str(path)},
        )

    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _load_yaml(path)
    elif suffix == ".json":
        return _load_json(path)
    else:
        raise ConfigurationError(
            f"Unsupported configuration file format: {suffix}",
            details={"path": str(path), "suffix": suffix},
        )


def find_config_file(
    start_dir: Path | None = None,
    max_depth: int = 5,
) -> Path | None:
    """Find a configuration file by searching up the directory tree.

    Args:
        start_dir: Directory to start search from (default: cwd).
        max_depth: Maximum directories to traverse up.

    Returns:
        Path to configuration file if found, None otherwise.
    """
    current = start_dir or Path.cwd()
    for _ in range(max_depth):
        for name in CONFIG_FILE_NAMES:
            config_path = current / name
            if config_path.is_file():
                return config_path
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


# =============================================================================
# Options
# =============================================================================


@dataclass(frozen=True, slots=True)
class ValidateOptions:
    """Options that shape a validation run.

    Attributes:
        field_tag: Metadata key holding a field's alias (e.g. a JSON name).
            The alias is used as the display name in messages. Empty string
            disables aliases so declared field names are shown.
        alias_keys: Use the alias (when present) as the key in errors and
            safe data instead of the declared field path.
        validate_tag: Metadata key holding the validator rule string.
        filter_tag: Metadata key holding the filter rule string.
        message_tag: Metadata key holding per-field custom messages.
        label_tag: Metadata key holding a field's translated display name.
        skip_empty: Default skip-empty policy for non-required rules.
        fail_fast: Stop the whole run at the first failure.
        field_fail_fast: Stop checking a field after its first failure.
        update_source: Write filtered values back into mutable inputs.
        messages: Process-wide message overrides keyed by rule name.
    """

    field_tag: str = "json"
    alias_keys: bool = False
    validate_tag: str = "validate"
    filter_tag: str = "filter"
    message_tag: str = "message"
    label_tag: str = "label"
    skip_empty: bool = True
    fail_fast: bool = False
    field_fail_fast: bool = False
    update_source: bool = True
    messages: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "field_tag": self.field_tag,
            "alias_keys": self.alias_keys,
            "validate_tag": self.validate_tag,
            "filter_tag": self.filter_tag,
            "message_tag": self.message_tag,
            "label_tag": self.label_tag,
            "skip_empty": self.skip_empty,
            "fail_fast": self.fail_fast,
            "field_fail_fast": self.field_fail_fast,
            "update_source": self.update_source,
            "messages": dict(self.messages),
        }

    def with_changes(self, **changes: Any) -> ValidateOptions:
        """Create a copy with some options replaced.

        Raises:
            InvalidConfigValueError: If an unknown option name is given.
        """
        known = {f.name for f in fields(self)}
        for key in changes:
            if key not in known:
                raise InvalidConfigValueError(
                    f"Unknown option '{key}'",
                    config_key=key,
                    value=changes[key],
                    expected=f"one of {sorted(known)}",
                )
        return replace(self, **changes)

    def with_messages(self, messages: Mapping[str, str]) -> ValidateOptions:
        """Create a copy with additional global message overrides."""
        return replace(self, messages={**self.messages, **messages})

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Create options from a dictionary, ignoring unknown keys."""
        defaults = cls()
        return cls(
            field_tag=data.get("field_tag", defaults.field_tag),
            alias_keys=data.get("alias_keys", defaults.alias_keys),
            validate_tag=data.get("validate_tag", defaults.validate_tag),
            filter_tag=data.get("filter_tag", defaults.filter_tag),
            message_tag=data.get("message_tag", defaults.message_tag),
            label_tag=data.get("label_tag", defaults.label_tag),
            skip_empty=data.get("skip_empty", defaults.skip_empty),
            fail_fast=data.get("fail_fast", defaults.fail_fast),
            field_fail_fast=data.get("field_fail_fast", defaults.field_fail_fast),
            update_source=data.get("update_source", defaults.update_source),
            messages=dict(data.get("messages") or {}),
        )

    @classmethod
    def from_env(cls, prefix: str = DEFAULT_ENV_PREFIX) -> Self:
        """Create options from environment variables.

        Environment Variables:
            {PREFIX}_FIELD_TAG: Alias metadata key (string, may be empty)
            {PREFIX}_ALIAS_KEYS: Key errors/safe data by alias (bool)
            {PREFIX}_SKIP_EMPTY: Default skip-empty policy (bool)
            {PREFIX}_FAIL_FAST: Stop at first failure (bool)
            {PREFIX}_FIELD_FAIL_FAST: Stop each field at its first failure (bool)
            {PREFIX}_UPDATE_SOURCE: Write filtered values back (bool)
            {PREFIX}_MESSAGES: Global message overrides (JSON object)
        """
        env = EnvReader(prefix)
        defaults = cls()

        def flag(name: str, default: bool) -> bool:
            value = env.get_bool(name)
            return default if value is None else value

        messages = env.get_json("MESSAGES", default={})
        if not isinstance(messages, dict):
            raise InvalidConfigValueError(
                f"Invalid messages value for {prefix}_MESSAGES",
                config_key=f"{prefix}_MESSAGES",
                value=messages,
                expected="JSON object",
            )

        return cls(
            field_tag=env.get("FIELD_TAG", defaults.field_tag) or "",
            alias_keys=flag("ALIAS_KEYS", defaults.alias_keys),
            skip_empty=flag("SKIP_EMPTY", defaults.skip_empty),
            fail_fast=flag("FAIL_FAST", defaults.fail_fast),
            field_fail_fast=flag("FIELD_FAIL_FAST", defaults.field_fail_fast),
            update_source=flag("UPDATE_SOURCE", defaults.update_source),
            messages={str(k): str(v) for k, v in messages.items()},
        )

    @classmethod
    def from_file(cls, path: Path | str) -> Self:
        """Create options from a JSON or YAML file."""
        return cls.from_dict(load_config_file(Path(path)))

    @classmethod
    def load(
        cls,
        config_file: Path | str | None = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        search_config: bool = True,
    ) -> Self:
        """Load options with file discovery, overridden by the environment.

        Only environment variables that are actually set override file values.

        Args:
            config_file: Explicit config file path.
            env_prefix: Environment variable prefix.
            search_config: Whether to search for a config file.

        Returns:
            Merged ValidateOptions instance.
        """
        file_path: Path | None = None
        if config_file:
            file_path = Path(config_file)
        elif search_config:
            file_path = find_config_file()

        data: dict[str, Any] = {}
        if file_path and file_path.exists():
            data = load_config_file(file_path)

        base = cls.from_dict(data)
        env = EnvReader(env_prefix)
        overrides = cls.from_env(env_prefix).to_dict()
        env_names = {
            "field_tag": "FIELD_TAG",
            "alias_keys": "ALIAS_KEYS",
            "skip_empty": "SKIP_EMPTY",
            "fail_fast": "FAIL_FAST",
            "field_fail_fast": "FIELD_FAIL_FAST",
            "update_source": "UPDATE_SOURCE",
        }
        changes = {
            key: overrides[key]
            for key, env_name in env_names.items()
            if env.get(env_name) is not None
        }
        merged = base.with_changes(**changes)
        if overrides["messages"]:
            merged = merged.with_messages(overrides["messages"])
        return merged


# =============================================================================
# Validation Utilities
# =============================================================================


def validate_options(options: ValidateOptions) -> list[str]:
    """Validate options and return a list of issues (empty if valid)."""
    issues: list[str] = []

    for name in ("validate_tag", "filter_tag", "message_tag", "label_tag"):
        if not getattr(options, name):
            issues.append(f"Invalid {name}: must be a non-empty string.")

    tags = [options.validate_tag, options.filter_tag, options.message_tag, options.label_tag]
    if options.field_tag:
        tags.append(options.field_tag)
    if len(set(tags)) != len(tags):
        issues.append("Metadata tag names must be distinct.")

    if options.alias_keys and not options.field_tag:
        issues.append("alias_keys requires a non-empty field_tag.")

    for key, value in options.messages.items():
        if not isinstance(value, str):
            issues.append(f"Invalid message for '{key}': must be a string.")

    return issues


def require_valid_options(options: ValidateOptions) -> None:
    """Validate options and raise if invalid.

    Raises:
        ConfigurationError: If options are invalid.
    """
    issues = validate_options(options)
    if issues:
        raise ConfigurationError(
            "Invalid options",
            details={"issues": issues},
        )


# =============================================================================
# Process-wide Defaults
# =============================================================================


_options_lock = threading.Lock()
_global_options: ValidateOptions = ValidateOptions()


def get_options() -> ValidateOptions:
    """Get the process-wide default options."""
    with _options_lock:
        return _global_options


def configure(
    mutator: Callable[[ValidateOptions], ValidateOptions] | None = None,
    /,
    **changes: Any,
) -> ValidateOptions:
    """Replace the process-wide default options.

    Either pass keyword changes, a callable that receives the current options
    and returns new ones, or both (the callable runs first). The override
    stays active until the next ``reset_options()``.

    Example:
        >>> configure(field_tag="")
        >>> configure(lambda opt: opt.with_changes(skip_empty=False))

    Raises:
        ConfigurationError: If the resulting options are invalid.
    """
    global _global_options
    with _options_lock:
        updated = _global_options
        if mutator is not None:
            updated = mutator(updated)
        if changes:
            updated = updated.with_changes(**changes)
        require_valid_options(updated)
        _global_options = updated
        return updated


def reset_options() -> None:
    """Restore the process-wide default options."""
    global _global_options
    with _options_lock:
        _global_options = ValidateOptions()


def register_messages(messages: Mapping[str, str]) -> None:
    """Add process-wide message overrides keyed by rule name.

    Example:
        >>> register_messages({"required": "{field} must be filled in"})
    """
    configure(lambda opt: opt.with_messages(messages))
