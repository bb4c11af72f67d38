"""fieldguard: declarative field validation and filtering.

Validate a record or mapping against compact rule strings, collect
field-level errors, and obtain a sanitized copy of the input with filters
applied (written back into the input when it is mutable).

Records:
    >>> from dataclasses import dataclass
    >>> from fieldguard import rules_field, new
    >>> @dataclass
    ... class SmsRequest:
    ...     country_code: str = rules_field("", validate="required", filter="trim|lower")
    ...     phone: str = rules_field("", validate="required|str_num", filter="trim")
    >>> req = SmsRequest(" CN ", "13677778888 ")
    >>> session = new(req)
    >>> session.validate()
    True
    >>> req.country_code
    'cn'

Mappings:
    >>> from fieldguard import from_mapping
    >>> session = from_mapping({"title": "1"})
    >>> session.string_rule("title", "in:2,3").add_messages({"in": "unknown title"})
    >>> session.validate()
    False
    >>> session.errors.one()
    'unknown title'

Custom Validators:
    >>> from fieldguard import loose_enum
    >>> def check_age(value, *ages: int) -> bool:
    ...     return loose_enum(value, ages)
    >>> session.add_validator("checkAge", check_age)
    >>> session.string_rule("age", "required|checkAge:1,2,3,4")

Configuration:
    >>> from fieldguard import configure, reset_options
    >>> configure(field_tag="")     # show declared names in messages
    >>> reset_options()

Logging:
    >>> from fieldguard import configure_logging
    >>> configure_logging(level="DEBUG")   # every failed rule is logged

Public API:
    - Sessions: ValidationSession, SessionState, new, from_record, from_mapping, from_json
    - Capabilities: HasRules, HasFilters, HasMessages, HasTranslations, HasScenes
    - Rules: Rule, RuleChain, parse_rules, parse_messages
    - Access: DataAccessor, FieldHandle, FieldKind, FieldValue, describe_record, rules_field
    - Registries: ValidatorRegistry, FilterRegistry, RuleSpec, register_validator, register_filter
    - Messages: MessageResolver, DEFAULT_MESSAGES
    - Errors: ErrorCollection, FieldError
    - Configuration: ValidateOptions, configure, reset_options, get_options, register_messages
    - Exceptions: FieldGuardError and subclasses
"""

__version__ = "0.1.0"

# =============================================================================
# Access
# =============================================================================
from fieldguard.accessor import (
    DataAccessor,
    FieldHandle,
    FieldKind,
    FieldValue,
    describe_record,
    rules_field,
)

# =============================================================================
# Configuration
# =============================================================================
from fieldguard.config import (
    EnvReader,
    ValidateOptions,
    configure,
    get_options,
    register_messages,
    require_valid_options,
    reset_options,
    validate_options,
)

# =============================================================================
# Errors
# =============================================================================
from fieldguard.errors import ErrorCollection, FieldError

# =============================================================================
# Exceptions
# =============================================================================
from fieldguard.exceptions import (
    AccessError,
    ConfigurationError,
    ConvertFailedError,
    DeserializeError,
    ErrorKind,
    FieldGuardError,
    FieldNotFoundError,
    InvalidConfigValueError,
    MissingConfigError,
    NotSettableError,
    RuleArityError,
    RuleConfigError,
    RuleSyntaxError,
    SerializationError,
    SessionStateError,
    UnknownRuleError,
)

# =============================================================================
# Logging
# =============================================================================
from fieldguard.logging import LogContext, LogLevel, configure_logging, get_logger

# =============================================================================
# Messages
# =============================================================================
from fieldguard.messages import DEFAULT_MESSAGES, MessageResolver

# =============================================================================
# Registries
# =============================================================================
from fieldguard.registry import (
    FilterRegistry,
    RuleSpec,
    ValidatorRegistry,
    get_filter_registry,
    get_validator_registry,
    register_filter,
    register_validator,
    reset_registries,
)

# =============================================================================
# Rules
# =============================================================================
from fieldguard.rules import Rule, RuleChain, parse_messages, parse_rules

# =============================================================================
# Sessions
# =============================================================================
from fieldguard.session import (
    HasFilters,
    HasMessages,
    HasRules,
    HasScenes,
    HasTranslations,
    SessionState,
    ValidationSession,
    from_json,
    from_mapping,
    from_record,
    new,
)
from fieldguard.validators import enum, loose_enum


__all__ = [
    # Version
    "__version__",
    # Sessions
    "SessionState",
    "ValidationSession",
    "from_json",
    "from_mapping",
    "from_record",
    "new",
    # Capabilities
    "HasFilters",
    "HasMessages",
    "HasRules",
    "HasScenes",
    "HasTranslations",
    # Rules
    "Rule",
    "RuleChain",
    "parse_messages",
    "parse_rules",
    # Access
    "DataAccessor",
    "FieldHandle",
    "FieldKind",
    "FieldValue",
    "describe_record",
    "rules_field",
    # Registries
    "FilterRegistry",
    "RuleSpec",
    "ValidatorRegistry",
    "get_filter_registry",
    "get_validator_registry",
    "register_filter",
    "register_validator",
    "reset_registries",
    # Validators
    "enum",
    "loose_enum",
    # Messages
    "DEFAULT_MESSAGES",
    "MessageResolver",
    # Errors
    "ErrorCollection",
    "FieldError",
    # Configuration
    "EnvReader",
    "ValidateOptions",
    "configure",
    "get_options",
    "register_messages",
    "require_valid_options",
    "reset_options",
    "validate_options",
    # Logging
    "LogContext",
    "LogLevel",
    "configure_logging",
    "get_logger",
    # Exceptions
    "AccessError",
    "ConfigurationError",
    "ConvertFailedError",
    "DeserializeError",
    "ErrorKind",
    "FieldGuardError",
    "FieldNotFoundError",
    "InvalidConfigValueError",
    "MissingConfigError",
    "NotSettableError",
    "RuleArityError",
    "RuleConfigError",
    "RuleSyntaxError",
    "SerializationError",
    "SessionStateError",
    "UnknownRuleError",
]
