"""Built-in validators.

Every validator has the shape ``(value, *args) -> bool``. Rule arguments may
arrive as raw strings from a rule string (``"min:18"``) or as Python values
from ``add_rule``; numeric validators coerce both sides through
``fieldguard.values.to_number`` so either form compares alike.

Validators never raise for bad input: a value of the wrong shape simply
fails the check.

Example:
    >>> min_value(20, "18")
    True
    >>> enum("abc", "abc", "def")
    True
"""

from __future__ import annotations

import re
from collections.abc import Sized
from enum import Enum
from typing import Any
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from fieldguard.exceptions import ConvertFailedError
from fieldguard.values import (
    ValueKind,
    convert_to,
    is_empty,
    kind_of,
    to_bool,
    to_int,
    to_number,
    to_str,
)


ALPHA_PATTERN = re.compile(r"^[A-Za-z]+$")
ALPHA_NUM_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
INT_STRING_PATTERN = re.compile(r"^[+-]?\d+$")
FLOAT_STRING_PATTERN = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")
STRING_NUMBER_PATTERN = re.compile(r"^\d+$")
FULL_URL_SCHEMES = frozenset({"http", "https", "ftp", "ftps", "ws", "wss"})
MAX_URL_LENGTH = 2083


# =============================================================================
# Helpers
# =============================================================================


def _number_or_none(value: Any) -> int | float | None:
    try:
        return to_number(value)
    except (TypeError, ValueError):
        return None


def _length(value: Any) -> int | None:
    return len(value) if isinstance(value, Sized) else None


def _candidates(args: tuple[Any, ...]) -> list[Any]:
    # A single collection argument is the candidate set itself
    if len(args) == 1 and isinstance(args[0], (list, tuple, set, frozenset)):
        return list(args[0])
    return list(args)


def _same_member(value: Any, candidate: Any) -> bool:
    value_type = type(value)
    if isinstance(candidate, str) and value_type in (int, float, str):
        try:
            candidate = convert_to(candidate, value_type)
        except ConvertFailedError:
            return False
    return type(candidate) is value_type and candidate == value


def _builtin_base(value: Any) -> Any:
    """Reduce an enum member or builtin subclass instance to its base type."""
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return bool(value)
    for base in (int, float, str, bytes):
        if isinstance(value, base):
            return base(value)
    return value


# =============================================================================
# Presence and Type
# =============================================================================


def required(value: Any) -> bool:
    """Check the value is present and not empty."""
    return not is_empty(value)


def string(value: Any, min_len: Any = None, max_len: Any = None) -> bool:
    """Check the value is a string, optionally within a length range."""
    if not isinstance(value, str):
        return False
    if min_len is not None and len(value) < to_int(min_len):
        return False
    return max_len is None or len(value) <= to_int(max_len)


def integer(value: Any, min_val: Any = None, max_val: Any = None) -> bool:
    """Check the value is an integer or an integer string, optionally in range."""
    kind = kind_of(value)
    if kind is ValueKind.STRING:
        if not INT_STRING_PATTERN.match(value.strip()):
            return False
    elif kind is not ValueKind.INT:
        return False
    number = to_int(value)
    if min_val is not None and number < to_number(min_val):
        return False
    return max_val is None or number <= to_number(max_val)


def float_value(value: Any) -> bool:
    """Check the value is a real number or a float-formatted string.

    Ints are accepted where a float is expected.
    """
    kind = kind_of(value)
    if kind.is_numeric:
        return True
    return kind is ValueKind.STRING and bool(FLOAT_STRING_PATTERN.match(value.strip()))


def boolean(value: Any) -> bool:
    """Check the value is a bool or a recognised flag string."""
    if isinstance(value, bool):
        return True
    if not isinstance(value, str) or not value.strip():
        return False
    try:
        to_bool(value)
    except ValueError:
        return False
    return True


def number(value: Any) -> bool:
    """Check the value is numeric or a numeric string."""
    if isinstance(value, bool):
        return False
    return _number_or_none(value) is not None


# =============================================================================
# Numeric Comparison
# =============================================================================


def min_value(value: Any, limit: Any) -> bool:
    """Check ``value >= limit``."""
    current = _number_or_none(value)
    return current is not None and current >= to_number(limit)


def max_value(value: Any, limit: Any) -> bool:
    """Check ``value <= limit``."""
    current = _number_or_none(value)
    return current is not None and current <= to_number(limit)


def greater_than(value: Any, limit: Any) -> bool:
    """Check ``value > limit``."""
    current = _number_or_none(value)
    return current is not None and current > to_number(limit)


def less_than(value: Any, limit: Any) -> bool:
    """Check ``value < limit``."""
    current = _number_or_none(value)
    return current is not None and current < to_number(limit)


def between(value: Any, low: Any, high: Any) -> bool:
    """Check ``low <= value <= high``."""
    current = _number_or_none(value)
    return current is not None and to_number(low) <= current <= to_number(high)


# =============================================================================
# Length
# =============================================================================


def min_length(value: Any, limit: Any) -> bool:
    length = _length(value)
    return length is not None and length >= to_int(limit)


def max_length(value: Any, limit: Any) -> bool:
    length = _length(value)
    return length is not None and length <= to_int(limit)


def length(value: Any, size: Any) -> bool:
    current = _length(value)
    return current is not None and current == to_int(size)


# =============================================================================
# Membership
# =============================================================================


def enum(value: Any, *candidates: Any) -> bool:
    """Check the value is one of the candidates, type-sensitively.

    A candidate matches only when it has exactly the value's type. Raw
    string candidates are converted to the value's type first when that
    type is plain ``int``, ``float`` or ``str``. Values of other types, such
    as an ``int`` subclass or an ``IntEnum`` member, never match plain
    candidates; use ``loose_enum`` for that.

    Example:
        >>> enum(3, "1", "2", "3")
        True
        >>> class Status(int): ...
        >>> enum(Status(1), 1, 2)
        False
    """
    return any(_same_member(value, c) for c in _candidates(candidates))


def not_in(value: Any, *candidates: Any) -> bool:
    """Inverse of ``enum``."""
    return not enum(value, *candidates)


def loose_enum(value: Any, *candidates: Any) -> bool:
    """Membership check that first reduces the value to its builtin base type.

    Example:
        >>> class Status(int): ...
        >>> loose_enum(Status(1), [1, 2, 3, 4])
        True
    """
    return enum(_builtin_base(value), *candidates)


# =============================================================================
# Formats
# =============================================================================


def email(value: Any) -> bool:
    """Check the value is a syntactically valid email address."""
    if not isinstance(value, str):
        return False
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def url(value: Any) -> bool:
    """Check the value parses as a URL reference (relative forms allowed)."""
    if not isinstance(value, str) or not value or len(value) > MAX_URL_LENGTH:
        return False
    if any(ch.isspace() for ch in value):
        return False
    try:
        urlparse(value)
    except ValueError:
        return False
    return True


def full_url(value: Any) -> bool:
    """Check the value is an absolute URL with a known scheme and a host."""
    if not url(value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme.lower() in FULL_URL_SCHEMES and bool(parsed.netloc)


def string_number(value: Any) -> bool:
    """Check the value is made of digits only, e.g. ``"10"`` or ``10``."""
    if value is None or isinstance(value, bool):
        return False
    if not isinstance(value, (str, int, float)):
        return False
    return bool(STRING_NUMBER_PATTERN.fullmatch(to_str(value)))


def regexp(value: Any, pattern: Any) -> bool:
    """Check the value contains a match for ``pattern``."""
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        return False
    return re.search(str(pattern), to_str(value)) is not None


def alpha(value: Any) -> bool:
    return isinstance(value, str) and bool(ALPHA_PATTERN.match(value))


def alpha_num(value: Any) -> bool:
    return isinstance(value, str) and bool(ALPHA_NUM_PATTERN.match(value))


# =============================================================================
# Built-in Table
# =============================================================================

BUILTIN_VALIDATORS: tuple[tuple[str, Any, tuple[str, ...]], ...] = (
    ("required", required, ()),
    ("string", string, ("isString",)),
    ("int", integer, ("integer", "isInt")),
    ("float", float_value, ("isFloat",)),
    ("bool", boolean, ("boolean", "isBool")),
    ("number", number, ("isNumber",)),
    ("min", min_value, ()),
    ("max", max_value, ()),
    ("gt", greater_than, ()),
    ("lt", less_than, ()),
    ("between", between, ()),
    ("minLen", min_length, ("min_len", "minLength")),
    ("maxLen", max_length, ("max_len", "maxLength")),
    ("len", length, ("length",)),
    ("in", enum, ("enum",)),
    ("notIn", not_in, ("not_in",)),
    ("email", email, ("isEmail",)),
    ("url", url, ("isURL",)),
    ("fullUrl", full_url, ("full_url", "isFullURL")),
    ("str_num", string_number, ("strNum", "isStrNum")),
    ("regexp", regexp, ("regex",)),
    ("alpha", alpha, ("isAlpha",)),
    ("alphaNum", alpha_num, ("alpha_num", "isAlphaNum")),
)
