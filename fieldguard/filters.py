"""Built-in filters.

A filter has the shape ``(value, *args) -> new_value``. String filters leave
non-string values untouched; conversion filters raise ``ValueError`` or
``TypeError`` when the value cannot be converted, which the session records
as a filter failure on the field.
"""

from __future__ import annotations

from typing import Any

from fieldguard.values import to_bool, to_float, to_int, to_str


def trim(value: Any, chars: Any = None) -> Any:
    """Strip surrounding whitespace, or the given characters."""
    if not isinstance(value, str):
        return value
    return value.strip(chars)


def ltrim(value: Any, chars: Any = None) -> Any:
    if not isinstance(value, str):
        return value
    return value.lstrip(chars)


def rtrim(value: Any, chars: Any = None) -> Any:
    if not isinstance(value, str):
        return value
    return value.rstrip(chars)


def lower(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.lower()


def upper(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.upper()


def to_integer(value: Any) -> int:
    """Convert to int; ``"12"`` and ``12.0`` become ``12``."""
    return to_int(value)


def to_floating(value: Any) -> float:
    return to_float(value)


def to_string(value: Any) -> str:
    return to_str(value)


def to_boolean(value: Any) -> bool:
    """Convert flag strings such as ``"yes"``/``"off"`` and 0/1 to bool."""
    return to_bool(value)


BUILTIN_FILTERS: tuple[tuple[str, Any, tuple[str, ...]], ...] = (
    ("trim", trim, ("trimSpace",)),
    ("ltrim", ltrim, ("trimLeft",)),
    ("rtrim", rtrim, ("trimRight",)),
    ("lower", lower, ("lowercase",)),
    ("upper", upper, ("uppercase",)),
    ("int", to_integer, ("toInt", "integer")),
    ("float", to_floating, ("toFloat",)),
    ("string", to_string, ("toString", "str")),
    ("bool", to_boolean, ("toBool",)),
)
