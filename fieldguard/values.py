"""Value classification and coercion helpers.

Rule arguments arrive as raw string tokens (``"min:18"`` carries ``"18"``) and
field values arrive as whatever the input holds. The helpers here give both a
common footing:

- ``kind_of`` tags a value with a ``ValueKind``
- ``is_empty`` applies the skip-empty notion of emptiness
- ``to_int``/``to_float``/``to_number``/``to_bool``/``to_str`` coerce leniently
  and raise ``ValueError``/``TypeError`` on failure
- ``convert_to`` converts a value to a declared field type for write-back and
  raises ``ConvertFailedError``
- ``coerce_args`` converts raw rule tokens using a callable's annotations
"""

from __future__ import annotations

import inspect
import numbers
import types
import typing
from collections.abc import Mapping, Sized
from enum import Enum
from typing import TYPE_CHECKING, Any, Union

from fieldguard.exceptions import ConvertFailedError


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "y"})
FALSE_STRINGS = frozenset({"0", "false", "no", "off", "n", ""})


class ValueKind(Enum):
    """Coarse classification of a runtime value."""

    NONE = "none"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    BYTES = "bytes"
    SEQUENCE = "sequence"
    MAPPING = "mapping"
    OTHER = "other"

    @property
    def is_numeric(self) -> bool:
        return self in (ValueKind.INT, ValueKind.FLOAT)


def kind_of(value: Any) -> ValueKind:
    """Classify a value.

    ``bool`` is checked before ``int`` because it subclasses it.

    Example:
        >>> kind_of(3)
        <ValueKind.INT: 'int'>
        >>> kind_of([1, 2])
        <ValueKind.SEQUENCE: 'sequence'>
    """
    if value is None:
        return ValueKind.NONE
    if isinstance(value, bool):
        return ValueKind.BOOL
    if isinstance(value, numbers.Integral):
        return ValueKind.INT
    if isinstance(value, numbers.Real):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, (bytes, bytearray)):
        return ValueKind.BYTES
    if isinstance(value, Mapping):
        return ValueKind.MAPPING
    if isinstance(value, (list, tuple, set, frozenset)):
        return ValueKind.SEQUENCE
    return ValueKind.OTHER


def is_empty(value: Any, *, optional: bool = False) -> bool:
    """Check whether a value counts as empty for skip-empty purposes.

    ``None``, empty strings and empty collections are always empty. Zero
    numbers and ``False`` are empty only for plain (non-optional) scalar
    fields: on an optional field they are deliberate values.

    Args:
        value: The value to check.
        optional: Whether the value comes from an optional scalar field.

    Example:
        >>> is_empty(0)
        True
        >>> is_empty(0, optional=True)
        False
    """
    kind = kind_of(value)
    if kind is ValueKind.NONE:
        return True
    if kind in (ValueKind.BOOL, ValueKind.INT, ValueKind.FLOAT):
        return not optional and not value
    if isinstance(value, Sized):
        return len(value) == 0
    return False


# =============================================================================
# Lenient Coercion
# =============================================================================


def to_int(value: Any) -> int:
    """Coerce to int. Floats and numeric strings must be integral.

    Raises:
        ValueError: If the value is not an integral number.
        TypeError: If the value has no numeric interpretation.
    """
    kind = kind_of(value)
    if kind in (ValueKind.BOOL, ValueKind.INT):
        return int(value)
    if kind is ValueKind.FLOAT:
        if float(value).is_integer():
            return int(value)
        raise ValueError(f"{value!r} is not an integral number")
    if kind is ValueKind.STRING:
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            number = float(text)
            if number.is_integer():
                return int(number)
            raise ValueError(f"{value!r} is not an integral number") from None
    raise TypeError(f"cannot convert {type(value).__name__} to int")


def to_float(value: Any) -> float:
    """Coerce to float.

    Raises:
        ValueError: If a string does not parse as a number.
        TypeError: If the value has no numeric interpretation.
    """
    kind = kind_of(value)
    if kind in (ValueKind.BOOL, ValueKind.INT, ValueKind.FLOAT):
        return float(value)
    if kind is ValueKind.STRING:
        return float(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to float")


def to_number(value: Any) -> int | float:
    """Coerce to int when possible, else float.

    Used for numeric comparisons so ``"18"``, ``18`` and ``18.0`` compare
    alike.
    """
    kind = kind_of(value)
    if kind in (ValueKind.BOOL, ValueKind.INT):
        return int(value)
    if kind is ValueKind.FLOAT:
        return float(value)
    if kind is ValueKind.STRING:
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    raise TypeError(f"cannot convert {type(value).__name__} to a number")


def to_bool(value: Any) -> bool:
    """Coerce to bool from bools, 0/1 numbers and common flag strings.

    Raises:
        ValueError: If the value is not a recognised flag.
    """
    kind = kind_of(value)
    if kind is ValueKind.BOOL:
        return value
    if kind.is_numeric and value in (0, 1):
        return bool(value)
    if kind is ValueKind.STRING:
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise ValueError(f"{value!r} is not a boolean value")


def to_str(value: Any) -> str:
    """Coerce to str. Bytes are decoded as UTF-8, None is rejected.

    Raises:
        TypeError: If the value is None.
    """
    if value is None:
        raise TypeError("cannot convert None to str")
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# =============================================================================
# Declared-type Conversion
# =============================================================================


def _type_name(declared: Any) -> str:
    return getattr(declared, "__name__", None) or str(declared)


def _union_members(declared: Any) -> tuple[Any, ...] | None:
    origin = typing.get_origin(declared)
    if origin is Union or origin is types.UnionType:
        return typing.get_args(declared)
    return None


def convert_to(value: Any, declared: Any, *, field: str | None = None) -> Any:
    """Convert a value to a field's declared type.

    Widening (int to float) and numeric strings are accepted. Lossy
    conversions such as 2.5 to int are rejected. ``Any`` or a missing
    annotation accepts the value unchanged.

    Args:
        value: The value to convert.
        declared: The declared type annotation.
        field: Field path used in the error.

    Returns:
        The converted value.

    Raises:
        ConvertFailedError: If the value cannot be represented as the type.

    Example:
        >>> convert_to(23, float)
        23.0
        >>> convert_to(None, int | None) is None
        True
    """
    if declared is None or declared is Any or declared is inspect.Parameter.empty:
        return value

    members = _union_members(declared)
    if members is not None:
        if value is None:
            if type(None) in members:
                return None
            raise ConvertFailedError(field=field, target_type=_type_name(declared), value=value)
        candidates = [m for m in members if m is not type(None)]
        for member in candidates:
            target = typing.get_origin(member) or member
            if isinstance(target, type) and type(value) is target:
                return value
        last_error: ConvertFailedError | None = None
        for member in candidates:
            try:
                return convert_to(value, member, field=field)
            except ConvertFailedError as e:
                last_error = e
        raise last_error or ConvertFailedError(
            field=field, target_type=_type_name(declared), value=value
        )

    target = typing.get_origin(declared) or declared
    if not isinstance(target, type):
        return value

    try:
        if target is bool:
            return to_bool(value)
        if issubclass(target, Enum):
            return value if isinstance(value, target) else target(value)
        if target is float:
            if isinstance(value, bool):
                raise TypeError("bool is not a number")
            return to_float(value)
        if target is int:
            if isinstance(value, bool):
                raise TypeError("bool is not a number")
            return to_int(value)
        if target is str:
            if isinstance(value, str):
                return value
            # Numbers are stored in their string form
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return to_str(value)
            raise TypeError(f"{type(value).__name__} is not a string")
        if isinstance(value, target):
            return value
    except (TypeError, ValueError) as e:
        raise ConvertFailedError(
            field=field, target_type=_type_name(declared), value=value, cause=e
        ) from e

    raise ConvertFailedError(field=field, target_type=_type_name(declared), value=value)


# =============================================================================
# Argument Coercion
# =============================================================================

_COERCIBLE = (int, float, bool, str)


def _argument_annotations(func: Callable[..., Any]) -> list[Any]:
    """Annotations of positional parameters after the value, plus *args."""
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return []
    try:
        hints = typing.get_type_hints(func)
    except (NameError, TypeError):
        hints = {}

    annotations: list[Any] = []
    params = [
        p
        for p in signature.parameters.values()
        if p.kind
        in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
            inspect.Parameter.VAR_POSITIONAL,
        )
    ]
    for param in params[1:]:
        annotation = hints.get(param.name, param.annotation)
        annotations.append((param.kind, annotation))
    return annotations


def coerce_args(func: Callable[..., Any], args: Sequence[Any]) -> tuple[Any, ...]:
    """Convert raw string rule arguments using ``func``'s annotations.

    Only raw ``str`` tokens are converted and only towards ``int``,
    ``float``, ``bool`` or ``str``. Unannotated parameters receive the raw
    token.

    Example:
        >>> def check_age(value, *ints: int) -> bool: ...
        >>> coerce_args(check_age, ("1", "2"))
        (1, 2)

    Raises:
        ValueError: If a token does not parse as the annotated type.
    """
    annotations = _argument_annotations(func)
    if not annotations:
        return tuple(args)

    coerced: list[Any] = []
    for index, arg in enumerate(args):
        if index < len(annotations) and annotations[index][0] is not inspect.Parameter.VAR_POSITIONAL:
            annotation = annotations[index][1]
        elif annotations[-1][0] is inspect.Parameter.VAR_POSITIONAL:
            annotation = annotations[-1][1]
        else:
            annotation = None

        if isinstance(arg, str) and annotation in _COERCIBLE and annotation is not str:
            try:
                arg = convert_to(arg, annotation)
            except ConvertFailedError as e:
                raise ValueError(f"argument {arg!r} is not a valid {annotation.__name__}") from e
        coerced.append(arg)
    return tuple(coerced)
