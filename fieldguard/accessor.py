"""Uniform field access over records and mappings.

Records are dataclasses. Their fields carry rules through field metadata,
which ``rules_field`` builds conveniently::

    @dataclass
    class SmsRequest:
        country_code: str = rules_field("", validate="required", filter="trim|lower",
                                        json="countryCode")

Nested dataclass fields (optionally ``X | None``) are flattened into dotted
paths such as ``In2.Org.Company``. A field marked ``embedded=True`` promotes
its children: ``Company`` resolves to ``Org.Company`` unless a declared field
already has that name.

``DataAccessor`` reads and writes those paths on a record or mapping. Reads
never raise; writes raise an ``AccessError`` subclass.
"""

from __future__ import annotations

import dataclasses
import functools
import inspect
import types
import typing
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from dataclasses import MISSING, dataclass, field
from enum import Enum
from typing import Any, Union

from fieldguard.config import ValidateOptions, get_options
from fieldguard.exceptions import ConfigurationError, FieldNotFoundError, NotSettableError
from fieldguard.values import convert_to


PATH_SEPARATOR = "."
EMBEDDED_KEY = "embedded"


# =============================================================================
# Types
# =============================================================================


class FieldKind(Enum):
    """Shape of a field, which decides emptiness and traversal."""

    SCALAR = "scalar"
    OPTIONAL_SCALAR = "optional_scalar"
    RECORD = "record"
    OPTIONAL_RECORD = "optional_record"

    @property
    def is_record(self) -> bool:
        return self in (FieldKind.RECORD, FieldKind.OPTIONAL_RECORD)

    @property
    def is_optional(self) -> bool:
        return self in (FieldKind.OPTIONAL_SCALAR, FieldKind.OPTIONAL_RECORD)


@dataclass(frozen=True, slots=True)
class FieldHandle:
    """Description of one addressable field.

    Attributes:
        path: Declared dotted path, e.g. ``In2.Org.Company``.
        kind: Field shape.
        declared_type: Declared annotation, None when unknown.
        alias: Alias path built from the alias metadata of each segment,
            None when no segment has an alias.
        embedded: Whether the field promotes its children's names.
        metadata: Raw dataclass field metadata.
    """

    path: str
    kind: FieldKind = FieldKind.SCALAR
    declared_type: Any = None
    alias: str | None = None
    embedded: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.path.rpartition(PATH_SEPARATOR)[2]

    @property
    def parent(self) -> str | None:
        parent = self.path.rpartition(PATH_SEPARATOR)[0]
        return parent or None

    @property
    def optional(self) -> bool:
        return self.kind.is_optional


@dataclass(frozen=True, slots=True)
class FieldValue:
    """Result of reading a path.

    Attributes:
        value: The value read, None when not found.
        found: Whether the full path exists.
        was_nil: Whether a None was met on the path (the leaf included).
    """

    value: Any = None
    found: bool = False
    was_nil: bool = False


def ancestors(path: str) -> list[str]:
    """Proper prefixes of a dotted path, outermost first.

    Example:
        >>> ancestors("In2.Sub.Email")
        ['In2', 'In2.Sub']
    """
    parts = path.split(PATH_SEPARATOR)
    return [PATH_SEPARATOR.join(parts[:i]) for i in range(1, len(parts))]


# =============================================================================
# Record Description
# =============================================================================


def rules_field(
    default: Any = MISSING,
    *,
    default_factory: Any = MISSING,
    validate: str | None = None,
    filter: str | None = None,
    message: str | None = None,
    label: str | None = None,
    embedded: bool = False,
    **aliases: str,
) -> Any:
    """Build a dataclass field carrying rule metadata.

    Keyword arguments beyond the named ones are stored as alias tags, e.g.
    ``json="country_code"``.

    Example:
        >>> @dataclass
        ... class Form:
        ...     age: int = rules_field(0, validate="required|min:18", label="Age")
    """
    metadata: dict[str, Any] = dict(aliases)
    if validate is not None:
        metadata["validate"] = validate
    if filter is not None:
        metadata["filter"] = filter
    if message is not None:
        metadata["message"] = message
    if label is not None:
        metadata["label"] = label
    if embedded:
        metadata[EMBEDDED_KEY] = True
    return field(default=default, default_factory=default_factory, metadata=metadata)


def _is_record_type(tp: Any) -> bool:
    return isinstance(tp, type) and dataclasses.is_dataclass(tp)


def _classify(declared: Any) -> tuple[FieldKind, type | None]:
    """Return the field kind and, for record fields, the record type."""
    optional = False
    inner = declared
    origin = typing.get_origin(declared)
    if origin is Union or origin is types.UnionType:
        members = typing.get_args(declared)
        optional = type(None) in members
        others = [m for m in members if m is not type(None)]
        inner = others[0] if len(others) == 1 else None

    if _is_record_type(inner):
        return (FieldKind.OPTIONAL_RECORD if optional else FieldKind.RECORD), inner
    return (FieldKind.OPTIONAL_SCALAR if optional else FieldKind.SCALAR), None


def _caller_namespace() -> dict[str, Any]:
    """Merge the locals of every calling frame, inner frames winning."""
    frames = []
    frame = inspect.currentframe()
    try:
        while frame is not None:
            frames.append(frame)
            frame = frame.f_back
        namespace: dict[str, Any] = {}
        for outer in reversed(frames):
            namespace.update(outer.f_locals)
        return namespace
    finally:
        del frame
        frames.clear()


def _type_hints(cls: type) -> dict[str, Any]:
    """Resolve field annotations, including records declared inside functions.

    Raises:
        ConfigurationError: If an annotation names a type that cannot be found.
    """
    try:
        return typing.get_type_hints(cls)
    except NameError:
        pass
    # Records defined in a function refer to their neighbours by local name
    try:
        return typing.get_type_hints(cls, localns=_caller_namespace())
    except (NameError, TypeError) as e:
        raise ConfigurationError(
            f"Cannot resolve field types of record '{cls.__qualname__}': {e}",
            details={"record": cls.__qualname__},
            cause=e,
        ) from e


def _walk(
    cls: type,
    prefix: str,
    alias_parts: tuple[str, ...],
    has_alias: bool,
    field_tag: str,
    seen: tuple[type, ...],
    out: list[FieldHandle],
) -> None:
    hints = _type_hints(cls)
    for f in dataclasses.fields(cls):
        declared = hints.get(f.name)
        kind, record_type = _classify(declared)
        alias = f.metadata.get(field_tag) if field_tag else None
        parts = (*alias_parts, alias or f.name)
        aliased = has_alias or bool(alias)
        path = f"{prefix}{f.name}"
        out.append(
            FieldHandle(
                path=path,
                kind=kind,
                declared_type=declared,
                alias=PATH_SEPARATOR.join(parts) if aliased else None,
                embedded=bool(f.metadata.get(EMBEDDED_KEY)),
                metadata=f.metadata,
            )
        )
        # Recursive record types are described once along each branch
        if record_type is not None and record_type not in seen:
            _walk(
                record_type,
                path + PATH_SEPARATOR,
                parts,
                aliased,
                field_tag,
                (*seen, record_type),
                out,
            )


@functools.lru_cache(maxsize=256)
def _describe(cls: type, field_tag: str) -> tuple[FieldHandle, ...]:
    out: list[FieldHandle] = []
    _walk(cls, "", (), False, field_tag, (cls,), out)
    return tuple(out)


def describe_record(cls: type, options: ValidateOptions | None = None) -> tuple[FieldHandle, ...]:
    """Flatten a dataclass type into field handles, parents before children.

    The result is cached per type and alias tag.

    Returns:
        Handles in declaration order; empty for non-dataclass types.

    Example:
        >>> [h.path for h in describe_record(User3)]
        ['In2', 'In2.Org', 'In2.Org.Company', 'In2.Sub', 'In2.Sub.Email', 'In2.Sub.Age']
    """
    if not _is_record_type(cls):
        return ()
    options = options or get_options()
    return _describe(cls, options.field_tag)


# =============================================================================
# Accessor
# =============================================================================

_MISSING = object()


def _get_child(container: Any, segment: str) -> Any:
    if isinstance(container, Mapping):
        return container.get(segment, _MISSING)
    if isinstance(container, Sequence) and not isinstance(container, (str, bytes)):
        if segment.isdigit() and int(segment) < len(container):
            return container[int(segment)]
        return _MISSING
    return getattr(container, segment, _MISSING)


class DataAccessor:
    """Reads and writes dotted field paths on a record or mapping.

    The accessor keeps a reference to the input; writes go straight into it.

    Example:
        >>> accessor = DataAccessor({"user": {"name": "tom"}})
        >>> accessor.read("user.name")
        FieldValue(value='tom', found=True, was_nil=False)
    """

    def __init__(self, data: Any, options: ValidateOptions | None = None) -> None:
        self._data = data
        self._options = options or get_options()
        self._is_mapping = isinstance(data, Mapping)
        handles = describe_record(type(data), self._options) if _is_record_type(type(data)) else ()
        self._handles: dict[str, FieldHandle] = {h.path: h for h in handles}
        self._promoted = self._promoted_names(handles)

    def _promoted_names(self, handles: tuple[FieldHandle, ...]) -> dict[str, str]:
        promoted: dict[str, str] = {}
        for handle in handles:
            parts = handle.path.split(PATH_SEPARATOR)
            kept = [
                part
                for i, part in enumerate(parts)
                if i == len(parts) - 1
                or not self._handles[PATH_SEPARATOR.join(parts[: i + 1])].embedded
            ]
            short = PATH_SEPARATOR.join(kept)
            if short != handle.path and short not in self._handles:
                promoted.setdefault(short, handle.path)
        return promoted

    @property
    def data(self) -> Any:
        return self._data

    @property
    def is_mapping(self) -> bool:
        return self._is_mapping

    @property
    def is_record(self) -> bool:
        return bool(self._handles) or _is_record_type(type(self._data))

    @property
    def settable(self) -> bool:
        """Whether writes can reach the input."""
        data = self._data
        if isinstance(data, Mapping):
            return isinstance(data, MutableMapping)
        if isinstance(data, tuple):
            return False
        if _is_record_type(type(data)):
            return not type(data).__dataclass_params__.frozen
        return hasattr(data, "__dict__") or hasattr(type(data), "__slots__")

    def handles(self) -> tuple[FieldHandle, ...]:
        """Handles of the record's declared fields; empty for mappings."""
        return tuple(self._handles.values())

    def resolve(self, path: str) -> str:
        """Map a promoted name to its declared path; other paths pass through."""
        if path in self._handles:
            return path
        return self._promoted.get(path, path)

    def read(self, path: str) -> FieldValue:
        """Read a dotted path.

        Mappings are tried for the whole path as a literal key first.
        """
        if self._is_mapping and path in self._data:
            value = self._data[path]
            return FieldValue(value, found=True, was_nil=value is None)

        current = self._data
        for segment in self.resolve(path).split(PATH_SEPARATOR):
            if current is None:
                return FieldValue(None, found=False, was_nil=True)
            current = _get_child(current, segment)
            if current is _MISSING:
                return FieldValue()
        return FieldValue(current, found=True, was_nil=current is None)

    def write(self, path: str, value: Any) -> None:
        """Write a value at a dotted path.

        Record fields are converted to their declared type. Mapping entries
        are stored as given and may be created.

        Raises:
            NotSettableError: If the input (or the container on the path)
                cannot be modified.
            FieldNotFoundError: If the path does not exist.
            ConvertFailedError: If the value does not fit the declared type.
        """
        if not self.settable:
            raise NotSettableError(
                f"Cannot set '{path}': the input is not modifiable", field=path
            )

        if self._is_mapping and path in self._data:
            self._data[path] = value
            return

        resolved = self.resolve(path)
        parent_path, _, leaf = resolved.rpartition(PATH_SEPARATOR)
        if parent_path:
            parent = self.read(parent_path)
            if not parent.found or parent.value is None:
                raise FieldNotFoundError(path)
            container = parent.value
        else:
            container = self._data

        if isinstance(container, Mapping):
            if not isinstance(container, MutableMapping):
                raise NotSettableError(f"Cannot set '{path}': mapping is read-only", field=path)
            container[leaf] = value
            return

        if isinstance(container, Sequence) and not isinstance(container, (str, bytes)):
            if not (leaf.isdigit() and int(leaf) < len(container)):
                raise FieldNotFoundError(path)
            if not isinstance(container, MutableSequence):
                raise NotSettableError(f"Cannot set '{path}': sequence is immutable", field=path)
            container[int(leaf)] = value
            return

        handle = self._handles.get(resolved)
        if handle is None and not hasattr(container, leaf):
            raise FieldNotFoundError(path)

        converted = convert_to(value, handle.declared_type if handle else None, field=path)
        try:
            setattr(container, leaf, converted)
        except (AttributeError, TypeError) as e:
            raise NotSettableError(
                f"Cannot set '{path}': {type(container).__name__} refuses assignment",
                field=path,
                cause=e,
            ) from e

    def handle(self, path: str) -> FieldHandle:
        """Handle for a path, inferred from the current value when undeclared."""
        resolved = self.resolve(path)
        known = self._handles.get(resolved)
        if known is not None:
            return known
        current = self.read(path).value
        kind = FieldKind.SCALAR
        if isinstance(current, Mapping) or _is_record_type(type(current)):
            kind = FieldKind.RECORD
        return FieldHandle(path=path, kind=kind)

    def key_for(self, path: str) -> str:
        """External key for errors and safe data."""
        handle = self._handles.get(self.resolve(path))
        if self._options.alias_keys and handle is not None and handle.alias:
            return handle.alias
        return path

    def display_name(self, path: str) -> str:
        """Name shown in messages: the alias path when aliases are enabled."""
        handle = self._handles.get(self.resolve(path))
        if self._options.field_tag and handle is not None and handle.alias:
            return handle.alias
        return path
