"""Validation sessions.

A ``ValidationSession`` runs the filter-then-validate pipeline over one input.
Rules come from record field metadata, from the record's capability methods
(``rules()``, ``filters()``, ``messages()``, ``translates()``, ``scenes()``)
or from programmatic calls.

Lifecycle:
    BUILT: rules, messages and validators may be added.
    RUNNING: ``validate()`` is processing fields.
    DONE: the verdict is fixed. ``validate()`` returns it again without
        re-running and any further configuration raises SessionStateError.

Per field, the session:
    1. reads the value (fields under a None or failed record are skipped)
    2. runs filters in order, each replacing the working value
    3. runs validators in order, skipping non-required rules on empty values
       when skip-empty is in effect
    4. stores passing values in safe data and writes filtered values back

Example:
    >>> session = from_mapping({"age": "17", "email": " Tom@Mail.com "})
    >>> session.string_rule("age", "required|int|min:18", "int")
    >>> session.string_rule("email", "email", "trim|lower")
    >>> session.validate()
    False
    >>> session.errors.one()
    'age min value is 18'
    >>> session.safe_val("email")
    'tom@mail.com'
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from fieldguard import validators
from fieldguard.accessor import DataAccessor, FieldHandle, ancestors
from fieldguard.config import ValidateOptions, get_options
from fieldguard.errors import ErrorCollection
from fieldguard.exceptions import (
    AccessError,
    DeserializeError,
    SessionStateError,
    wrap_exception,
)
from fieldguard.logging import LogContext, get_logger
from fieldguard.messages import FILTER_ERROR_KEY, MessageResolver
from fieldguard.registry import (
    CallableRegistry,
    RuleSpec,
    get_filter_registry,
    get_validator_registry,
)
from fieldguard.rules import Rule, RuleChain, parse_messages, parse_rules
from fieldguard.values import coerce_args, is_empty


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence


logger = get_logger(__name__)


# =============================================================================
# Capability Protocols
# =============================================================================


@runtime_checkable
class HasRules(Protocol):
    """Record that supplies validator rule strings keyed by field path."""

    def rules(self) -> Mapping[str, str]: ...


@runtime_checkable
class HasFilters(Protocol):
    """Record that supplies filter rule strings keyed by field path."""

    def filters(self) -> Mapping[str, str]: ...


@runtime_checkable
class HasMessages(Protocol):
    """Record that supplies messages keyed ``rule`` or ``Field.rule``."""

    def messages(self) -> Mapping[str, str]: ...


@runtime_checkable
class HasTranslations(Protocol):
    """Record that supplies field display names."""

    def translates(self) -> Mapping[str, str]: ...


@runtime_checkable
class HasScenes(Protocol):
    """Record that supplies named subsets of fields."""

    def scenes(self) -> Mapping[str, Sequence[str]]: ...


def _capability(data: Any, protocol: type, method: str) -> Mapping[str, Any] | None:
    if isinstance(data, protocol) and callable(getattr(data, method, None)):
        return getattr(data, method)() or {}
    return None


# =============================================================================
# Session
# =============================================================================


class SessionState(Enum):
    """Lifecycle states of a ValidationSession."""

    BUILT = "built"
    RUNNING = "running"
    DONE = "done"


class ValidationSession:
    """Validates one record or mapping.

    Args:
        data: A dataclass instance, another object with attributes, or a
            mapping. Writes go into it when it is mutable.
        options: Options for this session; the process-wide options when
            omitted (snapshotted at construction).
        scene: Name of the field subset to validate.

    Example:
        >>> session = ValidationSession({"a": 0})
        >>> session.add_rule("a", "gt", 100).set_skip_empty(False)
        >>> session.validate()
        False
        >>> session.errors.one()
        'a value should greater the 100'
    """

    def __init__(
        self,
        data: Any,
        *,
        options: ValidateOptions | None = None,
        scene: str | None = None,
    ) -> None:
        self._options = options or get_options()
        self._accessor = DataAccessor(data, self._options)
        self._chain = RuleChain()
        self._validators: CallableRegistry = get_validator_registry().child()
        self._filters: CallableRegistry = get_filter_registry().child()
        self._resolver = MessageResolver(self._options)
        self._scenes: dict[str, list[str]] = {}
        self._scene = scene
        self._errors = ErrorCollection()
        self._safe: dict[str, Any] = {}
        self._state = SessionState.BUILT
        self._verdict: bool | None = None
        self._unchecked: list[tuple[str, Rule]] = []
        self._id = uuid.uuid4().hex[:8]

        if not self._accessor.is_mapping:
            self._load_record(data)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def errors(self) -> ErrorCollection:
        return self._errors

    @property
    def options(self) -> ValidateOptions:
        return self._options

    @property
    def data(self) -> Any:
        return self._accessor.data

    @property
    def accessor(self) -> DataAccessor:
        return self._accessor

    @property
    def chain(self) -> RuleChain:
        return self._chain

    @property
    def scene(self) -> str | None:
        return self._scene

    @property
    def session_id(self) -> str:
        return self._id

    # -------------------------------------------------------------------------
    # Rule Sources
    # -------------------------------------------------------------------------

    def _load_record(self, data: Any) -> None:
        """Collect rules from field metadata and capability methods.

        Rule names are resolved when ``validate()`` starts.
        """
        opts = self._options
        for handle in self._accessor.handles():
            meta = handle.metadata
            written: set[str] = set()
            if meta.get(opts.filter_tag):
                chain = parse_rules(meta[opts.filter_tag], is_filter=True, field=handle.path)
                written.update(rule.name for rule in chain)
                self._defer(handle.path, chain)
            if meta.get(opts.validate_tag):
                chain = parse_rules(meta[opts.validate_tag], field=handle.path)
                written.update(rule.name for rule in chain)
                self._defer(handle.path, chain)
            if meta.get(opts.message_tag):
                messages = parse_messages(
                    meta[opts.message_tag],
                    is_rule=lambda name: name in written or self._is_rule(name),
                )
                self._resolver.add_field_messages(handle.path, messages)
            if meta.get(opts.label_tag):
                self._resolver.add_translations({handle.path: meta[opts.label_tag]})

        filters = _capability(data, HasFilters, "filters")
        for path, text in (filters or {}).items():
            self._defer(path, parse_rules(text, is_filter=True, field=path))
        rules = _capability(data, HasRules, "rules")
        for path, text in (rules or {}).items():
            self._defer(path, parse_rules(text, field=path))

        messages = _capability(data, HasMessages, "messages")
        if messages:
            self._resolver.add_messages(messages)
        translations = _capability(data, HasTranslations, "translates")
        if translations:
            self._resolver.add_translations(translations)
        scenes = _capability(data, HasScenes, "scenes")
        if scenes:
            self._scenes.update({name: list(fields) for name, fields in scenes.items()})

    def _defer(self, path: str, rules: list[Rule]) -> None:
        for rule in rules:
            self._chain.add(path, rule)
            self._unchecked.append((path, rule))

    def _registry_for(self, rule: Rule) -> CallableRegistry:
        return self._filters if rule.is_filter else self._validators

    def _is_rule(self, name: str) -> bool:
        return self._validators.has(name) or self._filters.has(name)

    def _check(self, path: str, rule: Rule) -> RuleSpec:
        return self._registry_for(rule).check_arity(rule.name, len(rule.args), field=path)

    def _ensure_building(self) -> None:
        if self._state is not SessionState.BUILT:
            raise SessionStateError(
                f"Cannot change a session in state '{self._state.value}'",
                state=self._state.value,
            )

    def _add_checked(self, path: str, rules: Iterable[Rule]) -> None:
        # Check every rule before adding any, so a bad chain leaves no trace
        rules = list(rules)
        for rule in rules:
            self._check(path, rule)
        self._chain.extend(path, rules)

    # -------------------------------------------------------------------------
    # Programmatic API
    # -------------------------------------------------------------------------

    def add_rule(self, field: str, name: str, *args: Any) -> Rule:
        """Add one validator to a field and return it.

        Raises:
            UnknownRuleError: If no validator has that name.
            RuleArityError: If the argument count does not fit.
            SessionStateError: If the session already ran.

        Example:
            >>> session.add_rule("age", "between", 18, 150)
        """
        self._ensure_building()
        rule = Rule(name=name, args=tuple(args))
        self._add_checked(field, [rule])
        return rule

    def string_rule(self, field: str, rule: str, filter_rule: str | None = None) -> ValidationSession:
        """Add a validator rule string, and optionally a filter rule string."""
        self._ensure_building()
        if filter_rule:
            self._add_checked(field, parse_rules(filter_rule, is_filter=True, field=field))
        self._add_checked(field, parse_rules(rule, field=field))
        return self

    def string_rules(self, rules: Mapping[str, str]) -> ValidationSession:
        """Add validator rule strings keyed by field path."""
        for field, rule in rules.items():
            self.string_rule(field, rule)
        return self

    def filter_rule(self, field: str, rule: str) -> ValidationSession:
        """Add a filter rule string to a field."""
        self._ensure_building()
        self._add_checked(field, parse_rules(rule, is_filter=True, field=field))
        return self

    def filter_rules(self, rules: Mapping[str, str]) -> ValidationSession:
        for field, rule in rules.items():
            self.filter_rule(field, rule)
        return self

    def add_validator(
        self,
        name: str,
        func: Callable[..., Any],
        *,
        aliases: Iterable[str] = (),
        message: str | None = None,
    ) -> ValidationSession:
        """Register a validator visible to this session only.

        Arguments from rule strings are converted using the callable's
        annotations, e.g. ``def check(value, *ages: int)``.
        """
        self._ensure_building()
        self._validators.register(
            name, func, aliases=aliases, message=message, allow_override=True
        )
        return self

    def add_filter(self, name: str, func: Callable[..., Any], *, aliases: Iterable[str] = ()) -> ValidationSession:
        """Register a filter visible to this session only."""
        self._ensure_building()
        self._filters.register(name, func, aliases=aliases, allow_override=True)
        return self

    def add_messages(self, messages: Mapping[str, str]) -> ValidationSession:
        """Add messages keyed ``rule`` or ``Field.rule``."""
        self._ensure_building()
        self._resolver.add_messages(messages)
        return self

    def add_translates(self, translations: Mapping[str, str]) -> ValidationSession:
        """Add field display names used for ``{field}``."""
        self._ensure_building()
        self._resolver.add_translations(translations)
        return self

    def with_scenes(self, scenes: Mapping[str, Sequence[str]]) -> ValidationSession:
        """Define named field subsets."""
        self._ensure_building()
        self._scenes.update({name: list(fields) for name, fields in scenes.items()})
        return self

    def set_scene(self, scene: str | None) -> ValidationSession:
        """Select the field subset to validate; None validates every field."""
        self._ensure_building()
        self._scene = scene
        return self

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def validate(self, scene: str | None = None) -> bool:
        """Run the pipeline once and return whether every rule passed.

        Later calls return the same verdict without re-running.

        Raises:
            UnknownRuleError: If a record rule names an unregistered callable.
            RuleArityError: If a record rule has the wrong argument count.
            SessionStateError: If called while the session is running.
        """
        if self._state is SessionState.DONE:
            return bool(self._verdict)
        if self._state is SessionState.RUNNING:
            raise SessionStateError("validate() called while the session is running", state="running")

        if scene is not None:
            self._scene = scene
        while self._unchecked:
            path, rule = self._unchecked[0]
            self._check(path, rule)
            self._unchecked.pop(0)

        self._state = SessionState.RUNNING
        with LogContext(operation="validate", session=self._id):
            logger.debug(
                "Validation started",
                fields=len(self._chain),
                scene=self._scene,
                input=type(self.data).__name__,
            )
            try:
                self._run()
            finally:
                self._errors.freeze()
                self._verdict = not self._errors
                self._state = SessionState.DONE
            logger.info(
                "Validation finished",
                ok=self._verdict,
                errors=len(self._errors),
                failed_fields=self._errors.fields(),
            )
        return bool(self._verdict)

    def _fields_in_scope(self) -> list[str]:
        fields = self._chain.fields()
        if not self._scene or self._scene not in self._scenes:
            return fields
        allowed = self._scenes[self._scene]
        return [
            f
            for f in fields
            if any(f == name or f.startswith(name + ".") for name in allowed)
        ]

    def _run(self) -> None:
        failed: set[str] = set()
        for path in self._fields_in_scope():
            resolved = self._accessor.resolve(path)
            if self._blocked(resolved, failed):
                continue
            if not self._validate_field(path):
                failed.add(resolved)
                if self._options.fail_fast:
                    logger.debug("Stopping at first failure", field=path)
                    break

    def _blocked(self, path: str, failed: set[str]) -> bool:
        """Whether a record above the field is None or failed its own rules."""
        for parent in ancestors(path):
            if parent in failed:
                return True
            if self._accessor.read(parent).was_nil:
                return True
        return False

    def _validate_field(self, path: str) -> bool:
        handle = self._accessor.handle(path)
        current = self._accessor.read(path)
        value = current.value
        key = self._accessor.key_for(path)
        changed = False

        if current.found and value is not None:
            for rule in self._chain.filters(path):
                spec = self._filters.get(rule.name, field=path)
                try:
                    filtered = spec.func(value, *coerce_args(spec.func, rule.args))
                except (TypeError, ValueError) as e:
                    logger.debug("Filter failed", field=path, rule=rule.name, error=str(e))
                    self._record_failure(path, key, Rule(FILTER_ERROR_KEY), None, value)
                    return False
                if type(filtered) is not type(value) or filtered != value:
                    changed = True
                value = filtered

        empty = is_empty(value, optional=handle.optional)
        passed = True
        for rule in self._chain.validators(path):
            spec = self._validators.get(rule.name, field=path)
            if spec.name != "required" and empty and self._skips_empty(rule):
                continue
            if self._call(spec, rule, value, empty, path):
                continue
            passed = False
            self._record_failure(path, key, rule, spec, value)
            if self._options.field_fail_fast or self._options.fail_fast:
                break

        if passed and current.found:
            self._safe[key] = value
            if changed and self._options.update_source:
                self._write_back(path, value)
        return passed

    def _skips_empty(self, rule: Rule) -> bool:
        return self._options.skip_empty if rule.skip_empty is None else rule.skip_empty

    def _call(self, spec: RuleSpec, rule: Rule, value: Any, empty: bool, path: str) -> bool:
        # Field shape decides emptiness, which the bare callable cannot see
        if spec.func is validators.required:
            return not empty
        try:
            return bool(spec.func(value, *coerce_args(spec.func, rule.args)))
        except Exception as exc:
            logger.debug(
                "Validator raised",
                field=path,
                rule=rule.name,
                error=f"{type(exc).__name__}: {exc}",
            )
            return False

    def _record_failure(
        self,
        path: str,
        key: str,
        rule: Rule,
        spec: RuleSpec | None,
        value: Any,
    ) -> None:
        message = self._resolver.resolve(
            path,
            rule.name,
            args=rule.args,
            canonical=spec.name if spec else None,
            inline=rule.message,
            display=self._accessor.display_name(path),
            fallback=spec.message if spec else None,
        )
        self._errors.add(key, rule.name, message)
        logger.debug("Rule failed", field=path, rule=rule.name, value=value)

    def _write_back(self, path: str, value: Any) -> None:
        if not self._accessor.settable:
            return
        try:
            self._accessor.write(path, value)
        except AccessError as e:
            logger.warning(
                "Could not write filtered value back",
                field=path,
                reason=e.kind.value,
                error=e.message,
            )
        else:
            logger.debug("Wrote filtered value back", field=path)

    # -------------------------------------------------------------------------
    # Results
    # -------------------------------------------------------------------------

    def is_ok(self) -> bool:
        """True when no errors have been recorded."""
        return not self._errors

    def is_fail(self) -> bool:
        return bool(self._errors)

    def safe_data(self) -> dict[str, Any]:
        """Copy of the values that passed, keyed by external field key."""
        return dict(self._safe)

    def safe_val(self, field: str) -> Any:
        """Safe value of a field, or None."""
        key = self._accessor.key_for(field)
        if key in self._safe:
            return self._safe[key]
        return self._safe.get(field)

    def raw(self, field: str) -> tuple[Any, bool]:
        """Current value in the input and whether the field exists."""
        current = self._accessor.read(field)
        return current.value, current.found

    def set(self, field: str, value: Any) -> AccessError | None:
        """Write a value into the input and refresh safe data.

        Returns:
            None on success, otherwise the AccessError describing why the
            write failed (not settable, conversion failed, field not found).
        """
        try:
            self._accessor.write(field, value)
        except AccessError as e:
            logger.debug("Set failed", field=field, reason=e.kind.value)
            return e
        self._safe[self._accessor.key_for(field)] = self._accessor.read(field).value
        return None

    def handle(self, field: str) -> FieldHandle:
        return self._accessor.handle(field)

    def __repr__(self) -> str:
        return (
            f"ValidationSession(id={self._id!r}, state={self._state.value!r}, "
            f"fields={self._chain.fields()!r}, errors={len(self._errors)})"
        )


# =============================================================================
# Constructors
# =============================================================================


def new(data: Any, *, options: ValidateOptions | None = None, scene: str | None = None) -> ValidationSession:
    """Create a session for a record or mapping.

    Example:
        >>> session = new(SmsRequest(country_code=" CN "))
        >>> session.validate()
    """
    return ValidationSession(data, options=options, scene=scene)


def from_record(
    record: Any, *, options: ValidateOptions | None = None, scene: str | None = None
) -> ValidationSession:
    """Create a session for a record; rules come from its metadata.

    Raises:
        TypeError: If ``record`` is a mapping.
    """
    if isinstance(record, Mapping):
        raise TypeError("from_record() expects a record, use from_mapping() for mappings")
    return ValidationSession(record, options=options, scene=scene)


def from_mapping(
    data: Mapping[str, Any], *, options: ValidateOptions | None = None, scene: str | None = None
) -> ValidationSession:
    """Create a session for a mapping; rules are added programmatically.

    Raises:
        TypeError: If ``data`` is not a mapping.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"from_mapping() expects a mapping, got {type(data).__name__}")
    return ValidationSession(data, options=options, scene=scene)


def from_json(
    text: str | bytes, *, options: ValidateOptions | None = None, scene: str | None = None
) -> ValidationSession:
    """Decode a JSON object and create a session for it.

    Raises:
        DeserializeError: If the text is not valid JSON or not an object.

    Example:
        >>> session = from_json('{"cost_type": 10}')
        >>> session.string_rule("cost_type", "str_num").validate()
        True
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
        raise wrap_exception(
            e, DeserializeError, message="Invalid JSON input", target_type="mapping"
        ) from e
    if not isinstance(data, dict):
        raise DeserializeError(
            "JSON input must decode to an object",
            target_type="mapping",
            details={"decoded_type": type(data).__name__},
        )
    return ValidationSession(data, options=options, scene=scene)
