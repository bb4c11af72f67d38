"""Validator and filter registries.

A registry maps rule names (and aliases) to callables:

- validators have the shape ``(value, *args) -> bool``
- filters have the shape ``(value, *args) -> new_value``

The process-wide registries come preloaded with the built-ins from
``fieldguard.validators`` and ``fieldguard.filters``. A session layers a
private child registry on top, so callables it registers shadow globals
without leaking into other sessions.

Registries are safe for concurrent reads. Registering while sessions are
validating on other threads is not supported; do it during setup.

Example:
    >>> from fieldguard.registry import register_validator
    >>> def is_even(value: int) -> bool:
    ...     return value % 2 == 0
    >>> register_validator("even", is_even, message="{field} must be even")
"""

from __future__ import annotations

import inspect
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

from fieldguard.exceptions import RuleArityError, RuleConfigError, UnknownRuleError


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


logger = logging.getLogger(__name__)


# =============================================================================
# Rule Spec
# =============================================================================


def callable_arity(func: Callable[..., Any]) -> tuple[int, int | None]:
    """Derive the accepted rule-argument count from a callable's signature.

    The first positional parameter receives the field value and is not
    counted. ``*args`` makes the maximum unbounded.

    Returns:
        Tuple of (min_args, max_args); max_args is None when unbounded.

    Example:
        >>> callable_arity(lambda value, low, high=10: True)
        (1, 2)
    """
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return 0, None

    positional = [
        p
        for p in signature.parameters.values()
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    variadic = any(
        p.kind is inspect.Parameter.VAR_POSITIONAL for p in signature.parameters.values()
    )
    if positional:
        positional = positional[1:]
    elif variadic:
        # (*values) consumes the field value from the variadic slot
        return 0, None

    required = sum(1 for p in positional if p.default is inspect.Parameter.empty)
    maximum = None if variadic else len(positional)
    return required, maximum


@dataclass(frozen=True, slots=True)
class RuleSpec:
    """A registered validator or filter.

    Attributes:
        name: Canonical rule name.
        func: The callable invoked for the rule.
        aliases: Alternative names resolving to this rule.
        min_args: Minimum number of rule arguments.
        max_args: Maximum number of rule arguments, None when unbounded.
        message: Default failure message template for validators.
    """

    name: str
    func: Callable[..., Any]
    aliases: tuple[str, ...] = ()
    min_args: int = 0
    max_args: int | None = None
    message: str | None = None

    def accepts(self, nargs: int) -> bool:
        """Check whether ``nargs`` rule arguments fit this rule."""
        if nargs < self.min_args:
            return False
        return self.max_args is None or nargs <= self.max_args

    @classmethod
    def from_callable(
        cls,
        name: str,
        func: Callable[..., Any],
        *,
        aliases: Iterable[str] = (),
        message: str | None = None,
    ) -> RuleSpec:
        min_args, max_args = callable_arity(func)
        return cls(
            name=name,
            func=func,
            aliases=tuple(aliases),
            min_args=min_args,
            max_args=max_args,
            message=message,
        )


# =============================================================================
# Registries
# =============================================================================


class CallableRegistry:
    """Thread-safe name to RuleSpec registry with alias lookup.

    A registry may have a parent; lookups that miss locally fall through to
    it. Local registrations shadow the parent's.

    Example:
        >>> registry = ValidatorRegistry()
        >>> registry.register("even", lambda v: v % 2 == 0, aliases=("isEven",))
        >>> registry.get("isEven").name
        'even'
    """

    kind: ClassVar[str] = "rule"

    def __init__(self, parent: CallableRegistry | None = None) -> None:
        self._specs: dict[str, RuleSpec] = {}
        self._aliases: dict[str, str] = {}
        self._parent = parent
        self._lock = threading.RLock()

    @property
    def parent(self) -> CallableRegistry | None:
        return self._parent

    def register(
        self,
        name: str,
        func: Callable[..., Any],
        *,
        aliases: Iterable[str] = (),
        message: str | None = None,
        allow_override: bool = False,
    ) -> RuleSpec:
        """Register a callable under a name and optional aliases.

        Args:
            name: Canonical rule name.
            func: Callable taking the value first, then rule arguments.
            aliases: Alternative names.
            message: Default failure message template.
            allow_override: Replace an existing local registration.

        Returns:
            The registered RuleSpec.

        Raises:
            RuleConfigError: If the name is taken locally and override is off,
                or the callable is not callable.
        """
        if not name:
            raise RuleConfigError(f"Cannot register a {self.kind} without a name")
        if not callable(func):
            raise RuleConfigError(
                f"{self.kind.capitalize()} '{name}' is not callable", rule_name=name
            )

        spec = RuleSpec.from_callable(name, func, aliases=aliases, message=message)
        with self._lock:
            taken = [n for n in (name, *spec.aliases) if n in self._specs or n in self._aliases]
            if taken and not allow_override:
                raise RuleConfigError(
                    f"{self.kind.capitalize()} '{taken[0]}' is already registered",
                    rule_name=taken[0],
                )
            for existing in taken:
                self._remove(existing)
            self._specs[name] = spec
            for alias in spec.aliases:
                self._aliases[alias] = name

        logger.debug("Registered %s: %s", self.kind, name)
        return spec

    def _remove(self, name: str) -> RuleSpec | None:
        canonical = self._aliases.pop(name, name)
        spec = self._specs.pop(canonical, None)
        if spec is not None:
            for alias in spec.aliases:
                self._aliases.pop(alias, None)
        return spec

    def unregister(self, name: str) -> RuleSpec | None:
        """Remove a local registration (by name or alias).

        Returns:
            The removed spec, or None if the name was not registered locally.
        """
        with self._lock:
            spec = self._remove(name)
        if spec is not None:
            logger.debug("Unregistered %s: %s", self.kind, spec.name)
        return spec

    def find(self, name: str) -> RuleSpec | None:
        """Look up a spec by name or alias, or None."""
        with self._lock:
            spec = self._specs.get(name)
            if spec is None and name in self._aliases:
                spec = self._specs[self._aliases[name]]
        if spec is None and self._parent is not None:
            return self._parent.find(name)
        return spec

    def get(self, name: str, *, field: str | None = None) -> RuleSpec:
        """Look up a spec by name or alias.

        Raises:
            UnknownRuleError: If nothing is registered under the name.
        """
        spec = self.find(name)
        if spec is None:
            raise UnknownRuleError(name, kind=self.kind, available=self.names(), field=field)
        return spec

    def has(self, name: str) -> bool:
        return self.find(name) is not None

    def names(self) -> list[str]:
        """Canonical names visible from this registry, parents included."""
        with self._lock:
            local = list(self._specs)
        if self._parent is None:
            return local
        return [*(n for n in self._parent.names() if n not in self._specs), *local]

    def canonical_name(self, name: str) -> str:
        """Resolve an alias to its canonical name; unknown names pass through."""
        spec = self.find(name)
        return spec.name if spec is not None else name

    def check_arity(self, name: str, nargs: int, *, field: str | None = None) -> RuleSpec:
        """Resolve a rule and verify the argument count fits it.

        Raises:
            UnknownRuleError: If the rule is not registered.
            RuleArityError: If ``nargs`` does not fit the callable.
        """
        spec = self.get(name, field=field)
        if not spec.accepts(nargs):
            raise RuleArityError(
                name,
                given=nargs,
                min_args=spec.min_args,
                max_args=spec.max_args,
                field=field,
            )
        return spec

    def child(self) -> CallableRegistry:
        """Create an empty registry of the same type layered on this one."""
        return type(self)(parent=self)

    def clear(self) -> None:
        """Remove all local registrations."""
        with self._lock:
            self._specs.clear()
            self._aliases.clear()

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.has(name)

    def __len__(self) -> int:
        return len(self.names())


class ValidatorRegistry(CallableRegistry):
    """Registry of ``(value, *args) -> bool`` validators."""

    kind: ClassVar[str] = "validator"


class FilterRegistry(CallableRegistry):
    """Registry of ``(value, *args) -> value`` filters."""

    kind: ClassVar[str] = "filter"


# =============================================================================
# Global Registries
# =============================================================================

_validator_registry: ValidatorRegistry | None = None
_filter_registry: FilterRegistry | None = None
_registry_lock = threading.Lock()


def get_validator_registry() -> ValidatorRegistry:
    """Get the process-wide validator registry, creating it on first use."""
    global _validator_registry

    if _validator_registry is None:
        with _registry_lock:
            if _validator_registry is None:
                registry = ValidatorRegistry()
                _register_builtin_validators(registry)
                _validator_registry = registry

    return _validator_registry


def get_filter_registry() -> FilterRegistry:
    """Get the process-wide filter registry, creating it on first use."""
    global _filter_registry

    if _filter_registry is None:
        with _registry_lock:
            if _filter_registry is None:
                registry = FilterRegistry()
                _register_builtin_filters(registry)
                _filter_registry = registry

    return _filter_registry


def reset_registries() -> None:
    """Drop the process-wide registries; the next access rebuilds the built-ins."""
    global _validator_registry, _filter_registry
    with _registry_lock:
        _validator_registry = None
        _filter_registry = None


def _register_builtin_validators(registry: ValidatorRegistry) -> None:
    # Import here to avoid circular imports
    from fieldguard.validators import BUILTIN_VALIDATORS

    for name, func, aliases in BUILTIN_VALIDATORS:
        registry.register(name, func, aliases=aliases)


def _register_builtin_filters(registry: FilterRegistry) -> None:
    from fieldguard.filters import BUILTIN_FILTERS

    for name, func, aliases in BUILTIN_FILTERS:
        registry.register(name, func, aliases=aliases)


# =============================================================================
# Convenience Functions
# =============================================================================


def register_validator(
    name: str,
    func: Callable[..., Any],
    *,
    aliases: Iterable[str] = (),
    message: str | None = None,
    allow_override: bool = False,
) -> RuleSpec:
    """Register a validator in the process-wide registry.

    Example:
        >>> register_validator("checkAge", lambda v, *ages: v in ages)
    """
    return get_validator_registry().register(
        name, func, aliases=aliases, message=message, allow_override=allow_override
    )


def register_filter(
    name: str,
    func: Callable[..., Any],
    *,
    aliases: Iterable[str] = (),
    allow_override: bool = False,
) -> RuleSpec:
    """Register a filter in the process-wide registry."""
    return get_filter_registry().register(
        name, func, aliases=aliases, allow_override=allow_override
    )
