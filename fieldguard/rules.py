"""Rule strings and rule chains.

A rule string is a ``|``-separated list of rules, each ``name`` or
``name:arg1,arg2``::

    "required|minLen:6|in:1,2,3"

Arguments stay raw strings here and are coerced when the rule runs. A
message string uses the same shorthand with ``rule:text`` sections; a
section without a rule prefix is the field's default message::

    "required:name is missing|minLen:name needs %d characters"
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from fieldguard.exceptions import RuleSyntaxError


RULE_SEPARATOR = "|"
ARG_MARKER = ":"
ARG_SEPARATOR = ","

# Rules whose argument is a single pattern that may itself contain commas
WHOLE_ARGUMENT_RULES = frozenset({"regexp", "regex"})

_MESSAGE_KEY = re.compile(r"^\s*([A-Za-z_][\w.]*)\s*:(.*)$", re.DOTALL)


@dataclass(slots=True)
class Rule:
    """One validator or filter invocation in a chain.

    Attributes:
        name: Rule name as written (may be an alias).
        args: Raw string tokens or programmatic values.
        is_filter: Whether the rule transforms rather than checks.
        skip_empty: Per-rule skip-empty override; None defers to options.
        message: Custom message used when this rule fails.
    """

    name: str
    args: tuple[Any, ...] = ()
    is_filter: bool = False
    skip_empty: bool | None = None
    message: str | None = None

    def set_skip_empty(self, flag: bool = True) -> Rule:
        """Override skip-empty for this rule and return it for chaining.

        Example:
            >>> session.add_rule("a", "gt", 100).set_skip_empty(False)
        """
        self.skip_empty = flag
        return self

    def set_message(self, message: str) -> Rule:
        """Attach a custom failure message and return the rule."""
        self.message = message
        return self

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}{ARG_MARKER}{ARG_SEPARATOR.join(str(a) for a in self.args)}"


class RuleChain:
    """Ordered rules per field path.

    Fields keep insertion order. Within a field, filters and validators keep
    their own declaration order and filters always run first.

    Example:
        >>> chain = RuleChain()
        >>> chain.add("name", Rule("required"))
        >>> chain.add("name", Rule("trim", is_filter=True))
        >>> [r.name for r in chain.filters("name")]
        ['trim']
    """

    def __init__(self) -> None:
        self._rules: dict[str, list[Rule]] = {}

    def add(self, path: str, rule: Rule) -> Rule:
        self._rules.setdefault(path, []).append(rule)
        return rule

    def extend(self, path: str, rules: list[Rule]) -> None:
        for rule in rules:
            self.add(path, rule)

    def rules(self, path: str) -> list[Rule]:
        return list(self._rules.get(path, ()))

    def filters(self, path: str) -> list[Rule]:
        return [r for r in self._rules.get(path, ()) if r.is_filter]

    def validators(self, path: str) -> list[Rule]:
        return [r for r in self._rules.get(path, ()) if not r.is_filter]

    def last(self, path: str) -> Rule | None:
        rules = self._rules.get(path)
        return rules[-1] if rules else None

    def fields(self) -> list[str]:
        return list(self._rules)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._rules))

    def __contains__(self, path: object) -> bool:
        return path in self._rules

    def __len__(self) -> int:
        return len(self._rules)


def _split_args(name: str, raw: str) -> tuple[str, ...]:
    if name in WHOLE_ARGUMENT_RULES:
        return (raw.strip(),)
    return tuple(arg.strip() for arg in raw.split(ARG_SEPARATOR))


def parse_rules(text: str, *, is_filter: bool = False, field: str | None = None) -> list[Rule]:
    """Parse a rule string into rules.

    Args:
        text: Rule string such as ``"required|between:1,10"``.
        is_filter: Mark the parsed rules as filters.
        field: Field the rules belong to, used in errors.

    Returns:
        Parsed rules in declaration order. Empty segments are ignored.

    Raises:
        RuleSyntaxError: On an empty rule name or a ``:`` with no arguments.

    Example:
        >>> [str(r) for r in parse_rules("required|in:1,2")]
        ['required', 'in:1,2']
    """
    rules: list[Rule] = []
    for segment in text.split(RULE_SEPARATOR):
        segment = segment.strip()
        if not segment:
            continue
        name, marker, raw_args = segment.partition(ARG_MARKER)
        name = name.strip()
        if not name:
            raise RuleSyntaxError(
                f"Rule without a name in '{text}'", text=text, field=field
            )
        if marker and not raw_args.strip():
            raise RuleSyntaxError(
                f"Rule '{name}' has an argument marker but no arguments",
                text=text,
                rule_name=name,
                field=field,
            )
        args = _split_args(name, raw_args) if marker else ()
        rules.append(Rule(name=name, args=args, is_filter=is_filter))
    return rules


def _known_rule(name: str) -> bool:
    from fieldguard.registry import get_filter_registry, get_validator_registry

    return get_validator_registry().has(name) or get_filter_registry().has(name)


def parse_messages(text: str, is_rule: Callable[[str], bool] | None = None) -> dict[str, str]:
    """Parse a message string into a rule-name to message mapping.

    A section is keyed by its prefix only when the prefix names a rule, or
    has the ``Field.rule`` form with a rule as its last part. Any other
    section, colon included, is stored under the empty key and serves as the
    default for every rule of the field. Only the first unprefixed section
    is kept.

    Args:
        text: Message string.
        is_rule: Decides whether a prefix is a rule name. Defaults to the
            process-wide validator and filter registries.

    Example:
        >>> parse_messages("required:is missing|minLen:too short")
        {'required': 'is missing', 'minLen': 'too short'}
        >>> parse_messages("Error: nickname too short")
        {'': 'Error: nickname too short'}
    """
    is_rule = is_rule or _known_rule
    messages: dict[str, str] = {}
    for segment in text.split(RULE_SEPARATOR):
        if not segment.strip():
            continue
        match = _MESSAGE_KEY.match(segment)
        if match and is_rule(match.group(1).rpartition(".")[2]):
            messages[match.group(1)] = match.group(2).strip()
        else:
            messages.setdefault("", segment.strip())
    return messages
