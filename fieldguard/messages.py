"""Failure message resolution.

A failed ``(field, rule)`` pair is turned into text by looking, in order, at:

1. the rule's inline message, then messages keyed ``Field.rule``
2. messages keyed by the rule name alone, then the field's default message
3. process-wide overrides (``ValidateOptions.messages``)
4. ``DEFAULT_MESSAGES``, the rule's registered message, then ``_validate``

Rule names are tried as written and in canonical form, so a message for
``minLen`` also covers a rule written ``min_len``.

Templates substitute ``{field}`` with the field's display name and ``%d``,
``%v``, ``%s`` and ``%f`` with the rule arguments in order. A lone
placeholder facing several arguments renders them as a list: ``[A B C]``.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from fieldguard.config import ValidateOptions, get_options


if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence


FIELD_PLACEHOLDER = "{field}"
ARG_PLACEHOLDER = re.compile(r"%[dvsf]")

VALIDATE_ERROR_KEY = "_validate"
FILTER_ERROR_KEY = "_filter"

DEFAULT_MESSAGES: dict[str, str] = {
    VALIDATE_ERROR_KEY: "{field} did not pass validate",
    FILTER_ERROR_KEY: "{field} data is invalid",
    "required": "{field} is required and not empty",
    "string": "{field} value must be a string",
    "int": "{field} value must be an integer",
    "float": "{field} value must be a float",
    "bool": "{field} value must be a bool",
    "number": "{field} value must be a number",
    "min": "{field} min value is %v",
    "max": "{field} max value is %v",
    "gt": "{field} value should greater the %v",
    "lt": "{field} value should less than %v",
    "between": "{field} value must be in the range %v - %v",
    "minLen": "{field} min length is %d",
    "maxLen": "{field} max length is %d",
    "len": "{field} length must be %d",
    "in": "{field} value must be in the enum %v",
    "notIn": "{field} value must not be in the given enum list %v",
    "email": "{field} value is an invalid email address",
    "url": "{field} must be a valid URL address",
    "fullUrl": "{field} must be an valid full URL address",
    "str_num": "{field} value must be a numeric string",
    "regexp": "{field} must match pattern %s",
    "alpha": "{field} value contains only alpha char",
    "alphaNum": "{field} value contains only alpha char and num",
}


def format_arg(arg: Any) -> str:
    """Render one argument; collections render as ``[a b c]``."""
    if isinstance(arg, (list, tuple, set, frozenset)):
        return "[" + " ".join(format_arg(a) for a in arg) + "]"
    if isinstance(arg, bool):
        return "true" if arg else "false"
    return str(arg)


def render(template: str, field_name: str, args: Sequence[Any] = ()) -> str:
    """Fill a message template.

    Placeholders beyond the available arguments are left as written.

    Example:
        >>> render("{field} value must be in the enum %v", "Company", ["A", "B"])
        'Company value must be in the enum [A B]'
        >>> render("{field} value should greater the %v", "a", ["100"])
        'a value should greater the 100'
    """
    # Translated field names may contain placeholders of their own
    return _fill_args(template, args).replace(FIELD_PLACEHOLDER, field_name)


def _fill_args(template: str, args: Sequence[Any]) -> str:
    if not args:
        return template

    if len(ARG_PLACEHOLDER.findall(template)) == 1 and len(args) > 1:
        return ARG_PLACEHOLDER.sub(lambda _: format_arg(list(args)), template, count=1)

    remaining = iter(args)

    def substitute(match: re.Match[str]) -> str:
        try:
            return format_arg(next(remaining))
        except StopIteration:
            return match.group(0)

    return ARG_PLACEHOLDER.sub(substitute, template)


class MessageResolver:
    """Resolves failure messages for one validation session.

    Example:
        >>> resolver = MessageResolver()
        >>> resolver.add_messages({"Age.min": "too young", "min": "too small"})
        >>> resolver.resolve("Age", "min", args=("18",))
        'too young'
    """

    def __init__(self, options: ValidateOptions | None = None) -> None:
        self._options = options or get_options()
        self._messages: dict[str, str] = {}
        self._field_messages: dict[str, dict[str, str]] = {}
        self._translations: dict[str, str] = {}

    @property
    def messages(self) -> dict[str, str]:
        return dict(self._messages)

    @property
    def translations(self) -> dict[str, str]:
        return dict(self._translations)

    def add_messages(self, messages: Mapping[str, str]) -> None:
        """Add messages keyed ``rule`` or ``Field.rule``."""
        self._messages.update(messages)

    def add_field_messages(self, field: str, messages: Mapping[str, str]) -> None:
        """Add a field's own messages; the empty key is the field default."""
        self._field_messages.setdefault(field, {}).update(messages)

    def add_translations(self, translations: Mapping[str, str]) -> None:
        """Add field display names keyed by field path."""
        self._translations.update(translations)

    def field_name(self, field: str, display: str | None = None) -> str:
        """Display name: translation, then the given display name, then the path."""
        return self._translations.get(field) or display or field

    def template(
        self,
        field: str,
        rule: str,
        *,
        canonical: str | None = None,
        inline: str | None = None,
        fallback: str | None = None,
    ) -> str:
        """Select the message template for a failed rule."""
        names = [rule] if not canonical or canonical == rule else [rule, canonical]

        if inline:
            return inline

        own = self._field_messages.get(field, {})
        for name in names:
            if name in own:
                return own[name]
            if f"{field}.{name}" in self._messages:
                return self._messages[f"{field}.{name}"]

        for name in names:
            if name in self._messages:
                return self._messages[name]
        if "" in own:
            return own[""]

        for name in names:
            if name in self._options.messages:
                return self._options.messages[name]

        for name in reversed(names):
            if name in DEFAULT_MESSAGES:
                return DEFAULT_MESSAGES[name]
        return fallback or DEFAULT_MESSAGES[VALIDATE_ERROR_KEY]

    def resolve(
        self,
        field: str,
        rule: str,
        *,
        args: Sequence[Any] = (),
        canonical: str | None = None,
        inline: str | None = None,
        display: str | None = None,
        fallback: str | None = None,
    ) -> str:
        """Resolve and render the message for a failed rule.

        Args:
            field: Declared field path.
            rule: Rule name as written.
            args: Rule arguments for placeholder substitution.
            canonical: Canonical rule name when ``rule`` is an alias.
            inline: The rule's own custom message.
            display: Display name from the accessor (alias or path).
            fallback: Registered message of the rule's callable.
        """
        template = self.template(
            field, rule, canonical=canonical, inline=inline, fallback=fallback
        )
        return render(template, self.field_name(field, display), args)
