"""Field error aggregation.

Field validation failures are collected, not raised. An ``ErrorCollection``
is created empty for each run, filled while fields are processed and frozen
when the run ends.

Example:
    >>> if not session.validate():
    ...     print(session.errors.one())
    ...     print(session.errors.field_one("email"))
"""

from __future__ import annotations

import random
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

from fieldguard.exceptions import SessionStateError


@dataclass(frozen=True, slots=True)
class FieldError:
    """One failed rule on one field.

    Attributes:
        field: External field key.
        rule: Rule name as written.
        message: Resolved message.
    """

    field: str
    rule: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "rule": self.rule, "message": self.message}


class ErrorCollection:
    """Ordered field errors with a per-field index.

    ``len()`` counts errors, not fields. Iteration yields ``FieldError``
    objects in insertion order.
    """

    def __init__(self) -> None:
        self._errors: list[FieldError] = []
        self._by_field: dict[str, list[FieldError]] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def append(self, error: FieldError) -> None:
        """Add an error.

        Raises:
            SessionStateError: If the collection has been frozen.
        """
        if self._frozen:
            raise SessionStateError("Cannot add errors after the run has finished", state="done")
        self._errors.append(error)
        self._by_field.setdefault(error.field, []).append(error)

    def add(self, field: str, rule: str, message: str) -> FieldError:
        error = FieldError(field=field, rule=rule, message=message)
        self.append(error)
        return error

    def freeze(self) -> None:
        self._frozen = True

    def one(self) -> str:
        """First message recorded, or an empty string."""
        return self._errors[0].message if self._errors else ""

    def field_one(self, field: str) -> str:
        """First message for a field in rule-chain order, or an empty string."""
        errors = self._by_field.get(field)
        return errors[0].message if errors else ""

    def field(self, field: str) -> list[str]:
        """All messages for a field."""
        return [e.message for e in self._by_field.get(field, ())]

    def rules(self, field: str) -> dict[str, str]:
        """Rule name to message for a field."""
        return {e.rule: e.message for e in self._by_field.get(field, ())}

    def fields(self) -> list[str]:
        """Fields with at least one error, in first-failure order."""
        return list(self._by_field)

    def has(self, field: str) -> bool:
        return field in self._by_field

    def random(self) -> str:
        """An arbitrary message; not deterministic when several exist."""
        return random.choice(self._errors).message if self._errors else ""

    def all(self) -> list[FieldError]:
        return list(self._errors)

    def to_dict(self) -> dict[str, dict[str, str]]:
        """Errors as ``{field: {rule: message}}``."""
        return {field: self.rules(field) for field in self._by_field}

    def __str__(self) -> str:
        lines: list[str] = []
        for field, errors in self._by_field.items():
            lines.append(f"{field}:")
            lines.extend(f" {e.rule}: {e.message}" for e in errors)
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ErrorCollection({self.to_dict()!r})"

    def __len__(self) -> int:
        return len(self._errors)

    def __iter__(self) -> Iterator[FieldError]:
        return iter(list(self._errors))

    def __bool__(self) -> bool:
        return bool(self._errors)

    def __contains__(self, field: Any) -> bool:
        return field in self._by_field
