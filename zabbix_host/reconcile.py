from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import ValidationError
from .log import LogFn
from .models import Ensure, HostSpec

Comparator = Callable[[Any, Any], bool]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class Action(str, Enum):
    NONE = "none"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class PropertyChange:
    observed: Any
    desired: Any


@dataclass
class ChangeSet:
    hostname: str
    action: Action = Action.NONE
    ensure_changed: bool = False
    changes: dict[str, PropertyChange] = field(default_factory=dict)
    host_id: str | None = None
    interface_id: str | None = None
    group_create: bool = False

    @property
    def needs_change(self) -> bool:
        return self.ensure_changed or bool(self.changes)


def exact_equal(observed: Any, desired: Any) -> bool:
    return observed == desired


def string_equal(observed: Any, desired: Any) -> bool:
    return _to_text(observed) == _to_text(desired)


def integer_equal(observed: Any, desired: Any) -> bool:
    return _to_int(observed) == _to_int(desired)


def sorted_equal(observed: Any, desired: Any) -> bool:
    return sorted(observed or []) == sorted(desired or [])


def macros_equal(observed: Any, desired: Any) -> bool:
    return _sorted_macros(observed) == _sorted_macros(desired)


PROPERTY_COMPARATORS: dict[str, Comparator] = {
    "interface_details": string_equal,
    "port": integer_equal,
    "groups": sorted_equal,
    "templates": sorted_equal,
    "macros": macros_equal,
    "tls_connect": integer_equal,
    "tls_accept": integer_equal,
}


def insync(name: str, observed: Any, desired: Any) -> bool:
    comparator = PROPERTY_COMPARATORS.get(name, exact_equal)
    return comparator(observed, desired)


def compare(desired: HostSpec, observed: HostSpec | None = None, log: LogFn | None = None) -> ChangeSet:
    """Work out what the apply step has to do to converge ``observed`` on ``desired``.

    ``observed`` is ``None`` when the host does not exist. Only properties set
    on ``desired`` are compared; read-only identifiers are copied from
    ``observed`` and ``group_create`` is passed through untouched.
    """
    if observed is not None and observed.hostname != desired.hostname:
        raise ValidationError(
            f"observed state for {observed.hostname} cannot be compared with {desired.hostname}"
        )

    exists = observed is not None and observed.ensure == Ensure.PRESENT
    changeset = ChangeSet(
        hostname=desired.hostname,
        host_id=observed.id if observed is not None else None,
        interface_id=observed.interface_id if observed is not None else None,
        group_create=desired.group_create,
    )

    if desired.ensure == Ensure.ABSENT:
        if exists:
            changeset.action = Action.DELETE
            changeset.ensure_changed = True
        return changeset

    if not exists:
        changeset.action = Action.CREATE
        changeset.ensure_changed = True
        changeset.changes = {
            name: PropertyChange(observed=None, desired=value)
            for name, value in desired.properties().items()
        }
        return changeset

    for name, value in desired.properties().items():
        current = getattr(observed, name)
        if insync(name, current, value):
            continue
        if log is not None:
            log("info", f"{name} is out of sync: {current!r} should be {value!r}")
        changeset.changes[name] = PropertyChange(observed=current, desired=value)

    if changeset.changes:
        changeset.action = Action.UPDATE
    return changeset


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return int(match.group(1))


def _macro_pair(item: Any) -> tuple[Any, ...]:
    if isinstance(item, Mapping):
        return tuple(part for pair in item.items() for part in pair)
    return tuple(item)


def _macro_sort_key(item: Any) -> tuple[str, ...]:
    # a mapping sorts by its first (key, value) entry, a pair by its name
    if isinstance(item, Mapping):
        return tuple(str(part) for part in next(iter(item.items()), ()))
    return (str(item[0]),) if item else ()


def _sorted_macros(macros: Any) -> list[tuple[Any, ...]]:
    return [_macro_pair(item) for item in sorted(macros or [], key=_macro_sort_key)]
