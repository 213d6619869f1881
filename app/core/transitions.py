"""
Status transition rules for recruiting-pipeline entities.

The adjacency tables below are the single source of truth for both the
write-side guard and the read-side hints served to clients.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from types import MappingProxyType

from app.core.errors import InvalidTransition


class EntityKind(str, enum.Enum):
    job = "job"
    application = "application"


# `hired` is terminal; `rejected` can be reopened back to `new`.
APPLICATION_STATUS_TRANSITIONS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "new": ("screening", "interview", "rejected"),
        "screening": ("interview", "offer", "rejected"),
        "interview": ("offer", "rejected"),
        "offer": ("hired", "rejected"),
        "hired": (),
        "rejected": ("new",),
    }
)

# `archived` can be reverted to `draft` or `open`.
JOB_STATUS_TRANSITIONS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "draft": ("open", "archived"),
        "open": ("closed", "archived"),
        "closed": ("open", "archived"),
        "archived": ("draft", "open"),
    }
)

_TABLES: Mapping[EntityKind, Mapping[str, tuple[str, ...]]] = MappingProxyType(
    {
        EntityKind.job: JOB_STATUS_TRANSITIONS,
        EntityKind.application: APPLICATION_STATUS_TRANSITIONS,
    }
)


def _value(state: object) -> str:
    return state.value if isinstance(state, enum.Enum) else str(state)


def allowed_targets(kind: EntityKind | str, current: object) -> tuple[str, ...]:
    """Targets reachable from ``current``; unknown states reach nothing."""
    return _TABLES[EntityKind(kind)].get(_value(current), ())


def is_allowed(kind: EntityKind | str, current: object, requested: object) -> bool:
    """Same-state updates are no-ops and always allowed."""
    current_value, requested_value = _value(current), _value(requested)
    if current_value == requested_value:
        return True
    return requested_value in allowed_targets(kind, current_value)


def validate(kind: EntityKind | str, current: object, requested: object) -> None:
    """Raise InvalidTransition naming the allowed set when the move is illegal."""
    if not is_allowed(kind, current, requested):
        raise InvalidTransition(
            _value(current),
            _value(requested),
            allowed_targets(kind, current),
        )


def transition_table() -> dict[str, dict[str, list[str]]]:
    """Serializable copy of every table, keyed by entity kind."""
    return {
        kind.value: {state: list(targets) for state, targets in table.items()}
        for kind, table in _TABLES.items()
    }
