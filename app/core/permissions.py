"""
Centralized access control.

Deny by default: each role is an explicit allow-list over a closed
resource/action catalogue. The allow-lists are expanded at import time
into a fully enumerated (role, resource, action) -> bool table, and the
table is verified against the catalogue before the module finishes
loading. A pair that is not listed is therefore a provable denial.

No I/O happens here.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

STATEMENTS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "organization": frozenset({"update", "delete"}),
        "member": frozenset({"create", "update", "delete"}),
        "invitation": frozenset({"create", "cancel"}),
        "job": frozenset({"create", "read", "update", "delete"}),
        "candidate": frozenset({"create", "read", "update", "delete"}),
        "application": frozenset({"create", "read", "update", "delete"}),
        "document": frozenset({"create", "read", "delete"}),
        "comment": frozenset({"create", "read", "update", "delete"}),
        "activityLog": frozenset({"read"}),
    }
)

ROLES: tuple[str, ...] = ("owner", "admin", "member")

# ---------------------------------------------------------------------------
# Role allow-lists
# ---------------------------------------------------------------------------

_RECRUITING_FULL: dict[str, set[str]] = {
    "job": {"create", "read", "update", "delete"},
    "candidate": {"create", "read", "update", "delete"},
    "application": {"create", "read", "update", "delete"},
    "document": {"create", "read", "delete"},
    "comment": {"create", "read", "update", "delete"},
    "activityLog": {"read"},
}

# owner: org creator. Everything, including deleting the organization.
_OWNER: dict[str, set[str]] = {
    "organization": {"update", "delete"},
    "member": {"create", "update", "delete"},
    "invitation": {"create", "cancel"},
    **_RECRUITING_FULL,
}

# admin: hiring managers. Full recruiting CRUD and onboarding, no org deletion.
_ADMIN: dict[str, set[str]] = {
    "organization": {"update"},
    "member": {"create", "update", "delete"},
    "invitation": {"create", "cancel"},
    **_RECRUITING_FULL,
}

# member: recruiters. Read jobs, work the pipeline.
_MEMBER: dict[str, set[str]] = {
    "job": {"read"},
    "candidate": {"create", "read", "update"},
    "application": {"create", "read", "update"},
    "document": {"create", "read"},
    "comment": {"create", "read", "delete"},
    "activityLog": {"read"},
}

ROLE_ALLOW_LISTS: Mapping[str, Mapping[str, frozenset[str]]] = MappingProxyType(
    {
        role: MappingProxyType({res: frozenset(acts) for res, acts in grants.items()})
        for role, grants in (("owner", _OWNER), ("admin", _ADMIN), ("member", _MEMBER))
    }
)


def _build_table() -> Mapping[tuple[str, str, str], bool]:
    table: dict[tuple[str, str, str], bool] = {}
    for role in ROLES:
        grants = ROLE_ALLOW_LISTS[role]
        for resource, actions in STATEMENTS.items():
            granted = grants.get(resource, frozenset())
            for action in actions:
                table[(role, resource, action)] = action in granted
    return MappingProxyType(table)


def _verify(table: Mapping[tuple[str, str, str], bool]) -> None:
    """Fail loudly at import if the allow-lists drift from the catalogue."""
    if set(ROLE_ALLOW_LISTS) != set(ROLES):
        raise RuntimeError("Permission table must define exactly the built-in roles")

    for role, grants in ROLE_ALLOW_LISTS.items():
        for resource, actions in grants.items():
            if resource not in STATEMENTS:
                raise RuntimeError(f"Role {role!r} grants unknown resource {resource!r}")
            unknown = actions - STATEMENTS[resource]
            if unknown:
                raise RuntimeError(
                    f"Role {role!r} grants unknown actions {sorted(unknown)} on {resource!r}"
                )

    expected = {
        (role, resource, action)
        for role in ROLES
        for resource, actions in STATEMENTS.items()
        for action in actions
    }
    if set(table) != expected:
        raise RuntimeError("Permission table is not fully enumerated")

    for elevated in ("owner", "admin"):
        for resource, actions in STATEMENTS.items():
            for action in actions:
                if table[("member", resource, action)] and not table[(elevated, resource, action)]:
                    raise RuntimeError(
                        f"{elevated!r} must be a superset of 'member' ({resource}:{action})"
                    )


PERMISSION_TABLE = _build_table()
_verify(PERMISSION_TABLE)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def check(role: str | None, requested: Mapping[str, Iterable[str]]) -> bool:
    """
    Return True only if ``role`` holds every requested (resource, action).

    An empty request, an empty action set, an unknown role, resource or
    action all evaluate to False.
    """
    if role is None or not requested:
        return False
    role_key = getattr(role, "value", role)
    for resource, actions in requested.items():
        actions = list(actions)
        if not actions:
            return False
        for action in actions:
            if not PERMISSION_TABLE.get((role_key, resource, action), False):
                return False
    return True
