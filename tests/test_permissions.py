"""
Permission table tests.

Verifies that:
- Every catalogue triple is enumerated for every role
- Anything not on a role's allow-list is denied
- Owner and admin are supersets of member
- Unknown roles, resources, actions and empty requests are denied
"""

import pytest

from app.core.permissions import PERMISSION_TABLE, ROLE_ALLOW_LISTS, ROLES, STATEMENTS, check
from app.models.member import OrgRole

MEMBER_GRANTS = {
    ("job", "read"),
    ("candidate", "create"),
    ("candidate", "read"),
    ("candidate", "update"),
    ("application", "create"),
    ("application", "read"),
    ("application", "update"),
    ("document", "create"),
    ("document", "read"),
    ("comment", "create"),
    ("comment", "read"),
    ("comment", "delete"),
    ("activityLog", "read"),
}

ALL_PAIRS = [(resource, action) for resource, actions in STATEMENTS.items() for action in actions]


class TestTableShape:
    def test_fully_enumerated(self):
        assert len(PERMISSION_TABLE) == len(ROLES) * len(ALL_PAIRS)
        for role in ROLES:
            for resource, action in ALL_PAIRS:
                assert (role, resource, action) in PERMISSION_TABLE

    def test_allow_lists_stay_inside_catalogue(self):
        for grants in ROLE_ALLOW_LISTS.values():
            for resource, actions in grants.items():
                assert resource in STATEMENTS
                assert actions <= STATEMENTS[resource]

    @pytest.mark.parametrize("elevated", ["owner", "admin"])
    def test_elevated_roles_cover_member(self, elevated):
        for resource, action in ALL_PAIRS:
            if PERMISSION_TABLE[("member", resource, action)]:
                assert PERMISSION_TABLE[(elevated, resource, action)]


class TestRoleGrants:
    def test_owner_holds_everything(self):
        for resource, action in ALL_PAIRS:
            assert check("owner", {resource: [action]}), (resource, action)

    def test_admin_holds_everything_but_org_delete(self):
        for resource, action in ALL_PAIRS:
            expected = (resource, action) != ("organization", "delete")
            assert check("admin", {resource: [action]}) is expected, (resource, action)

    def test_member_denied_everything_unlisted(self):
        for resource, action in ALL_PAIRS:
            expected = (resource, action) in MEMBER_GRANTS
            assert check("member", {resource: [action]}) is expected, (resource, action)

    def test_member_cannot_manage_onboarding(self):
        assert not check("member", {"invitation": ["create"]})
        assert not check("member", {"invitation": ["cancel"]})
        assert not check("member", {"job": ["update"]})

    def test_multi_resource_request_needs_every_pair(self):
        assert check("member", {"application": ["read", "update"], "job": ["read"]})
        assert not check("member", {"application": ["update"], "job": ["update"]})

    def test_accepts_role_enum(self):
        assert check(OrgRole.admin, {"invitation": ["create"]})
        assert not check(OrgRole.member, {"invitation": ["create"]})


class TestDenyByDefault:
    @pytest.mark.parametrize("role", [None, "", "superuser", "Owner"])
    def test_unknown_role(self, role):
        assert not check(role, {"job": ["read"]})

    def test_unknown_resource(self):
        assert not check("owner", {"payroll": ["read"]})

    def test_unknown_action(self):
        assert not check("owner", {"job": ["publish"]})
        assert not check("owner", {"job": ["read", "publish"]})

    def test_empty_request(self):
        assert not check("owner", {})

    def test_empty_action_set(self):
        assert not check("owner", {"job": []})
