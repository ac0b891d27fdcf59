"""
Tests for the role enumeration and permission table.

Covers:
- Every role has exactly one permission entry
- The exact capability grid per role
- permissions_of accepts role values and rejects unknown roles
- Actor.permissions delegates to the table
"""

from dataclasses import fields, FrozenInstanceError
from uuid import uuid4

import pytest

from contract_kernel.domain.dtos import Actor
from contract_kernel.domain.roles import (
    NO_PERMISSIONS,
    ROLE_PERMISSIONS,
    Role,
    RolePermissions,
    permissions_of,
)

CAPABILITIES = [f.name for f in fields(RolePermissions)]

# role -> capabilities it holds; every other capability must be False
EXPECTED_GRANTS: dict[Role, set[str]] = {
    Role.USER: {"can_create_contract", "can_edit_contract"},
    Role.REVIEWER: {
        "can_create_contract",
        "can_edit_contract",
        "can_review_contract",
        "can_view_all_contracts",
        "can_assign_reviewer",
    },
    Role.APPROVAL: set(CAPABILITIES),
    Role.MANAGER: {
        "can_create_contract",
        "can_edit_contract",
        "can_review_contract",
        "can_view_all_contracts",
    },
    Role.ADMIN: set(CAPABILITIES),
}


class TestPermissionTable:
    """The permission table is total and matches the documented grid."""

    def test_every_role_has_an_entry(self):
        assert set(ROLE_PERMISSIONS) == set(Role)

    def test_capability_set(self):
        assert CAPABILITIES == [
            "can_create_contract",
            "can_edit_contract",
            "can_review_contract",
            "can_approve_contract",
            "can_delete_contract",
            "can_view_all_contracts",
            "can_assign_reviewer",
        ]

    @pytest.mark.parametrize("role", list(Role))
    @pytest.mark.parametrize("capability", CAPABILITIES)
    def test_grid(self, role, capability):
        expected = capability in EXPECTED_GRANTS[role]
        assert getattr(permissions_of(role), capability) is expected

    def test_manager_cannot_approve_or_delete(self):
        perms = permissions_of(Role.MANAGER)
        assert not perms.can_approve_contract
        assert not perms.can_delete_contract
        assert not perms.can_assign_reviewer

    def test_no_permissions_is_all_false(self):
        assert not any(getattr(NO_PERMISSIONS, c) for c in CAPABILITIES)

    def test_permissions_are_frozen(self):
        with pytest.raises(FrozenInstanceError):
            permissions_of(Role.USER).can_delete_contract = True


class TestPermissionsOf:
    """permissions_of lookup behaviour."""

    def test_accepts_string_value(self):
        assert permissions_of("admin") == ROLE_PERMISSIONS[Role.ADMIN]

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            permissions_of("superuser")

    def test_deterministic(self):
        assert permissions_of(Role.REVIEWER) is permissions_of(Role.REVIEWER)

    def test_actor_permissions(self):
        actor = Actor(user_id=uuid4(), role=Role.APPROVAL)
        assert actor.permissions.can_approve_contract
