"""
Roles and the permission table (``contract_kernel.domain.roles``).

Responsibility
--------------
Closed set of user roles and the pure, exhaustive mapping from a role to the
capabilities it grants.  Ownership rules (a ``user`` may only edit its own
contracts) are evaluated in ``contract_engines.authorization``, not here.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Every ``Role`` member has exactly one ``RolePermissions`` entry.
* ``permissions_of`` is deterministic and has no side effects.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Application roles.  Capabilities are not nested; see ``ROLE_PERMISSIONS``."""

    USER = "user"
    REVIEWER = "reviewer"
    APPROVAL = "approval"
    MANAGER = "manager"
    ADMIN = "admin"


@dataclass(frozen=True)
class RolePermissions:
    """Capabilities granted by a role."""

    can_create_contract: bool = False
    can_edit_contract: bool = False
    can_review_contract: bool = False
    can_approve_contract: bool = False
    can_delete_contract: bool = False
    can_view_all_contracts: bool = False
    can_assign_reviewer: bool = False


NO_PERMISSIONS = RolePermissions()

ROLE_PERMISSIONS: dict[Role, RolePermissions] = {
    Role.USER: RolePermissions(
        can_create_contract=True,
        can_edit_contract=True,
    ),
    Role.REVIEWER: RolePermissions(
        can_create_contract=True,
        can_edit_contract=True,
        can_review_contract=True,
        can_view_all_contracts=True,
        can_assign_reviewer=True,
    ),
    Role.APPROVAL: RolePermissions(
        can_create_contract=True,
        can_edit_contract=True,
        can_review_contract=True,
        can_approve_contract=True,
        can_delete_contract=True,
        can_view_all_contracts=True,
        can_assign_reviewer=True,
    ),
    Role.MANAGER: RolePermissions(
        can_create_contract=True,
        can_edit_contract=True,
        can_review_contract=True,
        can_view_all_contracts=True,
    ),
    Role.ADMIN: RolePermissions(
        can_create_contract=True,
        can_edit_contract=True,
        can_review_contract=True,
        can_approve_contract=True,
        can_delete_contract=True,
        can_view_all_contracts=True,
        can_assign_reviewer=True,
    ),
}


def permissions_of(role: Role) -> RolePermissions:
    """Return the capabilities of ``role``."""
    return ROLE_PERMISSIONS[Role(role)]
