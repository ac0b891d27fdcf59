"""
contract_engines.authorization -- Pure authorization guards.

Responsibility:
    Decide whether an actor may perform an operation on a contract, from
    the permission table, ownership, and the approver roles of the current
    workflow step.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import contract_kernel/domain/ types.

Invariants enforced:
    - Fail closed: a role missing from the permission table has no
      capabilities.
    - Ownership: a role without ``can_view_all_contracts`` may only act on
      contracts it created.
    - Step-scoped approval: a step that declares approver roles may only be
      approved by those roles; otherwise ``can_approve_contract`` decides.
"""

from __future__ import annotations

from dataclasses import dataclass

from contract_kernel.domain.dtos import Actor, Contract, WorkflowStep
from contract_kernel.domain.roles import (
    NO_PERMISSIONS,
    ROLE_PERMISSIONS,
    Role,
    RolePermissions,
)
from contract_kernel.domain.workflow import WorkflowDefinition, WorkflowStepTemplate


@dataclass(frozen=True)
class GuardResult:
    """Outcome of an authorization check."""

    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> GuardResult:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> GuardResult:
        return cls(allowed=False, reason=reason)


def permissions_for(actor: Actor) -> RolePermissions:
    """Permission set of the actor's role, empty for unknown roles."""
    return ROLE_PERMISSIONS.get(actor.role, NO_PERMISSIONS)


def is_owner(actor: Actor, contract: Contract) -> bool:
    return contract.created_by == actor.user_id


def can_view_contract(actor: Actor, contract: Contract) -> bool:
    return permissions_for(actor).can_view_all_contracts or is_owner(actor, contract)


def can_edit_contract(actor: Actor, contract: Contract) -> bool:
    """Edit capability combined with ownership for roles limited to their own contracts."""
    perms = permissions_for(actor)
    if not perms.can_edit_contract:
        return False
    return perms.can_view_all_contracts or is_owner(actor, contract)


def template_for_step(
    definition: WorkflowDefinition,
    step: WorkflowStep,
) -> WorkflowStepTemplate | None:
    """Template by step name, falling back to position in the definition."""
    return definition.template_named(step.step_name) or definition.template_for(
        step.step_order
    )


def check_create(actor: Actor) -> GuardResult:
    if permissions_for(actor).can_create_contract:
        return GuardResult.allow()
    return GuardResult.deny("missing can_create_contract")


def check_edit(actor: Actor, contract: Contract) -> GuardResult:
    if not permissions_for(actor).can_edit_contract:
        return GuardResult.deny("missing can_edit_contract")
    if not can_edit_contract(actor, contract):
        return GuardResult.deny("only the creator may edit this contract")
    return GuardResult.allow()


def check_submit(actor: Actor, contract: Contract) -> GuardResult:
    """Submitting is an edit: same capability and ownership rules."""
    return check_edit(actor, contract)


def check_approve_step(
    actor: Actor,
    step: WorkflowStep,
    template: WorkflowStepTemplate | None,
) -> GuardResult:
    """Whether the actor may approve ``step``.

    Steps with declared approver roles (e.g. Legal Review: reviewer/admin)
    accept only those roles.  Steps without any fall back to
    ``can_approve_contract``.
    """
    if template is not None and template.approver_roles:
        if actor.role in template.approver_roles:
            return GuardResult.allow()
        allowed = ", ".join(r.value for r in template.approver_roles)
        return GuardResult.deny(
            f"step '{step.step_name}' requires one of: {allowed}"
        )
    if permissions_for(actor).can_approve_contract:
        return GuardResult.allow()
    return GuardResult.deny("missing can_approve_contract")


def check_reject_or_return(actor: Actor) -> GuardResult:
    perms = permissions_for(actor)
    if perms.can_review_contract or perms.can_approve_contract:
        return GuardResult.allow()
    return GuardResult.deny("missing can_review_contract or can_approve_contract")


def check_sign(actor: Actor) -> GuardResult:
    if permissions_for(actor).can_approve_contract:
        return GuardResult.allow()
    return GuardResult.deny("missing can_approve_contract")


def check_delete(actor: Actor) -> GuardResult:
    if permissions_for(actor).can_delete_contract:
        return GuardResult.allow()
    return GuardResult.deny("missing can_delete_contract")


def check_assign(actor: Actor) -> GuardResult:
    if permissions_for(actor).can_assign_reviewer:
        return GuardResult.allow()
    return GuardResult.deny("missing can_assign_reviewer")


def check_manage_roles(actor: Actor) -> GuardResult:
    if actor.role == Role.ADMIN:
        return GuardResult.allow()
    return GuardResult.deny("only admins may change user roles")
