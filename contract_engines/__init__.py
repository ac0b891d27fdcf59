"""
Module: contract_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by
    the kernel services: authorization guards and the workflow planner.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import contract_kernel/domain/ (and sibling engine modules).
    MUST NOT import contract_kernel services, models or contract_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()``; timestamps are passed
      in by the calling service.
    - Determinism: identical inputs always produce identical outputs.
"""

from contract_engines.authorization import (
    GuardResult,
    can_edit_contract,
    can_view_contract,
    check_approve_step,
    check_assign,
    check_create,
    check_delete,
    check_edit,
    check_manage_roles,
    check_reject_or_return,
    check_sign,
    check_submit,
    permissions_for,
    template_for_step,
)
from contract_engines.workflow import (
    StepChange,
    TransitionPlan,
    apply_step_changes,
    available_actions,
    check_step_invariants,
    find_active_step,
    find_current_step,
    implied_status,
    plan_approve,
    plan_reject,
    plan_return,
    plan_sign,
    plan_submit,
    status_matches_steps,
)

__all__ = [
    "GuardResult",
    "can_edit_contract",
    "can_view_contract",
    "check_approve_step",
    "check_assign",
    "check_create",
    "check_delete",
    "check_edit",
    "check_manage_roles",
    "check_reject_or_return",
    "check_sign",
    "check_submit",
    "permissions_for",
    "template_for_step",
    "StepChange",
    "TransitionPlan",
    "apply_step_changes",
    "available_actions",
    "check_step_invariants",
    "find_active_step",
    "find_current_step",
    "implied_status",
    "plan_approve",
    "plan_reject",
    "plan_return",
    "plan_sign",
    "plan_submit",
    "status_matches_steps",
]
