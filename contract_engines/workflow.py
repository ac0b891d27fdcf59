"""
contract_engines.workflow -- Pure contract workflow planner.

Responsibility:
    Locate the current and active steps of a contract, plan the step and
    contract changes of each workflow action, and check the step/status
    invariants on the projected result.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import contract_kernel/domain/ types.

Invariants enforced:
    - At most one step is ``in_progress``; every step before it is
      ``completed`` and every step after it is ``pending``.
    - The contract status equals the status implied by its steps
      (``implied_status``); ``signed`` is accepted wherever ``approved``
      is implied.
    - Purity: timestamps are passed in by the caller, never read here.

Failure modes:
    - Plan functions raise ValueError when called without the
      precondition their caller is responsible for (e.g. no in-progress
      step for ``plan_approve``).  Services check first and raise the
      typed kernel exception.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from contract_engines.authorization import (
    check_approve_step,
    check_reject_or_return,
    check_sign,
    check_submit,
    template_for_step,
)
from contract_engines.tracer import traced_engine
from contract_kernel.domain.dtos import Actor, Contract, WorkflowStep
from contract_kernel.domain.workflow import (
    ACTIVE_CONTRACT_STATUSES,
    CURRENT_STEP_STATUSES,
    ActivityType,
    ContractStatus,
    StepStatus,
    WorkflowAction,
    WorkflowDefinition,
)

_ENGINE = "workflow_planner"
_VERSION = "1.0"


# =========================================================================
# Plan types
# =========================================================================


@dataclass(frozen=True)
class StepChange:
    """A compare-and-swap update of one step.

    ``fields`` holds the columns written besides ``status``.  The store
    applies the change only if the step is still in ``expected_status``.
    """

    step_order: int
    expected_status: StepStatus
    new_status: StepStatus
    fields: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TransitionPlan:
    """Everything a workflow action will write, computed before writing."""

    action: WorkflowAction
    from_status: ContractStatus
    to_status: ContractStatus
    step_changes: tuple[StepChange, ...]
    activity_type: ActivityType
    description: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def projected_steps(
        self, steps: Sequence[WorkflowStep],
    ) -> tuple[WorkflowStep, ...]:
        return apply_step_changes(steps, self.step_changes)


# =========================================================================
# Step queries
# =========================================================================


def ordered(steps: Iterable[WorkflowStep]) -> tuple[WorkflowStep, ...]:
    return tuple(sorted(steps, key=lambda s: s.step_order))


def find_current_step(steps: Iterable[WorkflowStep]) -> WorkflowStep | None:
    """Lowest-ordered step that is pending, in progress or returned.

    None means the workflow is complete (all completed) or terminated
    (a step was rejected and nothing after it is current).
    """
    for step in ordered(steps):
        if step.status in CURRENT_STEP_STATUSES:
            return step
    return None


def find_active_step(steps: Iterable[WorkflowStep]) -> WorkflowStep | None:
    """The single in-progress step, if any."""
    for step in ordered(steps):
        if step.status == StepStatus.IN_PROGRESS:
            return step
    return None


def apply_step_changes(
    steps: Sequence[WorkflowStep],
    changes: Iterable[StepChange],
) -> tuple[WorkflowStep, ...]:
    """Project ``changes`` onto ``steps`` without touching storage."""
    by_order = {c.step_order: c for c in changes}
    projected = []
    for step in ordered(steps):
        change = by_order.get(step.step_order)
        if change is None:
            projected.append(step)
        else:
            projected.append(replace(step, status=change.new_status, **change.fields))
    return tuple(projected)


# =========================================================================
# Invariants
# =========================================================================


def implied_status(
    steps: Sequence[WorkflowStep],
    definition: WorkflowDefinition,
) -> ContractStatus:
    """The contract status a step list implies."""
    steps = ordered(steps)
    if any(s.status == StepStatus.REJECTED for s in steps):
        return ContractStatus.REJECTED
    if any(s.status == StepStatus.RETURNED for s in steps):
        return ContractStatus.DRAFT
    active = find_active_step(steps)
    if active is not None:
        if active.step_order == steps[0].step_order:
            return ContractStatus.UNDER_REVIEW
        template = template_for_step(definition, active)
        if template is None:
            return ContractStatus.IN_REVIEW
        return template.active_status
    if steps and all(s.status == StepStatus.COMPLETED for s in steps):
        return ContractStatus.APPROVED
    return ContractStatus.DRAFT


def status_matches_steps(
    status: ContractStatus,
    steps: Sequence[WorkflowStep],
    definition: WorkflowDefinition,
) -> bool:
    expected = implied_status(steps, definition)
    if expected == ContractStatus.APPROVED:
        return status in (ContractStatus.APPROVED, ContractStatus.SIGNED)
    return status == expected


def check_step_invariants(steps: Sequence[WorkflowStep]) -> list[str]:
    """Return a description of every step-ordering violation (empty if none)."""
    violations: list[str] = []
    steps = ordered(steps)

    orders = [s.step_order for s in steps]
    if orders != list(range(1, len(steps) + 1)):
        violations.append(f"step orders must be 1..{len(steps)}, got {orders}")

    in_progress = [s for s in steps if s.status == StepStatus.IN_PROGRESS]
    if len(in_progress) > 1:
        violations.append(
            "more than one step in progress: "
            + ", ".join(str(s.step_order) for s in in_progress)
        )
    elif in_progress:
        active = in_progress[0]
        for s in steps:
            if s.step_order < active.step_order and s.status != StepStatus.COMPLETED:
                violations.append(
                    f"step {s.step_order} precedes the active step but is {s.status.value}"
                )
            if s.step_order > active.step_order and s.status != StepStatus.PENDING:
                violations.append(
                    f"step {s.step_order} follows the active step but is {s.status.value}"
                )

    for s in steps:
        if s.status == StepStatus.COMPLETED and s.completed_at is None:
            violations.append(f"step {s.step_order} is completed without completed_at")
    return violations


# =========================================================================
# Planning
# =========================================================================


@traced_engine(_ENGINE, _VERSION)
def plan_submit(
    contract: Contract,
    steps: Sequence[WorkflowStep],
) -> TransitionPlan:
    """Restart the workflow at step 1.

    Steps that are not pending are reset to pending with ``completed_at``
    cleared, so a resubmission after a return starts from the beginning.
    """
    if contract.status != ContractStatus.DRAFT:
        raise ValueError(f"plan_submit requires a draft contract, got {contract.status}")
    steps = ordered(steps)
    if not steps:
        raise ValueError("plan_submit requires at least one workflow step")

    changes: list[StepChange] = []
    first = steps[0]
    changes.append(StepChange(
        step_order=first.step_order,
        expected_status=first.status,
        new_status=StepStatus.IN_PROGRESS,
        fields={"assigned_to": None, "completed_at": None},
    ))
    for step in steps[1:]:
        if step.status != StepStatus.PENDING or step.completed_at is not None:
            changes.append(StepChange(
                step_order=step.step_order,
                expected_status=step.status,
                new_status=StepStatus.PENDING,
                fields={"assigned_to": None, "completed_at": None},
            ))

    return TransitionPlan(
        action=WorkflowAction.SUBMIT,
        from_status=contract.status,
        to_status=ContractStatus.UNDER_REVIEW,
        step_changes=tuple(changes),
        activity_type=ActivityType.SUBMITTED,
        description="Contract submitted for review",
        metadata={"step_order": first.step_order, "step_name": first.step_name},
    )


@traced_engine(_ENGINE, _VERSION)
def plan_approve(
    contract: Contract,
    steps: Sequence[WorkflowStep],
    definition: WorkflowDefinition,
    actor: Actor,
    notes: str | None,
    now: datetime,
) -> TransitionPlan:
    """Complete the active step and advance to the next, or finish the workflow."""
    steps = ordered(steps)
    active = find_active_step(steps)
    if active is None:
        raise ValueError("plan_approve requires an in-progress step")

    changes = [StepChange(
        step_order=active.step_order,
        expected_status=StepStatus.IN_PROGRESS,
        new_status=StepStatus.COMPLETED,
        fields={"completed_at": now, "notes": notes, "assigned_to": actor.user_id},
    )]

    following = [s for s in steps if s.step_order > active.step_order]
    if not following:
        return TransitionPlan(
            action=WorkflowAction.APPROVE,
            from_status=contract.status,
            to_status=ContractStatus.APPROVED,
            step_changes=tuple(changes),
            activity_type=ActivityType.APPROVED,
            description="Contract final approval completed",
            metadata={"step_order": active.step_order, "step_name": active.step_name},
        )

    nxt = following[0]
    changes.append(StepChange(
        step_order=nxt.step_order,
        expected_status=nxt.status,
        new_status=StepStatus.IN_PROGRESS,
        fields={"assigned_to": nxt.assigned_to},
    ))
    template = template_for_step(definition, nxt)
    to_status = template.active_status if template else ContractStatus.IN_REVIEW

    return TransitionPlan(
        action=WorkflowAction.APPROVE,
        from_status=contract.status,
        to_status=to_status,
        step_changes=tuple(changes),
        activity_type=ActivityType.APPROVED,
        description=(
            f"Step {active.step_order} approved, moved to {nxt.step_name}"
        ),
        metadata={
            "step_order": active.step_order,
            "step_name": active.step_name,
            "next_step_order": nxt.step_order,
            "next_step_name": nxt.step_name,
        },
    )


def _plan_stop(
    action: WorkflowAction,
    contract: Contract,
    steps: Sequence[WorkflowStep],
    actor: Actor,
    reason: str,
    now: datetime,
) -> TransitionPlan:
    active = find_active_step(steps)
    if active is None:
        raise ValueError(f"plan for {action.value} requires an in-progress step")
    reason = reason.strip()
    if not reason:
        raise ValueError(f"plan for {action.value} requires a reason")

    if action == WorkflowAction.REJECT:
        change = StepChange(
            step_order=active.step_order,
            expected_status=StepStatus.IN_PROGRESS,
            new_status=StepStatus.REJECTED,
            fields={"completed_at": now, "notes": reason, "assigned_to": actor.user_id},
        )
        to_status = ContractStatus.REJECTED
        activity_type = ActivityType.REJECTED
        description = f"Contract rejected: {reason}"
    else:
        change = StepChange(
            step_order=active.step_order,
            expected_status=StepStatus.IN_PROGRESS,
            new_status=StepStatus.RETURNED,
            fields={"notes": reason, "assigned_to": actor.user_id},
        )
        to_status = ContractStatus.DRAFT
        activity_type = ActivityType.RETURNED
        description = f"Contract returned for changes: {reason}"

    return TransitionPlan(
        action=action,
        from_status=contract.status,
        to_status=to_status,
        step_changes=(change,),
        activity_type=activity_type,
        description=description,
        metadata={
            "step_order": active.step_order,
            "step_name": active.step_name,
            "reason": reason,
        },
    )


@traced_engine(_ENGINE, _VERSION)
def plan_reject(
    contract: Contract,
    steps: Sequence[WorkflowStep],
    actor: Actor,
    reason: str,
    now: datetime,
) -> TransitionPlan:
    """Reject the active step; the contract becomes terminally rejected."""
    return _plan_stop(WorkflowAction.REJECT, contract, steps, actor, reason, now)


@traced_engine(_ENGINE, _VERSION)
def plan_return(
    contract: Contract,
    steps: Sequence[WorkflowStep],
    actor: Actor,
    reason: str,
    now: datetime,
) -> TransitionPlan:
    """Return the active step for changes; the contract goes back to draft."""
    return _plan_stop(WorkflowAction.RETURN, contract, steps, actor, reason, now)


@traced_engine(_ENGINE, _VERSION)
def plan_sign(contract: Contract) -> TransitionPlan:
    if contract.status != ContractStatus.APPROVED:
        raise ValueError(f"plan_sign requires an approved contract, got {contract.status}")
    return TransitionPlan(
        action=WorkflowAction.SIGN,
        from_status=contract.status,
        to_status=ContractStatus.SIGNED,
        step_changes=(),
        activity_type=ActivityType.SIGNED,
        description="Contract signed",
    )


# =========================================================================
# Available actions
# =========================================================================


def available_actions(
    contract: Contract,
    steps: Sequence[WorkflowStep],
    actor: Actor,
    definition: WorkflowDefinition,
) -> tuple[WorkflowAction, ...]:
    """Actions ``actor`` may currently perform on ``contract``, in display order."""
    actions: list[WorkflowAction] = []

    if contract.status == ContractStatus.DRAFT:
        if check_submit(actor, contract).allowed:
            actions.append(WorkflowAction.SUBMIT)
        return tuple(actions)

    if contract.status == ContractStatus.APPROVED:
        if check_sign(actor).allowed:
            actions.append(WorkflowAction.SIGN)
        return tuple(actions)

    if contract.status not in ACTIVE_CONTRACT_STATUSES:
        return tuple(actions)

    active = find_active_step(steps)
    if active is None:
        return tuple(actions)

    template = template_for_step(definition, active)
    if check_approve_step(actor, active, template).allowed:
        actions.append(WorkflowAction.APPROVE)
    if check_reject_or_return(actor).allowed:
        actions.extend((WorkflowAction.REJECT, WorkflowAction.RETURN))
    return tuple(actions)
