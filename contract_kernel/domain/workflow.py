"""
Contract workflow domain types (``contract_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the contract lifecycle state machine: contract and
step statuses, workflow actions, activity types, and the step templates
that make up a workflow definition.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  May import only
from ``domain/roles``.

Invariants enforced
-------------------
* A workflow definition has at least one step and unique step names.
* ``CONTRACT_TRANSITIONS`` lists every contract status edge the engine may
  take.  ``rejected`` and ``signed`` have no outgoing edges.
* The first step, when in progress, always implies ``under_review``; any
  later step implies its own ``contract_status``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from contract_kernel.domain.roles import Role

# =========================================================================
# Statuses
# =========================================================================


class ContractStatus(str, Enum):
    """Contract lifecycle states."""

    DRAFT = "draft"
    UNDER_REVIEW = "under_review"
    IN_REVIEW = "in_review"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SIGNED = "signed"
    REJECTED = "rejected"


class StepStatus(str, Enum):
    """Per-step workflow states."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"
    RETURNED = "returned"


class StepKind(str, Enum):
    """What a step does; decides the contract status while it is active."""

    REVIEW = "review"
    APPROVAL = "approval"
    EXECUTION = "execution"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class WorkflowAction(str, Enum):
    """Actions a caller can request through the workflow engine."""

    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"
    RETURN = "return"
    SIGN = "sign"


class ActivityType(str, Enum):
    """Activity trail entry types."""

    CREATED = "created"
    UPDATED = "updated"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"
    SIGNED = "signed"
    ASSIGNED = "assigned"


KIND_CONTRACT_STATUS: dict[StepKind, ContractStatus] = {
    StepKind.REVIEW: ContractStatus.IN_REVIEW,
    StepKind.APPROVAL: ContractStatus.PENDING_APPROVAL,
    StepKind.EXECUTION: ContractStatus.IN_REVIEW,
}

# Statuses that make a step the "current" one
CURRENT_STEP_STATUSES: frozenset[StepStatus] = frozenset({
    StepStatus.PENDING,
    StepStatus.IN_PROGRESS,
    StepStatus.RETURNED,
})

# Statuses in which a step may still be (re)assigned
ASSIGNABLE_STEP_STATUSES: frozenset[StepStatus] = frozenset({
    StepStatus.PENDING,
    StepStatus.IN_PROGRESS,
})

CONTRACT_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.DRAFT: frozenset({ContractStatus.UNDER_REVIEW}),
    ContractStatus.UNDER_REVIEW: frozenset({
        ContractStatus.IN_REVIEW,
        ContractStatus.PENDING_APPROVAL,
        ContractStatus.APPROVED,
        ContractStatus.REJECTED,
        ContractStatus.DRAFT,
    }),
    ContractStatus.IN_REVIEW: frozenset({
        ContractStatus.IN_REVIEW,
        ContractStatus.PENDING_APPROVAL,
        ContractStatus.APPROVED,
        ContractStatus.REJECTED,
        ContractStatus.DRAFT,
    }),
    ContractStatus.PENDING_APPROVAL: frozenset({
        ContractStatus.IN_REVIEW,
        ContractStatus.PENDING_APPROVAL,
        ContractStatus.APPROVED,
        ContractStatus.REJECTED,
        ContractStatus.DRAFT,
    }),
    ContractStatus.APPROVED: frozenset({ContractStatus.SIGNED}),
    ContractStatus.SIGNED: frozenset(),
    ContractStatus.REJECTED: frozenset(),
}

TERMINAL_CONTRACT_STATUSES: frozenset[ContractStatus] = frozenset({
    ContractStatus.SIGNED,
    ContractStatus.REJECTED,
})

# Contract statuses in which some step is in progress
ACTIVE_CONTRACT_STATUSES: frozenset[ContractStatus] = frozenset({
    ContractStatus.UNDER_REVIEW,
    ContractStatus.IN_REVIEW,
    ContractStatus.PENDING_APPROVAL,
})


# =========================================================================
# Workflow definition
# =========================================================================


@dataclass(frozen=True)
class WorkflowStepTemplate:
    """One step of a workflow definition.

    ``approver_roles`` empty means any role holding ``can_approve_contract``
    may approve the step.  ``contract_status`` overrides the status derived
    from ``kind``.
    """

    name: str
    kind: StepKind = StepKind.REVIEW
    approver_roles: tuple[Role, ...] = ()
    contract_status: ContractStatus | None = None

    @property
    def active_status(self) -> ContractStatus:
        """Contract status while this step is in progress (not step 1)."""
        if self.contract_status is not None:
            return self.contract_status
        return KIND_CONTRACT_STATUS[self.kind]


@dataclass(frozen=True)
class WorkflowDefinition:
    """A named, versioned, ordered list of step templates."""

    name: str
    version: int
    steps: tuple[WorkflowStepTemplate, ...]

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError(f"Workflow '{self.name}' must define at least one step")
        names = [s.name for s in self.steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Workflow '{self.name}' has duplicate step names")

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def template_for(self, step_order: int) -> WorkflowStepTemplate | None:
        """Template at 1-based ``step_order``, or None if out of range."""
        if 1 <= step_order <= len(self.steps):
            return self.steps[step_order - 1]
        return None

    def template_named(self, step_name: str) -> WorkflowStepTemplate | None:
        for template in self.steps:
            if template.name == step_name:
                return template
        return None


DEFAULT_WORKFLOW = WorkflowDefinition(
    name="standard_contract_review",
    version=1,
    steps=(
        WorkflowStepTemplate(
            name="Legal Review",
            kind=StepKind.REVIEW,
            approver_roles=(Role.REVIEWER, Role.ADMIN),
        ),
        WorkflowStepTemplate(
            name="Management Approval",
            kind=StepKind.APPROVAL,
            approver_roles=(Role.APPROVAL, Role.ADMIN),
            contract_status=ContractStatus.IN_REVIEW,
        ),
        WorkflowStepTemplate(
            name="Final Approval",
            kind=StepKind.APPROVAL,
            approver_roles=(Role.APPROVAL, Role.ADMIN),
        ),
        WorkflowStepTemplate(
            name="Contract Execution",
            kind=StepKind.EXECUTION,
        ),
    ),
)
