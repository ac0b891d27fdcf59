"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the service boundary:
    the Contract, WorkflowStep and Activity records, the caller's Actor
    context, create/filter inputs, and the workflow view and action result
    returned to the presentation layer.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  Models convert to these via ``to_dto()``.

Invariants enforced:
    - Domain logic accepts/returns DTOs, never ORM entities.
    - Actor carries its role explicitly; nothing reads an ambient session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from contract_kernel.domain.roles import Role, RolePermissions, permissions_of
from contract_kernel.domain.workflow import (
    ContractStatus,
    Priority,
    StepStatus,
    WorkflowAction,
)


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of an operation and its resolved role."""

    user_id: UUID
    role: Role

    @property
    def permissions(self) -> RolePermissions:
        return permissions_of(self.role)


@dataclass(frozen=True)
class Contract:
    """Immutable snapshot of a contract row."""

    id: UUID
    title: str
    contract_type: str
    status: ContractStatus
    created_by: UUID
    priority: Priority = Priority.MEDIUM
    assigned_to: UUID | None = None
    department_id: UUID | None = None
    unit_id: UUID | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    value: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class WorkflowStep:
    """Immutable snapshot of one workflow step of a contract."""

    id: UUID
    contract_id: UUID
    step_order: int
    step_name: str
    status: StepStatus
    assigned_to: UUID | None = None
    completed_at: datetime | None = None
    notes: str | None = None


@dataclass(frozen=True)
class Activity:
    """Immutable audit trail entry."""

    id: UUID
    contract_id: UUID
    activity_type: str
    description: str
    performed_by: UUID
    performed_at: datetime
    previous_value: str | None = None
    new_value: str | None = None
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ContractData:
    """Input for creating a contract.  Status and owner are not accepted."""

    title: str
    contract_type: str
    priority: Priority = Priority.MEDIUM
    assigned_to: UUID | None = None
    department_id: UUID | None = None
    unit_id: UUID | None = None
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    value: Decimal | None = None


@dataclass(frozen=True)
class ContractFilter:
    """Optional list filters; ``None`` means no constraint."""

    status: ContractStatus | None = None
    contract_type: str | None = None
    department_id: UUID | None = None
    priority: Priority | None = None
    created_by: UUID | None = None


@dataclass(frozen=True)
class WorkflowView:
    """A contract, its ordered steps, and the current step if any."""

    contract: Contract
    steps: tuple[WorkflowStep, ...]
    current_step: WorkflowStep | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.steps) and all(
            s.status == StepStatus.COMPLETED for s in self.steps
        )


@dataclass(frozen=True)
class WorkflowActionResult:
    """Outcome of a successful workflow action."""

    action: WorkflowAction
    contract: Contract
    steps: tuple[WorkflowStep, ...]
    activity: Activity | None = None
    warnings: tuple[str, ...] = field(default_factory=tuple)
