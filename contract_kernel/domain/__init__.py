"""Pure domain layer - value objects, enums and the permission table. Zero I/O."""

from contract_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from contract_kernel.domain.dtos import (
    Activity,
    Actor,
    Contract,
    ContractData,
    ContractFilter,
    WorkflowActionResult,
    WorkflowStep,
    WorkflowView,
)
from contract_kernel.domain.roles import (
    NO_PERMISSIONS,
    ROLE_PERMISSIONS,
    Role,
    RolePermissions,
    permissions_of,
)
from contract_kernel.domain.workflow import (
    DEFAULT_WORKFLOW,
    ActivityType,
    ContractStatus,
    Priority,
    StepKind,
    StepStatus,
    WorkflowAction,
    WorkflowDefinition,
    WorkflowStepTemplate,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "Actor",
    "Activity",
    "Contract",
    "ContractData",
    "ContractFilter",
    "WorkflowStep",
    "WorkflowView",
    "WorkflowActionResult",
    "Role",
    "RolePermissions",
    "ROLE_PERMISSIONS",
    "NO_PERMISSIONS",
    "permissions_of",
    "ActivityType",
    "ContractStatus",
    "Priority",
    "StepKind",
    "StepStatus",
    "WorkflowAction",
    "WorkflowDefinition",
    "WorkflowStepTemplate",
    "DEFAULT_WORKFLOW",
]
