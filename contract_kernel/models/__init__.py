"""SQLAlchemy ORM models for the contract kernel."""

from contract_kernel.models.activity import ActivityModel
from contract_kernel.models.contract import ContractModel
from contract_kernel.models.user_role import UserRoleModel
from contract_kernel.models.workflow_step import WorkflowStepModel

__all__ = [
    "ContractModel",
    "WorkflowStepModel",
    "ActivityModel",
    "UserRoleModel",
]
