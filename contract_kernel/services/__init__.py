"""Services for the contract kernel (write side)."""

from contract_kernel.services.activity_logger import ActivityLog, ActivityLogger
from contract_kernel.services.contract_repository import (
    ContractRepository,
    SqlAlchemyContractRepository,
)
from contract_kernel.services.contract_service import ContractService, days_to_expiry
from contract_kernel.services.role_resolver import RoleResolver, RoleResolverProtocol
from contract_kernel.services.workflow_engine import WorkflowEngine
from contract_kernel.services.workflow_step_store import (
    SqlAlchemyWorkflowStepStore,
    WorkflowStepStore,
)

__all__ = [
    "ActivityLog",
    "ActivityLogger",
    "ContractRepository",
    "ContractService",
    "RoleResolver",
    "RoleResolverProtocol",
    "SqlAlchemyContractRepository",
    "SqlAlchemyWorkflowStepStore",
    "WorkflowEngine",
    "WorkflowStepStore",
    "days_to_expiry",
]
