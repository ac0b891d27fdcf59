"""
Config -> Kernel Bridges.

Functions that convert configuration artifacts into kernel types.  They
live in contract_config (the producer) because the kernel must never
import contract_config.

Usage:
    from contract_config import get_active_config
    from contract_config.bridges import build_workflow_definition

    config = get_active_config()
    engine = WorkflowEngine(session, definition=build_workflow_definition(config))
"""

from __future__ import annotations

from contract_config.schema import ContractConfig
from contract_kernel.domain.roles import Role
from contract_kernel.domain.workflow import (
    ContractStatus,
    StepKind,
    WorkflowDefinition,
    WorkflowStepTemplate,
)


def build_workflow_definition(config: ContractConfig) -> WorkflowDefinition:
    """Build the kernel WorkflowDefinition from a validated configuration.

    Raises:
        ValueError: On values the validator would have rejected.
    """
    workflow = config.workflow
    return WorkflowDefinition(
        name=workflow.name,
        version=workflow.version,
        steps=tuple(
            WorkflowStepTemplate(
                name=step.name,
                kind=StepKind(step.kind),
                approver_roles=tuple(Role(r) for r in step.approver_roles),
                contract_status=(
                    ContractStatus(step.contract_status)
                    if step.contract_status is not None
                    else None
                ),
            )
            for step in workflow.steps
        ),
    )
