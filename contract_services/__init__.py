"""Application services: the in-process entry points used by UI handlers."""

from contract_services.workflow_executor import WorkflowExecutor

__all__ = ["WorkflowExecutor"]
