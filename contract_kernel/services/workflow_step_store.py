"""
contract_kernel.services.workflow_step_store -- Workflow step persistence collaborator.

Responsibility:
    Create the workflow steps of a new contract, list them in order, and
    apply compare-and-swap step updates on behalf of the workflow engine.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - ``update_step`` with ``expected_status`` is a single guarded UPDATE;
      if another actor already moved the step, zero rows match and
      StepNotActiveError is raised instead of overwriting their change.
    - Steps are always returned ordered by ``step_order``.

Failure modes:
    - StepNotActiveError on a compare-and-swap miss.
    - WorkflowStepNotFoundError if the step does not exist.
    - PersistenceError wrapping any SQLAlchemy error (including the
      single-in-progress unique index).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import select, update

from contract_kernel.domain.dtos import WorkflowStep
from contract_kernel.domain.workflow import StepStatus, WorkflowStepTemplate
from contract_kernel.exceptions import StepNotActiveError, WorkflowStepNotFoundError
from contract_kernel.logging_config import get_logger
from contract_kernel.models.workflow_step import WorkflowStepModel
from contract_kernel.services.base import BaseService

logger = get_logger("services.workflow_step_store")

_UPDATABLE_FIELDS = frozenset({"status", "assigned_to", "completed_at", "notes"})


class WorkflowStepStore(Protocol):
    """Persistence collaborator for workflow steps."""

    def list_by_contract(self, contract_id: UUID) -> list[WorkflowStep]: ...

    def update_step(
        self,
        contract_id: UUID,
        step_order: int,
        fields: Mapping[str, Any],
        expected_status: StepStatus | None = None,
    ) -> WorkflowStep: ...

    def create_steps(
        self,
        contract_id: UUID,
        templates: Iterable[WorkflowStepTemplate],
    ) -> list[WorkflowStep]: ...


class SqlAlchemyWorkflowStepStore(BaseService[WorkflowStepModel]):
    """WorkflowStepStore backed by the ``contract_workflow_steps`` table."""

    def _select_step(self, contract_id: UUID, step_order: int) -> WorkflowStepModel | None:
        stmt = (
            select(WorkflowStepModel)
            .where(
                WorkflowStepModel.contract_id == contract_id,
                WorkflowStepModel.step_order == step_order,
            )
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).one_or_none()

    def list_by_contract(self, contract_id: UUID) -> list[WorkflowStep]:
        stmt = (
            select(WorkflowStepModel)
            .where(WorkflowStepModel.contract_id == contract_id)
            .order_by(WorkflowStepModel.step_order)
            .execution_options(populate_existing=True)
        )
        with self._persistence("workflow_steps_list"):
            rows = self.session.scalars(stmt).all()
        return [row.to_dto() for row in rows]

    def get_step(self, contract_id: UUID, step_order: int) -> WorkflowStep:
        with self._persistence("workflow_step_get"):
            model = self._select_step(contract_id, step_order)
        if model is None:
            raise WorkflowStepNotFoundError(str(contract_id), step_order)
        return model.to_dto()

    def update_step(
        self,
        contract_id: UUID,
        step_order: int,
        fields: Mapping[str, Any],
        expected_status: StepStatus | None = None,
    ) -> WorkflowStep:
        """Write ``fields`` to one step, optionally only if it is still in ``expected_status``."""
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Workflow step fields not updatable: {sorted(unknown)}")

        values = {k: getattr(v, "value", v) for k, v in fields.items()}
        stmt = (
            update(WorkflowStepModel)
            .where(
                WorkflowStepModel.contract_id == contract_id,
                WorkflowStepModel.step_order == step_order,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if expected_status is not None:
            stmt = stmt.where(WorkflowStepModel.status == StepStatus(expected_status).value)

        with self._persistence("workflow_step_update"):
            result = self.session.execute(stmt)
            if result.rowcount == 0:
                if self._select_step(contract_id, step_order) is None:
                    raise WorkflowStepNotFoundError(str(contract_id), step_order)
                logger.warning(
                    "workflow_step_cas_miss",
                    extra={
                        "contract_id": str(contract_id),
                        "step_order": step_order,
                        "expected_status": getattr(expected_status, "value", expected_status),
                    },
                )
                raise StepNotActiveError(str(contract_id), step_order)
            model = self._select_step(contract_id, step_order)
        return model.to_dto()

    def create_steps(
        self,
        contract_id: UUID,
        templates: Iterable[WorkflowStepTemplate],
    ) -> list[WorkflowStep]:
        models = [
            WorkflowStepModel(
                contract_id=contract_id,
                step_order=order,
                step_name=template.name,
                status=StepStatus.PENDING.value,
            )
            for order, template in enumerate(templates, start=1)
        ]
        with self._persistence("workflow_steps_create"):
            self.session.add_all(models)
            self.session.flush()
        return [m.to_dto() for m in models]
