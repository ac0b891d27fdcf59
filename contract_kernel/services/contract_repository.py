"""
contract_kernel.services.contract_repository -- Contract persistence collaborator.

Responsibility:
    Typed read/write/filter access to contract rows.  The workflow engine
    and the contract service depend on the ``ContractRepository`` protocol;
    ``SqlAlchemyContractRepository`` is the production implementation.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - ``get_for_update`` takes a row lock (SELECT ... FOR UPDATE) so that
      concurrent workflow actions on one contract serialize.
    - ``delete`` removes activities, steps and the contract row together,
      with bulk statements that bypass the activity immutability listeners.

Failure modes:
    - ContractNotFoundError from ``update`` when the row is gone.
    - PersistenceError wrapping any SQLAlchemy error.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol
from uuid import UUID

from sqlalchemy import delete, select

from contract_kernel.domain.dtos import Contract, ContractFilter
from contract_kernel.exceptions import ContractNotFoundError
from contract_kernel.logging_config import get_logger
from contract_kernel.models.activity import ActivityModel
from contract_kernel.models.contract import ContractModel
from contract_kernel.models.workflow_step import WorkflowStepModel
from contract_kernel.services.base import BaseService

logger = get_logger("services.contract_repository")


class ContractRepository(Protocol):
    """Persistence collaborator for contracts."""

    def get(self, contract_id: UUID) -> Contract | None: ...

    def get_for_update(self, contract_id: UUID) -> Contract | None: ...

    def add(self, contract: Contract) -> Contract: ...

    def update(self, contract_id: UUID, fields: Mapping[str, Any]) -> Contract: ...

    def delete(self, contract_id: UUID) -> bool: ...

    def list(
        self,
        contract_filter: ContractFilter | None = None,
        owner_id: UUID | None = None,
    ) -> list[Contract]: ...


def _column_value(value: Any) -> Any:
    # Enums are stored by value
    return getattr(value, "value", value)


class SqlAlchemyContractRepository(BaseService[ContractModel]):
    """ContractRepository backed by the ``contracts`` table."""

    def _load(self, contract_id: UUID, for_update: bool = False) -> ContractModel | None:
        stmt = (
            select(ContractModel)
            .where(ContractModel.id == contract_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.scalars(stmt).one_or_none()

    def get(self, contract_id: UUID) -> Contract | None:
        with self._persistence("contract_get"):
            model = self._load(contract_id)
        return model.to_dto() if model is not None else None

    def get_for_update(self, contract_id: UUID) -> Contract | None:
        with self._persistence("contract_lock"):
            model = self._load(contract_id, for_update=True)
        return model.to_dto() if model is not None else None

    def add(self, contract: Contract) -> Contract:
        model = ContractModel(
            id=contract.id,
            title=contract.title,
            contract_type=contract.contract_type,
            status=contract.status.value,
            priority=contract.priority.value,
            created_by=contract.created_by,
            assigned_to=contract.assigned_to,
            department_id=contract.department_id,
            unit_id=contract.unit_id,
            description=contract.description,
            start_date=contract.start_date,
            end_date=contract.end_date,
            value=contract.value,
        )
        if contract.created_at is not None:
            model.created_at = contract.created_at
        if contract.updated_at is not None:
            model.updated_at = contract.updated_at
        with self._persistence("contract_add"):
            self.session.add(model)
            self.session.flush()
            self.session.refresh(model)
        return model.to_dto()

    def update(self, contract_id: UUID, fields: Mapping[str, Any]) -> Contract:
        with self._persistence("contract_update"):
            model = self._load(contract_id)
            if model is None:
                raise ContractNotFoundError(str(contract_id))
            for name, value in fields.items():
                setattr(model, name, _column_value(value))
            self.session.flush()
        return model.to_dto()

    def delete(self, contract_id: UUID) -> bool:
        with self._persistence("contract_delete"):
            self.session.execute(
                delete(ActivityModel).where(ActivityModel.contract_id == contract_id),
                execution_options={"synchronize_session": False},
            )
            self.session.execute(
                delete(WorkflowStepModel).where(WorkflowStepModel.contract_id == contract_id),
                execution_options={"synchronize_session": False},
            )
            result = self.session.execute(
                delete(ContractModel).where(ContractModel.id == contract_id),
                execution_options={"synchronize_session": False},
            )
            # Drop stale instances from the identity map
            self.session.expire_all()
        return result.rowcount > 0

    def list(
        self,
        contract_filter: ContractFilter | None = None,
        owner_id: UUID | None = None,
    ) -> list[Contract]:
        """Contracts matching the filter, newest first.

        ``owner_id`` restricts the result to contracts created by that user.
        """
        stmt = select(ContractModel)
        if owner_id is not None:
            stmt = stmt.where(ContractModel.created_by == owner_id)
        f = contract_filter or ContractFilter()
        if f.status is not None:
            stmt = stmt.where(ContractModel.status == _column_value(f.status))
        if f.contract_type is not None:
            stmt = stmt.where(ContractModel.contract_type == f.contract_type)
        if f.department_id is not None:
            stmt = stmt.where(ContractModel.department_id == f.department_id)
        if f.priority is not None:
            stmt = stmt.where(ContractModel.priority == _column_value(f.priority))
        if f.created_by is not None:
            stmt = stmt.where(ContractModel.created_by == f.created_by)
        stmt = stmt.order_by(ContractModel.created_at.desc(), ContractModel.id.desc())

        with self._persistence("contract_list"):
            rows = self.session.scalars(stmt).all()
        return [row.to_dto() for row in rows]
