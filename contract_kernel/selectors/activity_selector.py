"""
Module: contract_kernel.selectors.activity_selector
Responsibility: Read-only access to a contract's activity trail.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import func, select

from contract_kernel.domain.dtos import Activity
from contract_kernel.models.activity import ActivityModel
from contract_kernel.selectors.base import BaseSelector


class ActivitySelector(BaseSelector[ActivityModel]):
    """Queries over the append-only activity table."""

    def list_for_contract(self, contract_id: UUID, limit: int | None = None) -> list[Activity]:
        """Activities of a contract, newest first."""
        stmt = (
            select(ActivityModel)
            .where(ActivityModel.contract_id == contract_id)
            .order_by(ActivityModel.performed_at.desc(), ActivityModel.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [row.to_dto() for row in self.session.scalars(stmt)]

    def count_for_contract(self, contract_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(ActivityModel)
            .where(ActivityModel.contract_id == contract_id)
        )
        return self.session.scalar(stmt) or 0

    def latest(self, contract_id: UUID) -> Activity | None:
        """Most recent activity of a contract, if any."""
        rows = self.list_for_contract(contract_id, limit=1)
        return rows[0] if rows else None
