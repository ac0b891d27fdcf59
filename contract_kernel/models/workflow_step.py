"""
Module: contract_kernel.models.workflow_step
Responsibility: ORM persistence for per-contract workflow steps.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion) only.

Invariants enforced:
    - UNIQUE(contract_id, step_order): step orders never repeat.
    - Partial unique index on contract_id WHERE status = 'in_progress':
      at most one step per contract is in progress, even if two writers
      race past the engine's checks.
    - status limited to pending/in_progress/completed/rejected/returned.

Failure modes:
    - IntegrityError on a second in_progress step for the same contract.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from contract_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from contract_kernel.domain.dtos import WorkflowStep as WorkflowStepDTO


class WorkflowStepModel(Base):
    """Persistent workflow step."""

    __tablename__ = "contract_workflow_steps"

    __table_args__ = (
        UniqueConstraint(
            "contract_id", "step_order",
            name="uq_workflow_steps_contract_order",
        ),
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', "
            "'rejected', 'returned')",
            name="ck_workflow_steps_valid_status",
        ),
        CheckConstraint("step_order >= 1", name="ck_workflow_steps_order_positive"),
        Index(
            "ix_workflow_steps_single_in_progress",
            "contract_id",
            unique=True,
            postgresql_where=text("status = 'in_progress'"),
            sqlite_where=text("status = 'in_progress'"),
        ),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
    )
    step_order: Mapped[int] = mapped_column(nullable=False)
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="pending")
    assigned_to: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<WorkflowStep {self.contract_id}#{self.step_order} "
            f"'{self.step_name}' status={self.status}>"
        )

    def to_dto(self) -> WorkflowStepDTO:
        """Convert ORM model to frozen domain DTO."""
        from contract_kernel.domain.dtos import WorkflowStep as WorkflowStepDTO
        from contract_kernel.domain.workflow import StepStatus

        return WorkflowStepDTO(
            id=self.id,
            contract_id=self.contract_id,
            step_order=self.step_order,
            step_name=self.step_name,
            status=StepStatus(self.status),
            assigned_to=self.assigned_to,
            completed_at=self.completed_at,
            notes=self.notes,
        )
