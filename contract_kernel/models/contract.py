"""
Module: contract_kernel.models.contract
Responsibility: ORM persistence for contracts.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ (for DTO conversion) only.

Invariants enforced:
    - status and priority are limited to their enum values by CHECK
      constraints.
    - end_date >= start_date and value >= 0 when present.
    - status is written only by the workflow engine; the model does not
      police this, ContractService rejects status in edits.

Failure modes:
    - IntegrityError on CHECK violation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from contract_kernel.db.base import TimestampedBase, UUIDString

if TYPE_CHECKING:
    from contract_kernel.domain.dtos import Contract as ContractDTO


class ContractModel(TimestampedBase):
    """Persistent contract record."""

    __tablename__ = "contracts"

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'under_review', 'in_review', "
            "'pending_approval', 'approved', 'signed', 'rejected')",
            name="ck_contracts_valid_status",
        ),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')",
            name="ck_contracts_valid_priority",
        ),
        CheckConstraint(
            "end_date IS NULL OR start_date IS NULL OR end_date >= start_date",
            name="ck_contracts_date_order",
        ),
        CheckConstraint(
            "value IS NULL OR value >= 0",
            name="ck_contracts_value_non_negative",
        ),
        Index("ix_contracts_created_by", "created_by"),
        Index("ix_contracts_status", "status"),
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    contract_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="draft")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")
    created_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    assigned_to: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    department_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    unit_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_date: Mapped[date | None] = mapped_column(nullable=True)
    end_date: Mapped[date | None] = mapped_column(nullable=True)
    value: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Contract {self.id} '{self.title}' status={self.status}>"

    def to_dto(self) -> ContractDTO:
        """Convert ORM model to frozen domain DTO."""
        from contract_kernel.domain.dtos import Contract as ContractDTO
        from contract_kernel.domain.workflow import ContractStatus, Priority

        return ContractDTO(
            id=self.id,
            title=self.title,
            contract_type=self.contract_type,
            status=ContractStatus(self.status),
            created_by=self.created_by,
            priority=Priority(self.priority),
            assigned_to=self.assigned_to,
            department_id=self.department_id,
            unit_id=self.unit_id,
            description=self.description,
            start_date=self.start_date,
            end_date=self.end_date,
            value=self.value,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
