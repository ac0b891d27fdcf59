"""
Module: contract_kernel.models.activity
Responsibility: ORM persistence for the contract activity trail.
Architecture position: Kernel > Models.  May import from db/base.py,
    domain/ (for DTO conversion) and exceptions only.

Invariants enforced:
    - Append-only: ORM UPDATE and DELETE of an activity raise
      ImmutabilityViolationError.
    - Removal happens only as part of contract deletion, through a bulk
      DELETE statement issued by the contract repository.

Failure modes:
    - ImmutabilityViolationError on ORM-level modification or deletion.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from contract_kernel.db.base import Base, UUIDString
from contract_kernel.exceptions import ImmutabilityViolationError

if TYPE_CHECKING:
    from contract_kernel.domain.dtos import Activity as ActivityDTO


class ActivityModel(Base):
    """Persistent activity record. Append-only."""

    __tablename__ = "contract_activities"

    __table_args__ = (
        Index("ix_contract_activities_contract_time", "contract_id", "performed_at"),
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id", ondelete="CASCADE"),
        nullable=False,
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    previous_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True,
    )
    performed_by: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    performed_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Activity {self.id} contract={self.contract_id} "
            f"type={self.activity_type}>"
        )

    def to_dto(self) -> ActivityDTO:
        """Convert ORM model to frozen domain DTO."""
        from contract_kernel.domain.dtos import Activity as ActivityDTO

        return ActivityDTO(
            id=self.id,
            contract_id=self.contract_id,
            activity_type=self.activity_type,
            description=self.description,
            performed_by=self.performed_by,
            performed_at=self.performed_at,
            previous_value=self.previous_value,
            new_value=self.new_value,
            metadata=self.metadata_,
        )


# =============================================================================
# ORM-Level Immutability (Append-Only)
# =============================================================================


@event.listens_for(ActivityModel, "before_update")
def prevent_activity_update(mapper, connection, target):
    """Prevent updates to activity records."""
    raise ImmutabilityViolationError(
        entity_type="Activity",
        entity_id=str(target.id),
        reason="Activities are immutable -- cannot modify",
    )


@event.listens_for(ActivityModel, "before_delete")
def prevent_activity_delete(mapper, connection, target):
    """Prevent deletion of individual activity records."""
    raise ImmutabilityViolationError(
        entity_type="Activity",
        entity_id=str(target.id),
        reason="Activities are immutable -- cannot delete",
    )
