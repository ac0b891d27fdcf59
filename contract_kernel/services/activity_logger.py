"""
contract_kernel.services.activity_logger -- Best-effort activity trail writer.

Responsibility:
    Append one immutable activity row per contract change.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Each append runs in its own SAVEPOINT.  A failed append is rolled
      back on its own and never fails or poisons the parent operation.

Failure modes:
    - Returns None (and logs ``activity_append_failed``) on any database
      error.  Never raises for persistence failures.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contract_kernel.domain.clock import Clock, SystemClock
from contract_kernel.domain.dtos import Activity
from contract_kernel.logging_config import get_logger
from contract_kernel.models.activity import ActivityModel
from contract_kernel.services.base import BaseService

logger = get_logger("services.activity_logger")


class ActivityLog(Protocol):
    """Activity trail collaborator."""

    def append(
        self,
        contract_id: UUID,
        activity_type: str,
        description: str,
        performed_by: UUID,
        previous_value: str | None = None,
        new_value: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Activity | None: ...


class ActivityLogger(BaseService[ActivityModel]):
    """Writes activity rows inside an isolated savepoint."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def append(
        self,
        contract_id: UUID,
        activity_type: str,
        description: str,
        performed_by: UUID,
        previous_value: str | None = None,
        new_value: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Activity | None:
        activity_type = getattr(activity_type, "value", activity_type)
        model = ActivityModel(
            contract_id=contract_id,
            activity_type=activity_type,
            description=description,
            previous_value=previous_value,
            new_value=new_value,
            metadata_=metadata,
            performed_by=performed_by,
            performed_at=self._clock.now(),
        )
        try:
            with self.session.begin_nested():
                self.session.add(model)
                self.session.flush()
        except SQLAlchemyError:
            logger.warning(
                "activity_append_failed",
                extra={
                    "contract_id": str(contract_id),
                    "activity_type": activity_type,
                },
                exc_info=True,
            )
            return None

        logger.debug(
            "activity_appended",
            extra={
                "contract_id": str(contract_id),
                "activity_type": activity_type,
                "activity_id": str(model.id),
            },
        )
        return model.to_dto()
