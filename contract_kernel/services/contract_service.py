"""
ContractService -- contract creation, editing and visibility.

Responsibility:
    Create contracts together with their workflow steps, edit descriptive
    fields of draft contracts, and read contracts subject to the caller's
    visibility.  Status is never written here: the WorkflowEngine is the
    only status-mutation path.

Architecture position:
    Kernel > Services -- imperative shell.
    May import from domain/, models/, db/ and contract_engines.

Invariants enforced:
    - A contract and its N pending workflow steps are inserted in one
      SAVEPOINT; a failure leaves neither behind.
    - ``status``, ``created_by`` and ``id`` cannot be edited.
    - Edits are only accepted while the contract is ``draft``.
    - Roles without ``can_view_all_contracts`` only see their own contracts.

Failure modes:
    - ContractValidationError: blank title/type, end_date before
      start_date, negative value, unknown fields.
    - ProtectedFieldError: attempt to edit a workflow-owned field.
    - ForbiddenError: missing capability or ownership.
    - InvalidTransitionError: edit of a contract that left draft.
    - ContractNotFoundError.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from contract_engines.authorization import (
    can_view_contract,
    check_create,
    check_edit,
    permissions_for,
)
from contract_kernel.domain.clock import Clock, SystemClock
from contract_kernel.domain.dtos import Actor, Contract, ContractData, ContractFilter
from contract_kernel.domain.workflow import (
    DEFAULT_WORKFLOW,
    ActivityType,
    ContractStatus,
    Priority,
    WorkflowDefinition,
)
from contract_kernel.exceptions import (
    ContractNotFoundError,
    ContractValidationError,
    ForbiddenError,
    InvalidTransitionError,
    ProtectedFieldError,
)
from contract_kernel.logging_config import get_logger
from contract_kernel.models.contract import ContractModel
from contract_kernel.services.activity_logger import ActivityLog, ActivityLogger
from contract_kernel.services.base import BaseService
from contract_kernel.services.contract_repository import (
    ContractRepository,
    SqlAlchemyContractRepository,
)
from contract_kernel.services.workflow_step_store import (
    SqlAlchemyWorkflowStepStore,
    WorkflowStepStore,
)

logger = get_logger("services.contract")

PROTECTED_FIELDS: frozenset[str] = frozenset({"id", "status", "created_by"})

EDITABLE_FIELDS: frozenset[str] = frozenset({
    "title",
    "contract_type",
    "priority",
    "assigned_to",
    "department_id",
    "unit_id",
    "description",
    "start_date",
    "end_date",
    "value",
})


def validate_contract_fields(fields: Mapping[str, Any]) -> dict[str, str]:
    """Return field -> problem for every invalid value (empty if valid)."""
    errors: dict[str, str] = {}

    for name in ("title", "contract_type"):
        if name in fields:
            value = fields[name]
            if not isinstance(value, str) or not value.strip():
                errors[name] = "must not be blank"

    if "priority" in fields:
        try:
            Priority(fields["priority"])
        except ValueError:
            errors["priority"] = f"unknown priority '{fields['priority']}'"

    start, end = fields.get("start_date"), fields.get("end_date")
    for name, value in (("start_date", start), ("end_date", end)):
        if value is not None and not isinstance(value, date):
            errors[name] = "must be a date"
    if isinstance(start, date) and isinstance(end, date) and end < start:
        errors["end_date"] = "must not be before start_date"

    value = fields.get("value")
    if value is not None:
        try:
            if Decimal(str(value)) < 0:
                errors["value"] = "must not be negative"
        except InvalidOperation:
            errors["value"] = "must be a number"

    return errors


def days_to_expiry(contract: Contract, today: date) -> str:
    """Human-readable time left before ``end_date``.

    Returns ``"N/A"`` without an end date, ``"Expired"`` once it has
    passed, otherwise ``"<n> days"``.
    """
    if contract.end_date is None:
        return "N/A"
    remaining = (contract.end_date - today).days
    if remaining < 0:
        return "Expired"
    return f"{remaining} days"


class ContractService(BaseService[ContractModel]):
    """
    Service for creating, editing and reading contracts.

    Contract:
        Mutations flush inside a SAVEPOINT of the caller's transaction and
        return frozen ``Contract`` DTOs.

    Non-goals:
        - Does NOT change contract status (see WorkflowEngine).
        - Does NOT manage the transaction boundary.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        definition: WorkflowDefinition | None = None,
        contracts: ContractRepository | None = None,
        steps: WorkflowStepStore | None = None,
        activities: ActivityLog | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._definition = definition or DEFAULT_WORKFLOW
        self._contracts = contracts or SqlAlchemyContractRepository(session)
        self._steps = steps or SqlAlchemyWorkflowStepStore(session)
        self._activities = activities or ActivityLogger(session, self._clock)

    def _get(self, contract_id: UUID) -> Contract:
        contract = self._contracts.get(contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract

    def create_contract(self, data: ContractData, actor: Actor) -> Contract:
        """
        Create a draft contract and its workflow steps.

        Raises:
            ForbiddenError: If the actor's role cannot create contracts.
            ContractValidationError: If any field is invalid.
        """
        guard = check_create(actor)
        if not guard.allowed:
            raise ForbiddenError("create", actor.role.value, guard.reason)

        errors = validate_contract_fields({
            "title": data.title,
            "contract_type": data.contract_type,
            "priority": data.priority,
            "start_date": data.start_date,
            "end_date": data.end_date,
            "value": data.value,
        })
        if errors:
            raise ContractValidationError(errors)

        now = self._clock.now()
        draft = Contract(
            id=uuid4(),
            title=data.title.strip(),
            contract_type=data.contract_type.strip(),
            status=ContractStatus.DRAFT,
            created_by=actor.user_id,
            priority=Priority(data.priority),
            assigned_to=data.assigned_to,
            department_id=data.department_id,
            unit_id=data.unit_id,
            description=data.description,
            start_date=data.start_date,
            end_date=data.end_date,
            value=Decimal(str(data.value)) if data.value is not None else None,
            created_at=now,
            updated_at=now,
        )

        with self.session.begin_nested():
            contract = self._contracts.add(draft)
            steps = self._steps.create_steps(contract.id, self._definition.steps)
            self._activities.append(
                contract_id=contract.id,
                activity_type=ActivityType.CREATED.value,
                description="Contract created",
                performed_by=actor.user_id,
                new_value=ContractStatus.DRAFT.value,
                metadata={
                    "workflow": self._definition.name,
                    "workflow_version": self._definition.version,
                },
            )

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract.id),
                "contract_type": contract.contract_type,
                "created_by": str(actor.user_id),
                "step_count": len(steps),
            },
        )
        return contract

    def update_contract(
        self,
        contract_id: UUID,
        changes: Mapping[str, Any],
        actor: Actor,
    ) -> Contract:
        """
        Edit descriptive fields of a draft contract.

        Raises:
            ProtectedFieldError: If ``changes`` names status, created_by or id.
            ContractValidationError: On unknown fields or invalid values.
            ContractNotFoundError: If the contract does not exist.
            ForbiddenError: If the actor may not edit this contract.
            InvalidTransitionError: If the contract is not a draft.
        """
        protected = sorted(PROTECTED_FIELDS & set(changes))
        if protected:
            raise ProtectedFieldError(tuple(protected))
        unknown = sorted(set(changes) - EDITABLE_FIELDS)
        if unknown:
            raise ContractValidationError({name: "unknown field" for name in unknown})

        with self.session.begin_nested():
            contract = self._contracts.get_for_update(contract_id)
            if contract is None:
                raise ContractNotFoundError(str(contract_id))
            guard = check_edit(actor, contract)
            if not guard.allowed:
                raise ForbiddenError("update", actor.role.value, guard.reason)
            if contract.status != ContractStatus.DRAFT:
                raise InvalidTransitionError(
                    str(contract_id), "update", contract.status.value,
                )

            merged = {
                "title": contract.title,
                "contract_type": contract.contract_type,
                "start_date": contract.start_date,
                "end_date": contract.end_date,
                **changes,
            }
            errors = validate_contract_fields(merged)
            if errors:
                raise ContractValidationError(errors)

            changed = {
                name: value
                for name, value in changes.items()
                if getattr(contract, name) != value
            }
            if not changed:
                return contract

            if "priority" in changed:
                changed["priority"] = Priority(changed["priority"])
            if changed.get("value") is not None:
                changed["value"] = Decimal(str(changed["value"]))
            for name in ("title", "contract_type"):
                if name in changed:
                    changed[name] = changed[name].strip()

            updated = self._contracts.update(
                contract_id, {**changed, "updated_at": self._clock.now()},
            )
            self._activities.append(
                contract_id=contract_id,
                activity_type=ActivityType.UPDATED.value,
                description="Contract updated: " + ", ".join(sorted(changed)),
                performed_by=actor.user_id,
                metadata={"fields": sorted(changed)},
            )

        logger.info(
            "contract_updated",
            extra={
                "contract_id": str(contract_id),
                "fields": sorted(changed),
                "actor_id": str(actor.user_id),
            },
        )
        return updated

    def get_contract(self, contract_id: UUID, actor: Actor) -> Contract:
        """
        Get a contract the actor is allowed to see.

        Raises:
            ContractNotFoundError: If the contract does not exist.
            ForbiddenError: If the actor may not view it.
        """
        contract = self._get(contract_id)
        if not can_view_contract(actor, contract):
            raise ForbiddenError("view", actor.role.value, "not the creator of this contract")
        return contract

    def list_contracts(
        self,
        actor: Actor,
        contract_filter: ContractFilter | None = None,
    ) -> list[Contract]:
        """Contracts visible to ``actor`` matching ``contract_filter``, newest first."""
        owner_id = None
        if not permissions_for(actor).can_view_all_contracts:
            owner_id = actor.user_id
        return self._contracts.list(contract_filter, owner_id=owner_id)

    def days_to_expiry(self, contract: Contract, today: date | None = None) -> str:
        return days_to_expiry(contract, today or self._clock.today())
