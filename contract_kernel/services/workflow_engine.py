"""
WorkflowEngine -- the contract lifecycle state machine.

Responsibility:
    The single path through which contract status changes.  Each operation
    checks authorization against the permission table and the current
    step, plans the step and contract changes with the pure planner in
    ``contract_engines.workflow``, verifies the projected state, writes it
    through the repository and step store, and appends an activity.

Architecture position:
    Kernel > Services -- imperative shell around the pure planner.
    May import from domain/, models/, db/, selectors/ and contract_engines.

Invariants enforced:
    - Atomicity: each operation runs inside its own SAVEPOINT.  The step
      updates, the contract update and the activity append commit or roll
      back together; the outer transaction belongs to the caller.
    - Serialization: the contract row is locked (SELECT ... FOR UPDATE)
      and every step write is a compare-and-swap on the expected status.
    - Status consistency: the planned contract status must equal the
      status implied by the projected steps, and must be a lifecycle edge
      in ``CONTRACT_TRANSITIONS``; otherwise WorkflowInvariantError.
    - No ambient identity: every operation receives an explicit Actor.

Failure modes:
    - ContractNotFoundError, WorkflowStepNotFoundError.
    - ForbiddenError on role or ownership mismatch (no mutation).
    - InvalidTransitionError when the contract status does not allow the
      action (e.g. submit on a non-draft contract).
    - StepNotActiveError when no step is in progress, or a concurrent
      actor moved it first.
    - ReasonRequiredError for reject/return without a reason, checked
      before anything is read.
    - PersistenceError from collaborator writes.
    - Activity append failures are NOT errors: they surface as a warning
      on the WorkflowActionResult.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy.orm import Session

from contract_engines.authorization import (
    GuardResult,
    check_approve_step,
    check_assign,
    check_delete,
    check_reject_or_return,
    check_sign,
    check_submit,
    template_for_step,
)
from contract_engines.workflow import (
    TransitionPlan,
    available_actions as plan_available_actions,
    check_step_invariants,
    find_active_step,
    find_current_step,
    plan_approve,
    plan_reject,
    plan_return,
    plan_sign,
    plan_submit,
    status_matches_steps,
)
from contract_kernel.domain.clock import Clock, SystemClock
from contract_kernel.domain.dtos import (
    Activity,
    Actor,
    Contract,
    WorkflowActionResult,
    WorkflowStep,
    WorkflowView,
)
from contract_kernel.domain.workflow import (
    ASSIGNABLE_STEP_STATUSES,
    CONTRACT_TRANSITIONS,
    DEFAULT_WORKFLOW,
    TERMINAL_CONTRACT_STATUSES,
    ActivityType,
    ContractStatus,
    WorkflowAction,
    WorkflowDefinition,
)
from contract_kernel.exceptions import (
    ContractNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    ReasonRequiredError,
    StepNotActiveError,
    WorkflowInvariantError,
    WorkflowStepNotFoundError,
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

logger = get_logger("services.workflow_engine")

ACTIVITY_APPEND_WARNING = "activity log append failed"

# Log event emitted after each successful transition
_TRANSITION_EVENTS: dict[WorkflowAction, str] = {
    WorkflowAction.SUBMIT: "contract_submitted",
    WorkflowAction.APPROVE: "workflow_step_completed",
    WorkflowAction.REJECT: "contract_rejected",
    WorkflowAction.RETURN: "contract_returned",
    WorkflowAction.SIGN: "contract_signed",
}


class WorkflowEngine(BaseService[ContractModel]):
    """
    Contract workflow state machine.

    Contract:
        Every public mutation takes the contract id and an explicit Actor,
        flushes within a SAVEPOINT of the caller's transaction, and
        returns frozen DTOs.

    Non-goals:
        - Does NOT commit; the caller (WorkflowExecutor or session_scope)
          owns the transaction.
        - Does NOT resolve roles; callers pass an Actor.
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

    @property
    def definition(self) -> WorkflowDefinition:
        return self._definition

    # =====================================================================
    # Queries
    # =====================================================================

    def _require_contract(self, contract_id: UUID, for_update: bool = False) -> Contract:
        if for_update:
            contract = self._contracts.get_for_update(contract_id)
        else:
            contract = self._contracts.get(contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract

    def get_workflow(self, contract_id: UUID) -> WorkflowView:
        """Contract, its ordered steps and its current step."""
        contract = self._require_contract(contract_id)
        steps = tuple(self._steps.list_by_contract(contract_id))
        return WorkflowView(
            contract=contract,
            steps=steps,
            current_step=find_current_step(steps),
        )

    def available_actions(
        self,
        contract: Contract,
        steps: Sequence[WorkflowStep],
        actor: Actor,
    ) -> tuple[WorkflowAction, ...]:
        """Workflow actions ``actor`` may currently perform on ``contract``."""
        return plan_available_actions(contract, steps, actor, self._definition)

    # =====================================================================
    # Transitions
    # =====================================================================

    def submit(self, contract_id: UUID, actor: Actor) -> WorkflowActionResult:
        """Send a draft contract into the workflow at step 1."""
        with self.session.begin_nested():
            contract = self._require_contract(contract_id, for_update=True)
            if contract.status != ContractStatus.DRAFT:
                raise InvalidTransitionError(
                    str(contract_id), WorkflowAction.SUBMIT.value, contract.status.value,
                )
            self._authorize(WorkflowAction.SUBMIT, actor, check_submit(actor, contract))
            steps = self._steps.list_by_contract(contract_id)
            if not steps:
                raise WorkflowInvariantError(str(contract_id), "contract has no workflow steps")
            plan = plan_submit(contract, steps)
            return self._apply(contract, steps, plan, actor)

    def approve(
        self,
        contract_id: UUID,
        actor: Actor,
        notes: str | None = None,
    ) -> WorkflowActionResult:
        """Complete the in-progress step and advance, or finish the workflow."""
        with self.session.begin_nested():
            contract = self._require_contract(contract_id, for_update=True)
            steps = self._steps.list_by_contract(contract_id)
            active = find_active_step(steps)
            if active is None:
                raise StepNotActiveError(str(contract_id))
            template = template_for_step(self._definition, active)
            self._authorize(
                WorkflowAction.APPROVE, actor, check_approve_step(actor, active, template),
            )
            plan = plan_approve(
                contract, steps, self._definition, actor, notes, self._clock.now(),
            )
            return self._apply(contract, steps, plan, actor)

    def reject(self, contract_id: UUID, actor: Actor, reason: str) -> WorkflowActionResult:
        """Reject the in-progress step.  The contract is terminally rejected."""
        return self._stop(WorkflowAction.REJECT, contract_id, actor, reason)

    def return_for_changes(
        self,
        contract_id: UUID,
        actor: Actor,
        reason: str,
    ) -> WorkflowActionResult:
        """Send the contract back to draft; resubmission restarts at step 1."""
        return self._stop(WorkflowAction.RETURN, contract_id, actor, reason)

    def sign(self, contract_id: UUID, actor: Actor) -> WorkflowActionResult:
        """Mark an approved contract as signed."""
        with self.session.begin_nested():
            contract = self._require_contract(contract_id, for_update=True)
            if contract.status != ContractStatus.APPROVED:
                raise InvalidTransitionError(
                    str(contract_id), WorkflowAction.SIGN.value, contract.status.value,
                )
            self._authorize(WorkflowAction.SIGN, actor, check_sign(actor))
            steps = self._steps.list_by_contract(contract_id)
            plan = plan_sign(contract)
            return self._apply(contract, steps, plan, actor)

    def execute_action(
        self,
        contract_id: UUID,
        action: WorkflowAction | str,
        actor: Actor,
        notes: str | None = None,
    ) -> WorkflowActionResult:
        """Dispatch a workflow action by name.

        ``notes`` is the approval note for ``approve`` and the required
        reason for ``reject`` and ``return``; other actions ignore it.

        Raises:
            ValueError: If ``action`` is not a WorkflowAction.
        """
        action = WorkflowAction(action)
        if action == WorkflowAction.SUBMIT:
            return self.submit(contract_id, actor)
        if action == WorkflowAction.APPROVE:
            return self.approve(contract_id, actor, notes)
        if action == WorkflowAction.REJECT:
            return self.reject(contract_id, actor, notes or "")
        if action == WorkflowAction.RETURN:
            return self.return_for_changes(contract_id, actor, notes or "")
        return self.sign(contract_id, actor)

    # =====================================================================
    # Step assignment and deletion
    # =====================================================================

    def assign_step(
        self,
        contract_id: UUID,
        step_order: int,
        assignee: UUID,
        actor: Actor,
    ) -> WorkflowStep:
        """Assign a pending or in-progress step to a user."""
        with self.session.begin_nested():
            contract = self._require_contract(contract_id, for_update=True)
            self._authorize("assign", actor, check_assign(actor))
            step = next(
                (s for s in self._steps.list_by_contract(contract_id)
                 if s.step_order == step_order),
                None,
            )
            if step is None:
                raise WorkflowStepNotFoundError(str(contract_id), step_order)
            if (
                contract.status in TERMINAL_CONTRACT_STATUSES
                or step.status not in ASSIGNABLE_STEP_STATUSES
            ):
                raise InvalidTransitionError(str(contract_id), "assign", step.status.value)

            updated = self._steps.update_step(
                contract_id,
                step_order,
                {"assigned_to": assignee},
                expected_status=step.status,
            )
            self._activities.append(
                contract_id=contract_id,
                activity_type=ActivityType.ASSIGNED.value,
                description=f"Step {step_order} ({step.step_name}) assigned",
                performed_by=actor.user_id,
                previous_value=str(step.assigned_to) if step.assigned_to else None,
                new_value=str(assignee),
                metadata={"step_order": step_order, "step_name": step.step_name},
            )

        logger.info(
            "workflow_step_assigned",
            extra={
                "contract_id": str(contract_id),
                "step_order": step_order,
                "assignee": str(assignee),
                "actor_id": str(actor.user_id),
            },
        )
        return updated

    def delete(self, contract_id: UUID, actor: Actor) -> None:
        """Delete a contract together with its steps and activities."""
        with self.session.begin_nested():
            contract = self._require_contract(contract_id, for_update=True)
            self._authorize("delete", actor, check_delete(actor))
            self._contracts.delete(contract_id)

        logger.info(
            "contract_deleted",
            extra={
                "contract_id": str(contract_id),
                "status": contract.status.value,
                "actor_id": str(actor.user_id),
            },
        )

    # =====================================================================
    # Internals
    # =====================================================================

    def _stop(
        self,
        action: WorkflowAction,
        contract_id: UUID,
        actor: Actor,
        reason: str | None,
    ) -> WorkflowActionResult:
        if reason is None or not reason.strip():
            raise ReasonRequiredError(action.value)
        with self.session.begin_nested():
            contract = self._require_contract(contract_id, for_update=True)
            steps = self._steps.list_by_contract(contract_id)
            if find_active_step(steps) is None:
                raise StepNotActiveError(str(contract_id))
            self._authorize(action, actor, check_reject_or_return(actor))
            planner = plan_reject if action == WorkflowAction.REJECT else plan_return
            plan = planner(contract, steps, actor, reason, self._clock.now())
            return self._apply(contract, steps, plan, actor)

    def _authorize(
        self,
        action: WorkflowAction | str,
        actor: Actor,
        guard: GuardResult,
    ) -> None:
        if guard.allowed:
            return
        action_name = getattr(action, "value", action)
        logger.warning(
            "workflow_action_forbidden",
            extra={
                "action": action_name,
                "actor_id": str(actor.user_id),
                "actor_role": actor.role.value,
                "reason": guard.reason,
            },
        )
        raise ForbiddenError(action_name, actor.role.value, guard.reason)

    def _verify(
        self,
        contract: Contract,
        steps: Sequence[WorkflowStep],
        plan: TransitionPlan,
    ) -> None:
        """Reject plans whose projected state breaks a workflow invariant."""
        violations: list[str] = []
        if plan.to_status not in CONTRACT_TRANSITIONS[contract.status]:
            violations.append(
                f"{contract.status.value} -> {plan.to_status.value} "
                "is not a lifecycle transition"
            )
        projected = plan.projected_steps(steps)
        violations.extend(check_step_invariants(projected))
        if not status_matches_steps(plan.to_status, projected, self._definition):
            violations.append(
                f"status {plan.to_status.value} does not match the workflow steps"
            )
        if violations:
            logger.error(
                "workflow_invariant_violated",
                extra={
                    "contract_id": str(contract.id),
                    "action": plan.action.value,
                    "violations": violations,
                },
            )
            raise WorkflowInvariantError(str(contract.id), "; ".join(violations))

    def _apply(
        self,
        contract: Contract,
        steps: Sequence[WorkflowStep],
        plan: TransitionPlan,
        actor: Actor,
    ) -> WorkflowActionResult:
        """Verify and write a plan.  Runs inside the caller's savepoint."""
        self._verify(contract, steps, plan)

        for change in plan.step_changes:
            self._steps.update_step(
                contract.id,
                change.step_order,
                {"status": change.new_status, **change.fields},
                expected_status=change.expected_status,
            )
        updated = self._contracts.update(
            contract.id,
            {"status": plan.to_status, "updated_at": self._clock.now()},
        )
        activity: Activity | None = self._activities.append(
            contract_id=contract.id,
            activity_type=plan.activity_type.value,
            description=plan.description,
            performed_by=actor.user_id,
            previous_value=plan.from_status.value,
            new_value=plan.to_status.value,
            metadata=plan.metadata or None,
        )
        new_steps = tuple(self._steps.list_by_contract(contract.id))

        warnings: tuple[str, ...] = ()
        if activity is None:
            warnings = (ACTIVITY_APPEND_WARNING,)

        logger.info(
            _TRANSITION_EVENTS[plan.action],
            extra={
                "contract_id": str(contract.id),
                "action": plan.action.value,
                "from_status": plan.from_status.value,
                "to_status": plan.to_status.value,
                "actor_id": str(actor.user_id),
                "actor_role": actor.role.value,
            },
        )
        return WorkflowActionResult(
            action=plan.action,
            contract=updated,
            steps=new_steps,
            activity=activity,
            warnings=warnings,
        )
