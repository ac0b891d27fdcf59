"""
contract_services.workflow_executor -- Workflow action execution.

Responsibility:
    The in-process entry point used by UI handlers.  Owns the transaction
    boundary of each workflow action, resolves the caller's role, invokes
    the WorkflowEngine, retries once on persistence failure, and emits a
    structured ``workflow_transition`` record for every attempt outcome.

Architecture position:
    Services layer.  May import from contract_engines/ (pure engines) and
    contract_kernel/ (domain, services, db).

Invariants enforced:
    - Thin coordinator: no status logic here; the engine decides.
    - One transaction per attempt: commit on success, rollback on any
      error.  A failed attempt leaves no partial state.
    - At most ``max_attempts`` attempts, and only PersistenceError is
      retried.  Caller mistakes (forbidden, missing reason) and stale
      state (invalid transition, step not active) are raised at once.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from contract_kernel.db.engine import session_scope
from contract_kernel.domain.clock import Clock, SystemClock
from contract_kernel.domain.dtos import WorkflowActionResult, WorkflowView
from contract_kernel.domain.workflow import (
    DEFAULT_WORKFLOW,
    WorkflowAction,
    WorkflowDefinition,
)
from contract_kernel.exceptions import (
    ContractKernelError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    ReasonRequiredError,
    StepNotActiveError,
    WorkflowInvariantError,
)
from contract_kernel.logging_config import LogContext, get_logger
from contract_kernel.services.role_resolver import RoleResolver
from contract_kernel.services.workflow_engine import WorkflowEngine

logger = get_logger("services.workflow_executor")

# Trace message and outcome codes for structured logging and traceability
TRACE_TYPE_WORKFLOW_TRANSITION = "WORKFLOW_TRANSITION"
OUTCOME_SUCCESS = "success"
OUTCOME_FORBIDDEN = "forbidden"
OUTCOME_INVALID_TRANSITION = "invalid_transition"
OUTCOME_STEP_NOT_ACTIVE = "step_not_active"
OUTCOME_REASON_REQUIRED = "reason_required"
OUTCOME_NOT_FOUND = "not_found"
OUTCOME_PERSISTENCE_ERROR = "persistence_error"
OUTCOME_INVARIANT_VIOLATION = "invariant_violation"
OUTCOME_ERROR = "error"

_OUTCOMES: tuple[tuple[type[ContractKernelError], str], ...] = (
    (ForbiddenError, OUTCOME_FORBIDDEN),
    (InvalidTransitionError, OUTCOME_INVALID_TRANSITION),
    (StepNotActiveError, OUTCOME_STEP_NOT_ACTIVE),
    (ReasonRequiredError, OUTCOME_REASON_REQUIRED),
    (NotFoundError, OUTCOME_NOT_FOUND),
    (PersistenceError, OUTCOME_PERSISTENCE_ERROR),
    (WorkflowInvariantError, OUTCOME_INVARIANT_VIOLATION),
)


def outcome_for(exc: ContractKernelError) -> str:
    """Trace outcome code for a kernel exception."""
    for exc_type, outcome in _OUTCOMES:
        if isinstance(exc, exc_type):
            return outcome
    return OUTCOME_ERROR


def _emit_workflow_trace(
    workflow_name: str,
    action: str,
    contract_id: UUID,
    outcome: str,
    reason: str,
    duration_ms: float,
    attempt: int,
    from_state: str | None = None,
    to_state: str | None = None,
    outcome_sink: Callable[[dict], None] | None = None,
) -> None:
    """Emit a structured workflow transition record for traceability."""
    record: dict[str, Any] = {
        "trace_type": TRACE_TYPE_WORKFLOW_TRANSITION,
        "ts": datetime.now(UTC).isoformat(),
        "workflow": workflow_name,
        "action": action,
        "entity_type": "contract",
        "entity_id": str(contract_id),
        "outcome": outcome,
        "reason": reason,
        "attempt": attempt,
        "duration_ms": round(duration_ms, 3),
    }
    if from_state is not None:
        record["from_state"] = from_state
    if to_state is not None:
        record["to_state"] = to_state
    record.update(LogContext.get_all())
    if outcome == OUTCOME_SUCCESS:
        logger.info("workflow_transition", extra=record)
    else:
        logger.warning("workflow_transition", extra=record)
    if outcome_sink is not None:
        outcome_sink({**record, "message": "workflow_transition"})


class WorkflowExecutor:
    """Runs workflow actions for a user id, one transaction per attempt.

    ``session_factory`` is any zero-argument callable returning a Session,
    typically ``contract_kernel.db.engine.get_session_factory()``.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        definition: WorkflowDefinition | None = None,
        max_attempts: int = 2,
        outcome_sink: Callable[[dict], None] | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._definition = definition or DEFAULT_WORKFLOW
        self._max_attempts = max_attempts
        self._outcome_sink = outcome_sink

    def _engine(self, session: Session) -> WorkflowEngine:
        return WorkflowEngine(session, clock=self._clock, definition=self._definition)

    def execute_action(
        self,
        contract_id: UUID,
        action: WorkflowAction | str,
        user_id: UUID,
        notes: str | None = None,
    ) -> WorkflowActionResult:
        """Resolve the user's role and apply ``action`` to the contract.

        Raises:
            ValueError: If ``action`` is not a WorkflowAction.
            ContractKernelError: Any engine failure; PersistenceError only
                after the retry was also exhausted.
        """
        action = WorkflowAction(action)
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())

        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(user_id),
            contract_id=str(contract_id),
            action=action.value,
        ):
            attempt = 0
            while True:
                attempt += 1
                t0 = time.monotonic()
                try:
                    result = self._attempt(contract_id, action, user_id, notes)
                except ContractKernelError as exc:
                    outcome = outcome_for(exc)
                    _emit_workflow_trace(
                        workflow_name=self._definition.name,
                        action=action.value,
                        contract_id=contract_id,
                        outcome=outcome,
                        reason=str(exc),
                        duration_ms=(time.monotonic() - t0) * 1000,
                        attempt=attempt,
                        outcome_sink=self._outcome_sink,
                    )
                    if isinstance(exc, PersistenceError) and attempt < self._max_attempts:
                        logger.warning(
                            "workflow_action_retry",
                            extra={"attempt": attempt, "operation": exc.operation},
                        )
                        continue
                    raise

                _emit_workflow_trace(
                    workflow_name=self._definition.name,
                    action=action.value,
                    contract_id=contract_id,
                    outcome=OUTCOME_SUCCESS,
                    reason="; ".join(result.warnings),
                    duration_ms=(time.monotonic() - t0) * 1000,
                    attempt=attempt,
                    from_state=result.activity.previous_value if result.activity else None,
                    to_state=result.contract.status.value,
                    outcome_sink=self._outcome_sink,
                )
                return result

    def _attempt(
        self,
        contract_id: UUID,
        action: WorkflowAction,
        user_id: UUID,
        notes: str | None,
    ) -> WorkflowActionResult:
        try:
            with session_scope(self._session_factory) as session:
                actor = RoleResolver(session).actor_for(user_id)
                return self._engine(session).execute_action(
                    contract_id, action, actor, notes,
                )
        except SQLAlchemyError as exc:
            # Raised by commit itself, after the engine succeeded
            raise PersistenceError("commit", str(exc).splitlines()[0]) from exc

    def get_workflow(self, contract_id: UUID) -> WorkflowView:
        """Read-only view of a contract's workflow."""
        with session_scope(self._session_factory) as session:
            return self._engine(session).get_workflow(contract_id)

    def available_actions(
        self,
        contract_id: UUID,
        user_id: UUID,
    ) -> tuple[WorkflowAction, ...]:
        """Actions ``user_id`` may currently perform on the contract."""
        with session_scope(self._session_factory) as session:
            actor = RoleResolver(session).actor_for(user_id)
            engine = self._engine(session)
            view = engine.get_workflow(contract_id)
            return engine.available_actions(view.contract, view.steps, actor)
