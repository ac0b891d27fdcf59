"""
Typed Exception Hierarchy for the Contract Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The presentation layer reacts differently to each failure class: a missing
permission becomes an actionable message, a stale transition triggers a
refetch, a persistence failure is retried once.  Parsing message strings
for that decision is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        engine.reject(contract_id, actor, reason)
    except ReasonRequiredError as e:
        show_field_error("reason", e.action)
    except StepNotActiveError:
        refetch_workflow(contract_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ContractKernelError:

    ContractKernelError (base)
    |
    +-- AuthorizationError
    |   +-- ForbiddenError
    |
    +-- WorkflowError
    |   +-- InvalidTransitionError
    |   +-- StepNotActiveError
    |   +-- ReasonRequiredError
    |   +-- WorkflowInvariantError
    |
    +-- NotFoundError
    |   +-- ContractNotFoundError
    |   +-- WorkflowStepNotFoundError
    |
    +-- ContractError
    |   +-- ContractValidationError
    |   +-- ProtectedFieldError
    |
    +-- PersistenceError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|--------------------------------------
Authorization   | FORBIDDEN                     | Role or ownership check failed
----------------|-------------------------------|--------------------------------------
Workflow        | INVALID_TRANSITION            | Action not valid for current status
                | STEP_NOT_ACTIVE               | No in_progress step / step moved on
                | REASON_REQUIRED               | Reject/return without a reason
                | WORKFLOW_INVARIANT_VIOLATION  | Contract status diverges from steps
----------------|-------------------------------|--------------------------------------
Not found       | CONTRACT_NOT_FOUND            | Contract ID doesn't exist
                | WORKFLOW_STEP_NOT_FOUND       | Step order doesn't exist
----------------|-------------------------------|--------------------------------------
Contract        | CONTRACT_VALIDATION_ERROR     | Field values rejected on create/edit
                | PROTECTED_FIELD               | Direct write to status/owner fields
----------------|-------------------------------|--------------------------------------
Persistence     | PERSISTENCE_ERROR             | Collaborator write failed
----------------|-------------------------------|--------------------------------------
Immutability    | IMMUTABILITY_VIOLATION        | Modifying an activity record

===============================================================================
HANDLING PATTERNS
===============================================================================

1. ForbiddenError and ReasonRequiredError are caller mistakes: surface the
   message to the user as-is.
2. InvalidTransitionError and StepNotActiveError indicate stale client
   state: refetch the workflow and re-render.
3. PersistenceError is retried at most once (WorkflowExecutor does this);
   a second failure is reported as a generic failure with no state change.
"""


class ContractKernelError(Exception):
    """
    Base exception for all contract kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "CONTRACT_KERNEL_ERROR"


# Authorization exceptions


class AuthorizationError(ContractKernelError):
    """Base exception for authorization failures."""

    code: str = "AUTHORIZATION_ERROR"


class ForbiddenError(AuthorizationError):
    """The actor's role or ownership does not permit the action."""

    code: str = "FORBIDDEN"

    def __init__(self, action: str, role: str, reason: str):
        self.action = action
        self.role = role
        self.reason = reason
        super().__init__(f"Role '{role}' may not {action}: {reason}")


# Workflow exceptions


class WorkflowError(ContractKernelError):
    """Base exception for workflow state machine errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidTransitionError(WorkflowError):
    """The action is not valid for the contract's current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, contract_id: str, action: str, current_status: str):
        self.contract_id = contract_id
        self.action = action
        self.current_status = current_status
        super().__init__(
            f"Cannot {action} contract {contract_id} "
            f"in status '{current_status}'"
        )


class StepNotActiveError(WorkflowError):
    """
    No workflow step is in progress, or the step moved on concurrently.

    Raised both when the contract has no in_progress step at all and when a
    compare-and-swap update finds the step already transitioned by another
    actor.
    """

    code: str = "STEP_NOT_ACTIVE"

    def __init__(self, contract_id: str, step_order: int | None = None):
        self.contract_id = contract_id
        self.step_order = step_order
        if step_order is None:
            message = f"Contract {contract_id} has no workflow step in progress"
        else:
            message = (
                f"Workflow step {step_order} of contract {contract_id} "
                "is no longer in progress"
            )
        super().__init__(message)


class ReasonRequiredError(WorkflowError):
    """Reject and return require a non-empty justification."""

    code: str = "REASON_REQUIRED"

    def __init__(self, action: str):
        self.action = action
        super().__init__(f"A reason is required to {action} a contract")


class WorkflowInvariantError(WorkflowError):
    """Contract status would diverge from the status implied by its steps."""

    code: str = "WORKFLOW_INVARIANT_VIOLATION"

    def __init__(self, contract_id: str, reason: str):
        self.contract_id = contract_id
        self.reason = reason
        super().__init__(
            f"Workflow invariant violated for contract {contract_id}: {reason}"
        )


# Not-found exceptions


class NotFoundError(ContractKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class ContractNotFoundError(NotFoundError):
    """Contract with given ID was not found."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class WorkflowStepNotFoundError(NotFoundError):
    """Workflow step with given order was not found on the contract."""

    code: str = "WORKFLOW_STEP_NOT_FOUND"

    def __init__(self, contract_id: str, step_order: int):
        self.contract_id = contract_id
        self.step_order = step_order
        super().__init__(
            f"Workflow step {step_order} not found on contract {contract_id}"
        )


# Contract data exceptions


class ContractError(ContractKernelError):
    """Base exception for contract record errors."""

    code: str = "CONTRACT_ERROR"


class ContractValidationError(ContractError):
    """Contract field values were rejected."""

    code: str = "CONTRACT_VALIDATION_ERROR"

    def __init__(self, field_errors: dict[str, str]):
        self.field_errors = field_errors
        details = "; ".join(f"{k}: {v}" for k, v in sorted(field_errors.items()))
        super().__init__(f"Invalid contract data: {details}")


class ProtectedFieldError(ContractError):
    """
    Attempted to write a field owned by the workflow engine.

    Contract status changes are routed exclusively through WorkflowEngine so
    that status and step state never diverge.
    """

    code: str = "PROTECTED_FIELD"

    def __init__(self, fields: tuple[str, ...]):
        self.fields = fields
        super().__init__(
            f"Fields cannot be edited directly: {', '.join(fields)}"
        )


# Persistence exceptions


class PersistenceError(ContractKernelError):
    """A collaborator read or write failed at the database layer."""

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(ContractKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
