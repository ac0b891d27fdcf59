"""
Configuration Validator (``contract_config.validator``).

Responsibility
--------------
Validates a ``ContractConfig`` before it is bridged into the kernel.

Invariants enforced
-------------------
* At least one workflow step.
* Step names are non-empty and unique.
* Step kinds, approver roles and status overrides are known values.
* The log level is a standard logging level name.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be used.
* Validation warnings  -> usable, but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from contract_config.schema import (
    KNOWN_ROLES,
    KNOWN_STEP_KINDS,
    KNOWN_STEP_STATUSES,
    ContractConfig,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_config(config: ContractConfig) -> ConfigValidationResult:
    """Validate a parsed configuration; collects every problem."""
    result = ConfigValidationResult()
    workflow = config.workflow

    if not workflow.steps:
        result.add_error(f"Workflow '{workflow.name}' defines no steps")
    if workflow.version < 1:
        result.add_error(f"Workflow version must be >= 1, got {workflow.version}")

    seen: set[str] = set()
    for position, step in enumerate(workflow.steps, start=1):
        label = f"Step {position}"
        if not step.name:
            result.add_error(f"{label}: name must not be empty")
        elif step.name in seen:
            result.add_error(f"{label}: duplicate step name '{step.name}'")
        seen.add(step.name)

        if step.kind not in KNOWN_STEP_KINDS:
            result.add_error(
                f"{label} '{step.name}': unknown kind '{step.kind}' "
                f"(expected one of {sorted(KNOWN_STEP_KINDS)})"
            )
        for role in step.approver_roles:
            if role not in KNOWN_ROLES:
                result.add_error(f"{label} '{step.name}': unknown approver role '{role}'")
        if step.contract_status is not None and step.contract_status not in KNOWN_STEP_STATUSES:
            result.add_error(
                f"{label} '{step.name}': contract_status must be one of "
                f"{sorted(KNOWN_STEP_STATUSES)}, got '{step.contract_status}'"
            )
        if not step.approver_roles:
            result.add_warning(
                f"{label} '{step.name}': no approver_roles, "
                "any role with can_approve_contract may approve"
            )

    if config.settings.log_level not in _LOG_LEVELS:
        result.add_error(f"Unknown log_level '{config.settings.log_level}'")
    if not config.settings.database_url:
        result.add_error("settings.database_url must not be empty")

    return result
