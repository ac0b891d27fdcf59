"""
ContractConfig schema.

Defines the human-authored, reviewable configuration artifact: the
workflow vocabulary (step names, kinds, approver roles) and the runtime
settings.  YAML files are parsed into these types by the loader and
bridged into kernel types by ``contract_config.bridges``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# Vocabulary accepted by the validator.  Mirrors the kernel enums; the
# config layer does not import the kernel outside of bridges.py.
KNOWN_STEP_KINDS: frozenset[str] = frozenset({"review", "approval", "execution"})
KNOWN_ROLES: frozenset[str] = frozenset({"user", "reviewer", "approval", "manager", "admin"})
KNOWN_STEP_STATUSES: frozenset[str] = frozenset({"in_review", "pending_approval"})


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkflowStepDef:
    """One step of the configured workflow."""

    name: str
    kind: str = "review"
    approver_roles: tuple[str, ...] = ()
    contract_status: str | None = None  # overrides the status derived from kind


@dataclass(frozen=True)
class WorkflowDef:
    """The ordered step list contracts are created with."""

    name: str
    version: int = 1
    steps: tuple[WorkflowStepDef, ...] = ()


# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuntimeSettings:
    database_url: str = "sqlite://"
    log_level: str = "INFO"
    echo_sql: bool = False


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContractConfig:
    """A complete, parsed configuration file."""

    workflow: WorkflowDef
    settings: RuntimeSettings = field(default_factory=RuntimeSettings)
    source_path: str | None = None
    checksum: str = ""
