"""
Configuration Loader (``contract_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``contract_config.schema`` dataclasses.  The runtime entry point is
``contract_config.get_active_config()``; this module is its parsing
back end and is also used directly by tests.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on the kernel,
engines, or services.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Wrongly shaped sections  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from contract_config.schema import (
    ContractConfig,
    RuntimeSettings,
    WorkflowDef,
    WorkflowStepDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_step(data: dict[str, Any]) -> WorkflowStepDef:
    """Parse a ``WorkflowStepDef`` from a dict.  ``name`` is required."""
    if not isinstance(data, dict):
        raise ValueError(f"Workflow step must be a mapping, got {data!r}")
    roles = data.get("approver_roles") or ()
    if isinstance(roles, str):
        roles = (roles,)
    return WorkflowStepDef(
        name=str(data["name"]).strip(),
        kind=str(data.get("kind", "review")),
        approver_roles=tuple(str(r) for r in roles),
        contract_status=data.get("contract_status"),
    )


def parse_workflow(data: dict[str, Any]) -> WorkflowDef:
    """Parse the ``workflow:`` section."""
    steps = data.get("steps") or []
    if not isinstance(steps, list):
        raise ValueError("workflow.steps must be a list")
    return WorkflowDef(
        name=data.get("name", "standard_contract_review"),
        version=int(data.get("version", 1)),
        steps=tuple(parse_step(s) for s in steps),
    )


def parse_settings(data: dict[str, Any] | None) -> RuntimeSettings:
    """Parse the optional ``settings:`` section."""
    data = data or {}
    defaults = RuntimeSettings()
    return RuntimeSettings(
        database_url=str(data.get("database_url", defaults.database_url)),
        log_level=str(data.get("log_level", defaults.log_level)).upper(),
        echo_sql=bool(data.get("echo_sql", defaults.echo_sql)),
    )


def parse_config(data: dict[str, Any], source_path: str | None = None) -> ContractConfig:
    """Parse a whole configuration document."""
    if "workflow" not in data:
        raise KeyError("workflow")
    return ContractConfig(
        workflow=parse_workflow(data["workflow"] or {}),
        settings=parse_settings(data.get("settings")),
        source_path=source_path,
        checksum=compute_checksum(data),
    )


def load_config(path: Path | str) -> ContractConfig:
    """Load and parse the configuration file at ``path``."""
    path = Path(path)
    return parse_config(load_yaml_file(path), source_path=str(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
