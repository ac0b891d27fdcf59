"""
contract_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the runtime way to obtain configuration through
    ``get_active_config()``: the workflow vocabulary (step names, kinds,
    approver roles) and runtime settings (database URL, log level).

Architecture position:
    Configuration -- YAML-driven.  Sits above ``contract_kernel`` and
    below ``contract_services``.  The kernel MUST NEVER import from
    ``contract_config``; ``bridges.py`` translates configuration into
    kernel types.

Invariants enforced:
    - The returned configuration has passed ``validate_config``.
    - Environment overrides (``DATABASE_URL``, ``CONTRACT_KERNEL_LOG_LEVEL``)
      are applied before validation.

Failure modes:
    - ``FileNotFoundError`` -- the configured path does not exist.
    - ``ValueError`` -- validation failed; the message lists every problem.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path

from contract_config.bridges import build_workflow_definition
from contract_config.loader import load_config
from contract_config.schema import ContractConfig, RuntimeSettings, WorkflowDef, WorkflowStepDef
from contract_config.validator import ConfigValidationResult, validate_config

_logger = logging.getLogger("contract_kernel.config")

CONFIG_PATH_ENV = "CONTRACT_KERNEL_CONFIG"
DATABASE_URL_ENV = "DATABASE_URL"
LOG_LEVEL_ENV = "CONTRACT_KERNEL_LOG_LEVEL"

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "standard_workflow.yaml"


def _apply_overrides(config: ContractConfig, environ: Mapping[str, str]) -> ContractConfig:
    settings = config.settings
    if environ.get(DATABASE_URL_ENV):
        settings = replace(settings, database_url=environ[DATABASE_URL_ENV])
    if environ.get(LOG_LEVEL_ENV):
        settings = replace(settings, log_level=environ[LOG_LEVEL_ENV].upper())
    if settings is config.settings:
        return config
    return replace(config, settings=settings)


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> ContractConfig:
    """Load, override and validate the active configuration.

    Args:
        path: Configuration file.  Defaults to ``$CONTRACT_KERNEL_CONFIG``,
            then the packaged ``defaults/standard_workflow.yaml``.
        environ: Environment mapping, ``os.environ`` by default.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    environ = os.environ if environ is None else environ
    config_path = Path(path or environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)

    config = _apply_overrides(load_config(config_path), environ)

    validation = validate_config(config)
    if not validation.is_valid:
        raise ValueError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in validation.errors)
        )
    for warning in validation.warnings:
        _logger.debug("config_warning", extra={"warning": warning})

    _logger.info(
        "CONTRACT_CONFIG_TRACE",
        extra={
            "trace_type": "CONTRACT_CONFIG_TRACE",
            "config_path": str(config_path),
            "workflow_name": config.workflow.name,
            "workflow_version": config.workflow.version,
            "step_count": len(config.workflow.steps),
            "checksum": config.checksum,
        },
    )
    return config


__all__ = [
    "ConfigValidationResult",
    "ContractConfig",
    "RuntimeSettings",
    "WorkflowDef",
    "WorkflowStepDef",
    "build_workflow_definition",
    "get_active_config",
    "load_config",
    "validate_config",
]
