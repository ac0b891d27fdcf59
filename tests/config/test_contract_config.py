"""
Tests for the YAML configuration layer (contract_config).

Covers:
- Loading and parsing the packaged default workflow
- Validator errors and warnings
- get_active_config: path resolution, environment overrides, rejection
  of invalid files
- Bridging into the kernel WorkflowDefinition
"""

from pathlib import Path

import pytest
import yaml

from contract_config import get_active_config, load_config, validate_config
from contract_config.bridges import build_workflow_definition
from contract_config.loader import compute_checksum, parse_config
from contract_config.schema import KNOWN_ROLES, KNOWN_STEP_KINDS, KNOWN_STEP_STATUSES
from contract_kernel.domain.roles import Role
from contract_kernel.domain.workflow import DEFAULT_WORKFLOW, ContractStatus, StepKind

DEFAULT_PATH = (
    Path(__file__).resolve().parents[2] / "contract_config" / "defaults" / "standard_workflow.yaml"
)


def _write(tmp_path, document) -> Path:
    path = tmp_path / "workflow.yaml"
    path.write_text(yaml.safe_dump(document, sort_keys=False))
    return path


def _document(**settings):
    return {
        "workflow": {
            "name": "two_step",
            "version": 2,
            "steps": [
                {"name": "Review", "kind": "review", "approver_roles": ["reviewer"]},
                {"name": "Sign-off", "kind": "approval", "approver_roles": "approval"},
            ],
        },
        "settings": settings or {"log_level": "debug"},
    }


# =========================================================================
# Loader
# =========================================================================


class TestLoader:

    def test_default_file(self):
        config = load_config(DEFAULT_PATH)

        assert config.workflow.name == "standard_contract_review"
        assert [s.name for s in config.workflow.steps] == [
            "Legal Review", "Management Approval", "Final Approval", "Contract Execution",
        ]
        assert config.workflow.steps[1].contract_status == "in_review"
        assert config.workflow.steps[3].approver_roles == ()
        assert config.settings.database_url == "sqlite://"
        assert config.source_path == str(DEFAULT_PATH)

    def test_parse_custom(self, tmp_path):
        config = load_config(_write(tmp_path, _document()))

        assert config.workflow.version == 2
        assert config.workflow.steps[1].approver_roles == ("approval",)
        assert config.settings.log_level == "DEBUG"

    def test_missing_workflow_section(self):
        with pytest.raises(KeyError):
            parse_config({"settings": {}})

    def test_steps_must_be_list(self):
        with pytest.raises(ValueError):
            parse_config({"workflow": {"steps": {"name": "Review"}}})

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_checksum_is_stable(self):
        assert compute_checksum({"b": 1, "a": 2}) == compute_checksum({"a": 2, "b": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})


# =========================================================================
# Validator
# =========================================================================


class TestValidator:

    def test_default_is_valid(self):
        result = validate_config(load_config(DEFAULT_PATH))
        assert result.is_valid, result.errors
        assert any("Contract Execution" in w for w in result.warnings)

    def test_collects_every_error(self):
        config = parse_config({
            "workflow": {
                "version": 0,
                "steps": [
                    {"name": "Review", "kind": "audit"},
                    {"name": "Review", "approver_roles": ["owner"]},
                    {"name": "Close", "contract_status": "signed"},
                ],
            },
            "settings": {"log_level": "chatty"},
        })
        result = validate_config(config)

        assert not result.is_valid
        joined = "\n".join(result.errors)
        assert "version" in joined
        assert "unknown kind 'audit'" in joined
        assert "duplicate step name 'Review'" in joined
        assert "unknown approver role 'owner'" in joined
        assert "contract_status" in joined
        assert "log_level" in joined

    def test_empty_workflow(self):
        result = validate_config(parse_config({"workflow": {"name": "empty"}}))
        assert result.errors == ["Workflow 'empty' defines no steps"]

    def test_vocabulary_matches_kernel(self):
        assert KNOWN_ROLES == {r.value for r in Role}
        assert KNOWN_STEP_KINDS == {k.value for k in StepKind}
        assert KNOWN_STEP_STATUSES == {
            ContractStatus.IN_REVIEW.value, ContractStatus.PENDING_APPROVAL.value,
        }


# =========================================================================
# get_active_config
# =========================================================================


class TestGetActiveConfig:

    def test_packaged_default(self):
        config = get_active_config(environ={})
        assert config.workflow.name == "standard_contract_review"

    def test_path_from_environment(self, tmp_path):
        path = _write(tmp_path, _document())
        config = get_active_config(environ={"CONTRACT_KERNEL_CONFIG": str(path)})
        assert config.workflow.name == "two_step"

    def test_environment_overrides(self, tmp_path):
        config = get_active_config(
            _write(tmp_path, _document()),
            environ={
                "DATABASE_URL": "postgresql://contracts@db/contracts",
                "CONTRACT_KERNEL_LOG_LEVEL": "warning",
            },
        )
        assert config.settings.database_url == "postgresql://contracts@db/contracts"
        assert config.settings.log_level == "WARNING"

    def test_invalid_config_rejected(self, tmp_path):
        document = _document()
        document["workflow"]["steps"][0]["kind"] = "audit"
        with pytest.raises(ValueError, match="unknown kind"):
            get_active_config(_write(tmp_path, document), environ={})

    def test_invalid_override_rejected(self):
        with pytest.raises(ValueError, match="log_level"):
            get_active_config(environ={"CONTRACT_KERNEL_LOG_LEVEL": "loud"})

    def test_trace_logged(self, captured_logs):
        get_active_config(environ={})
        traces = [r for r in captured_logs() if r["message"] == "CONTRACT_CONFIG_TRACE"]
        assert traces[0]["workflow_name"] == "standard_contract_review"
        assert traces[0]["step_count"] == 4


# =========================================================================
# Bridge
# =========================================================================


class TestBridge:

    def test_default_matches_builtin_workflow(self):
        assert build_workflow_definition(load_config(DEFAULT_PATH)) == DEFAULT_WORKFLOW

    def test_custom_workflow(self, tmp_path):
        definition = build_workflow_definition(load_config(_write(tmp_path, _document())))

        assert definition.step_count == 2
        assert definition.steps[1].kind == StepKind.APPROVAL
        assert definition.steps[1].approver_roles == (Role.APPROVAL,)
        assert definition.steps[1].active_status == ContractStatus.PENDING_APPROVAL
