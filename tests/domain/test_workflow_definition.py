"""
Tests for workflow definition value objects.

Covers:
- DEFAULT_WORKFLOW shape: four ordered steps with their approver roles
- Status each step implies while in progress
- WorkflowDefinition validation (empty, duplicate names)
- Lifecycle transition table: terminal statuses have no exits
"""

import pytest

from contract_kernel.domain.roles import Role
from contract_kernel.domain.workflow import (
    CONTRACT_TRANSITIONS,
    DEFAULT_WORKFLOW,
    TERMINAL_CONTRACT_STATUSES,
    ContractStatus,
    StepKind,
    WorkflowDefinition,
    WorkflowStepTemplate,
)


class TestDefaultWorkflow:

    def test_step_names_in_order(self):
        assert [s.name for s in DEFAULT_WORKFLOW.steps] == [
            "Legal Review",
            "Management Approval",
            "Final Approval",
            "Contract Execution",
        ]

    def test_legal_review_approvers(self):
        legal = DEFAULT_WORKFLOW.template_for(1)
        assert legal.kind == StepKind.REVIEW
        assert set(legal.approver_roles) == {Role.REVIEWER, Role.ADMIN}

    def test_approval_steps_exclude_manager(self):
        for order in (2, 3):
            template = DEFAULT_WORKFLOW.template_for(order)
            assert Role.MANAGER not in template.approver_roles
            assert set(template.approver_roles) == {Role.APPROVAL, Role.ADMIN}

    def test_execution_step_has_no_declared_approvers(self):
        assert DEFAULT_WORKFLOW.template_for(4).approver_roles == ()

    def test_active_statuses(self):
        """Status while each later step is in progress."""
        assert DEFAULT_WORKFLOW.template_for(2).active_status == ContractStatus.IN_REVIEW
        assert DEFAULT_WORKFLOW.template_for(3).active_status == ContractStatus.PENDING_APPROVAL
        assert DEFAULT_WORKFLOW.template_for(4).active_status == ContractStatus.IN_REVIEW

    def test_lookup_out_of_range(self):
        assert DEFAULT_WORKFLOW.template_for(0) is None
        assert DEFAULT_WORKFLOW.template_for(5) is None
        assert DEFAULT_WORKFLOW.template_named("Nope") is None


class TestWorkflowDefinitionValidation:

    def test_empty_rejected(self):
        with pytest.raises(ValueError, match="at least one step"):
            WorkflowDefinition(name="empty", version=1, steps=())

    def test_duplicate_names_rejected(self):
        step = WorkflowStepTemplate(name="Review")
        with pytest.raises(ValueError, match="duplicate"):
            WorkflowDefinition(name="dup", version=1, steps=(step, step))

    def test_kind_default_status(self):
        template = WorkflowStepTemplate(name="Sign-off", kind=StepKind.APPROVAL)
        assert template.active_status == ContractStatus.PENDING_APPROVAL


class TestLifecycleTable:

    def test_every_status_listed(self):
        assert set(CONTRACT_TRANSITIONS) == set(ContractStatus)

    @pytest.mark.parametrize("status", sorted(TERMINAL_CONTRACT_STATUSES))
    def test_terminal_statuses_have_no_exit(self, status):
        assert CONTRACT_TRANSITIONS[status] == frozenset()

    def test_draft_only_enters_review(self):
        assert CONTRACT_TRANSITIONS[ContractStatus.DRAFT] == {ContractStatus.UNDER_REVIEW}

    def test_approved_only_signs(self):
        assert CONTRACT_TRANSITIONS[ContractStatus.APPROVED] == {ContractStatus.SIGNED}
