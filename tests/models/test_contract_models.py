"""
Tests for the contract ORM models and their database-level guards.

Covers:
- Activity rows are append-only at the ORM level
- Partial unique index: one in-progress step per contract
- UNIQUE(contract_id, step_order)
- CHECK constraints on contract status, dates and value
- UTC round-trip of timestamps
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from contract_kernel.exceptions import ImmutabilityViolationError
from contract_kernel.models.activity import ActivityModel
from contract_kernel.models.contract import ContractModel
from contract_kernel.models.workflow_step import WorkflowStepModel


def _contract(session, **overrides) -> ContractModel:
    fields = {
        "title": "Lease",
        "contract_type": "lease",
        "created_by": uuid4(),
    }
    fields.update(overrides)
    model = ContractModel(**fields)
    session.add(model)
    session.flush()
    return model


def _activity(session, contract_id) -> ActivityModel:
    model = ActivityModel(
        contract_id=contract_id,
        activity_type="created",
        description="Contract created",
        performed_by=uuid4(),
        performed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    session.add(model)
    session.flush()
    return model


class TestActivityImmutability:
    """ORM-level append-only guard on contract_activities."""

    def test_update_rejected(self, session):
        contract = _contract(session)
        activity = _activity(session, contract.id)

        activity.description = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_rejected(self, session):
        contract = _contract(session)
        activity = _activity(session, contract.id)

        session.delete(activity)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_metadata_round_trip(self, session):
        contract = _contract(session)
        model = ActivityModel(
            contract_id=contract.id,
            activity_type="approved",
            description="Step 1 approved",
            performed_by=uuid4(),
            performed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            metadata_={"step_order": 1, "step_name": "Legal Review"},
        )
        session.add(model)
        session.flush()
        session.expire(model)

        assert model.to_dto().metadata == {"step_order": 1, "step_name": "Legal Review"}


class TestWorkflowStepConstraints:

    def _steps(self, session, contract_id, count=3):
        models = [
            WorkflowStepModel(
                contract_id=contract_id, step_order=order,
                step_name=f"Step {order}", status="pending",
            )
            for order in range(1, count + 1)
        ]
        session.add_all(models)
        session.flush()
        return models

    def test_single_in_progress_step(self, session):
        contract = _contract(session)
        self._steps(session, contract.id)

        session.execute(
            update(WorkflowStepModel)
            .where(WorkflowStepModel.contract_id == contract.id,
                   WorkflowStepModel.step_order == 1)
            .values(status="in_progress")
        )
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                session.execute(
                    update(WorkflowStepModel)
                    .where(WorkflowStepModel.contract_id == contract.id,
                           WorkflowStepModel.step_order == 2)
                    .values(status="in_progress")
                )

    def test_in_progress_allowed_on_different_contracts(self, session):
        first, second = _contract(session), _contract(session)
        for contract in (first, second):
            self._steps(session, contract.id, count=1)
            session.execute(
                update(WorkflowStepModel)
                .where(WorkflowStepModel.contract_id == contract.id)
                .values(status="in_progress")
            )

    def test_duplicate_step_order(self, session):
        contract = _contract(session)
        self._steps(session, contract.id, count=1)
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                session.add(WorkflowStepModel(
                    contract_id=contract.id, step_order=1,
                    step_name="Again", status="pending",
                ))
                session.flush()

    def test_invalid_status(self, session):
        contract = _contract(session)
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                session.add(WorkflowStepModel(
                    contract_id=contract.id, step_order=1,
                    step_name="Bad", status="skipped",
                ))
                session.flush()


class TestContractConstraints:

    def test_invalid_status(self, session):
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                _contract(session, status="archived")

    def test_end_before_start(self, session):
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                _contract(session, start_date=date(2024, 6, 1), end_date=date(2024, 1, 1))

    def test_negative_value(self, session):
        with pytest.raises(IntegrityError):
            with session.begin_nested():
                _contract(session, value=Decimal("-1"))

    def test_defaults_and_dto(self, session):
        model = _contract(session)
        session.refresh(model)
        dto = model.to_dto()

        assert dto.status.value == "draft"
        assert dto.priority.value == "medium"
        assert dto.created_at.tzinfo is not None
