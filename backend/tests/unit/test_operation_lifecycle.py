"""
Tests for operation start/end transitions.
"""
from datetime import timedelta
from decimal import Decimal

import pytest

from prodtrack.exceptions import OrderViolationError, PermissionDeniedError, ValidationError
from prodtrack.models.operation_step import OperationStep
from prodtrack.services.audit_service import list_audit_entries
from prodtrack.services.operation_status import (
    COMPLETED,
    IN_PROGRESS,
    NOT_STARTED,
    end_operation,
    list_operations,
    operation_state,
    start_operation,
)

from prodtrack.services.step_catalog import load_step_catalog

from tests.factories import create_test_operation_line, create_test_production_order, get_operation


def _complete(db, catalog, po, code, actor):
    op = get_operation(po, code)
    start_operation(db, catalog, op.id, actor=actor)
    end_operation(db, catalog, op.id, actor=actor)
    return op


class TestStartOperation:

    @pytest.mark.unit
    def test_start_first_step(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog, quantity=40)
        op = get_operation(po, "OP10")

        start_operation(db, catalog, op.id, actor=encoder_user)

        assert operation_state(op) == IN_PROGRESS
        assert op.operator_id == encoder_user.id
        assert op.input_quantity == 40
        assert po.status == "in_progress"
        assert po.current_step_code == "OP10"

    @pytest.mark.unit
    def test_start_out_of_order_changes_nothing(self, db, catalog, encoder_user):
        """Starting OP20 while OP10 is still running is refused."""
        po = create_test_production_order(db, catalog, quantity=40)
        start_operation(db, catalog, get_operation(po, "OP10").id, actor=encoder_user)
        op20 = get_operation(po, "OP20")

        with pytest.raises(OrderViolationError):
            start_operation(db, catalog, op20.id, actor=encoder_user)

        assert operation_state(op20) == NOT_STARTED
        assert op20.input_quantity == 0
        assert po.current_step_code == "OP10"

    @pytest.mark.unit
    def test_start_twice(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        op = get_operation(po, "OP10")
        start_operation(db, catalog, op.id, actor=encoder_user)

        with pytest.raises(OrderViolationError):
            start_operation(db, catalog, op.id, actor=encoder_user)

    @pytest.mark.unit
    def test_explicit_operator(self, db, catalog, encoder_user, other_encoder):
        po = create_test_production_order(db, catalog)
        op = get_operation(po, "OP10")

        start_operation(db, catalog, op.id, other_encoder.id, actor=encoder_user)

        assert op.operator_id == other_encoder.id

    @pytest.mark.unit
    def test_completed_order_is_closed_to_encoders(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog)
        for code in ("OP10", "OP20", "OP30"):
            _complete(db, catalog, po, code, encoder_user)
        assert po.status == "completed"

        with pytest.raises(PermissionDeniedError):
            start_operation(db, catalog, get_operation(po, "OP10").id, actor=encoder_user)
        with pytest.raises(OrderViolationError):
            start_operation(db, catalog, get_operation(po, "OP10").id, actor=admin_user)


class TestEndOperation:

    @pytest.mark.unit
    def test_end_computes_hours(self, db, catalog, encoder_user):
        create_test_operation_line(db, "OP10", "L2")
        po = create_test_production_order(db, catalog, quantity=10)
        op = get_operation(po, "OP10")
        start_operation(db, catalog, op.id, actor=encoder_user)

        end_operation(
            db, catalog, op.id, 3,
            actor=encoder_user,
            line_no="L2",
            ended_at=op.start_time + timedelta(hours=1, minutes=30),
        )

        assert operation_state(op) == COMPLETED
        assert op.production_hours == Decimal("1.5000")
        assert op.man_hours == Decimal("4.5000")
        assert op.resource_factor == 3
        assert op.line_no == "L2"
        assert op.output_quantity == 10
        assert po.current_step_code == "OP20"

    @pytest.mark.unit
    def test_end_not_started(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        with pytest.raises(OrderViolationError):
            end_operation(db, catalog, get_operation(po, "OP10").id, actor=encoder_user)

    @pytest.mark.unit
    def test_encoder_cannot_end_twice(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        op = _complete(db, catalog, po, "OP10", encoder_user)
        with pytest.raises(PermissionDeniedError):
            end_operation(db, catalog, op.id, actor=encoder_user)

    @pytest.mark.unit
    def test_resource_factor_must_be_positive(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        op = get_operation(po, "OP10")
        start_operation(db, catalog, op.id, actor=encoder_user)

        with pytest.raises(ValidationError):
            end_operation(db, catalog, op.id, 0, actor=encoder_user)
        assert op.end_time is None

    @pytest.mark.unit
    def test_end_before_start(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        op = get_operation(po, "OP10")
        start_operation(db, catalog, op.id, actor=encoder_user)

        with pytest.raises(ValidationError):
            end_operation(
                db, catalog, op.id, actor=encoder_user,
                ended_at=op.start_time - timedelta(minutes=5),
            )

    @pytest.mark.unit
    def test_last_step_completes_order(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        _complete(db, catalog, po, "OP10", encoder_user)
        _complete(db, catalog, po, "OP20", encoder_user)
        assert po.status == "in_progress"

        _complete(db, catalog, po, "OP30", encoder_user)

        assert po.status == "completed"
        assert po.current_step_code == "OP30"


class TestListOperations:

    @pytest.mark.unit
    def test_chain_order(self, db, catalog):
        po = create_test_production_order(db, catalog)
        ops = list_operations(db, catalog, po.id)
        assert [op.step_code for op in ops] == ["OP10", "OP20", "OP30"]
        assert all(operation_state(op) == NOT_STARTED for op in ops)


class TestEndLine:

    @pytest.mark.unit
    def test_unregistered_line_rejected(self, db, catalog, encoder_user):
        create_test_operation_line(db, "OP20", "L9")
        po = create_test_production_order(db, catalog)
        op = get_operation(po, "OP10")
        start_operation(db, catalog, op.id, actor=encoder_user)

        with pytest.raises(ValidationError) as exc_info:
            end_operation(db, catalog, op.id, actor=encoder_user, line_no="L9")

        assert exc_info.value.details["field"] == "line_no"
        assert op.end_time is None
        assert op.line_no is None

    @pytest.mark.unit
    def test_end_without_line(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog)
        op = _complete(db, catalog, po, "OP10", encoder_user)
        assert op.line_no is None
        assert operation_state(op) == COMPLETED


class TestCorrectCompletedEnd:

    @pytest.mark.unit
    def test_admin_rewrites_end(self, db, catalog, encoder_user, admin_user):
        create_test_operation_line(db, "OP10", "L9")
        po = create_test_production_order(db, catalog, quantity=40)
        op = _complete(db, catalog, po, "OP10", encoder_user)
        new_end = op.start_time + timedelta(hours=2)

        end_operation(
            db, catalog, op.id, resource_factor=3,
            actor=admin_user, line_no="L9", ended_at=new_end,
        )

        assert op.end_time == new_end
        assert op.resource_factor == 3
        assert op.line_no == "L9"
        assert op.production_hours == Decimal("2.0000")
        assert op.man_hours == Decimal("6.0000")
        assert op.output_quantity == 40

    @pytest.mark.unit
    def test_correction_keeps_order_progress(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog, quantity=40)
        op10 = _complete(db, catalog, po, "OP10", encoder_user)
        _complete(db, catalog, po, "OP20", encoder_user)
        start_operation(db, catalog, get_operation(po, "OP30").id, actor=encoder_user)

        end_operation(db, catalog, op10.id, 2, actor=admin_user)

        assert po.status == "in_progress"
        assert po.current_step_code == "OP30"
        assert get_operation(po, "OP20").input_quantity == op10.output_quantity
        assert get_operation(po, "OP30").end_time is None

    @pytest.mark.unit
    def test_correction_is_audited(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog)
        op = _complete(db, catalog, po, "OP10", encoder_user)

        end_operation(db, catalog, op.id, 4, actor=admin_user)

        entries = list_audit_entries(db, table_name="operations", record_id=op.id)
        assert [e.action for e in entries] == ["update", "end"]
        assert '"resource_factor": 1' in entries[0].old_values
        assert '"resource_factor": 4' in entries[0].new_values

    @pytest.mark.unit
    def test_correction_not_before_start(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog)
        op = _complete(db, catalog, po, "OP10", encoder_user)
        original_end = op.end_time

        with pytest.raises(ValidationError):
            end_operation(
                db, catalog, op.id, actor=admin_user,
                ended_at=op.start_time - timedelta(minutes=1),
            )
        assert op.end_time == original_end

    @pytest.mark.unit
    def test_admin_cannot_end_unstarted(self, db, catalog, admin_user):
        po = create_test_production_order(db, catalog)
        with pytest.raises(OrderViolationError):
            end_operation(db, catalog, get_operation(po, "OP10").id, actor=admin_user)


class TestChainFromOrder:
    """An order walks its own operations even after the step list changes."""

    @staticmethod
    def _insert_step(db, code, step_order):
        db.add(OperationStep(code=code, label=f"Step {code}", step_order=step_order))
        db.flush()
        return load_step_catalog(db)

    @pytest.mark.unit
    def test_step_added_mid_order(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog, quantity=25)
        _complete(db, catalog, po, "OP10", encoder_user)
        assert po.current_step_code == "OP20"

        grown = self._insert_step(db, "OP15", 15)
        op20 = get_operation(po, "OP20")
        start_operation(db, grown, op20.id, actor=encoder_user)

        assert op20.input_quantity == 25
        end_operation(db, grown, op20.id, actor=encoder_user)
        assert po.current_step_code == "OP30"

        _complete(db, grown, po, "OP30", encoder_user)
        assert po.status == "completed"
        assert get_operation(po, "OP30").output_quantity == 25

    @pytest.mark.unit
    def test_order_created_after_insert_uses_new_step(self, db, catalog, encoder_user):
        grown = self._insert_step(db, "OP15", 15)
        po = create_test_production_order(db, grown)
        _complete(db, grown, po, "OP10", encoder_user)

        with pytest.raises(OrderViolationError):
            start_operation(db, grown, get_operation(po, "OP20").id, actor=encoder_user)
        assert po.current_step_code == "OP15"

