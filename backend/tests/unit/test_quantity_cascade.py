"""
Tests for the quantity cascade engine.
"""
import pytest

from prodtrack.models.defect import OperationDefect
from prodtrack.services.defect_recorder import record_defect
from prodtrack.services.operation_status import end_operation, start_operation
from prodtrack.services.quantity_cascade import (
    compute_output,
    effective_defects,
    recompute,
    replacement_total,
)
from prodtrack.services.production_order_service import update_order_quantity

from tests.factories import (
    create_test_defect_type,
    create_test_production_order,
    get_operation,
)


def _run_step(db, catalog, po, code, actor, defects=()):
    """Start a step, record (defect_type, qty, rework, replacement) tuples, end it."""
    op = get_operation(po, code)
    start_operation(db, catalog, op.id, actor=actor)
    for defect_type, qty, rework, replacement in defects:
        record_defect(
            db, catalog, op.id, defect_type.id, qty, rework, qty - rework, replacement, actor=actor
        )
    end_operation(db, catalog, op.id, actor=actor)
    return op


class TestDefectArithmetic:
    """Pure helpers over defect rows"""

    @pytest.mark.unit
    def test_reworkable_defect_counts_only_unreworked(self):
        defects = [
            OperationDefect(quantity=10, quantity_rework=4, quantity_nogood=6,
                            quantity_replacement=0, defect_reworkable=True),
        ]
        assert effective_defects(defects) == 6

    @pytest.mark.unit
    def test_non_reworkable_defect_counts_fully(self):
        defects = [
            OperationDefect(quantity=10, quantity_rework=4, quantity_nogood=6,
                            quantity_replacement=0, defect_reworkable=False),
        ]
        assert effective_defects(defects) == 10

    @pytest.mark.unit
    def test_output_adds_replacements(self):
        defects = [
            OperationDefect(quantity=5, quantity_rework=0, quantity_nogood=5,
                            quantity_replacement=5, defect_reworkable=False),
        ]
        assert replacement_total(defects) == 5
        assert compute_output(100, defects) == 100

    @pytest.mark.unit
    def test_output_is_clamped_at_zero(self):
        defects = [
            OperationDefect(quantity=30, quantity_rework=0, quantity_nogood=30,
                            quantity_replacement=0, defect_reworkable=False),
        ]
        assert compute_output(20, defects) == 0


class TestRecompute:

    @pytest.mark.unit
    def test_reworkable_defect_scenario(self, db, catalog, encoder_user):
        """Q=100, qty 10 rework 4 on the first step → output 94, next input 94."""
        po = create_test_production_order(db, catalog, quantity=100)
        scratch = create_test_defect_type(db, name="Scratch", reworkable=True)

        op10 = _run_step(db, catalog, po, "OP10", encoder_user, [(scratch, 10, 4, 0)])
        assert op10.output_quantity == 94

        op20 = get_operation(po, "OP20")
        start_operation(db, catalog, op20.id, actor=encoder_user)
        assert op20.input_quantity == 94

    @pytest.mark.unit
    def test_replacement_scenario(self, db, catalog, encoder_user):
        """Q=100, first step defect 5 with 5 replacements → output 100."""
        po = create_test_production_order(db, catalog, quantity=100)
        dent = create_test_defect_type(db, name="Dent")

        op10 = _run_step(db, catalog, po, "OP10", encoder_user, [(dent, 5, 0, 5)])
        assert op10.output_quantity == 100

    @pytest.mark.unit
    def test_conservation_across_chain(self, db, catalog, encoder_user):
        """Final output + all effective defects == order quantity."""
        po = create_test_production_order(db, catalog, quantity=200)
        scratch = create_test_defect_type(db, name="Scratch", reworkable=True)
        crack = create_test_defect_type(db, name="Crack")

        _run_step(db, catalog, po, "OP10", encoder_user, [(scratch, 12, 5, 0), (crack, 3, 0, 0)])
        _run_step(db, catalog, po, "OP20", encoder_user, [(crack, 8, 0, 0)])
        op30 = _run_step(db, catalog, po, "OP30", encoder_user, [(scratch, 6, 6, 0)])

        lost = sum(effective_defects(op.defects) for op in po.operations)
        assert op30.output_quantity + lost == 200
        assert op30.output_quantity == 200 - 7 - 3 - 8 - 0

    @pytest.mark.unit
    def test_recompute_is_idempotent(self, db, catalog, encoder_user):
        po = create_test_production_order(db, catalog, quantity=100)
        crack = create_test_defect_type(db, name="Crack")
        _run_step(db, catalog, po, "OP10", encoder_user, [(crack, 4, 0, 0)])
        _run_step(db, catalog, po, "OP20", encoder_user)

        first = recompute(db, catalog, po.id)
        snapshot = [(op.step_code, op.input_quantity, op.output_quantity) for op in po.operations]
        second = recompute(db, catalog, po.id)

        assert not first.changed
        assert not second.changed
        assert snapshot == [(op.step_code, op.input_quantity, op.output_quantity) for op in po.operations]

    @pytest.mark.unit
    def test_admin_defect_on_completed_step_propagates_to_started_step(
        self, db, catalog, encoder_user, admin_user
    ):
        po = create_test_production_order(db, catalog, quantity=100)
        crack = create_test_defect_type(db, name="Crack")
        op10 = _run_step(db, catalog, po, "OP10", encoder_user)
        op20 = get_operation(po, "OP20")
        start_operation(db, catalog, op20.id, actor=encoder_user)
        assert op20.input_quantity == 100

        record_defect(db, catalog, op10.id, crack.id, 7, 0, 7, actor=admin_user)

        assert op10.output_quantity == 93
        assert op20.input_quantity == 93
        assert op20.output_quantity is None

    @pytest.mark.unit
    def test_not_started_step_keeps_its_input(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog, quantity=100)
        crack = create_test_defect_type(db, name="Crack")
        op10 = _run_step(db, catalog, po, "OP10", encoder_user)

        result = recompute(db, catalog, po.id)
        record_defect(db, catalog, op10.id, crack.id, 10, 0, 10, actor=admin_user)

        assert not result.changed
        assert get_operation(po, "OP20").input_quantity == 0

    @pytest.mark.unit
    def test_quantity_decrease_clamps_outputs(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog, quantity=50)
        crack = create_test_defect_type(db, name="Crack")
        op10 = _run_step(db, catalog, po, "OP10", encoder_user, [(crack, 30, 0, 0)])
        assert op10.output_quantity == 20

        result = update_order_quantity(db, catalog, po.id, 10, actor=admin_user)

        assert op10.input_quantity == 10
        assert op10.output_quantity == 0
        assert [c.step_code for c in result.changes] == ["OP10"]

    @pytest.mark.unit
    def test_change_report_lists_old_and_new(self, db, catalog, encoder_user, admin_user):
        po = create_test_production_order(db, catalog, quantity=100)
        op10 = _run_step(db, catalog, po, "OP10", encoder_user)
        op20 = get_operation(po, "OP20")
        start_operation(db, catalog, op20.id, actor=encoder_user)

        result = update_order_quantity(db, catalog, po.id, 120, actor=admin_user)

        changes = {c.step_code: c for c in result.changes}
        assert changes["OP10"].old_input == 100
        assert changes["OP10"].new_output == 120
        assert changes["OP20"].old_input == 100
        assert changes["OP20"].new_input == 120
        assert op10.output_quantity == 120
