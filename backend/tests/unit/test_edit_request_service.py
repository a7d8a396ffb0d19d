"""
Tests for the defect edit-request workflow.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from prodtrack.exceptions import (
    AlreadyResolvedError,
    BusinessRuleError,
    InvalidStateError,
    PermissionDeniedError,
    StaleEditRequestError,
    ValidationError,
)
from prodtrack.models.notification import Notification
from prodtrack.models.defect import OperationDefect
from prodtrack.schemas.edit_request import (
    AddDefectRequest,
    DeleteDefectRequest,
    EditDefectRequest,
    EditRequestCreate,
)
from prodtrack.services.defect_recorder import record_defect
from prodtrack.services.edit_request_service import (
    create_edit_request,
    list_edit_requests,
    resolve_edit_request,
)
from prodtrack.services.operation_status import end_operation, start_operation

from tests.factories import (
    create_test_defect_type,
    create_test_production_order,
    get_operation,
)


@pytest.fixture
def finished_first_step(db, catalog, encoder_user):
    """OP10 completed with a 10-piece non-reworkable defect; OP20 running."""
    po = create_test_production_order(db, catalog, quantity=100)
    op10 = get_operation(po, "OP10")
    crack = create_test_defect_type(db, name="Crack")
    start_operation(db, catalog, op10.id, actor=encoder_user)
    defect = record_defect(db, catalog, op10.id, crack.id, 10, 0, 10, actor=encoder_user)
    end_operation(db, catalog, op10.id, actor=encoder_user)
    start_operation(db, catalog, get_operation(po, "OP20").id, actor=encoder_user)
    return po, op10, defect


class TestPayloads:

    @pytest.mark.unit
    def test_tagged_union_picks_variant(self):
        body = EditRequestCreate.model_validate(
            {"request_type": "delete", "operation_defect_id": 4, "reason": "duplicate entry"}
        )
        assert isinstance(body.root, DeleteDefectRequest)

    @pytest.mark.unit
    def test_requested_split_is_checked(self):
        with pytest.raises(PydanticValidationError):
            EditDefectRequest(
                operation_defect_id=1, requested_qty=5, requested_rework=1,
                requested_nogood=1, reason="wrong count",
            )


class TestCreateEditRequest:

    @pytest.mark.unit
    def test_edit_request_snapshots_current_values(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        po, op10, defect = finished_first_step
        payload = EditDefectRequest(
            operation_defect_id=defect.id, requested_qty=4, requested_nogood=4, reason="miscounted"
        )

        request = create_edit_request(db, catalog, payload, encoder_user)

        assert request.status == "pending"
        assert request.current_qty == 10
        assert request.current_nogood == 10
        assert request.requested_qty == 4
        assert request.defect_name == "Crack"
        assert request.production_order_id == po.id
        assert op10.output_quantity == 90
        notes = db.query(Notification).filter_by(user_id=admin_user.id).all()
        assert len(notes) == 1
        assert notes[0].type == "edit_request_created"

    @pytest.mark.unit
    def test_admins_edit_directly(self, db, catalog, admin_user, finished_first_step):
        _, _, defect = finished_first_step
        payload = DeleteDefectRequest(operation_defect_id=defect.id, reason="not needed")
        with pytest.raises(BusinessRuleError):
            create_edit_request(db, catalog, payload, admin_user)

    @pytest.mark.unit
    def test_operation_must_be_completed(self, db, catalog, encoder_user, finished_first_step):
        po, _, _ = finished_first_step
        scratch = create_test_defect_type(db, name="Scratch")
        payload = AddDefectRequest(
            operation_id=get_operation(po, "OP20").id, defect_type_id=scratch.id,
            requested_qty=2, requested_nogood=2, reason="late find",
        )
        with pytest.raises(InvalidStateError):
            create_edit_request(db, catalog, payload, encoder_user)

    @pytest.mark.unit
    def test_add_for_recorded_type_is_refused(self, db, catalog, encoder_user, finished_first_step):
        _, op10, defect = finished_first_step
        payload = AddDefectRequest(
            operation_id=op10.id, defect_type_id=defect.defect_type_id,
            requested_qty=2, requested_nogood=2, reason="again",
        )
        with pytest.raises(BusinessRuleError):
            create_edit_request(db, catalog, payload, encoder_user)


class TestResolveEditRequest:

    @pytest.mark.unit
    def test_approve_edit_applies_and_cascades(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        po, op10, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            EditDefectRequest(operation_defect_id=defect.id, requested_qty=4,
                              requested_nogood=4, reason="miscounted"),
            encoder_user,
        )

        resolved = resolve_edit_request(db, catalog, request.id, "approved", admin_user, note="ok")

        assert resolved.status == "approved"
        assert resolved.resolved_by_id == admin_user.id
        assert resolved.resolution_note == "ok"
        assert defect.quantity == 4
        assert op10.output_quantity == 96
        assert get_operation(po, "OP20").input_quantity == 96
        notes = db.query(Notification).filter_by(user_id=encoder_user.id).all()
        assert [n.type for n in notes] == ["edit_request_resolved"]

    @pytest.mark.unit
    def test_reject_changes_no_quantities(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        _, op10, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            DeleteDefectRequest(operation_defect_id=defect.id, reason="not a defect"),
            encoder_user,
        )

        resolved = resolve_edit_request(db, catalog, request.id, "rejected", admin_user, note="it is")

        assert resolved.status == "rejected"
        assert defect.quantity == 10
        assert op10.output_quantity == 90

    @pytest.mark.unit
    def test_second_resolution_is_refused(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        _, _, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            DeleteDefectRequest(operation_defect_id=defect.id, reason="not a defect"),
            encoder_user,
        )
        resolve_edit_request(db, catalog, request.id, "rejected", admin_user)

        with pytest.raises(AlreadyResolvedError):
            resolve_edit_request(db, catalog, request.id, "approved", admin_user)

    @pytest.mark.unit
    def test_stale_request_stays_pending(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        _, op10, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            EditDefectRequest(operation_defect_id=defect.id, requested_qty=4,
                              requested_nogood=4, reason="miscounted"),
            encoder_user,
        )
        # Admin corrects the defect directly in the meantime
        record_defect(db, catalog, op10.id, defect.defect_type_id, 7, 0, 7, actor=admin_user)

        with pytest.raises(StaleEditRequestError):
            resolve_edit_request(db, catalog, request.id, "approved", admin_user)

        assert request.status == "pending"
        assert defect.quantity == 7

    @pytest.mark.unit
    def test_approve_add_links_new_defect(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        _, op10, _ = finished_first_step
        scratch = create_test_defect_type(db, name="Scratch", reworkable=True)
        request = create_edit_request(
            db, catalog,
            AddDefectRequest(operation_id=op10.id, defect_type_id=scratch.id, requested_qty=6,
                             requested_rework=2, requested_nogood=4, reason="missed"),
            encoder_user,
        )

        resolved = resolve_edit_request(db, catalog, request.id, "approved", admin_user)

        added = db.get(OperationDefect, resolved.operation_defect_id)
        assert added.defect_name == "Scratch"
        assert op10.output_quantity == 100 - 10 - 4

    @pytest.mark.unit
    def test_approve_delete_keeps_history(
        self, db, catalog, encoder_user, admin_user, finished_first_step
    ):
        _, op10, defect = finished_first_step
        defect_id = defect.id
        request = create_edit_request(
            db, catalog,
            DeleteDefectRequest(operation_defect_id=defect_id, reason="not a defect"),
            encoder_user,
        )

        resolved = resolve_edit_request(db, catalog, request.id, "approved", admin_user)

        assert db.get(OperationDefect, defect_id) is None
        assert resolved.operation_defect_id is None
        assert resolved.current_qty == 10
        assert op10.output_quantity == 100

    @pytest.mark.unit
    def test_only_admins_resolve(self, db, catalog, encoder_user, other_encoder, finished_first_step):
        _, _, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            DeleteDefectRequest(operation_defect_id=defect.id, reason="not a defect"),
            encoder_user,
        )
        with pytest.raises(PermissionDeniedError):
            resolve_edit_request(db, catalog, request.id, "approved", other_encoder)

    @pytest.mark.unit
    def test_unknown_decision(self, db, catalog, encoder_user, admin_user, finished_first_step):
        _, _, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            DeleteDefectRequest(operation_defect_id=defect.id, reason="not a defect"),
            encoder_user,
        )
        with pytest.raises(ValidationError):
            resolve_edit_request(db, catalog, request.id, "maybe", admin_user)


class TestListEditRequests:

    @pytest.mark.unit
    def test_filters(self, db, catalog, encoder_user, admin_user, finished_first_step):
        _, _, defect = finished_first_step
        request = create_edit_request(
            db, catalog,
            DeleteDefectRequest(operation_defect_id=defect.id, reason="not a defect"),
            encoder_user,
        )

        assert list_edit_requests(db, status="pending") == [request]
        assert list_edit_requests(db, requested_by_id=admin_user.id) == []
        resolve_edit_request(db, catalog, request.id, "rejected", admin_user)
        assert list_edit_requests(db, status="pending") == []
