"""
Defect edit-request workflow.

Encoders cannot touch defects on a completed operation. Instead they file
a request (add / edit / delete) that an admin approves or rejects:

    pending → approved | rejected

Approval applies the requested values through the defect recorder, so the
quantity cascade runs exactly as for a direct edit. The transition is a
conditional UPDATE on status = 'pending'; a second resolver gets
AlreadyResolvedError.
"""
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from prodtrack.exceptions import (
    AlreadyResolvedError,
    BusinessRuleError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    StaleEditRequestError,
    ValidationError,
)
from prodtrack.logging_config import get_logger
from prodtrack.models.defect import MasterDefect, OperationDefect
from prodtrack.models.edit_request import DefectEditRequest
from prodtrack.models.production_order import Operation
from prodtrack.models.user import User
from prodtrack.schemas.edit_request import (
    AddDefectRequest,
    DeleteDefectRequest,
    EditDefectRequest,
    EditRequestPayload,
)
from prodtrack.services import audit_service, event_service
from prodtrack.services.defect_recorder import delete_defect, record_defect, validate_defect_quantities
from prodtrack.services.operation_status import operation_state
from prodtrack.services.quantity_cascade import is_first_in_order
from prodtrack.services.step_catalog import StepCatalog

logger = get_logger(__name__)

APPROVED = "approved"
REJECTED = "rejected"


def _values(qty: int, rework: int, nogood: int, replacement: int) -> Dict[str, int]:
    return {"qty": qty, "rework": rework, "nogood": nogood, "replacement": replacement}


def _defect_values(defect: Optional[OperationDefect]) -> Optional[Dict[str, int]]:
    if defect is None:
        return None
    return _values(defect.quantity, defect.quantity_rework, defect.quantity_nogood, defect.quantity_replacement)


def _snapshot_values(request: DefectEditRequest) -> Dict[str, int]:
    return _values(
        request.current_qty, request.current_rework, request.current_nogood, request.current_replacement
    )


def get_edit_request(db: Session, request_id: int) -> DefectEditRequest:
    request = db.get(DefectEditRequest, request_id)
    if not request:
        raise NotFoundError("Edit request", request_id)
    return request


def _find_defect(db: Session, operation_id: int, defect_type_id: int) -> Optional[OperationDefect]:
    return (
        db.query(OperationDefect)
        .filter(
            OperationDefect.operation_id == operation_id,
            OperationDefect.defect_type_id == defect_type_id,
        )
        .first()
    )


def create_edit_request(
    db: Session,
    catalog: StepCatalog,
    payload: EditRequestPayload,
    requested_by: User,
) -> DefectEditRequest:
    """
    File an add / edit / delete request against a completed operation.

    Validations:
    - Requester is not an admin (admins edit directly)
    - Target operation is completed
    - Requested quantities satisfy the recorder's rules

    Side effects:
    - Notifies every active admin
    """
    if requested_by.is_admin:
        raise BusinessRuleError(
            "Admins can edit defects directly; edit requests are for restricted users",
            rule="admin_edit_request",
        )

    if isinstance(payload, AddDefectRequest):
        op = db.get(Operation, payload.operation_id)
        if not op:
            raise NotFoundError("Operation", payload.operation_id)
        defect_type = db.get(MasterDefect, payload.defect_type_id)
        if not defect_type:
            raise NotFoundError("Defect type", payload.defect_type_id)
        if _find_defect(db, op.id, defect_type.id):
            raise BusinessRuleError(
                f"Defect '{defect_type.name}' is already recorded on {op.step_code}; request an edit instead",
                rule="defect_already_recorded",
            )
        defect = None
        snapshot = {
            "defect_type_id": defect_type.id,
            "defect_name": defect_type.name,
            "defect_category": defect_type.category,
            "defect_reworkable": bool(defect_type.reworkable),
            "defect_machine": defect_type.machine,
        }
        current = _values(0, 0, 0, 0)
    else:
        defect = db.get(OperationDefect, payload.operation_defect_id)
        if not defect:
            raise NotFoundError("Operation defect", payload.operation_defect_id)
        op = defect.operation
        snapshot = {
            "defect_type_id": defect.defect_type_id,
            "defect_name": defect.defect_name,
            "defect_category": defect.defect_category,
            "defect_reworkable": bool(defect.defect_reworkable),
            "defect_machine": defect.defect_machine,
        }
        current = _defect_values(defect)

    if not op.is_completed:
        raise InvalidStateError(
            f"Operation {op.step_code} is not completed; record defects directly",
            current_state=operation_state(op),
            allowed_states=["completed"],
        )

    if isinstance(payload, DeleteDefectRequest):
        requested = _values(0, 0, 0, 0)
    else:
        requested = _values(
            payload.requested_qty, payload.requested_rework,
            payload.requested_nogood, payload.requested_replacement,
        )
        validate_defect_quantities(
            requested["qty"], requested["rework"], requested["nogood"], requested["replacement"],
            is_first_step=is_first_in_order(catalog, op),
        )

    request = DefectEditRequest(
        request_type=payload.request_type,
        status="pending",
        production_order_id=op.production_order_id,
        operation_id=op.id,
        operation_defect_id=defect.id if defect else None,
        current_qty=current["qty"],
        current_rework=current["rework"],
        current_nogood=current["nogood"],
        current_replacement=current["replacement"],
        requested_qty=requested["qty"],
        requested_rework=requested["rework"],
        requested_nogood=requested["nogood"],
        requested_replacement=requested["replacement"],
        reason=payload.reason,
        requested_by_id=requested_by.id,
        created_at=datetime.utcnow(),
        **snapshot,
    )
    db.add(request)
    db.flush()

    event_service.notify_edit_request_created(
        db, request, requested_by, op.production_order.po_number
    )
    db.flush()

    logger.info(
        "Edit request created",
        extra={
            "request_id": request.id,
            "request_type": request.request_type,
            "operation_id": op.id,
            "user_id": requested_by.id,
        },
    )
    return request


def _check_not_stale(db: Session, request: DefectEditRequest) -> None:
    """Approval must see the same defect values the requester saw."""
    if request.request_type == "add":
        existing = _find_defect(db, request.operation_id, request.defect_type_id)
        actual = _defect_values(existing)
    else:
        defect = db.get(OperationDefect, request.operation_defect_id) if request.operation_defect_id else None
        actual = _defect_values(defect)
        if actual is None:
            raise StaleEditRequestError(request.id, expected=_snapshot_values(request), actual=None)

    if actual is not None and actual != _snapshot_values(request):
        raise StaleEditRequestError(request.id, expected=_snapshot_values(request), actual=actual)


def _apply(db: Session, catalog: StepCatalog, request: DefectEditRequest, resolver: User) -> None:
    if request.request_type == "delete":
        delete_defect(db, catalog, request.operation_defect_id, actor=resolver, allow_completed=True)
        return

    defect = record_defect(
        db,
        catalog,
        request.operation_id,
        request.defect_type_id,
        request.requested_qty,
        request.requested_rework,
        request.requested_nogood,
        request.requested_replacement,
        actor=resolver,
        allow_completed=True,
    )
    if request.request_type == "add":
        request.operation_defect_id = defect.id


def resolve_edit_request(
    db: Session,
    catalog: StepCatalog,
    request_id: int,
    decision: str,
    resolved_by: User,
    note: Optional[str] = None,
) -> DefectEditRequest:
    """
    Approve or reject a pending request.

    Approval re-checks the defect against the values captured when the
    request was filed; a mismatch leaves the request pending and raises
    StaleEditRequestError.

    Raises:
        PermissionDeniedError, NotFoundError, AlreadyResolvedError,
        StaleEditRequestError, ValidationError
    """
    if not resolved_by.is_admin:
        raise PermissionDeniedError("Only admins can resolve edit requests", action="resolve_edit_request")
    if decision not in (APPROVED, REJECTED):
        raise ValidationError("Decision must be 'approved' or 'rejected'", field="decision", value=decision)

    request = get_edit_request(db, request_id)
    if not request.is_pending:
        raise AlreadyResolvedError(request.id, status=request.status)

    if decision == APPROVED:
        _check_not_stale(db, request)

    result = db.execute(
        update(DefectEditRequest)
        .where(DefectEditRequest.id == request_id, DefectEditRequest.status == "pending")
        .values(
            status=decision,
            resolved_by_id=resolved_by.id,
            resolved_at=datetime.utcnow(),
            resolution_note=note,
        )
        .execution_options(synchronize_session=False)
    )
    request = db.get(DefectEditRequest, request_id, populate_existing=True)
    if result.rowcount == 0:
        raise AlreadyResolvedError(request.id, status=request.status)

    if decision == APPROVED:
        _apply(db, catalog, request, resolved_by)

    audit_service.record_audit(
        db,
        table_name="defect_edit_requests",
        record_id=request.id,
        action="approve" if decision == APPROVED else "reject",
        user_id=resolved_by.id,
        old_values=_snapshot_values(request),
        new_values=_values(
            request.requested_qty, request.requested_rework,
            request.requested_nogood, request.requested_replacement,
        ),
    )
    event_service.notify_edit_request_resolved(db, request, resolved_by)
    db.flush()

    logger.info(
        "Edit request resolved",
        extra={"request_id": request.id, "decision": decision, "admin_id": resolved_by.id},
    )
    return request


def list_edit_requests(
    db: Session,
    status: Optional[str] = None,
    requested_by_id: Optional[int] = None,
    production_order_id: Optional[int] = None,
) -> List[DefectEditRequest]:
    query = db.query(DefectEditRequest)
    if status:
        query = query.filter(DefectEditRequest.status == status)
    if requested_by_id is not None:
        query = query.filter(DefectEditRequest.requested_by_id == requested_by_id)
    if production_order_id is not None:
        query = query.filter(DefectEditRequest.production_order_id == production_order_id)
    return query.order_by(DefectEditRequest.created_at.desc(), DefectEditRequest.id.desc()).all()
