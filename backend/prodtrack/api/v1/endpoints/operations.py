"""
API endpoints for operation lifecycle and defect recording.

Mounted under /production-orders; operations are addressed by PO number
and step code.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import (
    check_edit_lock,
    get_current_encoder_user,
    get_current_user,
    get_db,
    get_step_catalog,
)
from prodtrack.db.session import unit_of_work
from prodtrack.models.production_order import Operation
from prodtrack.models.user import User
from prodtrack.schemas.defect import OperationDefectCreate, OperationDefectResponse
from prodtrack.schemas.operation import (
    OperationEndRequest,
    OperationResponse,
    OperationStartRequest,
)
from prodtrack.services.defect_recorder import list_operation_defects, record_defect
from prodtrack.services.operation_status import (
    end_operation,
    get_operation_by_step,
    list_operations,
    operation_state,
    start_operation,
)
from prodtrack.services.production_order_service import get_production_order
from prodtrack.services.quantity_cascade import effective_defects, replacement_total
from prodtrack.services.step_catalog import StepCatalog

router = APIRouter()


def build_operation_response(op: Operation, catalog: StepCatalog) -> OperationResponse:
    """Build response from operation model."""
    step_index = catalog.index_of(op.step_code) if op.step_code in catalog else None
    return OperationResponse(
        id=op.id,
        production_order_id=op.production_order_id,
        step_code=op.step_code,
        step_index=step_index,
        state=operation_state(op),
        operator_id=op.operator_id,
        line_no=op.line_no,
        start_time=op.start_time,
        end_time=op.end_time,
        production_hours=op.production_hours,
        man_hours=op.man_hours,
        resource_factor=op.resource_factor,
        input_quantity=op.input_quantity,
        output_quantity=op.output_quantity,
        effective_defects=effective_defects(op.defects),
        replacement_total=replacement_total(op.defects),
    )


@router.get(
    "/{po_number}/operations",
    response_model=List[OperationResponse],
    summary="List operations for a production order"
)
def get_operations(
    po_number: str,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_user),
):
    """Operations in chain order with derived state and defect totals."""
    po = get_production_order(db, po_number)
    return [build_operation_response(op, catalog) for op in list_operations(db, catalog, po.id)]


@router.post(
    "/{po_number}/operations/{step_code}/start",
    response_model=OperationResponse,
    summary="Start an operation"
)
def start_operation_endpoint(
    po_number: str,
    step_code: str,
    request: OperationStartRequest = OperationStartRequest(),
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    """
    Start an operation.

    The previous step must be completed. Input is inherited from the
    previous step's output (or the order quantity on the first step).
    """
    po = get_production_order(db, po_number)
    check_edit_lock(po, current_user)
    op = get_operation_by_step(db, po.id, step_code)

    with unit_of_work(db):
        op = start_operation(db, catalog, op.id, request.operator_id, actor=current_user)

    db.refresh(op)
    return build_operation_response(op, catalog)


@router.post(
    "/{po_number}/operations/{step_code}/end",
    response_model=OperationResponse,
    summary="End an operation"
)
def end_operation_endpoint(
    po_number: str,
    step_code: str,
    request: OperationEndRequest = OperationEndRequest(),
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    """
    End a running operation, or (admins) correct a completed one.

    Computes hours, runs the quantity cascade and advances (or completes)
    the order. line_no must be registered for the step.
    """
    po = get_production_order(db, po_number)
    check_edit_lock(po, current_user)
    op = get_operation_by_step(db, po.id, step_code)

    with unit_of_work(db):
        op = end_operation(
            db,
            catalog,
            op.id,
            request.resource_factor,
            actor=current_user,
            line_no=request.line_no,
            ended_at=request.ended_at,
        )

    db.refresh(op)
    return build_operation_response(op, catalog)


@router.get(
    "/{po_number}/operations/{step_code}/defects",
    response_model=List[OperationDefectResponse],
    summary="List defects recorded on an operation"
)
def get_operation_defects(
    po_number: str,
    step_code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    po = get_production_order(db, po_number)
    op = get_operation_by_step(db, po.id, step_code)
    return list_operation_defects(db, op.id)


@router.post(
    "/{po_number}/operations/{step_code}/defects",
    response_model=OperationDefectResponse,
    summary="Record a defect on an operation"
)
def record_operation_defect(
    po_number: str,
    step_code: str,
    request: OperationDefectCreate,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    """
    Create or overwrite the defect of one type on an operation.

    Completed operations need an admin; encoders file an edit request.
    """
    po = get_production_order(db, po_number)
    check_edit_lock(po, current_user)
    op = get_operation_by_step(db, po.id, step_code)

    with unit_of_work(db):
        defect = record_defect(
            db,
            catalog,
            op.id,
            request.defect_type_id,
            request.quantity,
            request.quantity_rework,
            request.quantity_nogood,
            request.quantity_replacement,
            actor=current_user,
        )

    db.refresh(defect)
    return defect
