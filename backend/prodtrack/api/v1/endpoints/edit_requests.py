"""
API endpoints for the defect edit-request workflow.

Encoders file requests against completed operations; admins resolve them.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import (
    get_current_admin_user,
    get_current_encoder_user,
    get_current_user,
    get_db,
    get_step_catalog,
)
from prodtrack.db.session import unit_of_work
from prodtrack.models.user import User
from prodtrack.schemas.edit_request import (
    EditRequestCreate,
    EditRequestResolve,
    EditRequestResponse,
)
from prodtrack.services.edit_request_service import (
    create_edit_request,
    list_edit_requests,
    resolve_edit_request,
)
from prodtrack.services.production_order_service import get_production_order
from prodtrack.services.step_catalog import StepCatalog

router = APIRouter()


@router.get("/", response_model=List[EditRequestResponse])
def get_edit_requests(
    status: Optional[str] = Query(None, description="pending, approved, rejected"),
    po_number: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List edit requests.

    Admins see every request; other users only their own.
    """
    order_id = get_production_order(db, po_number).id if po_number else None
    requested_by_id = None if current_user.is_admin else current_user.id
    return list_edit_requests(
        db, status=status, requested_by_id=requested_by_id, production_order_id=order_id
    )


@router.post("/", response_model=EditRequestResponse, status_code=201)
def file_edit_request(
    body: EditRequestCreate,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    with unit_of_work(db):
        request = create_edit_request(db, catalog, body.root, current_user)

    db.refresh(request)
    return request


@router.put("/{request_id}/resolve", response_model=EditRequestResponse)
def resolve_request(
    request_id: int,
    body: EditRequestResolve,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_admin_user),
):
    """Approve (apply the requested values) or reject a pending request."""
    with unit_of_work(db):
        request = resolve_edit_request(
            db, catalog, request_id, body.decision, current_user, note=body.note
        )

    db.refresh(request)
    return request
