"""
API endpoints for the production order edit lock.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import get_current_admin_user, get_current_encoder_user, get_current_user, get_db
from prodtrack.core.limiter import limiter
from prodtrack.db.session import unit_of_work
from prodtrack.models.user import User
from prodtrack.schemas.common import ErrorResponse, MessageResponse
from prodtrack.schemas.lock import ForceReleaseResponse, LockStatusResponse
from prodtrack.services.lock_service import (
    acquire_lock,
    force_release_lock,
    get_lock_status,
    release_lock,
)
from prodtrack.services.production_order_service import get_production_order

router = APIRouter()


@router.get("/{po_number}", response_model=LockStatusResponse)
def lock_status(
    po_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    po = get_production_order(db, po_number)
    return get_lock_status(db, po.id, current_user.id)


@router.post(
    "/{po_number}/acquire",
    response_model=LockStatusResponse,
    responses={423: {"model": ErrorResponse, "description": "Locked by another user"}},
)
@limiter.limit("60/minute")
def acquire(
    request: Request,
    po_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_encoder_user),
):
    """Take the edit lock; 423 when someone else holds it."""
    po = get_production_order(db, po_number)
    with unit_of_work(db):
        status = acquire_lock(db, po.id, current_user.id, current_user.name)
    return status


@router.post(
    "/{po_number}/release",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse, "description": "Lock held by another user"}},
)
def release(
    po_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    po = get_production_order(db, po_number)
    with unit_of_work(db):
        released = release_lock(db, po.id, current_user.id)
    return {"message": "Lock released" if released else "Order was not locked"}


@router.post("/{po_number}/force-release", response_model=ForceReleaseResponse)
def force_release(
    po_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Admin override for a lock left behind by another user."""
    po = get_production_order(db, po_number)
    with unit_of_work(db):
        previous = force_release_lock(db, po.id, current_user)

    if previous is None:
        return ForceReleaseResponse(message="No lock existed to release")
    return ForceReleaseResponse(
        message="Lock force-released",
        previous_owner_id=previous.owner_id,
        previous_owner_name=previous.owner_name,
    )
