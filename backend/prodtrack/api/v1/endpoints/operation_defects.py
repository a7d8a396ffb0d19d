"""
API endpoints for individual defect rows.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import check_edit_lock, get_current_encoder_user, get_db, get_step_catalog
from prodtrack.db.session import unit_of_work
from prodtrack.exceptions import NotFoundError
from prodtrack.models.defect import OperationDefect
from prodtrack.models.user import User
from prodtrack.schemas.common import MessageResponse
from prodtrack.services.defect_recorder import delete_defect
from prodtrack.services.step_catalog import StepCatalog

router = APIRouter()


@router.delete("/{operation_defect_id}", response_model=MessageResponse)
def delete_operation_defect(
    operation_defect_id: int,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    """Delete a defect and recompute downstream quantities."""
    defect = db.get(OperationDefect, operation_defect_id)
    if not defect:
        raise NotFoundError("Operation defect", operation_defect_id)
    check_edit_lock(defect.operation.production_order, current_user)

    with unit_of_work(db):
        delete_defect(db, catalog, operation_defect_id, actor=current_user)

    return {"message": "Defect deleted"}
