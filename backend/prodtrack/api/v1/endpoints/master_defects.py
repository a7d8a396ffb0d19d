"""
Defect type catalog endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import get_current_admin_user, get_current_user, get_db
from prodtrack.db.session import unit_of_work
from prodtrack.models.user import User
from prodtrack.schemas.common import MessageResponse
from prodtrack.schemas.defect import MasterDefectCreate, MasterDefectResponse, MasterDefectUpdate
from prodtrack.services import defect_catalog

router = APIRouter()


@router.get("/", response_model=List[MasterDefectResponse])
def list_master_defects(
    active_only: bool = Query(True),
    step_code: Optional[str] = Query(None, description="Types usable on this step"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return defect_catalog.list_defect_types(db, active_only=active_only, step_code=step_code)


@router.post("/", response_model=MasterDefectResponse, status_code=201)
def create_master_defect(
    request: MasterDefectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    with unit_of_work(db):
        defect_type = defect_catalog.create_defect_type(db, **request.model_dump())
    db.refresh(defect_type)
    return defect_type


@router.patch("/{defect_type_id}", response_model=MasterDefectResponse)
def update_master_defect(
    defect_type_id: int,
    request: MasterDefectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Edit a defect type. Snapshots on recorded defects are unchanged."""
    with unit_of_work(db):
        defect_type = defect_catalog.update_defect_type(
            db, defect_type_id, **request.model_dump(exclude_unset=True)
        )
    db.refresh(defect_type)
    return defect_type


@router.post("/{defect_type_id}/deactivate", response_model=MasterDefectResponse)
def deactivate_master_defect(
    defect_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    with unit_of_work(db):
        defect_type = defect_catalog.deactivate_defect_type(db, defect_type_id, current_user)
    db.refresh(defect_type)
    return defect_type


@router.post("/{defect_type_id}/activate", response_model=MasterDefectResponse)
def activate_master_defect(
    defect_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    with unit_of_work(db):
        defect_type = defect_catalog.activate_defect_type(db, defect_type_id)
    db.refresh(defect_type)
    return defect_type


@router.delete("/{defect_type_id}", response_model=MessageResponse)
def delete_master_defect(
    defect_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Hard delete; 422 while recorded defects reference the type."""
    with unit_of_work(db):
        defect_catalog.delete_defect_type(db, defect_type_id)
    return {"message": "Defect type deleted"}
