"""
Operation line registry endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import get_current_admin_user, get_current_user, get_db
from prodtrack.db.session import unit_of_work
from prodtrack.models.user import User
from prodtrack.schemas.common import MessageResponse
from prodtrack.schemas.operation_line import OperationLineCreate, OperationLineResponse
from prodtrack.services import operation_lines

router = APIRouter()


@router.get("/", response_model=List[OperationLineResponse])
def list_operation_lines(
    step_code: Optional[str] = Query(None, description="Lines registered for this step"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return operation_lines.list_operation_lines(db, step_code)


@router.post("/", response_model=OperationLineResponse, status_code=201)
def create_operation_line(
    request: OperationLineCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    with unit_of_work(db):
        line = operation_lines.create_operation_line(db, request.step_code, request.line_no)
    db.refresh(line)
    return line


@router.delete("/{line_id}", response_model=MessageResponse)
def delete_operation_line(
    line_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    """Operations already ended on the line keep their line_no."""
    with unit_of_work(db):
        operation_lines.delete_operation_line(db, line_id)
    return {"message": "Operation line deleted"}
