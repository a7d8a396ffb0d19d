"""
Audit trail endpoints (admin only)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import get_current_admin_user, get_db
from prodtrack.models.user import User
from prodtrack.schemas.audit_log import AuditLogResponse
from prodtrack.services import audit_service
from prodtrack.services.production_order_service import get_production_order

router = APIRouter()


@router.get("/", response_model=List[AuditLogResponse])
def list_audit_logs(
    table_name: Optional[str] = Query(None),
    record_id: Optional[int] = Query(None),
    po_number: Optional[str] = Query(None, description="Entries for this order and its operations, defects and edit requests"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin_user),
):
    production_order_id = None
    if po_number:
        production_order_id = get_production_order(db, po_number).id
    return audit_service.list_audit_entries(
        db,
        table_name=table_name,
        record_id=record_id,
        production_order_id=production_order_id,
        skip=skip,
        limit=limit,
    )
