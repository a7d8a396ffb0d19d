"""
Audit trail for quantity-affecting changes.

Values are stored as JSON text so the table stays schema-agnostic.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from prodtrack.models.audit_log import AuditLog
from prodtrack.models.defect import OperationDefect
from prodtrack.models.edit_request import DefectEditRequest
from prodtrack.models.production_order import Operation


def _dump(values: Optional[Dict[str, Any]]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps(values, default=str, sort_keys=True)


def record_audit(
    db: Session,
    table_name: str,
    record_id: Optional[int],
    action: str,
    user_id: Optional[int],
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    entry = AuditLog(
        table_name=table_name,
        record_id=record_id,
        action=action,
        old_values=_dump(old_values),
        new_values=_dump(new_values),
        user_id=user_id,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)
    # Don't commit - let the calling function handle the transaction
    return entry


def _production_order_filter(production_order_id: int):
    """Entries for the order row and the rows that currently belong to it."""
    operation_ids = select(Operation.id).where(Operation.production_order_id == production_order_id)
    defect_ids = (
        select(OperationDefect.id)
        .join(Operation, OperationDefect.operation_id == Operation.id)
        .where(Operation.production_order_id == production_order_id)
    )
    request_ids = select(DefectEditRequest.id).where(
        DefectEditRequest.production_order_id == production_order_id
    )
    return or_(
        and_(AuditLog.table_name == "production_orders", AuditLog.record_id == production_order_id),
        and_(AuditLog.table_name == "operations", AuditLog.record_id.in_(operation_ids)),
        and_(AuditLog.table_name == "operation_defects", AuditLog.record_id.in_(defect_ids)),
        and_(AuditLog.table_name == "defect_edit_requests", AuditLog.record_id.in_(request_ids)),
    )


def list_audit_entries(
    db: Session,
    table_name: Optional[str] = None,
    record_id: Optional[int] = None,
    production_order_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[AuditLog]:
    """Newest first. Deleted defect rows no longer match an order filter."""
    query = db.query(AuditLog)
    if table_name:
        query = query.filter(AuditLog.table_name == table_name)
    if record_id is not None:
        query = query.filter(AuditLog.record_id == record_id)
    if production_order_id is not None:
        query = query.filter(_production_order_filter(production_order_id))
    return (
        query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
