"""
Event Service

Helpers that record notifications for the edit-request workflow.
Rows are added to the session only; the caller owns the transaction.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from prodtrack.exceptions import NotFoundError, PermissionDeniedError
from prodtrack.models.edit_request import DefectEditRequest
from prodtrack.models.notification import Notification
from prodtrack.models.user import User

EDIT_REQUEST_CREATED = "edit_request_created"
EDIT_REQUEST_RESOLVED = "edit_request_resolved"


def record_notification(
    db: Session,
    user_id: int,
    notification_type: str,
    title: str,
    message: Optional[str] = None,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
) -> Notification:
    """
    Record a notification for one user.

    Args:
        db: Database session
        user_id: Recipient
        notification_type: edit_request_created, edit_request_resolved, ...
        title: Short headline
        message: Body text (optional)
        source_type: Kind of record the notification points at
        source_id: ID of that record

    Returns:
        The created Notification instance
    """
    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        source_type=source_type,
        source_id=source_id,
        is_read=False,
        created_at=datetime.utcnow(),
    )
    db.add(notification)
    # Don't commit - let the calling function handle the transaction
    return notification


def notify_edit_request_created(
    db: Session,
    request: DefectEditRequest,
    requester: User,
    po_number: str,
) -> List[Notification]:
    """Notify every active admin that a request is waiting for review."""
    admins = db.query(User).filter(User.role == 'admin', User.is_active.is_(True)).all()
    title = f"Defect {request.request_type} request on {po_number}"
    message = (
        f"{requester.name} requested to {request.request_type} "
        f"'{request.defect_name or 'defect'}' on {po_number}: {request.reason}"
    )
    return [
        record_notification(
            db,
            user_id=admin.id,
            notification_type=EDIT_REQUEST_CREATED,
            title=title,
            message=message,
            source_type="defect_edit_request",
            source_id=request.id,
        )
        for admin in admins
    ]


def notify_edit_request_resolved(
    db: Session,
    request: DefectEditRequest,
    resolver: User,
) -> Notification:
    """Tell the requester how their request was resolved."""
    message = f"Your {request.request_type} request was {request.status} by {resolver.name}"
    if request.resolution_note:
        message += f": {request.resolution_note}"
    return record_notification(
        db,
        user_id=request.requested_by_id,
        notification_type=EDIT_REQUEST_RESOLVED,
        title=f"Defect edit request {request.status}",
        message=message,
        source_type="defect_edit_request",
        source_id=request.id,
    )


def list_notifications(db: Session, user_id: int, unread_only: bool = False) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()


def mark_notification_read(db: Session, notification_id: int, user_id: int) -> Notification:
    notification = db.get(Notification, notification_id)
    if not notification:
        raise NotFoundError("Notification", notification_id)
    if notification.user_id != user_id:
        raise PermissionDeniedError("Notification belongs to another user", resource="notification")
    notification.is_read = True
    db.flush()
    return notification
