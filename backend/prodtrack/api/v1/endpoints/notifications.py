"""
Notification endpoints for the current user
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import get_current_user, get_db
from prodtrack.db.session import unit_of_work
from prodtrack.models.user import User
from prodtrack.schemas.notification import NotificationResponse
from prodtrack.services.event_service import list_notifications, mark_notification_read

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
def get_notifications(
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return list_notifications(db, current_user.id, unread_only=unread_only)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
def read_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    with unit_of_work(db):
        notification = mark_notification_read(db, notification_id, current_user.id)
    db.refresh(notification)
    return notification
