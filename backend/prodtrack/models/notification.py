"""
Notification model

Rows are written when edit requests are created or resolved; delivery to
the user (UI badge, email) happens outside this service.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class Notification(Base):
    """Notification addressed to one user"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)

    # Type: edit_request_created, edit_request_resolved
    type = Column(String(50), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=True)

    # What the notification points at (e.g. "defect_edit_request", 12)
    source_type = Column(String(50), nullable=True)
    source_id = Column(Integer, nullable=True)

    is_read = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    user = relationship("User")

    def __repr__(self):
        return f"<Notification {self.type} → user {self.user_id}>"
