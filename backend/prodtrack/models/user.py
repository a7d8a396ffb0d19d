"""
User model

Users are provisioned by the external identity provider; ProdTrack only
needs the id, display name and role to attribute and authorize actions.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class User(Base):
    """Shop-floor user (admin, encoder, viewer)"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)

    # Role: admin (privileged), encoder (records production), viewer (read-only)
    role = Column(String(20), default='encoder', nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @property
    def can_encode(self) -> bool:
        return self.role in ('admin', 'encoder')
