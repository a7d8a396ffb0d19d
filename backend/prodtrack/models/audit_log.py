"""
Audit log model

Append-only trail of quantity-affecting changes and forced lock releases.
old_values / new_values hold JSON text.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    table_name = Column(String(50), nullable=False, index=True)
    record_id = Column(Integer, nullable=True, index=True)
    # Action: create, update, delete, force_unlock, approve, reject
    action = Column(String(30), nullable=False)
    old_values = Column(Text, nullable=True)
    new_values = Column(Text, nullable=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    timestamp = Column(DateTime(timezone=False), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} {self.table_name}#{self.record_id}>"
