"""
Defect edit request model

Encoders cannot change defects on a completed operation directly; they file
a request that an admin approves or rejects. The request keeps both the
values it saw (current_*) and the values it wants (requested_*).
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class DefectEditRequest(Base):
    """
    Edit request for a defect on a completed operation.

    Lifecycle: pending → approved | rejected (both terminal)
    """
    __tablename__ = "defect_edit_requests"

    id = Column(Integer, primary_key=True, index=True)

    # Type: add, edit, delete
    request_type = Column(String(10), nullable=False)
    # Status: pending, approved, rejected
    status = Column(String(20), default='pending', nullable=False, index=True)

    production_order_id = Column(Integer, ForeignKey('production_orders.id', ondelete='CASCADE'),
                                 nullable=False, index=True)
    operation_id = Column(Integer, ForeignKey('operations.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    # Survives deletion of the defect row
    operation_defect_id = Column(Integer, ForeignKey('operation_defects.id', ondelete='SET NULL'),
                                 nullable=True, index=True)

    # Defect snapshot
    defect_type_id = Column(Integer, ForeignKey('master_defects.id'), nullable=True)
    defect_name = Column(String(100), nullable=True)
    defect_category = Column(String(50), nullable=True)
    defect_reworkable = Column(Boolean, default=False, nullable=False)
    defect_machine = Column(String(100), nullable=True)

    # Values when the request was filed (zeros for add)
    current_qty = Column(Integer, default=0, nullable=False)
    current_rework = Column(Integer, default=0, nullable=False)
    current_nogood = Column(Integer, default=0, nullable=False)
    current_replacement = Column(Integer, default=0, nullable=False)

    # Values to apply on approval (zeros for delete)
    requested_qty = Column(Integer, default=0, nullable=False)
    requested_rework = Column(Integer, default=0, nullable=False)
    requested_nogood = Column(Integer, default=0, nullable=False)
    requested_replacement = Column(Integer, default=0, nullable=False)

    reason = Column(Text, nullable=False)
    requested_by_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    resolved_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    resolution_note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=False), nullable=True)

    # Relationships
    production_order = relationship("ProductionOrder")
    operation = relationship("Operation")
    operation_defect = relationship("OperationDefect")
    requested_by = relationship("User", foreign_keys=[requested_by_id])
    resolved_by = relationship("User", foreign_keys=[resolved_by_id])

    def __repr__(self):
        return f"<DefectEditRequest {self.id} {self.request_type}: {self.status}>"

    @property
    def is_pending(self) -> bool:
        return self.status == 'pending'
