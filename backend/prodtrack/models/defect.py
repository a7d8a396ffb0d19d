"""
Defect models

MasterDefect is the catalog of defect types; OperationDefect is one
observation of a defect type on an operation. The observation keeps a
snapshot of the catalog fields so later catalog edits never rewrite history.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class MasterDefect(Base):
    """Defect type in the catalog"""
    __tablename__ = "master_defects"
    __table_args__ = (
        UniqueConstraint('name', 'applicable_step_code', name='uq_master_defect_name_step'),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=True)
    applicable_step_code = Column(String(20), nullable=True, index=True)  # null = any step
    reworkable = Column(Boolean, default=False, nullable=False)
    machine = Column(String(100), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    deactivated_at = Column(DateTime(timezone=False), nullable=True)
    deactivated_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<MasterDefect {self.name} ({self.applicable_step_code or 'any'})>"


class OperationDefect(Base):
    """
    Defect quantities recorded on an operation.

    quantity_rework + quantity_nogood == quantity
    quantity_replacement <= quantity, and only on the first step
    """
    __tablename__ = "operation_defects"
    __table_args__ = (
        UniqueConstraint('operation_id', 'defect_type_id', name='uq_operation_defect_type'),
    )

    id = Column(Integer, primary_key=True, index=True)
    operation_id = Column(Integer, ForeignKey('operations.id', ondelete='CASCADE'),
                          nullable=False, index=True)
    defect_type_id = Column(Integer, ForeignKey('master_defects.id'), nullable=False, index=True)

    quantity = Column(Integer, default=0, nullable=False)
    quantity_rework = Column(Integer, default=0, nullable=False)
    quantity_nogood = Column(Integer, default=0, nullable=False)
    quantity_replacement = Column(Integer, default=0, nullable=False)

    # Snapshot of the catalog row at recording time
    defect_name = Column(String(100), nullable=False)
    defect_category = Column(String(50), nullable=True)
    defect_machine = Column(String(100), nullable=True)
    defect_reworkable = Column(Boolean, default=False, nullable=False)

    recorded_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    recorded_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)

    # Relationships
    operation = relationship("Operation", back_populates="defects")
    defect_type = relationship("MasterDefect")
    recorded_by = relationship("User", foreign_keys=[recorded_by_id])

    def __repr__(self):
        return f"<OperationDefect {self.defect_name} x{self.quantity} on op {self.operation_id}>"

    @property
    def effective_quantity(self) -> int:
        """Pieces lost to this defect: rework returns to the line when reworkable."""
        if self.defect_reworkable:
            return max(0, (self.quantity or 0) - (self.quantity_rework or 0))
        return self.quantity or 0
