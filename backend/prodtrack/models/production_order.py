"""
Production Order model

A production order moves a quantity of pieces through every step of the
chain. Each step has exactly one Operation row carrying its quantities,
timing and recorded defects.
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class ProductionOrder(Base):
    """
    Production Order - the unit tracked through the step chain.

    Lifecycle: created → in_progress → completed
    completed is set when the final step's operation ends.
    """
    __tablename__ = "production_orders"

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(50), unique=True, nullable=False, index=True)

    # Pieces ordered; the first step's input
    quantity = Column(Integer, nullable=False)
    lot_number = Column(String(50), nullable=True)
    item_name = Column(String(200), nullable=True)

    # Status: created, in_progress, completed
    status = Column(String(20), default='created', nullable=False, index=True)
    current_step_code = Column(String(20), nullable=True)

    # Edit lock (all three null when unlocked)
    locked_by_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    locked_by_name = Column(String(200), nullable=True)
    locked_at = Column(DateTime(timezone=False), nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    operations = relationship("Operation", back_populates="production_order",
                              cascade="all, delete-orphan")
    locked_by = relationship("User", foreign_keys=[locked_by_id])

    def __repr__(self):
        return f"<ProductionOrder {self.po_number}: {self.status}>"

    @property
    def is_locked(self) -> bool:
        return self.locked_by_id is not None

    @property
    def is_completed(self) -> bool:
        return self.status == 'completed'


class Operation(Base):
    """
    One step of one production order.

    State is derived from the timestamps:
        no start_time            → not_started
        start_time, no end_time  → in_progress
        both                     → completed
    """
    __tablename__ = "operations"
    __table_args__ = (
        UniqueConstraint('production_order_id', 'step_code', name='uq_operation_order_step'),
    )

    id = Column(Integer, primary_key=True, index=True)
    production_order_id = Column(Integer, ForeignKey('production_orders.id', ondelete='CASCADE'),
                                 nullable=False, index=True)
    step_code = Column(String(20), ForeignKey('operation_steps.code'), nullable=False, index=True)

    operator_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    line_no = Column(String(20), nullable=True)

    start_time = Column(DateTime(timezone=False), nullable=True)
    end_time = Column(DateTime(timezone=False), nullable=True)

    # Quantities (pieces). output_quantity stays null until the step ends.
    input_quantity = Column(Integer, default=0, nullable=False)
    output_quantity = Column(Integer, nullable=True)

    # Operators working the step; scales man-hours
    resource_factor = Column(Integer, default=1, nullable=False)
    production_hours = Column(Numeric(10, 4), nullable=True)
    man_hours = Column(Numeric(10, 4), nullable=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=False), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    production_order = relationship("ProductionOrder", back_populates="operations")
    step = relationship("OperationStep")
    operator = relationship("User", foreign_keys=[operator_id])
    defects = relationship("OperationDefect", back_populates="operation",
                           cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Operation {self.step_code} of PO {self.production_order_id}>"

    @property
    def is_started(self) -> bool:
        return self.start_time is not None

    @property
    def is_completed(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_running(self) -> bool:
        return self.start_time is not None and self.end_time is None
