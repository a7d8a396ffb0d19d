"""
Operation step definitions

The rows of operation_steps, ordered by step_order, form the processing
chain every production order walks through (OP10 -> OP15 -> ...).
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class OperationStep(Base):
    """A step in the production chain"""
    __tablename__ = "operation_steps"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, index=True)  # OP10, OP15, ...
    label = Column(String(100), nullable=True)
    step_order = Column(Integer, nullable=False, unique=True)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<OperationStep {self.code} #{self.step_order}>"
