"""
Production lines registered per operation step

An operation can only be ended on a line registered for its step.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func

from prodtrack.db.base import Base


class OperationLine(Base):
    """A line (machine group) a step can run on"""
    __tablename__ = "operation_lines"
    __table_args__ = (
        UniqueConstraint('step_code', 'line_no', name='uq_operation_line_step_line'),
    )

    id = Column(Integer, primary_key=True, index=True)
    step_code = Column(String(20), ForeignKey('operation_steps.code', ondelete='CASCADE'),
                       nullable=False, index=True)
    line_no = Column(String(20), nullable=False)

    created_at = Column(DateTime(timezone=False), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<OperationLine {self.step_code}/{self.line_no}>"
