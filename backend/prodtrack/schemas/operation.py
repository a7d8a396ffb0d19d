"""
Schemas for operation lifecycle transitions.
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class OperationStartRequest(BaseModel):
    """Request to start an operation."""
    operator_id: Optional[int] = Field(None, description="Operator working the step (defaults to caller)")


class OperationEndRequest(BaseModel):
    """Request to end an operation."""
    resource_factor: int = Field(default=1, ge=1, description="Number of operators on the step")
    line_no: Optional[str] = Field(None, max_length=20, description="Production line")
    ended_at: Optional[datetime] = Field(None, description="End time (defaults to now)")

    @field_validator('ended_at')
    @classmethod
    def to_naive_utc(cls, v):
        """Stored timestamps are naive UTC."""
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class OperationResponse(BaseModel):
    """Operation with its derived state."""
    id: int
    production_order_id: int
    step_code: str
    step_index: Optional[int] = None
    state: str

    operator_id: Optional[int] = None
    line_no: Optional[str] = None

    # Timing
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    production_hours: Optional[Decimal] = None
    man_hours: Optional[Decimal] = None
    resource_factor: int = 1

    # Quantities
    input_quantity: int = 0
    output_quantity: Optional[int] = None
    effective_defects: int = 0
    replacement_total: int = 0

    class Config:
        from_attributes = True


class OperationStepResponse(BaseModel):
    code: str
    label: Optional[str] = None
    index: int
