"""
Operation line schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OperationLineCreate(BaseModel):
    step_code: str = Field(..., min_length=1, max_length=20)
    line_no: str = Field(..., min_length=1, max_length=20)


class OperationLineResponse(BaseModel):
    id: int
    step_code: str
    line_no: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
