"""
Edit lock schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class LockStatusResponse(BaseModel):
    production_order_id: int
    is_locked: bool
    is_owner: bool
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    locked_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ForceReleaseResponse(BaseModel):
    message: str
    previous_owner_id: Optional[int] = None
    previous_owner_name: Optional[str] = None
