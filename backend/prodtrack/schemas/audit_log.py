"""
Audit log schemas
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, field_validator


class AuditLogResponse(BaseModel):
    id: int
    table_name: str
    record_id: Optional[int] = None
    action: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    user_id: Optional[int] = None
    timestamp: datetime

    @field_validator('old_values', 'new_values', mode='before')
    @classmethod
    def parse_json(cls, v):
        if isinstance(v, str):
            return json.loads(v)
        return v

    class Config:
        from_attributes = True
