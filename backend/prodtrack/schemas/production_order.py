"""
Production order schemas
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from prodtrack.schemas.operation import OperationResponse


class ProductionOrderCreate(BaseModel):
    """Create a production order with one operation per step"""
    po_number: str = Field(..., min_length=1, max_length=50, description="Unique PO number")
    quantity: int = Field(..., ge=1, description="Pieces ordered")
    lot_number: Optional[str] = Field(None, max_length=50)
    item_name: Optional[str] = Field(None, max_length=200)


class QuantityUpdate(BaseModel):
    quantity: int = Field(..., ge=1, description="New ordered quantity")


class ProductionOrderResponse(BaseModel):
    id: int
    po_number: str
    quantity: int
    lot_number: Optional[str] = None
    item_name: Optional[str] = None
    status: str
    current_step_code: Optional[str] = None
    locked_by_id: Optional[int] = None
    locked_by_name: Optional[str] = None
    locked_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductionOrderDetail(ProductionOrderResponse):
    """Order with its operations in chain order"""
    operations: List[OperationResponse] = []


class QuantityChangeResponse(BaseModel):
    operation_id: int
    step_code: str
    old_input: Optional[int] = None
    new_input: Optional[int] = None
    old_output: Optional[int] = None
    new_output: Optional[int] = None


class CascadeResponse(BaseModel):
    """Result of a quantity recompute"""
    production_order_id: int
    from_step_index: int
    changes: List[QuantityChangeResponse] = []
