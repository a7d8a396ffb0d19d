"""
Defect catalog and defect observation schemas
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class DefectQuantities(BaseModel):
    """Quantity relationships shared by direct records and edit requests"""
    quantity: int = Field(..., ge=0)
    quantity_rework: int = Field(default=0, ge=0)
    quantity_nogood: int = Field(default=0, ge=0)
    quantity_replacement: int = Field(default=0, ge=0, description="First step only")

    @model_validator(mode='after')
    def check_split(self):
        if self.quantity_rework > self.quantity:
            raise ValueError("quantity_rework cannot exceed quantity")
        if self.quantity_nogood != self.quantity - self.quantity_rework:
            raise ValueError("quantity_nogood must equal quantity - quantity_rework")
        if self.quantity_replacement > self.quantity:
            raise ValueError("quantity_replacement cannot exceed quantity")
        return self


class OperationDefectCreate(DefectQuantities):
    """Record (or overwrite) a defect on an operation"""
    defect_type_id: int


class OperationDefectResponse(BaseModel):
    id: int
    operation_id: int
    defect_type_id: int
    quantity: int
    quantity_rework: int
    quantity_nogood: int
    quantity_replacement: int
    defect_name: str
    defect_category: Optional[str] = None
    defect_machine: Optional[str] = None
    defect_reworkable: bool
    effective_quantity: int
    recorded_at: Optional[datetime] = None
    recorded_by_id: Optional[int] = None

    class Config:
        from_attributes = True


class MasterDefectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    applicable_step_code: Optional[str] = Field(None, max_length=20, description="Null = any step")
    reworkable: bool = False
    machine: Optional[str] = Field(None, max_length=100)


class MasterDefectUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=50)
    applicable_step_code: Optional[str] = Field(None, max_length=20)
    reworkable: Optional[bool] = None
    machine: Optional[str] = Field(None, max_length=100)


class MasterDefectResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    applicable_step_code: Optional[str] = None
    reworkable: bool
    machine: Optional[str] = None
    is_active: bool
    deactivated_at: Optional[datetime] = None
    deactivated_by_id: Optional[int] = None

    class Config:
        from_attributes = True
