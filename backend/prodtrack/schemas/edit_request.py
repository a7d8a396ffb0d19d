"""
Defect edit-request schemas.

The create payload is a union tagged by request_type:

    {"request_type": "add", "operation_id": 3, "defect_type_id": 7, "requested_qty": 5, ...}
    {"request_type": "edit", "operation_defect_id": 12, "requested_qty": 2, ...}
    {"request_type": "delete", "operation_defect_id": 12, "reason": "..."}
"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, RootModel, model_validator


class _RequestedQuantities(BaseModel):
    requested_qty: int = Field(..., ge=0)
    requested_rework: int = Field(default=0, ge=0)
    requested_nogood: int = Field(default=0, ge=0)
    requested_replacement: int = Field(default=0, ge=0)

    @model_validator(mode='after')
    def check_split(self):
        if self.requested_rework > self.requested_qty:
            raise ValueError("requested_rework cannot exceed requested_qty")
        if self.requested_nogood != self.requested_qty - self.requested_rework:
            raise ValueError("requested_nogood must equal requested_qty - requested_rework")
        if self.requested_replacement > self.requested_qty:
            raise ValueError("requested_replacement cannot exceed requested_qty")
        return self


class AddDefectRequest(_RequestedQuantities):
    request_type: Literal["add"] = "add"
    operation_id: int
    defect_type_id: int
    reason: str = Field(..., min_length=1, max_length=1000)


class EditDefectRequest(_RequestedQuantities):
    request_type: Literal["edit"] = "edit"
    operation_defect_id: int
    reason: str = Field(..., min_length=1, max_length=1000)


class DeleteDefectRequest(BaseModel):
    request_type: Literal["delete"] = "delete"
    operation_defect_id: int
    reason: str = Field(..., min_length=1, max_length=1000)


EditRequestPayload = Annotated[
    Union[AddDefectRequest, EditDefectRequest, DeleteDefectRequest],
    Field(discriminator="request_type"),
]


class EditRequestCreate(RootModel[EditRequestPayload]):
    """Request body for POST /defect-edit-requests"""


class EditRequestResolve(BaseModel):
    decision: Literal["approved", "rejected"]
    note: Optional[str] = Field(None, max_length=1000)


class EditRequestResponse(BaseModel):
    id: int
    request_type: str
    status: str
    production_order_id: int
    operation_id: int
    operation_defect_id: Optional[int] = None

    defect_type_id: Optional[int] = None
    defect_name: Optional[str] = None
    defect_category: Optional[str] = None
    defect_reworkable: bool = False
    defect_machine: Optional[str] = None

    current_qty: int
    current_rework: int
    current_nogood: int
    current_replacement: int
    requested_qty: int
    requested_rework: int
    requested_nogood: int
    requested_replacement: int

    reason: str
    requested_by_id: int
    resolved_by_id: Optional[int] = None
    resolution_note: Optional[str] = None
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True
