"""
Step chain endpoint
"""
from typing import List

from fastapi import APIRouter, Depends

from prodtrack.api.v1.deps import get_current_user, get_step_catalog
from prodtrack.models.user import User
from prodtrack.schemas.operation import OperationStepResponse
from prodtrack.services.step_catalog import StepCatalog

router = APIRouter()


@router.get("/", response_model=List[OperationStepResponse])
def get_operation_steps(
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_user),
):
    """Steps in chain order."""
    return [
        OperationStepResponse(code=step.code, label=step.label, index=step.index)
        for step in catalog
    ]
