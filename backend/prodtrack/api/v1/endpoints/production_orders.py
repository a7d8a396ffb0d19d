"""
Production Order Management API Endpoints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from prodtrack.api.v1.deps import (
    check_edit_lock,
    get_current_admin_user,
    get_current_encoder_user,
    get_current_user,
    get_db,
    get_step_catalog,
)
from prodtrack.api.v1.endpoints.operations import build_operation_response
from prodtrack.db.session import unit_of_work
from prodtrack.logging_config import get_logger
from prodtrack.models.production_order import ProductionOrder
from prodtrack.models.user import User
from prodtrack.schemas.production_order import (
    CascadeResponse,
    ProductionOrderCreate,
    ProductionOrderDetail,
    ProductionOrderResponse,
    QuantityUpdate,
)
from prodtrack.services.operation_status import list_operations
from prodtrack.services.production_order_service import (
    create_production_order,
    get_production_order,
    list_production_orders,
    update_order_quantity,
)
from prodtrack.services.quantity_cascade import recompute
from prodtrack.services.step_catalog import StepCatalog

router = APIRouter()
logger = get_logger(__name__)


def build_order_detail(db: Session, po: ProductionOrder, catalog: StepCatalog) -> ProductionOrderDetail:
    summary = ProductionOrderResponse.model_validate(po)
    return ProductionOrderDetail(
        **summary.model_dump(),
        operations=[build_operation_response(op, catalog) for op in list_operations(db, catalog, po.id)],
    )


@router.get("/", response_model=List[ProductionOrderResponse])
async def list_orders(
    status: Optional[str] = Query(None, description="created, in_progress, completed"),
    search: Optional[str] = Query(None, description="Match PO number, lot or item"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List production orders, newest first."""
    return list_production_orders(db, status=status, search=search, skip=skip, limit=limit)


@router.post("/", response_model=ProductionOrderDetail, status_code=201)
async def create_order(
    request: ProductionOrderCreate,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    """Create a production order with one operation per step."""
    with unit_of_work(db):
        po = create_production_order(
            db,
            catalog,
            request.po_number,
            request.quantity,
            lot_number=request.lot_number,
            item_name=request.item_name,
        )

    db.refresh(po)
    logger.info("Production order created via API", extra={"po_number": po.po_number, "user_id": current_user.id})
    return build_order_detail(db, po, catalog)


@router.get("/{po_number}", response_model=ProductionOrderDetail)
async def get_order(
    po_number: str,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_user),
):
    po = get_production_order(db, po_number)
    return build_order_detail(db, po, catalog)


@router.patch("/{po_number}/quantity", response_model=CascadeResponse)
async def update_quantity(
    po_number: str,
    request: QuantityUpdate,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_encoder_user),
):
    """
    Change the ordered quantity and recompute every step.

    Admin-only once any step has completed.
    """
    po = get_production_order(db, po_number)
    check_edit_lock(po, current_user)

    with unit_of_work(db):
        result = update_order_quantity(db, catalog, po.id, request.quantity, actor=current_user)

    return result.to_dict()


@router.post("/{po_number}/recompute", response_model=CascadeResponse)
async def recompute_order(
    po_number: str,
    db: Session = Depends(get_db),
    catalog: StepCatalog = Depends(get_step_catalog),
    current_user: User = Depends(get_current_admin_user),
):
    """Re-run the quantity cascade from the first step (admin repair tool)."""
    po = get_production_order(db, po_number)

    with unit_of_work(db):
        result = recompute(db, catalog, po.id, from_step_index=0)

    logger.info(
        "Manual recompute",
        extra={"po_number": po_number, "changed": len(result.changes), "admin_id": current_user.id},
    )
    return result.to_dict()
