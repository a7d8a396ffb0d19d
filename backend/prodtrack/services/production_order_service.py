"""
Production order service - creates orders with their operations and
handles quantity edits.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from prodtrack.exceptions import DuplicateError, NotFoundError, PermissionDeniedError, ValidationError
from prodtrack.logging_config import get_logger
from prodtrack.models.production_order import ProductionOrder, Operation
from prodtrack.models.user import User
from prodtrack.services import audit_service
from prodtrack.services.quantity_cascade import CascadeResult, recompute
from prodtrack.services.step_catalog import StepCatalog

logger = get_logger(__name__)


def create_production_order(
    db: Session,
    catalog: StepCatalog,
    po_number: str,
    quantity: int,
    lot_number: Optional[str] = None,
    item_name: Optional[str] = None,
) -> ProductionOrder:
    """
    Create an order and one operation per catalog step.

    The first step's input is the order quantity; later steps start at 0
    and inherit their input when started.
    """
    po_number = (po_number or "").strip()
    if not po_number:
        raise ValidationError("PO number is required", field="po_number")
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1", field="quantity", value=quantity)

    exists = db.query(ProductionOrder.id).filter(ProductionOrder.po_number == po_number).first()
    if exists:
        raise DuplicateError("Production order", field="po_number", value=po_number)

    po = ProductionOrder(
        po_number=po_number,
        quantity=quantity,
        lot_number=lot_number,
        item_name=item_name,
        status='created',
        current_step_code=catalog.first.code,
    )
    for step in catalog:
        po.operations.append(Operation(
            step_code=step.code,
            input_quantity=quantity if step.index == 0 else 0,
            resource_factor=1,
        ))
    db.add(po)
    db.flush()

    logger.info(
        "Production order created",
        extra={"po_number": po_number, "quantity": quantity, "steps": len(catalog)},
    )
    return po


def get_production_order(db: Session, po_number: str) -> ProductionOrder:
    po = db.query(ProductionOrder).filter(ProductionOrder.po_number == po_number).first()
    if not po:
        raise NotFoundError("Production order", po_number)
    return po


def get_production_order_by_id(db: Session, order_id: int) -> ProductionOrder:
    po = db.get(ProductionOrder, order_id)
    if not po:
        raise NotFoundError("Production order", order_id)
    return po


def list_production_orders(
    db: Session,
    status: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[ProductionOrder]:
    query = db.query(ProductionOrder)
    if status:
        query = query.filter(ProductionOrder.status == status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            ProductionOrder.po_number.ilike(pattern)
            | ProductionOrder.lot_number.ilike(pattern)
            | ProductionOrder.item_name.ilike(pattern)
        )
    return query.order_by(ProductionOrder.created_at.desc(), ProductionOrder.id.desc()).offset(skip).limit(limit).all()


def update_order_quantity(
    db: Session,
    catalog: StepCatalog,
    order_id: int,
    quantity: int,
    *,
    actor: User,
) -> CascadeResult:
    """
    Change the ordered quantity and re-run the cascade from the first step.

    Once any step has completed only admins may do this. Lowering the
    quantity below what later steps already produced clamps outputs at 0.
    """
    po = get_production_order_by_id(db, order_id)
    if quantity is None or quantity < 1:
        raise ValidationError("Quantity must be at least 1", field="quantity", value=quantity)

    if any(op.is_completed for op in po.operations) and not actor.is_admin:
        raise PermissionDeniedError(
            "Only admins can change the quantity after a step has completed",
            action="update_quantity",
            resource="production_order",
        )

    old_quantity = po.quantity
    po.quantity = quantity
    po.updated_at = datetime.utcnow()
    db.flush()

    result = recompute(db, catalog, po.id, from_step_index=0)

    audit_service.record_audit(
        db,
        table_name="production_orders",
        record_id=po.id,
        action="update",
        user_id=actor.id,
        old_values={"quantity": old_quantity},
        new_values={"quantity": quantity},
    )
    db.flush()

    logger.info(
        "Order quantity changed",
        extra={"po_number": po.po_number, "old": old_quantity, "new": quantity, "user_id": actor.id},
    )
    return result
