"""
Service layer for operation lifecycle transitions.

    not_started → in_progress (start_operation) → completed (end_operation)

Steps must run in chain order: a step can only start once the previous
operation of the same order has ended. Admins may correct the end of a
completed operation; re-opening one is not supported.
"""
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Tuple

from sqlalchemy.orm import Session

from prodtrack.exceptions import (
    NotFoundError,
    OrderViolationError,
    PermissionDeniedError,
    ValidationError,
)
from prodtrack.logging_config import get_logger
from prodtrack.models.production_order import ProductionOrder, Operation
from prodtrack.models.user import User
from prodtrack.services import audit_service
from prodtrack.services.operation_lines import ensure_line_registered
from prodtrack.services.quantity_cascade import chain_position, operations_in_chain_order, recompute
from prodtrack.services.step_catalog import StepCatalog, normalize_code

logger = get_logger(__name__)

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"

_FOUR_PLACES = Decimal("0.0001")


def operation_state(op: Operation) -> str:
    if op.start_time is None:
        return NOT_STARTED
    if op.end_time is None:
        return IN_PROGRESS
    return COMPLETED


def get_operation_with_order(db: Session, operation_id: int) -> Tuple[ProductionOrder, Operation]:
    op = db.get(Operation, operation_id)
    if not op:
        raise NotFoundError("Operation", operation_id)
    return op.production_order, op


def get_operation_by_step(db: Session, order_id: int, step_code: str) -> Operation:
    """Find the operation of an order for a step code."""
    code = normalize_code(step_code)
    op = (
        db.query(Operation)
        .filter(Operation.production_order_id == order_id, Operation.step_code == code)
        .first()
    )
    if not op:
        raise NotFoundError("Operation", f"{code} of production order {order_id}")
    return op


def list_operations(db: Session, catalog: StepCatalog, order_id: int) -> List[Operation]:
    """Operations of an order in chain order."""
    po = db.get(ProductionOrder, order_id)
    if not po:
        raise NotFoundError("Production order", order_id)
    return operations_in_chain_order(catalog, po.operations)



def _order_chain(catalog: StepCatalog, po: ProductionOrder, op: Operation) -> Tuple[List[Operation], int]:
    """The order's own operations in chain order, and op's position in them."""
    chain = operations_in_chain_order(catalog, po.operations)
    return chain, chain_position(chain, op.step_code)


def start_operation(
    db: Session,
    catalog: StepCatalog,
    operation_id: int,
    operator_id: Optional[int] = None,
    *,
    actor: User,
) -> Operation:
    """
    Start an operation.

    Validations:
    - Order already completed: admins only
    - Operation must not be started yet
    - Previous operation of this order (by chain order) must be completed

    Effects:
    - start_time, operator
    - input inherited: order quantity on the order's first operation,
      previous output otherwise
    - order status in_progress, current_step_code = this step

    Raises:
        OrderViolationError, PermissionDeniedError, NotFoundError
    """
    po, op = get_operation_with_order(db, operation_id)
    step = catalog.get(op.step_code)
    chain, position = _order_chain(catalog, po, op)

    if po.is_completed and not actor.is_admin:
        raise PermissionDeniedError(
            f"Production order {po.po_number} is completed",
            action="start_operation",
            resource="production_order",
        )

    if op.is_started:
        raise OrderViolationError(
            f"Operation {step.code} has already been started",
            step_code=step.code,
            current_state=operation_state(op),
        )

    prev_op = chain[position - 1] if position > 0 else None
    if prev_op is not None and not prev_op.is_completed:
        raise OrderViolationError(
            f"Previous operation {prev_op.step_code} must be completed before starting {step.code}",
            step_code=step.code,
            current_state=operation_state(prev_op),
        )

    now = datetime.utcnow()
    op.start_time = now
    op.operator_id = operator_id or actor.id
    op.input_quantity = po.quantity if prev_op is None else (prev_op.output_quantity or 0)
    op.updated_at = now

    po.status = 'in_progress'
    po.current_step_code = step.code
    po.updated_at = now

    db.flush()

    logger.info(
        "Operation started",
        extra={
            "po_number": po.po_number,
            "step_code": step.code,
            "input_quantity": op.input_quantity,
            "user_id": actor.id,
        },
    )
    return op


def _timing_values(op: Operation) -> dict:
    return {
        "end_time": op.end_time,
        "resource_factor": op.resource_factor,
        "line_no": op.line_no,
        "production_hours": op.production_hours,
        "man_hours": op.man_hours,
        "output_quantity": op.output_quantity,
    }


def end_operation(
    db: Session,
    catalog: StepCatalog,
    operation_id: int,
    resource_factor: int = 1,
    *,
    actor: User,
    line_no: Optional[str] = None,
    ended_at: Optional[datetime] = None,
) -> Operation:
    """
    End a running operation, or correct the end of a completed one.

    Validations:
    - Operation must be started
    - Completed operation: admins only (end time, resource factor and
      line are rewritten; the order's progress is left as it is)
    - resource_factor >= 1
    - line_no, when given, is registered for the step
    - ended_at (defaults to now) not before start_time

    Effects:
    - end_time, production hours (4 places), man-hours = hours x resource_factor
    - quantity cascade from this step
    - first end of the order's last operation: order completed; otherwise
      current_step_code moves to the next operation of the order
    """
    po, op = get_operation_with_order(db, operation_id)
    step = catalog.get(op.step_code)
    chain, position = _order_chain(catalog, po, op)

    if not op.is_started:
        raise OrderViolationError(
            f"Operation {step.code} has not been started",
            step_code=step.code,
            current_state=operation_state(op),
        )
    correcting = op.is_completed
    if correcting and not actor.is_admin:
        raise PermissionDeniedError(
            f"Operation {step.code} is completed; only admins can change it",
            action="end_operation",
            resource="operation",
        )
    if resource_factor is None or resource_factor < 1:
        raise ValidationError(
            "Resource factor must be at least 1", field="resource_factor", value=resource_factor
        )
    if line_no is not None:
        ensure_line_registered(db, step.code, line_no)

    end_time = ended_at or datetime.utcnow()
    if end_time < op.start_time:
        raise ValidationError(
            "End time cannot be before start time", field="ended_at", value=end_time.isoformat()
        )

    old_values = _timing_values(op) if correcting else None

    elapsed_hours = Decimal(str((end_time - op.start_time).total_seconds() / 3600))
    production_hours = elapsed_hours.quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP)

    op.end_time = end_time
    op.resource_factor = resource_factor
    op.production_hours = production_hours
    op.man_hours = (production_hours * resource_factor).quantize(_FOUR_PLACES, rounding=ROUND_HALF_UP)
    if line_no is not None:
        op.line_no = line_no
    op.updated_at = datetime.utcnow()
    db.flush()

    recompute(db, catalog, po.id, from_step_code=step.code)

    if not correcting:
        next_op = chain[position + 1] if position + 1 < len(chain) else None
        if next_op is None:
            po.status = 'completed'
            po.current_step_code = step.code
        else:
            po.current_step_code = next_op.step_code
        po.updated_at = datetime.utcnow()

    audit_service.record_audit(
        db,
        table_name="operations",
        record_id=op.id,
        action="update" if correcting else "end",
        user_id=actor.id,
        old_values=old_values,
        new_values={
            "step_code": step.code,
            "input_quantity": op.input_quantity,
            **_timing_values(op),
        },
    )
    db.flush()

    logger.info(
        "Operation end corrected" if correcting else "Operation ended",
        extra={
            "po_number": po.po_number,
            "step_code": step.code,
            "output_quantity": op.output_quantity,
            "order_status": po.status,
            "user_id": actor.id,
        },
    )
    return op
