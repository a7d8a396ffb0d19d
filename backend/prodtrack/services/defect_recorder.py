"""
Defect recorder - upserts and deletes defect observations on operations.

Every change re-runs the quantity cascade from the operation's step so
downstream inputs and outputs stay consistent within the same transaction.
"""
from typing import List

from sqlalchemy import update
from sqlalchemy.orm import Session

from prodtrack.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from prodtrack.logging_config import get_logger
from prodtrack.models.defect import MasterDefect, OperationDefect
from prodtrack.models.edit_request import DefectEditRequest
from prodtrack.models.production_order import Operation
from prodtrack.models.user import User
from prodtrack.services import audit_service
from prodtrack.services.quantity_cascade import is_first_in_order, recompute
from prodtrack.services.step_catalog import StepCatalog

logger = get_logger(__name__)


def validate_defect_quantities(
    quantity: int,
    quantity_rework: int,
    quantity_nogood: int,
    quantity_replacement: int = 0,
    is_first_step: bool = True,
) -> None:
    """
    Check the quantity relationships of one defect observation.

    Raises:
        ValidationError: on the first violated rule
    """
    for name, value in (
        ("quantity", quantity),
        ("quantity_rework", quantity_rework),
        ("quantity_nogood", quantity_nogood),
        ("quantity_replacement", quantity_replacement),
    ):
        if value is None or value < 0:
            raise ValidationError(f"{name} must be zero or greater", field=name, value=value)

    if quantity_rework > quantity:
        raise ValidationError(
            "Rework quantity cannot exceed defect quantity",
            field="quantity_rework", value=quantity_rework,
        )
    if quantity_nogood != quantity - quantity_rework:
        raise ValidationError(
            f"No-good quantity must equal quantity minus rework ({quantity - quantity_rework})",
            field="quantity_nogood", value=quantity_nogood,
        )
    if quantity_replacement > quantity:
        raise ValidationError(
            "Replacement quantity cannot exceed defect quantity",
            field="quantity_replacement", value=quantity_replacement,
        )
    if quantity_replacement and not is_first_step:
        raise ValidationError(
            "Replacements can only be recorded on the first step",
            field="quantity_replacement", value=quantity_replacement,
        )


def _get_operation(db: Session, operation_id: int) -> Operation:
    op = db.get(Operation, operation_id)
    if not op:
        raise NotFoundError("Operation", operation_id)
    return op


def _guard_completed(op: Operation, actor: User, allow_completed: bool) -> None:
    """Completed operations are only editable by admins or the edit-request workflow."""
    if op.is_completed and not actor.is_admin and not allow_completed:
        raise PermissionDeniedError(
            f"Operation {op.step_code} is completed; file an edit request instead",
            action="edit_defect",
            resource="operation",
        )


def _defect_values(defect: OperationDefect) -> dict:
    return {
        "defect_type_id": defect.defect_type_id,
        "quantity": defect.quantity,
        "quantity_rework": defect.quantity_rework,
        "quantity_nogood": defect.quantity_nogood,
        "quantity_replacement": defect.quantity_replacement,
    }


def record_defect(
    db: Session,
    catalog: StepCatalog,
    operation_id: int,
    defect_type_id: int,
    quantity: int,
    quantity_rework: int,
    quantity_nogood: int,
    quantity_replacement: int = 0,
    *,
    actor: User,
    allow_completed: bool = False,
) -> OperationDefect:
    """
    Create or update the defect row for (operation, defect type).

    Validations:
    - Quantities non-negative, rework <= quantity, nogood == quantity - rework
    - Replacement <= quantity, and non-zero only on the first step
    - Completed operation needs an admin actor or allow_completed

    Side effects:
    - Re-runs the quantity cascade from this operation's step
    - Writes an audit entry

    Returns:
        The created or updated OperationDefect
    """
    op = _get_operation(db, operation_id)
    validate_defect_quantities(
        quantity, quantity_rework, quantity_nogood, quantity_replacement,
        is_first_step=is_first_in_order(catalog, op),
    )
    _guard_completed(op, actor, allow_completed)

    defect_type = db.get(MasterDefect, defect_type_id)
    if not defect_type:
        raise NotFoundError("Defect type", defect_type_id)
    if not defect_type.is_active:
        logger.warning(
            "Recording inactive defect type",
            extra={"defect_type_id": defect_type_id, "operation_id": operation_id},
        )

    existing = next((d for d in op.defects if d.defect_type_id == defect_type_id), None)
    old_values = _defect_values(existing) if existing else None

    if existing:
        defect = existing
    else:
        defect = OperationDefect(defect_type_id=defect_type_id)
        op.defects.append(defect)

    defect.quantity = quantity
    defect.quantity_rework = quantity_rework
    defect.quantity_nogood = quantity_nogood
    defect.quantity_replacement = quantity_replacement
    defect.defect_name = defect_type.name
    defect.defect_category = defect_type.category
    defect.defect_machine = defect_type.machine
    defect.defect_reworkable = bool(defect_type.reworkable)
    defect.recorded_by_id = actor.id
    db.flush()

    recompute(db, catalog, op.production_order_id, from_step_code=op.step_code)

    audit_service.record_audit(
        db,
        table_name="operation_defects",
        record_id=defect.id,
        action="update" if existing else "create",
        user_id=actor.id,
        old_values=old_values,
        new_values=_defect_values(defect),
    )
    db.flush()

    logger.info(
        "Defect recorded",
        extra={
            "operation_id": op.id,
            "step_code": op.step_code,
            "defect_type_id": defect_type_id,
            "quantity": quantity,
            "user_id": actor.id,
        },
    )
    return defect


def delete_defect(
    db: Session,
    catalog: StepCatalog,
    operation_defect_id: int,
    *,
    actor: User,
    allow_completed: bool = False,
) -> None:
    """
    Remove a defect row and re-run the cascade.

    Edit requests pointing at the row keep their history; their
    operation_defect_id is cleared.
    """
    defect = db.get(OperationDefect, operation_defect_id)
    if not defect:
        raise NotFoundError("Operation defect", operation_defect_id)

    op = defect.operation
    _guard_completed(op, actor, allow_completed)
    old_values = _defect_values(defect)

    db.execute(
        update(DefectEditRequest)
        .where(DefectEditRequest.operation_defect_id == operation_defect_id)
        .values(operation_defect_id=None)
        .execution_options(synchronize_session="fetch")
    )
    op.defects.remove(defect)
    db.flush()

    recompute(db, catalog, op.production_order_id, from_step_code=op.step_code)

    audit_service.record_audit(
        db,
        table_name="operation_defects",
        record_id=operation_defect_id,
        action="delete",
        user_id=actor.id,
        old_values=old_values,
    )
    db.flush()

    logger.info(
        "Defect deleted",
        extra={"operation_defect_id": operation_defect_id, "operation_id": op.id, "user_id": actor.id},
    )


def list_operation_defects(db: Session, operation_id: int) -> List[OperationDefect]:
    _get_operation(db, operation_id)
    return (
        db.query(OperationDefect)
        .filter(OperationDefect.operation_id == operation_id)
        .order_by(OperationDefect.id)
        .all()
    )

