"""
Defect type catalog.

Defect types are deactivated rather than deleted once any observation
references them. Editing a type never rewrites the snapshots already
stored on operation_defects.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from prodtrack.exceptions import BusinessRuleError, DuplicateError, NotFoundError, ValidationError
from prodtrack.logging_config import get_logger
from prodtrack.models.defect import MasterDefect, OperationDefect
from prodtrack.models.user import User
from prodtrack.services.step_catalog import normalize_code

logger = get_logger(__name__)

_EDITABLE_FIELDS = ("name", "description", "category", "applicable_step_code", "reworkable", "machine")


def get_defect_type(db: Session, defect_type_id: int) -> MasterDefect:
    defect_type = db.get(MasterDefect, defect_type_id)
    if not defect_type:
        raise NotFoundError("Defect type", defect_type_id)
    return defect_type


def _check_unique(db: Session, name: str, step_code: Optional[str], exclude_id: Optional[int] = None) -> None:
    query = db.query(MasterDefect).filter(
        MasterDefect.name == name,
        MasterDefect.applicable_step_code == step_code if step_code else MasterDefect.applicable_step_code.is_(None),
    )
    if exclude_id is not None:
        query = query.filter(MasterDefect.id != exclude_id)
    if query.first():
        raise DuplicateError("Defect type", field="name", value=name)


def create_defect_type(
    db: Session,
    name: str,
    description: Optional[str] = None,
    category: Optional[str] = None,
    applicable_step_code: Optional[str] = None,
    reworkable: bool = False,
    machine: Optional[str] = None,
) -> MasterDefect:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Defect name is required", field="name")
    step_code = normalize_code(applicable_step_code) or None
    _check_unique(db, name, step_code)

    defect_type = MasterDefect(
        name=name,
        description=description,
        category=category,
        applicable_step_code=step_code,
        reworkable=reworkable,
        machine=machine,
        is_active=True,
    )
    db.add(defect_type)
    db.flush()
    logger.info("Defect type created", extra={"defect_type_id": defect_type.id, "name": name})
    return defect_type


def update_defect_type(db: Session, defect_type_id: int, **changes) -> MasterDefect:
    """Apply the given field changes; unknown fields are rejected."""
    defect_type = get_defect_type(db, defect_type_id)
    unknown = set(changes) - set(_EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    if "applicable_step_code" in changes:
        changes["applicable_step_code"] = normalize_code(changes["applicable_step_code"]) or None
    if "name" in changes:
        changes["name"] = (changes["name"] or "").strip()
        if not changes["name"]:
            raise ValidationError("Defect name is required", field="name")

    name = changes.get("name", defect_type.name)
    step_code = changes.get("applicable_step_code", defect_type.applicable_step_code)
    _check_unique(db, name, step_code, exclude_id=defect_type.id)

    for field, value in changes.items():
        setattr(defect_type, field, value)
    defect_type.updated_at = datetime.utcnow()
    db.flush()
    return defect_type


def deactivate_defect_type(db: Session, defect_type_id: int, actor: User) -> MasterDefect:
    defect_type = get_defect_type(db, defect_type_id)
    if defect_type.is_active:
        defect_type.is_active = False
        defect_type.deactivated_at = datetime.utcnow()
        defect_type.deactivated_by_id = actor.id
        db.flush()
        logger.info("Defect type deactivated", extra={"defect_type_id": defect_type_id, "user_id": actor.id})
    return defect_type


def activate_defect_type(db: Session, defect_type_id: int) -> MasterDefect:
    defect_type = get_defect_type(db, defect_type_id)
    if not defect_type.is_active:
        defect_type.is_active = True
        defect_type.deactivated_at = None
        defect_type.deactivated_by_id = None
        db.flush()
    return defect_type


def delete_defect_type(db: Session, defect_type_id: int) -> None:
    """Hard delete; refused while any operation defect references the type."""
    defect_type = get_defect_type(db, defect_type_id)
    in_use = (
        db.query(OperationDefect.id)
        .filter(OperationDefect.defect_type_id == defect_type_id)
        .first()
    )
    if in_use:
        raise BusinessRuleError(
            f"Defect type '{defect_type.name}' is in use; deactivate it instead",
            rule="defect_type_in_use",
        )
    db.delete(defect_type)
    db.flush()


def list_defect_types(
    db: Session,
    active_only: bool = True,
    step_code: Optional[str] = None,
) -> List[MasterDefect]:
    """Defect types, optionally limited to those usable on a step (or any step)."""
    query = db.query(MasterDefect)
    if active_only:
        query = query.filter(MasterDefect.is_active.is_(True))
    if step_code:
        code = normalize_code(step_code)
        query = query.filter(
            (MasterDefect.applicable_step_code == code) | MasterDefect.applicable_step_code.is_(None)
        )
    return query.order_by(MasterDefect.name).all()
