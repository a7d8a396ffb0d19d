"""
Line registry per operation step.
"""
from typing import List, Optional

from sqlalchemy.orm import Session

from prodtrack.exceptions import DuplicateError, NotFoundError, ValidationError
from prodtrack.logging_config import get_logger
from prodtrack.models.operation_line import OperationLine
from prodtrack.models.operation_step import OperationStep
from prodtrack.services.step_catalog import normalize_code

logger = get_logger(__name__)


def _normalize_line(line_no: str) -> str:
    return (line_no or "").strip()


def list_operation_lines(db: Session, step_code: Optional[str] = None) -> List[OperationLine]:
    """Registered lines, optionally for one step, ordered by line number."""
    query = db.query(OperationLine)
    if step_code:
        query = query.filter(OperationLine.step_code == normalize_code(step_code))
    return query.order_by(OperationLine.step_code, OperationLine.line_no).all()


def create_operation_line(db: Session, step_code: str, line_no: str) -> OperationLine:
    code = normalize_code(step_code)
    line_no = _normalize_line(line_no)
    if not line_no:
        raise ValidationError("Line number is required", field="line_no")
    if not db.query(OperationStep).filter(OperationStep.code == code).first():
        raise NotFoundError("Operation step", code)
    exists = (
        db.query(OperationLine)
        .filter(OperationLine.step_code == code, OperationLine.line_no == line_no)
        .first()
    )
    if exists:
        raise DuplicateError("Operation line", field="line_no", value=f"{code}/{line_no}")

    line = OperationLine(step_code=code, line_no=line_no)
    db.add(line)
    db.flush()
    logger.info("Operation line registered", extra={"step_code": code, "line_no": line_no})
    return line


def delete_operation_line(db: Session, line_id: int) -> None:
    line = db.get(OperationLine, line_id)
    if not line:
        raise NotFoundError("Operation line", line_id)
    db.delete(line)
    db.flush()
    logger.info("Operation line removed", extra={"step_code": line.step_code, "line_no": line.line_no})


def ensure_line_registered(db: Session, step_code: str, line_no: str) -> None:
    """Raise ValidationError unless line_no is registered for the step."""
    code = normalize_code(step_code)
    wanted = _normalize_line(line_no)
    found = (
        db.query(OperationLine.id)
        .filter(OperationLine.step_code == code, OperationLine.line_no == wanted)
        .first()
    )
    if found is None:
        raise ValidationError(
            f"Line {wanted or '(blank)'} is not registered for {code}",
            field="line_no",
            value=line_no,
        )
