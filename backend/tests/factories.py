"""
Test data factories for ProdTrack.

Usage:
    from tests.factories import create_test_user, create_test_production_order

    def test_something(db, catalog):
        po = create_test_production_order(db, catalog, quantity=100)
"""
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from prodtrack.models.defect import MasterDefect
from prodtrack.models.operation_line import OperationLine
from prodtrack.models.operation_step import OperationStep
from prodtrack.models.production_order import ProductionOrder, Operation
from prodtrack.models.user import User
from prodtrack.services.production_order_service import create_production_order
from prodtrack.services.step_catalog import StepCatalog


# =============================================================================
# SEQUENCE MANAGEMENT
# =============================================================================

_sequences: Dict[str, int] = {}


def reset_sequences():
    """Reset all sequences. Call between tests for predictable values."""
    global _sequences
    _sequences = {}


def _next(name: str) -> int:
    _sequences[name] = _sequences.get(name, 0) + 1
    return _sequences[name]


# =============================================================================
# USERS
# =============================================================================

def create_test_user(
    db: Session,
    username: Optional[str] = None,
    role: str = "encoder",
    **overrides
) -> User:
    seq = _next("user")
    user = User(
        username=username or f"user{seq}",
        name=overrides.pop("name", f"Test User {seq}"),
        role=role,
        is_active=overrides.pop("is_active", True),
        **overrides
    )
    db.add(user)
    db.flush()
    return user


# =============================================================================
# STEP CHAIN
# =============================================================================

def create_test_steps(db: Session, codes: Iterable[str] = ("OP10", "OP20", "OP30")):
    steps = []
    for order, code in enumerate(codes, start=1):
        step = OperationStep(code=code, label=f"Step {code}", step_order=order * 10)
        db.add(step)
        steps.append(step)
    db.flush()
    return steps


def create_test_operation_line(db: Session, step_code: str, line_no: str = "L1") -> OperationLine:
    line = OperationLine(step_code=step_code, line_no=line_no)
    db.add(line)
    db.flush()
    return line


# =============================================================================
# PRODUCTION
# =============================================================================

def create_test_production_order(
    db: Session,
    catalog: StepCatalog,
    po_number: Optional[str] = None,
    quantity: int = 100,
    **overrides
) -> ProductionOrder:
    """Create an order with one operation per step through the service."""
    seq = _next("po")
    po = create_production_order(
        db,
        catalog,
        po_number or f"PO-TEST-{seq:04d}",
        quantity,
        lot_number=overrides.pop("lot_number", f"LOT-{seq:04d}"),
        item_name=overrides.pop("item_name", "Test Item"),
    )
    for key, value in overrides.items():
        setattr(po, key, value)
    db.flush()
    return po


def get_operation(po: ProductionOrder, step_code: str) -> Operation:
    return next(op for op in po.operations if op.step_code == step_code)


# =============================================================================
# DEFECTS
# =============================================================================

def create_test_defect_type(
    db: Session,
    name: Optional[str] = None,
    reworkable: bool = False,
    **overrides
) -> MasterDefect:
    seq = _next("defect_type")
    defect_type = MasterDefect(
        name=name or f"Defect {seq}",
        category=overrides.pop("category", "visual"),
        reworkable=reworkable,
        machine=overrides.pop("machine", None),
        applicable_step_code=overrides.pop("applicable_step_code", None),
        is_active=overrides.pop("is_active", True),
        **overrides
    )
    db.add(defect_type)
    db.flush()
    return defect_type
