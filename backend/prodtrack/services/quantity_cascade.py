"""
Quantity cascade engine.

Walks the operations of one production order in chain order and
recomputes input/output quantities:

    first step input   = order quantity
    step i input       = step i-1 output, once step i-1 is completed and
                         step i has started
    completed output   = max(0, input - effective defects + replacements)

A step that has not started keeps its input until start_operation copies
it in. Changes are flushed into the caller's transaction; nothing here
commits.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from prodtrack.exceptions import NotFoundError
from prodtrack.logging_config import get_logger
from prodtrack.models.defect import OperationDefect
from prodtrack.models.production_order import ProductionOrder, Operation
from prodtrack.services.step_catalog import StepCatalog, normalize_code

logger = get_logger(__name__)


@dataclass
class QuantityChange:
    """Before/after quantities of one operation touched by a recompute"""
    operation_id: int
    step_code: str
    old_input: Optional[int]
    new_input: Optional[int]
    old_output: Optional[int]
    new_output: Optional[int]


@dataclass
class CascadeResult:
    production_order_id: int
    from_step_index: int
    changes: List[QuantityChange] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.changes)

    def to_dict(self):
        return {
            "production_order_id": self.production_order_id,
            "from_step_index": self.from_step_index,
            "changes": [c.__dict__ for c in self.changes],
        }


def effective_defects(defects: Iterable[OperationDefect]) -> int:
    """Pieces lost: reworkable defects only lose what was not reworked."""
    return sum(d.effective_quantity for d in defects)


def replacement_total(defects: Iterable[OperationDefect]) -> int:
    return sum(d.quantity_replacement or 0 for d in defects)


def compute_output(input_quantity: int, defects: Iterable[OperationDefect]) -> int:
    defects = list(defects)
    return max(0, (input_quantity or 0) - effective_defects(defects) + replacement_total(defects))


def operations_in_chain_order(catalog: StepCatalog, operations: Iterable[Operation]) -> List[Operation]:
    """Sort an order's operations by catalog position; unknown steps are dropped."""
    by_code = {op.step_code.upper(): op for op in operations}
    return [by_code[step.code] for step in catalog if step.code in by_code]


def chain_position(chain: List[Operation], step_code: str) -> int:
    """
    Position of a step within one order's own chain.

    Orders keep the operations they were created with, so this differs
    from the catalog index once steps are added to the catalog later.
    """
    code = normalize_code(step_code)
    for i, op in enumerate(chain):
        if op.step_code.upper() == code:
            return i
    raise NotFoundError("Operation", code)


def is_first_in_order(catalog: StepCatalog, op: Operation) -> bool:
    """True when op is the first operation of its own order."""
    chain = operations_in_chain_order(catalog, op.production_order.operations)
    return chain_position(chain, op.step_code) == 0


def _default_start_index(ops: List[Operation]) -> int:
    for i, op in enumerate(ops):
        if op.is_started:
            return i
    return 0


def recompute(
    db: Session,
    catalog: StepCatalog,
    order_id: int,
    from_step_index: Optional[int] = None,
    *,
    from_step_code: Optional[str] = None,
) -> CascadeResult:
    """
    Recompute quantities of an order from a point in its chain forward.

    from_step_index counts the order's own operations (0 = its first);
    from_step_code starts at that step's operation. Defaults to the
    earliest started step (or the first step). Calling it twice with no
    writes in between changes nothing the second time.
    """
    po = db.get(ProductionOrder, order_id)
    if not po:
        raise NotFoundError("Production order", order_id)

    ops = operations_in_chain_order(catalog, po.operations)
    if from_step_code is not None:
        start = chain_position(ops, from_step_code)
    elif from_step_index is not None:
        start = max(0, from_step_index)
    else:
        start = _default_start_index(ops)
    result = CascadeResult(production_order_id=po.id, from_step_index=start)

    for i in range(start, len(ops)):
        op = ops[i]
        old_input, old_output = op.input_quantity, op.output_quantity
        new_input, new_output = old_input, old_output

        if i == 0:
            new_input = po.quantity
        else:
            prev = ops[i - 1]
            if prev.is_completed and op.is_started and prev.output_quantity is not None:
                new_input = prev.output_quantity

        if op.is_completed:
            new_output = compute_output(new_input, op.defects)

        if new_input != old_input or new_output != old_output:
            op.input_quantity = new_input
            op.output_quantity = new_output
            result.changes.append(QuantityChange(
                operation_id=op.id,
                step_code=op.step_code,
                old_input=old_input,
                new_input=new_input,
                old_output=old_output,
                new_output=new_output,
            ))

    if result.changed:
        db.flush()
        logger.info(
            "Quantities recomputed",
            extra={
                "po_number": po.po_number,
                "from_step_index": start,
                "changed_steps": [c.step_code for c in result.changes],
            },
        )
    return result
