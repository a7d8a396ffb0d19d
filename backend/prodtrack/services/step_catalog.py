"""
Step catalog - the ordered chain of operation steps.

Loaded from operation_steps once per unit of work and passed explicitly to
every service that needs step order. The catalog is immutable; changing
the chain means loading a new one.
"""
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from prodtrack.exceptions import BusinessRuleError, NotFoundError
from prodtrack.logging_config import get_logger
from prodtrack.models.operation_step import OperationStep

logger = get_logger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


@dataclass(frozen=True)
class StepDefinition:
    """A step with its zero-based position in the chain"""
    code: str
    label: Optional[str]
    index: int


@dataclass(frozen=True)
class StepCatalog:
    steps: Tuple[StepDefinition, ...]

    def __post_init__(self):
        if not self.steps:
            raise BusinessRuleError("No operation steps are defined", rule="step_chain_empty")

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self.steps)

    def __contains__(self, code: str) -> bool:
        return any(s.code == normalize_code(code) for s in self.steps)

    @property
    def codes(self) -> List[str]:
        return [s.code for s in self.steps]

    @property
    def first(self) -> StepDefinition:
        return self.steps[0]

    def get(self, code: str) -> StepDefinition:
        """Look up a step by code (case-insensitive). Raises NotFoundError."""
        wanted = normalize_code(code)
        for step in self.steps:
            if step.code == wanted:
                return step
        raise NotFoundError("Operation step", wanted)

    def index_of(self, code: str) -> int:
        return self.get(code).index

    @classmethod
    def from_rows(cls, rows: Sequence[OperationStep]) -> "StepCatalog":
        ordered = sorted(rows, key=lambda r: r.step_order)
        return cls(tuple(
            StepDefinition(code=normalize_code(r.code), label=r.label, index=i)
            for i, r in enumerate(ordered)
        ))


def load_step_catalog(db: Session) -> StepCatalog:
    """Read operation_steps in step_order. Raises BusinessRuleError when empty."""
    rows = db.query(OperationStep).order_by(OperationStep.step_order).all()
    return StepCatalog.from_rows(rows)


def seed_default_steps(db: Session, codes: Sequence[str]) -> int:
    """
    Insert the given step codes (in order) when operation_steps is empty.

    Returns the number of steps created; 0 when steps already exist.
    """
    if db.query(OperationStep).count() > 0:
        return 0

    created = 0
    for order, code in enumerate(codes, start=1):
        code = normalize_code(code)
        if not code:
            continue
        db.add(OperationStep(code=code, label=code, step_order=order * 10))
        created += 1
    db.flush()

    logger.info("Seeded operation steps", extra={"count": created, "codes": list(codes)})
    return created
