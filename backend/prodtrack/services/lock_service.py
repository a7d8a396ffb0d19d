"""
Edit lock over a production order.

One owner at a time. Acquire and release are single conditional UPDATE
statements, so two concurrent callers can never both see the order as free.
Locks do not expire; an admin can force-release a stale one.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from prodtrack.exceptions import (
    AlreadyLockedError,
    NotFoundError,
    NotOwnerError,
    PermissionDeniedError,
)
from prodtrack.logging_config import get_logger
from prodtrack.models.production_order import ProductionOrder
from prodtrack.models.user import User
from prodtrack.services import audit_service

logger = get_logger(__name__)


@dataclass
class LockStatus:
    production_order_id: int
    is_locked: bool
    is_owner: bool
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    locked_at: Optional[datetime] = None


def _reload(db: Session, order_id: int) -> ProductionOrder:
    po = db.get(ProductionOrder, order_id, populate_existing=True)
    if not po:
        raise NotFoundError("Production order", order_id)
    return po


def _status(po: ProductionOrder, user_id: Optional[int]) -> LockStatus:
    return LockStatus(
        production_order_id=po.id,
        is_locked=po.locked_by_id is not None,
        is_owner=po.locked_by_id is not None and po.locked_by_id == user_id,
        owner_id=po.locked_by_id,
        owner_name=po.locked_by_name,
        locked_at=po.locked_at,
    )


def acquire_lock(db: Session, order_id: int, user_id: int, display_name: str) -> LockStatus:
    """
    Take the edit lock.

    Re-acquiring a lock you already hold is a no-op and keeps locked_at.

    Raises:
        AlreadyLockedError: another user holds the lock
    """
    result = db.execute(
        update(ProductionOrder)
        .where(ProductionOrder.id == order_id, ProductionOrder.locked_by_id.is_(None))
        .values(locked_by_id=user_id, locked_by_name=display_name, locked_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    po = _reload(db, order_id)

    if result.rowcount == 0 and po.locked_by_id != user_id:
        logger.info(
            "Lock acquire refused",
            extra={"po_number": po.po_number, "user_id": user_id, "owner_id": po.locked_by_id},
        )
        raise AlreadyLockedError(
            owner_id=po.locked_by_id,
            owner_name=po.locked_by_name,
            locked_at=po.locked_at,
        )

    if result.rowcount:
        logger.info("Lock acquired", extra={"po_number": po.po_number, "user_id": user_id})
    return _status(po, user_id)


def release_lock(db: Session, order_id: int, user_id: int) -> bool:
    """
    Release a lock held by user_id.

    An unlocked order counts as success. Returns True if a lock was removed.

    Raises:
        NotOwnerError: the lock belongs to someone else
    """
    result = db.execute(
        update(ProductionOrder)
        .where(ProductionOrder.id == order_id, ProductionOrder.locked_by_id == user_id)
        .values(locked_by_id=None, locked_by_name=None, locked_at=None)
        .execution_options(synchronize_session=False)
    )
    po = _reload(db, order_id)

    if result.rowcount == 0 and po.locked_by_id is not None:
        raise NotOwnerError(owner_id=po.locked_by_id, owner_name=po.locked_by_name)

    if result.rowcount:
        logger.info("Lock released", extra={"po_number": po.po_number, "user_id": user_id})
    return bool(result.rowcount)


def force_release_lock(db: Session, order_id: int, actor: User) -> Optional[LockStatus]:
    """
    Admin override: drop the lock whoever holds it.

    Returns the previous lock, or None when the order was not locked.
    """
    if not actor.is_admin:
        raise PermissionDeniedError(
            "Only admins can force-release locks", action="force_release_lock"
        )

    po = _reload(db, order_id)
    if po.locked_by_id is None:
        return None
    previous = _status(po, actor.id)

    db.execute(
        update(ProductionOrder)
        .where(ProductionOrder.id == order_id)
        .values(locked_by_id=None, locked_by_name=None, locked_at=None)
        .execution_options(synchronize_session=False)
    )
    _reload(db, order_id)

    audit_service.record_audit(
        db,
        table_name="production_orders",
        record_id=order_id,
        action="force_unlock",
        user_id=actor.id,
        old_values={
            "locked_by_id": previous.owner_id,
            "locked_by_name": previous.owner_name,
            "locked_at": previous.locked_at,
        },
        new_values={"locked_by_id": None},
    )
    db.flush()

    logger.warning(
        "Lock force-released",
        extra={"po_number": po.po_number, "previous_owner_id": previous.owner_id, "admin_id": actor.id},
    )
    return previous


def get_lock_status(db: Session, order_id: int, user_id: Optional[int] = None) -> LockStatus:
    return _status(_reload(db, order_id), user_id)


def ensure_can_edit(order: ProductionOrder, user: User) -> None:
    """Raise AlreadyLockedError when someone other than user holds the lock."""
    if order.locked_by_id is not None and order.locked_by_id != user.id:
        raise AlreadyLockedError(
            owner_id=order.locked_by_id,
            owner_name=order.locked_by_name,
            locked_at=order.locked_at,
        )
