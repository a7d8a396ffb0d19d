"""
API Dependencies

Authentication, role checks, and the per-request step catalog.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from prodtrack.core.config import settings
from prodtrack.core.security import get_user_from_token
from prodtrack.db.session import get_db
from prodtrack.models.production_order import ProductionOrder
from prodtrack.models.user import User
from prodtrack.services.lock_service import ensure_can_edit
from prodtrack.services.step_catalog import StepCatalog, load_step_catalog

# Tokens are issued by the identity provider, not by this API
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
) -> User:
    """
    Dependency to get the current authenticated user from access token

    Raises:
        HTTPException 401 if token is invalid or user not found
        HTTPException 403 if the user is inactive
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = get_user_from_token(token, expected_type="access")
    if user_id is None:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    return user


async def get_current_admin_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """Require the admin role (force unlock, resolve requests, catalog edits)."""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user


async def get_current_encoder_user(
    current_user: Annotated[User, Depends(get_current_user)]
) -> User:
    """Require a role that may record production (admin or encoder)."""
    if not current_user.can_encode:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Encoder access required"
        )
    return current_user


def get_step_catalog(db: Session = Depends(get_db)) -> StepCatalog:
    """Step chain for this request."""
    return load_step_catalog(db)


def check_edit_lock(order: ProductionOrder, user: User) -> None:
    """Reject a mutation when another user holds the order's lock."""
    if settings.ENFORCE_EDIT_LOCK:
        ensure_can_edit(order, user)
