"""
Bearer token helpers.

Tokens are minted by the plant's identity provider with the shared
SECRET_KEY; the subject claim is the ProdTrack user id. create_access_token
exists for service accounts and tests.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from prodtrack.core.config import settings
from prodtrack.logging_config import get_logger

logger = get_logger(__name__)


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    payload = {
        "sub": str(user_id),
        "type": "access",
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Return the claims, or None if the token is expired or invalid."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.info("Rejected invalid token", extra={"reason": str(e)})
        return None


def get_user_from_token(token: str, expected_type: str = "access") -> Optional[int]:
    """Extract the user id from a token of the expected type."""
    payload = decode_token(token)
    if payload is None:
        return None
    if payload.get("type", "access") != expected_type:
        return None
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
