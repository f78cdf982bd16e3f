"""
coursereview/security/tokens.py
JWT bearer tokens for the HTTP surface

The core only ever sees an opaque user_id; this module turns a bearer
token into one. Academic ids are never read from the token: they are
loaded from storage on every request, so a stale token cannot widen
visibility.
"""
import logging
from datetime import timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from coursereview.config import settings
from coursereview.errors import ErrorCode, raise_unauthorized
from coursereview.orm.base import utcnow

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = utcnow() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": user_id, "exp": expire, "type": "access"}
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Optional[str]:
    """Return the user id carried by a valid access token, else None."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None
    if payload.get("type") != "access":
        return None
    return payload.get("sub")


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    user_id = decode_token(token)
    if not user_id:
        raise_unauthorized("Invalid or expired token", ErrorCode.AUTH_INVALID)
    return user_id


async def get_optional_user_id(token: Optional[str] = Depends(optional_oauth2_scheme)) -> Optional[str]:
    """User id for an authenticated caller, None for guests or bad tokens."""
    if not token:
        return None
    return decode_token(token)
