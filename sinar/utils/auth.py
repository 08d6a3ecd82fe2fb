"""
Authentication helpers
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from fastapi import Depends, Header, Query
from jose import JWTError, jwt
from passlib.context import CryptContext

from sinar.core.cache import CacheStore, get_cache
from sinar.core.config import settings
from sinar.core.exceptions import Forbidden, Unauthorized
from sinar.services.scope import Principal
from sinar.services.token_blacklist import TokenBlacklist

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # unknown or corrupt hash format
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed JWT access token

    Args:
        data: claims to encode (id, role, category_id)
        expires_delta: lifetime, defaults to ACCESS_TOKEN_EXPIRE_MINUTES

    Returns:
        str: encoded token
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    if "id" in to_encode and "sub" not in to_encode:
        to_encode["sub"] = str(to_encode["id"])
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str, raise_on_error: bool = True) -> Optional[Dict[str, Any]]:
    """
    Verify a JWT token

    Args:
        token: encoded token
        raise_on_error: when False, return None instead of raising

    Returns:
        Dict: the token payload

    Raises:
        Unauthorized: invalid or expired token (when raise_on_error=True)
    """
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        if raise_on_error:
            raise Unauthorized("Invalid or expired token")
        return None


def extract_token(authorization: Optional[str], query_token: Optional[str] = None) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to ?token="""
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
        raise Unauthorized("Invalid authorization header, expected: Bearer {token}")
    return query_token or None


def principal_from_payload(payload: Dict[str, Any]) -> Principal:
    user_id = payload.get("id", payload.get("sub"))
    role = payload.get("role")
    if user_id is None or not role:
        raise Unauthorized("Invalid or expired token")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise Unauthorized("Invalid or expired token")
    category_id = payload.get("category_id")
    return Principal(
        id=user_id,
        role=role,
        category_id=int(category_id) if category_id is not None else None,
        username=payload.get("username"),
    )


async def get_current_token(
    authorization: Optional[str] = Header(None),
    token: Optional[str] = Query(None, description="Token for media elements that cannot send headers"),
) -> str:
    raw = extract_token(authorization, token)
    if not raw:
        raise Unauthorized("Token required")
    return raw


async def get_current_principal(
    token: str = Depends(get_current_token),
    cache: CacheStore = Depends(get_cache),
) -> Principal:
    """
    Resolve the caller from a verified, non-revoked token

    Raises:
        Unauthorized: missing, invalid, expired or logged-out token
    """
    if await TokenBlacklist(cache).contains(token):
        raise Unauthorized("Token has been logged out")
    payload = verify_token(token)
    return principal_from_payload(payload)


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Role gate for admin-only routes, checked before anything is fetched"""
    if not principal.is_admin:
        logger.info("User %s denied admin route", principal.id)
        raise Forbidden("Forbidden: You don't have access to this resource")
    return principal
