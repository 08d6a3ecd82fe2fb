"""
Authentication service
"""
import logging
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from sinar.core.cache import CacheStore
from sinar.core.config import settings
from sinar.core.exceptions import Unauthorized
from sinar.models.user import User
from sinar.schemas.auth import LoginResponse, LoginUser
from sinar.services.token_blacklist import TokenBlacklist
from sinar.utils.auth import create_access_token, verify_password

logger = logging.getLogger(__name__)

# one message for unknown user, inactive user and wrong password
INVALID_CREDENTIALS = "Invalid username or password"


class AuthService:
    """Authentication service"""

    @classmethod
    async def login(cls, db: AsyncSession, username: str, password: str) -> LoginResponse:
        """
        Verify credentials and issue a token

        Args:
            db: database session
            username: username
            password: plain password

        Returns:
            LoginResponse: token plus a user summary

        Raises:
            Unauthorized: unknown user, inactive user or wrong password
        """
        result = await db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()

        if not user or not user.is_active or not verify_password(password, user.password):
            logger.info("Failed login for username %r", username)
            raise Unauthorized(INVALID_CREDENTIALS)

        role = user.role.name if user.role else ""
        token = create_access_token({
            "id": user.id,
            "username": user.username,
            "role": role,
            "category_id": user.category_id,
        })
        logger.info("User %s logged in", user.id)

        return LoginResponse(
            token=token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=LoginUser(
                id=user.id,
                username=user.username,
                role=role,
                category_id=user.category_id,
                category=user.category.name if user.category else None,
            ),
        )

    @staticmethod
    async def logout(cache: CacheStore, token: str, user_id: int) -> None:
        """Revoke the token until it would have expired on its own"""
        stored = await TokenBlacklist(cache).add(token)
        logger.info("User %s logged out%s", user_id, "" if stored else " (token already expired)")
