"""
Auth Service

Account registration, password login and token exchange for the quiz API.
Every failure surfaces as ``AuthenticationError`` (401) so callers cannot
tell a wrong password from an unknown email.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.config import settings
from lms_quiz.core.exceptions import AuthenticationError, DuplicateEmailError
from lms_quiz.core.security import (
    TokenType,
    create_access_token,
    decode_token,
    hash_password,
    issue_tokens,
    verify_password,
)
from lms_quiz.models import User
from lms_quiz.repositories.user_repo import UserRepository
from lms_quiz.schemas.auth import (
    TokenRefreshResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from lms_quiz.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_repo = UserRepository(db)

    async def register(self, user_data: UserRegister) -> TokenResponse:
        """
        Raises:
            DuplicateEmailError: the email is already registered
        """
        if await self.user_repo.get_by_email(user_data.email):
            raise DuplicateEmailError()

        user = await self.user_repo.create_user(
            email=user_data.email,
            password_hash=hash_password(user_data.password),
            full_name=user_data.full_name,
            role=user_data.role,
        )
        await self.db.commit()
        logger.info(f"Registered {user.role} {user.id}")
        return self._token_response(user)

    async def login(self, login_data: UserLogin) -> TokenResponse:
        user = await self.user_repo.get_by_email(login_data.email)
        if not user or not verify_password(login_data.password, user.password_hash):
            logger.info("Rejected login: bad credentials")
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise AuthenticationError("This account has been deactivated")

        user.last_login = utc_now()
        await self.db.commit()
        return self._token_response(user)

    async def refresh_token(self, refresh_token: str) -> TokenRefreshResponse:
        user = await self._user_from_token(refresh_token, TokenType.REFRESH)
        if not user:
            raise AuthenticationError("Invalid or expired refresh token")

        return TokenRefreshResponse(
            access_token=create_access_token(user.id, role=user.role),
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        )

    async def get_current_user(self, token: str) -> User:
        """Resolve the active user behind an access token."""
        user = await self._user_from_token(token, TokenType.ACCESS)
        if not user:
            raise AuthenticationError("Invalid or expired token")
        return user

    async def _user_from_token(self, token: str, expected: TokenType) -> Optional[User]:
        payload = decode_token(token, expected)
        if not payload:
            return None
        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError:
            return None

        user = await self.user_repo.get_by_id(user_id)
        if not user or not user.is_active:
            return None
        return user

    def _token_response(self, user: User) -> TokenResponse:
        return TokenResponse(
            **issue_tokens(user.id, role=user.role),
            user=UserResponse.model_validate(user),
        )
