"""
Auth endpoints.

    POST /auth/register   create a student or instructor account
    POST /auth/login      email + password -> token pair
    POST /auth/refresh    refresh token -> new access token
    GET  /auth/me         the authenticated user
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.api.deps import get_current_user
from lms_quiz.db.database import get_db
from lms_quiz.models import User
from lms_quiz.schemas.auth import (
    RefreshTokenRequest,
    TokenRefreshResponse,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)
from lms_quiz.services.auth_service import AuthService

router = APIRouter(tags=["Authentication"])


def get_auth_service(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Email already registered"}},
)
async def register(
    user_data: UserRegister,
    service: AuthService = Depends(get_auth_service),
):
    return await service.register(user_data)


@router.post(
    "/login",
    response_model=TokenResponse,
    responses={401: {"description": "Invalid credentials"}},
)
async def login(
    login_data: UserLogin,
    service: AuthService = Depends(get_auth_service),
):
    return await service.login(login_data)


@router.post("/refresh", response_model=TokenRefreshResponse)
async def refresh_token(
    request: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
):
    return await service.refresh_token(request.refresh_token)


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)
