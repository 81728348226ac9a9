from typing import Callable
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from lms_quiz.core.exceptions import AuthenticationError, AuthorizationError
from lms_quiz.db.database import get_db
from lms_quiz.models import User, UserRole
from lms_quiz.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI; missing headers are reported by get_current_user
security = HTTPBearer(auto_error=False)


# =====================================================
# Get Current user
# =====================================================
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependency that validates JWT token and returns current user.

    Raises:
        AuthenticationError (401): If token is invalid or missing
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Not authenticated")

    return await AuthService(db).get_current_user(credentials.credentials)


# =====================================================
# Role checks
# =====================================================
def require_roles(*roles: UserRole) -> Callable:
    """
    Dependency factory allowing only the given roles.

    Usage:
        user: User = Depends(require_roles(UserRole.INSTRUCTOR, UserRole.ADMIN))
    """
    allowed = {r.value for r in roles}

    async def checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            logger.info(f"User {current_user.id} ({current_user.role}) denied; requires {sorted(allowed)}")
            raise AuthorizationError("Insufficient permissions for this action")
        return current_user

    return checker


require_student = require_roles(UserRole.STUDENT)
require_author = require_roles(UserRole.INSTRUCTOR, UserRole.ADMIN)
