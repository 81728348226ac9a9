"""
Credentials

bcrypt password hashes and signed JWT bearer tokens (python-jose).

Tokens carry the user id in ``sub`` and a ``type`` claim (access / refresh).
Access tokens also carry the user's role; it is informational only, every
request re-reads the user row before authorizing.
"""

import enum
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from lms_quiz.core.config import settings


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


# =====================================================
# Passwords
# =====================================================
def hash_password(password: str) -> str:
    if not password:
        raise ValueError("Password cannot be empty")
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not plain_password or not hashed_password:
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# =====================================================
# Tokens
# =====================================================
def _sign(subject: Any, token_type: TokenType, lifetime: timedelta, **claims) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {
        "sub": str(subject),
        "type": token_type.value,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "jti": uuid.uuid4().hex,
    }
    payload.update({k: v for k, v in claims.items() if v is not None})
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(
    subject: Any,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return _sign(subject, TokenType.ACCESS, lifetime, role=role)


def create_refresh_token(subject: Any, expires_delta: Optional[timedelta] = None) -> str:
    lifetime = expires_delta or timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    return _sign(subject, TokenType.REFRESH, lifetime)


def decode_token(token: str, expected: TokenType = TokenType.ACCESS) -> Optional[Dict[str, Any]]:
    """
    Payload of a valid, unexpired token of the ``expected`` type, else None.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != expected.value:
        return None
    return payload


def issue_tokens(subject: Any, role: Optional[str] = None) -> Dict[str, Any]:
    """Access + refresh pair, shaped like ``TokenResponse``."""
    return {
        "access_token": create_access_token(subject, role=role),
        "refresh_token": create_refresh_token(subject),
        "token_type": "bearer",
        "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    }
