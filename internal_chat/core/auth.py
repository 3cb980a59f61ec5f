"""
Authentication for the internal chat API.

- JWT session tokens (Bearer header or session cookie)
- JWT revocation list in Redis
- ``get_authenticated_user`` dependency guarding every chat route
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from internal_chat.core.config import get_settings
from internal_chat.core.database import get_session
from internal_chat.core.middleware import SESSION_COOKIE
from internal_chat.core.redis import get_redis
from internal_chat.models.user import User

log = structlog.get_logger()
settings = get_settings()

authorization_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


# ---------------------------------------------------------------------------
# JWT Revocation (Redis)
# ---------------------------------------------------------------------------

async def revoke_jwt(jti: str, ttl_seconds: int = 3600) -> None:
    """Add a JWT ID to the revocation list in Redis."""
    redis = await get_redis()
    await redis.setex(f"jwt:revoked:{jti}", ttl_seconds, "1")


async def is_jwt_revoked(jti: str) -> bool:
    """Check if a JWT ID has been revoked."""
    redis = await get_redis()
    return await redis.exists(f"jwt:revoked:{jti}") > 0


# ---------------------------------------------------------------------------
# Authentication dependency
# ---------------------------------------------------------------------------

class AuthenticatedUser:
    """Container for an authenticated user."""

    def __init__(self, user: User):
        self.user = user
        self.user_id = user.id


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return request.cookies.get(SESSION_COOKIE)


async def get_authenticated_user(
    request: Request,
    authorization: Optional[str] = Depends(authorization_header),
    session: AsyncSession = Depends(get_session),
) -> AuthenticatedUser:
    """Verify the caller's session token and load the user it names."""
    token = _extract_token(request, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    try:
        payload = decode_jwt(token)
        user_id = uuid.UUID(payload["sub"])
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    jti = payload.get("jti")
    if jti and await is_jwt_revoked(jti):
        raise HTTPException(status_code=401, detail="Session has been revoked")

    user = await session.get(User, user_id)
    if not user:
        log.warning("auth.unknown_user", user_id=str(user_id))
        raise HTTPException(status_code=401, detail="User not found")

    auth_user = AuthenticatedUser(user=user)
    request.state.auth = auth_user
    structlog.contextvars.bind_contextvars(user_id=str(user_id))
    return auth_user
