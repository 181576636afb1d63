"""
Bearer-token authentication.

Tokens are HS256 JWTs with the user id in ``sub`` and the role in ``role``.
The signing secret comes from the Settings instance the application factory
stored on ``app.state``. The token only proves identity: the user is loaded
on every request and route guards read the role from the user store, so a
promotion or demotion takes effect without a new token.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from artisan_hub.app.api.deps import get_session
from artisan_hub.app.core.settings import Settings
from artisan_hub.app.models.user import UserRole
from artisan_hub.app.repositories.users import UserRepository

JWT_ALGORITHM = "HS256"


class CurrentUser(BaseModel):
    """Authenticated user as stored now, not as the token remembers it."""
    id: str
    role: str


def create_access_token(user_id: str, role: str, secret: str, expiry_hours: int = 24 * 7) -> str:
    """
    Create JWT token for user authentication.

    Args:
        user_id: User primary key
        role: CUSTOMER, ARTISAN or ADMIN
        secret: HS256 signing secret
        expiry_hours: Token lifetime

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "exp": now + timedelta(hours=expiry_hours),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, secret: str) -> Optional[CurrentUser]:
    """Decode JWT token and return the claimed identity, or None if the token is invalid."""
    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        role = payload.get("role")
        if role not in UserRole.ALL:
            return None
        return CurrentUser(id=str(payload["sub"]), role=role)
    except (jwt.InvalidTokenError, KeyError):
        return None


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_session),
) -> CurrentUser:
    """
    FastAPI dependency to get and validate current user from JWT token.

    Expects Authorization header in format: "Bearer <token>"

    Raises:
        HTTPException 401: If authentication fails or the user no longer exists
    """
    settings = _get_settings(request)
    if not settings.JWT_SECRET:
        raise HTTPException(status_code=503, detail="Authentication not configured (JWT_SECRET missing)")

    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=401,
            detail="Invalid Authorization header format. Expected: Bearer <token>",
        )

    claims = decode_access_token(parts[1], settings.JWT_SECRET)
    if claims is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await UserRepository(session).find_by_id(claims.id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return CurrentUser(id=user.id, role=user.role)


def require_role(*roles: str):
    """Build a dependency that only lets the given roles through."""

    async def _check_role(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return _check_role


require_admin = require_role(UserRole.ADMIN)
require_artisan = require_role(UserRole.ARTISAN)
