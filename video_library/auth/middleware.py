"""Authentication dependencies for bearer token verification.

Identity is established upstream; this service only verifies the signed
token, extracts the caller and checks the admin capability before any
library operation runs.
"""

import jwt
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from video_library.config import settings
from video_library.logging_config import logger

# Security scheme for extracting Bearer token
security = HTTPBearer()


class AuthUser:
    """Authenticated caller extracted from the JWT token."""

    def __init__(
        self,
        user_id: str,
        email: str = "",
        role: str = "user",
        display_name: Optional[str] = None,
    ):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.display_name = display_name

    @property
    def is_admin(self) -> bool:
        return self.role == settings.admin_role


async def verify_token(token: str) -> dict:
    """Verify a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    if not settings.jwt_secret:
        logger.error("JWT secret not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is not configured",
        )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
        return payload
    except jwt.ExpiredSignatureError:
        logger.warning("Token expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> AuthUser:
    """Get current authenticated user from JWT token.

    The role is read from ``app_metadata.role`` (falling back to a top-level
    ``role`` claim).

    Raises:
        HTTPException: If authentication fails
    """
    payload = await verify_token(credentials.credentials)

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    app_metadata = payload.get("app_metadata") or {}
    user_metadata = payload.get("user_metadata") or {}

    return AuthUser(
        user_id=str(user_id),
        email=payload.get("email") or "",
        role=app_metadata.get("role") or payload.get("role") or "user",
        display_name=user_metadata.get("display_name"),
    )


async def require_admin(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Allow the request only for callers with the admin role."""
    if not user.is_admin:
        logger.warning("Admin access denied", user_id=user.user_id, role=user.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
