"""
Authentication and role gates for the FastAPI routes.
"""

from typing import Optional

import structlog
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies import get_auth_service
from api.models import CurrentUser, UserRole
from services.auth_service import AuthService
from services.exceptions import AuthError, AuthorizationError

logger = structlog.get_logger(__name__)

# Security scheme; missing headers are reported by protect() with our envelope
security = HTTPBearer(auto_error=False)

KNOWN_ROLES = {role.value for role in UserRole}


async def protect(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> CurrentUser:
    """
    Resolve the bearer token to a user and attach it to the request.

    Raises:
        AuthError: If the token is absent, malformed, expired or orphaned
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Not authorized to access this route")

    user = await auth_service.get_current_user(credentials.credentials)
    role = user.get("role") if user.get("role") in KNOWN_ROLES else UserRole.USER.value

    current_user = CurrentUser(
        id=user["id"],
        username=user["username"],
        name=user.get("name"),
        email=user.get("email"),
        role=role
    )
    request.state.user = current_user
    return current_user


def authorize(*roles: str):
    """
    Build a dependency that only lets the given roles through.

    Usage:
        ``user: CurrentUser = Depends(authorize("admin"))``
    """
    allowed = set(roles)

    async def role_gate(user: CurrentUser = Depends(protect)) -> CurrentUser:
        if user.role.value not in allowed:
            logger.warning("Role gate refused request", user_id=user.id, role=user.role.value)
            raise AuthorizationError(
                f"User role {user.role.value} is not authorized to access this route", 403
            )
        return user

    return role_gate
