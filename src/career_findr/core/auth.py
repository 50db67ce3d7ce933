"""
Authentication and Authorization Module

Provides authentication dependencies for FastAPI endpoints.
Bearer tokens are issued by the identity provider; this module validates
them and exposes role-gated dependencies for students, institutes,
companies and admins.

SECURITY NOTE:
- Development mode test tokens are ONLY accepted when PYTHON_ENV=development
- Production environments MUST set PYTHON_ENV=production to disable them
"""

import logging
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from career_findr.core.config import settings
from career_findr.core.security import decode_token
from career_findr.modules.users.models import UserRole

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation
security = HTTPBearer(
    auto_error=True,
    description="JWT Bearer token for authentication",
)


@dataclass
class CurrentUser:
    """
    Represents the authenticated caller.

    Populated from JWT claims after token validation. Role and approval
    are re-read from the identity directory by services that need them.
    """

    id: UUID
    email: str
    role: UserRole
    name: str | None = None

    def __str__(self) -> str:
        return f"CurrentUser(id={self.id}, email={self.email}, role={self.role.value})"


def _is_dev_mode_safe() -> bool:
    """
    Check if development test tokens can be enabled.

    Requires PYTHON_ENV=development in settings and in the raw environment,
    and never in production or staging.
    """
    env_var = os.getenv("PYTHON_ENV", "").lower()

    is_safe = settings.is_development and env_var == "development"

    if is_safe:
        logger.warning(
            "SECURITY: Development auth mode is ENABLED. This MUST NOT be used in production!"
        )

    return is_safe


_DEVELOPMENT_MODE = _is_dev_mode_safe()

_DEV_ADMIN = CurrentUser(
    id=UUID("00000000-0000-0000-0000-000000000001"),
    email="admin@careerfindr.dev",
    role=UserRole.ADMIN,
    name="Development Admin",
)


def _invalid_token(error: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _parse_dev_token(token: str) -> CurrentUser | None:
    """
    Accept local test tokens.

    ``dev-token`` maps to the development admin. ``<role>:<uuid>`` maps to
    a user of that role, e.g. ``student:6f1c...``.
    """
    if token == "dev-token":
        return _DEV_ADMIN

    role_part, _, id_part = token.partition(":")
    try:
        role = UserRole(role_part)
        user_id = UUID(id_part)
    except ValueError:
        return None

    return CurrentUser(
        id=user_id,
        email=f"{role.value}-{str(user_id)[:8]}@careerfindr.dev",
        role=role,
        name=f"Test {role.value.title()}",
    )


async def _validate_jwt_token(token: str) -> CurrentUser:
    """
    Validate a JWT token and extract the caller's claims.

    Raises:
        HTTPException 401: If the token is invalid, expired or has bad claims
    """
    if _DEVELOPMENT_MODE:
        dev_user = _parse_dev_token(token)
        if dev_user is not None:
            logger.debug("Development mode: Using test token")
            return dev_user

    payload = decode_token(token)

    if payload is None:
        logger.warning("Invalid or expired JWT token")
        raise _invalid_token("INVALID_TOKEN", "Invalid or expired authentication token.")

    token_type = payload.get("type", "access")
    if token_type != "access":
        logger.warning(f"Invalid token type: {token_type}")
        raise _invalid_token("INVALID_TOKEN_TYPE", "This endpoint requires an access token.")

    try:
        user_id_str = payload.get("sub")
        if not user_id_str:
            raise ValueError("Missing 'sub' claim in token")

        return CurrentUser(
            id=UUID(user_id_str),
            email=payload.get("email", ""),
            role=UserRole(payload.get("role", "")),
            name=payload.get("name"),
        )
    except ValueError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise _invalid_token(
            "INVALID_TOKEN_CLAIMS", "Token contains invalid or missing claims."
        ) from e


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """FastAPI dependency returning the authenticated caller of any role."""
    return await _validate_jwt_token(credentials.credentials)


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[CurrentUser]]:
    """
    Build a dependency that only admits callers with one of ``roles``.

    Usage:
        @router.post("/applications")
        async def submit(user: CurrentUser = Depends(require_roles(UserRole.STUDENT))):
            ...
    """
    allowed = set(roles)

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in allowed:
            logger.warning(
                f"Access denied: User {user.id} has role '{user.role.value}', "
                f"required one of {sorted(r.value for r in allowed)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "ROLE_NOT_ALLOWED",
                    "message": "Your role is not allowed to perform this action.",
                },
            )
        return user

    return dependency


get_current_student = require_roles(UserRole.STUDENT)
get_current_institute = require_roles(UserRole.INSTITUTE)
get_current_company = require_roles(UserRole.COMPANY)
get_current_listing_owner = require_roles(UserRole.INSTITUTE, UserRole.COMPANY)
get_current_admin_user = require_roles(UserRole.ADMIN)


__all__ = [
    "CurrentUser",
    "get_current_user",
    "require_roles",
    "get_current_student",
    "get_current_institute",
    "get_current_company",
    "get_current_listing_owner",
    "get_current_admin_user",
]
