"""
JWT helpers.

Tokens are minted by the identity provider; this service only needs to
decode them. The encoders are kept for scripts and tests that need a
locally signed token.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from career_findr.core.config import settings


def _encode(claims: dict[str, Any]) -> str:
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_access_token(
    subject: str,
    additional_claims: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed access token for ``subject`` (the user id)."""
    expire = datetime.now(UTC) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, Any] = {"sub": subject, "exp": expire, "type": "access"}
    if additional_claims:
        claims.update(additional_claims)
    return _encode(claims)


def create_refresh_token(subject: str) -> str:
    expire = datetime.now(UTC) + timedelta(days=settings.refresh_token_expire_days)
    return _encode({"sub": subject, "exp": expire, "type": "refresh"})


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and verify a JWT. Returns None when invalid or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
