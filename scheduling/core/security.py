"""Verification of the access tokens presented by API callers.

Tokens are issued by the hospital's identity provider and signed with the
shared ``JWT_SECRET_KEY``. Only the subject (the user id) is trusted; the
caller's role is always looked up in the user directory.
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from scheduling.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign an access token for local tooling and tests.

    Args:
        data: Claims to include; ``sub`` should be the user id
        expires_delta: Lifetime, defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES``

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    claims = {
        **data,
        "iat": issued_at,
        "exp": issued_at + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Verify signature, expiry and token type.

    Returns:
        The claims, or None if the token must be rejected
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    if claims.get("type") != ACCESS_TOKEN_TYPE:
        return None

    return claims


def subject_from_token(token: str) -> UUID | None:
    """User id carried by a valid access token, or None."""
    claims = decode_access_token(token)
    if claims is None:
        return None

    subject = claims.get("sub")
    if not isinstance(subject, str):
        return None

    try:
        return UUID(subject)
    except ValueError:
        return None
