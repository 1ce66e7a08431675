from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger

from cardclash.core.config import settings

bearer_scheme = HTTPBearer(auto_error=False)


def _signing_key() -> str:
    """Return the key tokens are verified with.

    Without a configured ``jwt_secret`` a random key is generated and kept for
    the life of the process, so only locally minted tokens are accepted.
    """
    if settings.jwt_secret is None:
        logger.warning("JWT_SECRET is not set, falling back to a per-process signing key")
        settings.jwt_secret = secrets.token_urlsafe(32)
    return settings.jwt_secret


def create_access_token(*, user_id: int, ttl_seconds: int = 15 * 60) -> str:
    """Mint a token shaped like the identity provider's (``sub`` is the user id)."""
    issued = datetime.now(UTC)
    claims: dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    return jwt.encode(claims, _signing_key(), algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Raises jwt.InvalidTokenError when the signature, expiry or format is wrong."""
    return jwt.decode(token, _signing_key(), algorithms=[settings.jwt_algorithm])


def _user_id_from_claims(claims: dict[str, Any]) -> int:
    subject = claims.get("sub")
    if not subject:
        raise HTTPException(status_code=401, detail="Token has no subject")
    try:
        return int(subject)
    except ValueError:
        raise HTTPException(status_code=401, detail="Token subject is not a user id") from None


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> int:
    """Authenticate the caller from ``Authorization: Bearer <jwt>``; 401 otherwise."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired") from None
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token") from None

    return _user_id_from_claims(claims)
