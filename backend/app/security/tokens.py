"""Bearer access tokens (signed JWTs).

Payload: ``sub`` (user id), ``username``, ``name``, ``role``, ``iat``, ``exp``.
The identity fields are re-checked against the user store on every request,
so a role or username change invalidates outstanding tokens.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import jwt

from app.config import settings


def create_access_token(
    *,
    user_id: str,
    username: str,
    name: str,
    role: str,
    ttl_seconds: int | None = None,
    now: datetime | None = None,
) -> str:
    """Issue a signed access token for the given identity."""
    issued_at = now or datetime.now(timezone.utc)
    ttl = settings.jwt_ttl_seconds if ttl_seconds is None else ttl_seconds
    payload = {
        "sub": user_id,
        "username": username,
        "name": name,
        "role": role,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + timedelta(seconds=ttl)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Verify signature and expiry.

    Raises:
        jwt.InvalidTokenError: On a bad signature, malformed token, expired
            token, or missing identity claims.
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
    if not payload.get("username") or not payload.get("role"):
        raise jwt.InvalidTokenError("Token is missing identity claims")
    return payload
