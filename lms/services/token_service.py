"""JWT access tokens (HS256).

Issued by POST /auth/login and validated by lms/api/dependencies.py.
Claims: sub (user id), roles, iss, exp, iat, jti.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt

from lms.core.config import SETTINGS

ALGORITHM = "HS256"
ISSUER = "lms-backend"


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
    ttl_minutes: int | None = None,
) -> str:
    now = datetime.now(UTC)
    ttl = ttl_minutes if ttl_minutes is not None else SETTINGS.access_token_ttl_min
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "exp": now + timedelta(minutes=ttl),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or ["student"],
    }
    return jwt.encode(payload, SETTINGS.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    The algorithm is pinned so alg:none and alg-switching tokens fail.
    Raises jwt.ExpiredSignatureError, jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        SETTINGS.jwt_secret,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
