"""
Session tokens for the single photographer account.

The account has one shared password (APP_PASSWORD); a successful login
returns a signed JWT which every other route expects as a bearer token.
"""

import hmac
import os
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from fastapi import HTTPException, status
from jwt import PyJWTError

ALGORITHM = "HS256"
# One week, matching a photographer's working session on a collection
DEFAULT_SESSION_MINUTES = 60 * 24 * 7
SESSION_SUBJECT = "photographer"


def get_secret_key() -> str:
    secret = os.getenv("JWT_SECRET_KEY")
    if not secret:
        msg = "JWT_SECRET_KEY not set in environment"
        raise RuntimeError(msg)
    return secret


def check_password(candidate: str) -> bool:
    expected = os.getenv("APP_PASSWORD")
    if not expected:
        return False
    return hmac.compare_digest(candidate.encode(), expected.encode())


def create_access_token(expires_delta: timedelta | None = None) -> str:
    minutes = int(os.getenv("SESSION_MINUTES", str(DEFAULT_SESSION_MINUTES)))
    expire = datetime.now(UTC) + (expires_delta or timedelta(minutes=minutes))
    claims = {"sub": SESSION_SUBJECT, "exp": expire}
    return jwt.encode(claims, get_secret_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode a session token and return its claims. Raises 401 if invalid,
    expired, or issued for another subject.
    """
    try:
        claims = jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
    except PyJWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc
    if claims.get("sub") != SESSION_SUBJECT:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return claims
