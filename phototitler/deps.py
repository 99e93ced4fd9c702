from collections.abc import Generator
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from phototitler.ai.client import ClaudeClient, ModelClient
from phototitler.database import SessionLocal
from phototitler.storage import ObjectStorage, get_storage_backend
from phototitler.utils.jwt import decode_access_token

security = HTTPBearer()


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),  # noqa: B008
) -> dict[str, Any]:
    """
    Dependency to get the session claims from a JWT bearer token.
    Raises 401 if the token is invalid or missing.
    """
    return decode_access_token(credentials.credentials)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency that provides a database session and closes it when done,
    regardless of whether an exception occurs.
    Yields:
        Session: SQLAlchemy database session
    """
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_raw_body(request: Request) -> bytes:
    """Dependency returning the raw request body, read on the event loop."""
    return await request.body()


def get_storage() -> ObjectStorage:
    """Dependency returning the configured object storage backend."""
    return get_storage_backend()


def get_model_client() -> ModelClient:
    """Dependency returning the generative model client."""
    return ClaudeClient()
