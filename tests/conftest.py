import logging
import os
from collections.abc import Generator

# In-memory database for the app module; must be set before it is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "testsecret")
os.environ.setdefault("APP_PASSWORD", "supersecret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import StaticPool, create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from phototitler.ai.client import Completion  # noqa: E402
from phototitler.ai.prompts import ModelRequest  # noqa: E402
from phototitler.database import Base  # noqa: E402
from phototitler.deps import (  # noqa: E402
    get_current_user,
    get_db,
    get_model_client,
    get_storage,
)
from phototitler.errors import AssetNotFoundError  # noqa: E402
from phototitler.main import app  # noqa: E402
from phototitler.storage import ObjectStorage  # noqa: E402

# Configure basic logging for tests
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

# Use an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class MemoryStorage(ObjectStorage):
    """Object storage kept in a dict, for tests."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}

    def list_objects(self, prefix: str) -> list[str]:
        return sorted(k for k in self.objects if k.startswith(prefix))

    def get_object(self, key: str) -> bytes:
        try:
            return self.objects[key]
        except KeyError as exc:
            msg = f"Object not found: {key}"
            raise AssetNotFoundError(msg) from exc

    def put_object(self, key: str, data: bytes, content_type: str) -> None:
        self.objects[key] = data
        self.content_types[key] = content_type

    def delete_object(self, key: str) -> None:
        self.objects.pop(key, None)


class FakeModelClient:
    """Returns queued completions and records every request it receives."""

    def __init__(self) -> None:
        self.completions: list[Completion] = []
        self.requests: list[ModelRequest] = []
        self.error: Exception | None = None

    def queue(self, text: str, input_tokens: int = 0, output_tokens: int = 0) -> None:
        self.completions.append(
            Completion(text=text, input_tokens=input_tokens, output_tokens=output_tokens)
        )

    def complete(self, request: ModelRequest) -> Completion:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.completions.pop(0)


# Database Fixture (Overrides get_db dependency)
@pytest.fixture
def session() -> Generator[Session, None, None]:
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def model_client() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture
def client(
    session: Session,
    storage: MemoryStorage,
    model_client: FakeModelClient,
) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_model_client] = lambda: model_client
    app.dependency_overrides[get_current_user] = lambda: {"sub": "photographer"}
    yield TestClient(app)
    app.dependency_overrides.clear()
