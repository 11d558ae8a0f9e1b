import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from kiosk.database import Base, get_db
from kiosk.errors import UpstreamError
from kiosk.main import app
from kiosk.models import User
from kiosk.storage import DeleteResult, get_storage

SQLALCHEMY_DATABASE_URL = "sqlite://"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeStorage:
    """In-memory storage; keys listed in `failing` are never confirmed."""

    def __init__(self, failing=(), broken=False):
        self.failing = set(failing)
        self.broken = broken
        self.calls: list[list[str]] = []

    def delete_files(self, keys):
        self.calls.append(list(keys))
        if self.broken:
            raise UpstreamError("Storage deletion failed")
        return DeleteResult(requested=list(keys), deleted={key for key in keys if key not in self.failing})


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def reset_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, email: str, name: str | None = None) -> User:
    user = User(email=email, name=name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def as_user(user_id: int) -> dict[str, str]:
    return {"X-User-Id": str(user_id)}
