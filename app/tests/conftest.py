import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock
from datetime import timedelta
import os
from typing import Generator, Any

# Environment first: settings are read when app.core.settings is imported.
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "testsecretkey"
os.environ["FIRST_SUPERUSER_USERNAME"] = "testadmin"
os.environ["FIRST_SUPERUSER_EMAIL"] = "testadmin@example.com"
os.environ["FIRST_SUPERUSER_PASSWORD"] = "testpassword"
os.environ["BCRYPT_ROUNDS"] = "4"

# Registers every model on Base.metadata
import app.models
from app.models.base import Base

from app.core.settings import settings as app_settings
from app.main import app

engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

from app.dependencies import get_db, get_storage
from app.crud.user import create_user, get_user_by_username
from app.core import security


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test. CRUD functions commit and roll back on their own,
    so isolation comes from recreating the tables rather than an outer transaction.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def storage() -> MagicMock:
    """Stand-in for the S3-backed StorageService."""
    return MagicMock()


@pytest.fixture(scope="function")
def client(db: Session, storage: MagicMock) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_superuser(db: Session) -> Any:
    user = get_user_by_username(db, username=app_settings.FIRST_SUPERUSER_USERNAME)
    if not user:
        user = create_user(db=db, data={
            "username": app_settings.FIRST_SUPERUSER_USERNAME,
            "email": app_settings.FIRST_SUPERUSER_EMAIL,
            "password": app_settings.FIRST_SUPERUSER_PASSWORD,
            "name": "Test Admin",
            "is_superuser": True,
            "is_active": True,
        })
    return user


@pytest.fixture(scope="function")
def test_user(db: Session) -> Any:
    user = get_user_by_username(db, username="testuser")
    if not user:
        user = create_user(db=db, data={
            "username": "testuser",
            "email": "testuser@example.com",
            "password": "testpassword",
            "name": "Test User",
        })
    return user


@pytest.fixture(scope="function")
def other_user(db: Session) -> Any:
    return create_user(db=db, data={
        "username": "otheruser",
        "email": "otheruser@example.com",
        "password": "testpassword",
        "name": "Other User",
    })


def _token_headers(username: str) -> dict[str, str]:
    token, _ = security.create_access_token(
        data={"sub": username},
        expires_delta=timedelta(minutes=app_settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def superuser_token_headers(test_superuser: Any) -> dict[str, str]:
    return _token_headers(test_superuser.username)


@pytest.fixture(scope="function")
def normal_user_token_headers(test_user: Any) -> dict[str, str]:
    return _token_headers(test_user.username)


@pytest.fixture(scope="function")
def other_user_token_headers(other_user: Any) -> dict[str, str]:
    return _token_headers(other_user.username)
