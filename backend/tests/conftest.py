"""
Test configuration and fixtures for the task management API tests.

Provides:
- Test database with SQLite in-memory for speed (foreign keys enforced)
- FastAPI test client with database dependency override
- Authentication helpers (JWT token generation)
- Common fixtures for users, projects, tasks and comments
"""

import os
import sys
import logging
from datetime import timedelta
from typing import Generator, Dict

# Settings are read at import time, so they must be in place first
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-task-management-tests")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base, get_db, enable_sqlite_foreign_keys
from main import app
import models
from auth.security import hash_password, create_access_token

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

# Hashing is slow by design; share one hash across fixture users
DEFAULT_PASSWORD = "Pwd1234!"
_DEFAULT_PASSWORD_HASH = None


def default_password_hash() -> str:
    global _DEFAULT_PASSWORD_HASH
    if _DEFAULT_PASSWORD_HASH is None:
        _DEFAULT_PASSWORD_HASH = hash_password(DEFAULT_PASSWORD)
    return _DEFAULT_PASSWORD_HASH


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.

    This ensures test isolation and fast execution.
    """
    logger.debug("Creating test database")

    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def client(test_db: Session) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(db: Session, username: str, email: str = None) -> models.User:
    """Insert a user directly, bypassing the registration endpoint."""
    user = models.User(
        username=username,
        email=email or f"{username}@test.com",
        password_hash=default_password_hash(),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created user {username} with ID: {user.id}")
    return user


@pytest.fixture(scope="function")
def alice(test_db: Session) -> models.User:
    return make_user(test_db, "alice", "alice@x.com")


@pytest.fixture(scope="function")
def bob(test_db: Session) -> models.User:
    return make_user(test_db, "bob_user", "bob@x.com")


@pytest.fixture(scope="function")
def carol(test_db: Session) -> models.User:
    return make_user(test_db, "carol", "carol@x.com")


def create_auth_token(user: models.User, expires_delta: timedelta = None) -> str:
    """
    Helper to create JWT access token for a user.

    Args:
        user: User to create token for
        expires_delta: Optional expiration time override

    Returns:
        JWT access token string
    """
    return create_access_token(user.id, user.username, expires_delta)


def auth_headers_for(user: models.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


@pytest.fixture(scope="function")
def alice_headers(alice: models.User) -> Dict[str, str]:
    return auth_headers_for(alice)


@pytest.fixture(scope="function")
def bob_headers(bob: models.User) -> Dict[str, str]:
    return auth_headers_for(bob)


@pytest.fixture(scope="function")
def carol_headers(carol: models.User) -> Dict[str, str]:
    return auth_headers_for(carol)


@pytest.fixture(scope="function")
def alice_project(test_db: Session, alice: models.User) -> models.Project:
    """A project owned by alice with no tasks."""
    project = models.Project(
        name="Alice Project",
        description="A project owned by alice",
        owner_id=alice.id,
    )
    test_db.add(project)
    test_db.commit()
    test_db.refresh(project)
    logger.info(f"Created project with ID: {project.id}")
    return project


@pytest.fixture(scope="function")
def alice_task(test_db: Session, alice: models.User, alice_project: models.Project) -> models.Task:
    """An unassigned task created by alice inside her project."""
    task = models.Task(
        title="Alice Task",
        description="Created by alice",
        project_id=alice_project.id,
        created_by_user_id=alice.id,
    )
    test_db.add(task)
    test_db.commit()
    test_db.refresh(task)
    logger.info(f"Created task with ID: {task.id}")
    return task
