"""
Tests for the user directory and user deletion rules.

Tests cover:
- GET /api/user lists every user with id and username only
- Deleting a user referenced by a task as creator or assignee is refused
- Deleting an unreferenced user removes their comments and owned projects
"""

import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import models

logger = logging.getLogger(__name__)


def test_list_users(
    client: TestClient,
    alice: models.User,
    bob: models.User,
    carol: models.User,
    alice_headers: dict
):
    response = client.get("/api/user", headers=alice_headers)

    assert response.status_code == 200, f"Expected 200, got {response.status_code}: {response.json()}"
    assert response.json() == [
        {"id": alice.id, "username": "alice"},
        {"id": bob.id, "username": "bob_user"},
        {"id": carol.id, "username": "carol"},
    ]
    logger.info("✓ User directory exposes only id and username")


def test_list_users_requires_authentication(client: TestClient, alice: models.User):
    response = client.get("/api/user")

    assert response.status_code == 401


def test_list_users_includes_newly_registered(client: TestClient, alice_headers: dict):
    client.post(
        "/api/auth/register",
        json={"username": "dave", "email": "dave@x.com", "password": "Pwd1234!"},
    )

    usernames = [u["username"] for u in client.get("/api/user", headers=alice_headers).json()]

    assert usernames == ["alice", "dave"]


def test_delete_assigned_user_is_restricted(
    test_db: Session,
    bob: models.User,
    alice_task: models.Task
):
    """A user who is the assignee of a task cannot be removed."""
    alice_task.assigned_user_id = bob.id
    test_db.commit()

    test_db.delete(bob)
    with pytest.raises(IntegrityError):
        test_db.commit()
    test_db.rollback()

    assert test_db.query(models.User).filter(models.User.username == "bob_user").first() is not None


def test_delete_task_creator_is_restricted(
    test_db: Session,
    bob: models.User,
    alice_project: models.Project
):
    """A user who created a task cannot be removed."""
    test_db.add(models.Task(title="Bob's", project_id=alice_project.id, created_by_user_id=bob.id))
    test_db.commit()

    test_db.delete(bob)
    with pytest.raises(IntegrityError):
        test_db.commit()
    test_db.rollback()

    assert test_db.query(models.Task).count() == 1


def test_delete_unreferenced_user_cascades(
    test_db: Session,
    alice: models.User,
    bob: models.User,
    alice_task: models.Task
):
    """Comments and owned projects go with the user when no task references them."""
    bob_project = models.Project(name="Bob Project", owner_id=bob.id)
    test_db.add(bob_project)
    test_db.add(models.Comment(text="drive-by", task_id=alice_task.id, user_id=bob.id))
    test_db.commit()

    test_db.delete(bob)
    test_db.commit()
    test_db.expire_all()

    assert test_db.query(models.Comment).count() == 0
    assert [p.name for p in test_db.query(models.Project).all()] == ["Alice Project"]
