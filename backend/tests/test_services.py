"""
Service layer tests (no HTTP) plus the full registration/login walkthrough.

Tests cover:
- AuthService sentinel results for conflicts (including a race only the
  database catches) and bad credentials
- ProjectService/TaskService patch semantics called directly
- Task creation when the project vanishes before the insert
- CommentService author rules
- Register -> duplicate -> bad login -> good login end to end
"""

import logging

from fastapi.testclient import TestClient
from sqlalchemy import event, text
from sqlalchemy.orm import Session

import models
import schemas
from auth.security import verify_token
from services.auth_service import AuthService
from services.comment_service import CommentService
from services.project_service import ProjectService
from services.task_service import TaskService
from services.user_service import UserService

logger = logging.getLogger(__name__)


# ============== AuthService ==============


def test_auth_service_register_conflict_returns_none(test_db: Session):
    service = AuthService(test_db)

    assert service.register("alice", "alice@x.com", "Pwd1234!") is not None
    assert service.register("alice", "new@x.com", "Pwd1234!") is None
    assert service.register("alice_b", "alice@x.com", "Pwd1234!") is None
    assert test_db.query(models.User).count() == 1


def test_auth_service_login(test_db: Session):
    service = AuthService(test_db)
    user = service.register("alice", "alice@x.com", "Pwd1234!")

    assert service.login("alice", "wrong") is None
    assert service.login("ghost", "Pwd1234!") is None

    token = service.login("alice", "Pwd1234!")
    assert verify_token(token)["sub"] == str(user.id)


def test_auth_service_login_with_unparseable_hash(test_db: Session):
    test_db.add(models.User(username="legacy", email="legacy@x.com", password_hash="not-a-hash"))
    test_db.commit()

    assert AuthService(test_db).login("legacy", "whatever") is None


def test_auth_service_register_unique_race_returns_none(test_db: Session):
    """A clash only the database sees is reported like the pre-check conflict."""
    # Pending and unflushed, so the pre-check query cannot see it
    test_db.add(models.User(username="alice", email="other@x.com", password_hash="x"))

    assert AuthService(test_db).register("alice", "alice@x.com", "Pwd1234!") is None

    assert test_db.query(models.User).count() == 0
    assert AuthService(test_db).register("alice", "alice@x.com", "Pwd1234!") is not None
    assert test_db.query(models.User).count() == 1


# ============== ProjectService ==============


def test_project_service_empty_update_is_noop(
    test_db: Session,
    alice: models.User,
    alice_project: models.Project
):
    service = ProjectService(test_db)
    before = service.get_by_id(alice_project.id, alice.id)

    assert service.update(alice_project.id, schemas.ProjectUpdate(), alice.id) is True

    assert service.get_by_id(alice_project.id, alice.id) == before


def test_project_service_visible_is_superset_of_owned(
    test_db: Session,
    alice: models.User,
    bob: models.User,
    alice_project: models.Project
):
    test_db.add(models.Project(name="Bob Project", owner_id=bob.id))
    test_db.add(models.Task(title="Shared", project_id=alice_project.id,
                            created_by_user_id=alice.id, assigned_user_id=bob.id))
    test_db.commit()
    service = ProjectService(test_db)

    owned = {p.id for p in service.list_owned(bob.id)}
    visible = {p.id for p in service.list_visible(bob.id)}

    assert owned < visible
    assert alice_project.id in visible


# ============== TaskService ==============


def test_task_service_update_twice_equals_once(
    test_db: Session,
    alice: models.User,
    alice_task: models.Task
):
    service = TaskService(test_db)
    dto = schemas.TaskUpdate(title="Once", status=schemas.TaskStatus.InProgress)

    assert service.update(alice_task.id, dto, alice.id) is True
    first = service.get_by_id(alice_task.id, alice.id)
    assert service.update(alice_task.id, dto, alice.id) is True
    second = service.get_by_id(alice_task.id, alice.id)

    assert first == second
    assert second.title == "Once"
    assert second.status == schemas.TaskStatus.InProgress


def test_task_service_all_null_update_is_noop(
    test_db: Session,
    alice: models.User,
    alice_task: models.Task
):
    service = TaskService(test_db)
    before = service.get_by_id(alice_task.id, alice.id)

    dto = schemas.TaskUpdate(title=None, description=None, status=None, due_date=None, assigned_user_id=None)
    assert service.update(alice_task.id, dto, alice.id) is True

    assert service.get_by_id(alice_task.id, alice.id) == before


def test_task_service_list_by_project_missing(test_db: Session):
    assert TaskService(test_db).list_by_project(123) is None


def test_task_service_create_in_missing_project(test_db: Session, alice: models.User):
    dto = schemas.TaskCreate(title="Orphan", project_id=404)

    assert TaskService(test_db).create(dto, alice.id) is None
    assert test_db.query(models.Task).count() == 0


def test_task_service_create_project_deleted_before_insert(
    test_db: Session,
    alice: models.User,
    alice_project: models.Project
):
    """The project disappearing between the lookup and the insert yields None."""
    project_id = alice_project.id

    def delete_project(session, flush_context, instances):
        session.connection().execute(text("DELETE FROM projects WHERE id = :id"), {"id": project_id})

    event.listen(test_db, "before_flush", delete_project, once=True)

    dto = schemas.TaskCreate(title="Late", project_id=project_id)
    assert TaskService(test_db).create(dto, alice.id) is None

    assert test_db.query(models.Task).count() == 0
    assert TaskService(test_db).create(dto, alice.id) is not None


# ============== CommentService / UserService ==============


def test_comment_service_delete_author_only(
    test_db: Session,
    alice: models.User,
    bob: models.User,
    alice_task: models.Task
):
    alice_task.assigned_user_id = bob.id
    test_db.commit()
    service = CommentService(test_db)

    comment = service.create(schemas.CommentCreate(text="mine", task_id=alice_task.id), bob.id)
    assert comment.user_id == bob.id

    assert service.delete(comment.id, alice.id) is False
    assert service.delete(comment.id, bob.id) is True
    assert service.list_by_task(alice_task.id, alice.id) == []


def test_user_service_lists_summaries(test_db: Session, alice: models.User, bob: models.User):
    users = UserService(test_db).list_all()

    assert [(u.id, u.username) for u in users] == [(alice.id, "alice"), (bob.id, "bob_user")]


# ============== Scenario ==============


def test_scenario_register_and_login(client: TestClient, test_db: Session):
    """Register, collide on username, fail a login, then log in for real."""
    credentials = {"username": "alice", "email": "alice@x.com", "password": "Pwd1234!"}

    assert client.post("/api/auth/register", json=credentials).status_code == 200

    duplicate = client.post("/api/auth/register", json={**credentials, "email": "alice2@x.com"})
    assert duplicate.status_code == 409

    bad_login = client.post("/api/auth/login", json={"username": "alice", "password": "wrong"})
    assert bad_login.status_code == 401

    good_login = client.post("/api/auth/login", json={"username": "alice", "password": "Pwd1234!"})
    assert good_login.status_code == 200

    alice = test_db.query(models.User).filter(models.User.username == "alice").one()
    assert verify_token(good_login.json()["token"])["sub"] == str(alice.id)
    logger.info("✓ Registration and login walkthrough passed")
