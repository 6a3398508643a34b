"""
Task CRUD, status changes and assignment.

Rights over a task:
- read: project owner, creator or assignee
- change title, description, due date, assignee: creator only
- change status, delete: creator or assignee

No status transition is forbidden; any of the three values may be set at
any time by a caller holding status rights.
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

import models
import schemas
from auth.permissions import get_visible_task, is_task_creator, is_task_participant, project_visibility_clause

logger = logging.getLogger(__name__)

# Fields only the creator may change through update()
CREATOR_ONLY_FIELDS = {"title", "description", "due_date", "assigned_user_id"}


def to_task_schema(task: models.Task) -> schemas.Task:
    return schemas.Task(
        id=task.id,
        title=task.title,
        description=task.description,
        status=task.status.value,
        project_id=task.project_id,
        created_date=task.created_date,
        due_date=task.due_date,
        created_by_user_id=task.created_by_user_id,
        created_by_username=task.created_by_user.username if task.created_by_user else None,
        assigned_user_id=task.assigned_user_id,
        assigned_username=task.assigned_user.username if task.assigned_user else None,
        project_owner_id=task.project.owner_id,
    )


def to_comment_schema(comment: models.Comment) -> schemas.Comment:
    return schemas.Comment(
        id=comment.id,
        text=comment.text,
        task_id=comment.task_id,
        user_id=comment.user_id,
        username=comment.user.username if comment.user else None,
        created_date=comment.created_date,
    )


def to_task_details(task: models.Task) -> schemas.TaskDetails:
    return schemas.TaskDetails(
        **to_task_schema(task).model_dump(),
        project_name=task.project.name,
        assigned_user_email=task.assigned_user.email if task.assigned_user else None,
        comments=[to_comment_schema(c) for c in task.comments],
    )


class TaskService:
    def __init__(self, db: Session):
        self.db = db

    def _user_exists(self, user_id: int) -> bool:
        return self.db.query(models.User.id).filter(models.User.id == user_id).first() is not None

    def _load(self, task_id: int) -> Optional[models.Task]:
        return self.db.query(models.Task).filter(models.Task.id == task_id).first()

    def list_by_project(self, project_id: int) -> Optional[List[schemas.Task]]:
        """
        All tasks of a project.

        Callers reach a project through ProjectService first, so no further
        ownership filter is applied here.

        Returns:
            The task list (possibly empty), or None if the project does not exist.
        """
        logger.debug(f"Listing tasks for project {project_id}")

        project = self.db.query(models.Project).filter(models.Project.id == project_id).first()
        if project is None:
            logger.info(f"Project {project_id} not found")
            return None

        tasks = (
            self.db.query(models.Task)
            .options(
                joinedload(models.Task.project),
                joinedload(models.Task.created_by_user),
                joinedload(models.Task.assigned_user),
            )
            .filter(models.Task.project_id == project_id)
            .order_by(models.Task.id)
            .all()
        )

        logger.info(f"Retrieved {len(tasks)} tasks for project {project_id}")
        return [to_task_schema(t) for t in tasks]

    def get_by_id(self, task_id: int, user_id: int) -> Optional[schemas.TaskDetails]:
        logger.debug(f"User {user_id} requesting task {task_id}")

        task = get_visible_task(self.db, task_id, user_id)
        if task is None:
            return None
        return to_task_details(task)

    def create(self, dto: schemas.TaskCreate, user_id: int) -> Optional[schemas.TaskDetails]:
        """
        Create a task with the caller as creator.

        The project must exist and be visible to the caller (owner, or creator
        or assignee of one of its tasks). A hidden project is reported the same
        way as a missing one.

        An assigned_user_id that names no user is dropped and the task is
        created unassigned.

        Returns:
            The created task, or None if the project is missing or not visible.
        """
        logger.info(f"User {user_id} creating task: {dto.title} in project {dto.project_id}")

        project = (
            self.db.query(models.Project)
            .filter(models.Project.id == dto.project_id, project_visibility_clause(user_id))
            .first()
        )
        if project is None:
            logger.info(f"Project {dto.project_id} not found or not visible to user {user_id}")
            return None

        assigned_user_id = dto.assigned_user_id
        if assigned_user_id is not None and not self._user_exists(assigned_user_id):
            logger.info(f"Assignee {assigned_user_id} not found, creating task unassigned")
            assigned_user_id = None

        # SECURITY: creator is always the authenticated user
        task = models.Task(
            title=dto.title,
            description=dto.description,
            status=models.TaskStatus(dto.status.value),
            due_date=dto.due_date,
            project_id=dto.project_id,
            created_by_user_id=user_id,
            assigned_user_id=assigned_user_id,
        )
        self.db.add(task)
        try:
            self.db.commit()
        except IntegrityError:
            # Project (or assignee) removed between the check and the insert
            self.db.rollback()
            logger.info(f"Task creation in project {dto.project_id} failed on foreign key")
            return None
        self.db.refresh(task)

        logger.info(f"Task created successfully: id={task.id}")
        return to_task_details(task)

    def update(self, task_id: int, dto: schemas.TaskUpdate, user_id: int) -> bool:
        """
        Patch a task.

        Absent or null fields are left unchanged. Title, description, due
        date and assignee require the creator; status alone may also be
        changed by the assignee. A payload the caller is not entitled to
        apply in full is rejected without touching the task.
        """
        logger.debug(f"User {user_id} updating task {task_id}")

        task = self._load(task_id)
        if task is None or not is_task_participant(task, user_id):
            logger.info(f"Task {task_id} not found or user {user_id} is not creator/assignee")
            return False

        update_data = {k: v for k, v in dto.model_dump(exclude_unset=True).items() if v is not None}

        if CREATOR_ONLY_FIELDS & update_data.keys() and not is_task_creator(task, user_id):
            logger.info(f"User {user_id} may only change the status of task {task_id}")
            return False

        if "assigned_user_id" in update_data and not self._user_exists(update_data["assigned_user_id"]):
            logger.info(f"Assignee {update_data['assigned_user_id']} not found, task {task_id} unchanged")
            return False

        if "status" in update_data:
            update_data["status"] = models.TaskStatus(update_data["status"].value)

        for key, value in update_data.items():
            setattr(task, key, value)

        self.db.commit()

        logger.info(f"Task updated: id={task_id}")
        return True

    def update_status(self, task_id: int, status: schemas.TaskStatus, user_id: int) -> bool:
        logger.debug(f"User {user_id} setting status of task {task_id} to {status.value}")

        task = self._load(task_id)
        if task is None or not is_task_participant(task, user_id):
            logger.info(f"Task {task_id} not found or user {user_id} is not creator/assignee")
            return False

        old_status = task.status.value
        task.status = models.TaskStatus(status.value)
        self.db.commit()

        logger.info(f"Task {task_id} status changed: {old_status} -> {status.value}")
        return True

    def assign_user(self, task_id: int, assignee_id: int, user_id: int) -> bool:
        """Assign the task to an existing user. Creator only."""
        logger.debug(f"User {user_id} assigning task {task_id} to user {assignee_id}")

        task = self._load(task_id)
        if task is None or not is_task_creator(task, user_id):
            logger.info(f"Task {task_id} not found or user {user_id} is not the creator")
            return False

        if not self._user_exists(assignee_id):
            logger.info(f"Assignee {assignee_id} not found, task {task_id} unchanged")
            return False

        task.assigned_user_id = assignee_id
        self.db.commit()

        logger.info(f"Task {task_id} assigned to user {assignee_id}")
        return True

    def delete(self, task_id: int, user_id: int) -> bool:
        """Delete a task and its comments. Creator or assignee."""
        logger.debug(f"User {user_id} deleting task {task_id}")

        task = self._load(task_id)
        if task is None or not is_task_participant(task, user_id):
            logger.info(f"Task {task_id} not found or user {user_id} is not creator/assignee")
            return False

        self.db.delete(task)
        self.db.commit()

        logger.info(f"Task deleted: id={task_id}")
        return True
