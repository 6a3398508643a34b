"""
Resource-level access rules.

Three independent relations grant access to a user:
- project ownership (Project.owner_id)
- task creation (Task.created_by_user_id)
- task assignment (Task.assigned_user_id)

Any one of them is enough to read a task; a project is readable by its owner
and by anyone who created or is assigned a task inside it. Mutation rights
are narrower and are spelled out by the predicates below. Callers that are
denied must answer exactly as if the resource did not exist.
"""

import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from models import Project, Task, Comment

logger = logging.getLogger(__name__)


def task_participant_clause(user_id: int):
    """SQL condition: the user created the task or is assigned to it."""
    return or_(Task.created_by_user_id == user_id, Task.assigned_user_id == user_id)


def project_visibility_clause(user_id: int):
    """
    SQL condition selecting every project the user may read.

    Example:
        >>> db.query(Project).filter(project_visibility_clause(user.id)).all()
    """
    return or_(
        Project.owner_id == user_id,
        Project.tasks.any(task_participant_clause(user_id)),
    )


def is_project_owner(project: Project, user_id: int) -> bool:
    return project.owner_id == user_id


def is_task_creator(task: Task, user_id: int) -> bool:
    return task.created_by_user_id == user_id


def is_task_participant(task: Task, user_id: int) -> bool:
    """Creator or assignee: may change status and delete the task."""
    return task.created_by_user_id == user_id or (
        task.assigned_user_id is not None and task.assigned_user_id == user_id
    )


def can_view_task(task: Task, user_id: int) -> bool:
    """Project owner, creator or assignee."""
    return is_task_participant(task, user_id) or task.project.owner_id == user_id


def is_comment_author(comment: Comment, user_id: int) -> bool:
    """Only the author may delete a comment; task or project rights do not extend to it."""
    return comment.user_id == user_id


def get_visible_task(db: Session, task_id: int, user_id: int) -> Optional[Task]:
    """
    Load a task only if the user may read it.

    Args:
        db: Database session
        task_id: ID of the task to load
        user_id: ID of the requesting user

    Returns:
        The Task (project, creator and assignee eagerly loaded), or None when
        the task does not exist or the user has no access. The two cases are
        deliberately indistinguishable.
    """
    logger.debug(f"Checking if user {user_id} can view task {task_id}")

    task = (
        db.query(Task)
        .options(
            joinedload(Task.project),
            joinedload(Task.created_by_user),
            joinedload(Task.assigned_user),
        )
        .filter(Task.id == task_id)
        .first()
    )

    if task is None:
        logger.info(f"Task {task_id} not found")
        return None

    if not can_view_task(task, user_id):
        logger.info(f"User {user_id} has no access to task {task_id}, reporting as not found")
        return None

    return task
