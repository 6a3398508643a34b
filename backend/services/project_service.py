"""
Project CRUD scoped by ownership and visibility.

Only the owner may update or delete a project. Reading is open to the owner
and to every user who created or is assigned a task inside the project.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

import models
import schemas
from auth.permissions import project_visibility_clause, is_project_owner

logger = logging.getLogger(__name__)


class ProjectService:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(models.Project).options(selectinload(models.Project.tasks))

    def list_owned(self, user_id: int) -> List[schemas.Project]:
        """All projects owned by the user, each with a summary of its tasks."""
        logger.debug(f"User {user_id} listing owned projects")

        projects = (
            self._query()
            .filter(models.Project.owner_id == user_id)
            .order_by(models.Project.id)
            .all()
        )

        logger.info(f"User {user_id} retrieved {len(projects)} owned projects")
        return [schemas.Project.model_validate(p) for p in projects]

    def list_visible(self, user_id: int) -> List[schemas.Project]:
        """
        Owned projects plus projects where the user created or is assigned a task.

        Each project appears once no matter how many of the user's tasks it holds.
        """
        logger.debug(f"User {user_id} listing visible projects")

        # EXISTS subquery keeps one row per project
        projects = (
            self._query()
            .filter(project_visibility_clause(user_id))
            .order_by(models.Project.id)
            .all()
        )

        logger.info(f"User {user_id} retrieved {len(projects)} visible projects")
        return [schemas.Project.model_validate(p) for p in projects]

    def get_by_id(self, project_id: int, user_id: int) -> Optional[schemas.Project]:
        logger.debug(f"User {user_id} requesting project {project_id}")

        project = (
            self._query()
            .filter(models.Project.id == project_id, project_visibility_clause(user_id))
            .first()
        )
        if project is None:
            logger.info(f"Project {project_id} not found or not visible to user {user_id}")
            return None

        return schemas.Project.model_validate(project)

    def create(self, dto: schemas.ProjectCreate, user_id: int) -> schemas.Project:
        """Create a project owned by the caller. Always succeeds for an authenticated user."""
        logger.debug(f"User {user_id} creating project: {dto.name}")

        project = models.Project(
            name=dto.name,
            description=dto.description,
            owner_id=user_id,
        )
        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)

        logger.info(f"Project created: {project.name} (ID: {project.id}) by user {user_id}")
        return schemas.Project.model_validate(project)

    def update(self, project_id: int, dto: schemas.ProjectUpdate, user_id: int) -> bool:
        """
        Patch name and/or description. Owner only.

        Fields that are absent or null keep their current value.
        """
        logger.debug(f"User {user_id} updating project {project_id}")

        project = self.db.query(models.Project).filter(models.Project.id == project_id).first()
        if project is None or not is_project_owner(project, user_id):
            logger.info(f"Project {project_id} not found or user {user_id} is not the owner")
            return False

        update_data = {k: v for k, v in dto.model_dump(exclude_unset=True).items() if v is not None}
        for key, value in update_data.items():
            setattr(project, key, value)

        self.db.commit()

        logger.info(f"Project updated: {project.name} (ID: {project_id})")
        return True

    def delete(self, project_id: int, user_id: int) -> bool:
        """Delete a project with all of its tasks and their comments. Owner only."""
        logger.debug(f"User {user_id} deleting project {project_id}")

        project = self.db.query(models.Project).filter(models.Project.id == project_id).first()
        if project is None or not is_project_owner(project, user_id):
            logger.info(f"Project {project_id} not found or user {user_id} is not the owner")
            return False

        project_name = project.name

        # ORM cascade removes tasks and comments in the same transaction
        self.db.delete(project)
        self.db.commit()

        logger.info(f"Project deleted: {project_name} (ID: {project_id})")
        return True
