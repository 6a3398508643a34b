"""
Comments on tasks.

A comment is reachable only through a task the caller may read. Deleting a
comment is reserved to its author.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

import models
import schemas
from auth.permissions import get_visible_task, is_comment_author
from services.task_service import to_comment_schema

logger = logging.getLogger(__name__)


class CommentService:
    def __init__(self, db: Session):
        self.db = db

    def list_by_task(self, task_id: int, user_id: int) -> Optional[List[schemas.Comment]]:
        """
        Comments of a task in creation order.

        Returns:
            The comment list, or None if the task is missing or not readable by the user.
        """
        logger.debug(f"User {user_id} listing comments for task {task_id}")

        if get_visible_task(self.db, task_id, user_id) is None:
            return None

        comments = (
            self.db.query(models.Comment)
            .options(joinedload(models.Comment.user))
            .filter(models.Comment.task_id == task_id)
            .order_by(models.Comment.created_date, models.Comment.id)
            .all()
        )
        return [to_comment_schema(c) for c in comments]

    def create(self, dto: schemas.CommentCreate, user_id: int) -> Optional[schemas.Comment]:
        logger.debug(f"User {user_id} creating comment on task {dto.task_id}")

        if get_visible_task(self.db, dto.task_id, user_id) is None:
            return None

        # SECURITY: author is always the authenticated user
        comment = models.Comment(
            text=dto.text,
            task_id=dto.task_id,
            user_id=user_id,
        )
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        logger.info(f"Comment created: id={comment.id} on task {dto.task_id} by user {user_id}")
        return to_comment_schema(comment)

    def delete(self, comment_id: int, user_id: int) -> bool:
        logger.debug(f"User {user_id} deleting comment {comment_id}")

        comment = self.db.query(models.Comment).filter(models.Comment.id == comment_id).first()
        if comment is None or not is_comment_author(comment, user_id):
            logger.info(f"Comment {comment_id} not found or user {user_id} is not the author")
            return False

        self.db.delete(comment)
        self.db.commit()

        logger.info(f"Comment deleted: id={comment_id}")
        return True
