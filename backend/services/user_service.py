"""
User directory.

Exposes only id and username so clients can pick an assignee without seeing
anyone's email.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

import models
import schemas

logger = logging.getLogger(__name__)


class UserService:
    """Read-only user directory used to populate assignment pickers."""

    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> List[schemas.UserSummary]:
        users = self.db.query(models.User).order_by(models.User.id).all()
        logger.debug(f"Listing {len(users)} users")
        return [schemas.UserSummary.model_validate(u) for u in users]
