"""
Registration and login.

Usernames and emails are unique with case-sensitive, exact matching; emails
are stored exactly as submitted. The database unique indexes back up the
pre-check so that two concurrent registrations for the same name cannot
both succeed.
"""

import logging
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import User
from auth.security import hash_password, verify_password, create_access_token

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def register(self, username: str, email: str, password: str) -> Optional[User]:
        """
        Create a new user account.

        Returns:
            The persisted User, or None if the username or email is taken.
        """
        logger.info(f"Registration attempt for username: {username}")

        existing = (
            self.db.query(User)
            .filter(or_(User.username == username, User.email == email))
            .first()
        )
        if existing:
            logger.info(f"Registration failed: username or email already in use: {username}")
            return None

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration
            self.db.rollback()
            logger.info(f"Registration failed on unique constraint: {username}")
            return None
        self.db.refresh(user)

        logger.info(f"User registered successfully: {user.username} (ID: {user.id})")
        return user

    def login(self, username: str, password: str) -> Optional[str]:
        """
        Check credentials and issue a bearer token.

        Returns:
            The signed token, or None. An unknown username and a wrong
            password produce the same None.
        """
        logger.info(f"Login attempt for username: {username}")

        user = self.db.query(User).filter(User.username == username).first()
        if user is None or not verify_password(password, user.password_hash):
            logger.info(f"Login failed for username: {username}")
            return None

        token = create_access_token(user.id, user.username)
        logger.info(f"User logged in successfully: {user.username} (ID: {user.id})")
        return token
