"""
FastAPI dependencies for authentication.

This module provides dependency functions that can be used in route handlers to
extract and validate the current user from the bearer token. Everything past
identity (who may see or change which resource) is decided by the services.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from models import User
from auth.security import verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from the JWT bearer token.

    Args:
        credentials: HTTP Bearer credentials (JWT token)
        db: Database session

    Returns:
        User object if authentication succeeds

    Raises:
        HTTPException: 401 if the token is missing, invalid, expired, or
        names a user that no longer exists

    Example:
        @app.get("/api/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    logger.debug("Attempting to authenticate user")

    if not credentials or not credentials.credentials:
        logger.info("No authentication credentials provided")
        raise _unauthorized("Not authenticated")

    payload = verify_token(credentials.credentials)
    if payload is None:
        logger.info("JWT token verification failed")
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None:
        logger.info("Token payload missing 'sub' claim")
        raise _unauthorized("Invalid token payload")

    # Parse user_id safely (malformed tokens should return 401, not 500)
    try:
        user_id_int = int(user_id)
    except (TypeError, ValueError):
        logger.info(f"Invalid user_id format in token: {user_id}")
        raise _unauthorized("Invalid token format")

    user = db.query(User).filter(User.id == user_id_int).first()
    if user is None:
        logger.info(f"User not found for id: {user_id}")
        raise _unauthorized("User not found")

    logger.debug(f"User authenticated via JWT: {user.username} (ID: {user.id})")
    return user
