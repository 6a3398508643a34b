"""
Authentication API endpoints.

This module provides REST API endpoints for:
- User registration
- Login (bearer token issuance)
- Looking up the identity behind the current token
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from database import get_db
from models import User
import schemas
from services.auth_service import AuthService
from auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/register", response_model=schemas.RegisterResponse)
async def register(
    request: schemas.RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user account.

    Raises:
        HTTPException: 409 if the username or email is already in use
    """
    user = auth_service.register(request.username, request.email, request.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username or email is already in use.",
        )

    return schemas.RegisterResponse(username=user.username)


@router.post("/login", response_model=schemas.TokenResponse)
async def login(
    request: schemas.LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Login with username and password.

    Raises:
        HTTPException: 401 if credentials are invalid. The message is the
        same whether the username or the password was wrong.
    """
    token = auth_service.login(request.username, request.password)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return schemas.TokenResponse(token=token)


@router.get("/me", response_model=schemas.UserProfile)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get the user the bearer token was issued to."""
    logger.debug(f"Fetching user info for: {current_user.username}")
    return current_user
