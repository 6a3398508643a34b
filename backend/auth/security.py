"""
Security utilities for password hashing and JWT token management.

This module provides cryptographic functions for:
- Password hashing using Argon2id (memory-hard, salted per hash)
- Issuing and verifying the signed bearer token that carries a user's identity
"""

import logging
import secrets
import os
from datetime import timedelta
from typing import Optional, Dict, Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from time_utils import utc_now

logger = logging.getLogger(__name__)


def is_production_like() -> bool:
    """
    Check if the current environment is production-like (production or staging).

    Returns:
        True if ENVIRONMENT is "production" or "staging", False otherwise
    """
    env = os.environ.get("ENVIRONMENT", "development").lower()
    return env in ("production", "staging")


# Password hashing configuration using Argon2id
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

# Signing key is loaded once at import and never rotated while the process runs
SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
if not SECRET_KEY:
    if is_production_like():
        raise ValueError(
            "JWT_SECRET_KEY environment variable is required in production. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )
    else:
        SECRET_KEY = "dev-insecure-key-" + secrets.token_urlsafe(32)
        logger.warning(
            "⚠️  JWT_SECRET_KEY not set! Using temporary development key. "
            "Tokens will not survive a restart. Set JWT_SECRET_KEY environment variable."
        )

ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
ISSUER = os.environ.get("JWT_ISSUER", "TaskManagementApi")
AUDIENCE = os.environ.get("JWT_AUDIENCE", "TaskManagementClient")

try:
    ACCESS_TOKEN_EXPIRE_HOURS = int(os.environ.get("ACCESS_TOKEN_EXPIRE_HOURS", "8"))
    if ACCESS_TOKEN_EXPIRE_HOURS < 1 or ACCESS_TOKEN_EXPIRE_HOURS > 24:
        logger.warning(
            f"⚠️  ACCESS_TOKEN_EXPIRE_HOURS={ACCESS_TOKEN_EXPIRE_HOURS} is outside safe range (1-24). "
            "Using default of 8 hours."
        )
        ACCESS_TOKEN_EXPIRE_HOURS = 8
except ValueError:
    logger.warning(
        "⚠️  Invalid ACCESS_TOKEN_EXPIRE_HOURS value in environment. Using default of 8 hours."
    )
    ACCESS_TOKEN_EXPIRE_HOURS = 8

# Only symmetric algorithms make sense with a single server-held key
SUPPORTED_ALGORITHMS = ["HS256", "HS384", "HS512"]
if ALGORITHM not in SUPPORTED_ALGORITHMS:
    logger.warning(
        f"⚠️  Unsupported JWT_ALGORITHM={ALGORITHM}. Using HS256. "
        f"Supported: {', '.join(SUPPORTED_ALGORITHMS)}"
    )
    ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string (salt embedded)

    Example:
        >>> hashed = hash_password("my_secure_password")
        >>> verify_password("my_secure_password", hashed)
        True
    """
    logger.debug("Hashing password")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to compare against

    Returns:
        True if password matches, False otherwise
    """
    logger.debug("Verifying password")
    try:
        is_valid = pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Stored value is not a recognizable hash
        logger.info("Stored password hash could not be parsed")
        return False
    logger.debug(f"Password verification result: {is_valid}")
    return is_valid


def create_access_token(user_id: int, username: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create the signed bearer token for a user.

    The user id is the subject claim; the username travels alongside it so
    clients can display who is logged in without another request.

    Args:
        user_id: Primary key of the authenticated user
        username: The user's username
        expires_delta: Optional custom lifetime (defaults to ACCESS_TOKEN_EXPIRE_HOURS)

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(1, "alice")
    """
    now = utc_now()
    if expires_delta is not None:
        expire = now + expires_delta
    else:
        expire = now + timedelta(hours=ACCESS_TOKEN_EXPIRE_HOURS)

    to_encode = {
        "sub": str(user_id),
        "username": username,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": now,
        "exp": expire,
    }

    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    logger.debug(f"Access token created for user {user_id}, expires at: {expire}")
    return encoded_jwt


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a JWT token.

    Signature, expiry, issuer and audience are all checked.

    Args:
        token: JWT token string to verify

    Returns:
        Decoded token payload if valid, None otherwise

    Example:
        >>> payload = verify_token(token)
        >>> if payload:
        ...     user_id = payload.get("sub")
    """
    logger.debug("Verifying JWT token")
    try:
        payload = jwt.decode(
            token,
            SECRET_KEY,
            algorithms=[ALGORITHM],
            audience=AUDIENCE,
            issuer=ISSUER,
        )
        logger.debug(f"Token verified successfully for user: {payload.get('sub')}")
        return payload
    except JWTError as e:
        logger.info(f"JWT verification failed: {str(e)}")
        return None
