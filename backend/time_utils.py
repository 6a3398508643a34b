"""
Time utilities for the task management API.

Every timestamp the service writes (registration, project/task/comment
creation, token issue and expiry) goes through utc_now so that all of them
share one clock and one timezone convention.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """
    Get current UTC time.
    Single source of truth for "now" throughout the application.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)
