"""
Core Utilities

Shared helpers used across the application.
"""
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    """
    Return timezone-aware UTC datetime.

    Use this instead of datetime.utcnow() which returns naive datetime.
    """
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as an ISO-8601 string, the format stored in documents."""
    return utcnow().isoformat()


def new_id() -> str:
    """Generate a globally unique entity identifier."""
    return str(uuid.uuid4())
