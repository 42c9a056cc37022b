"""
API Dependencies
Common dependencies for API endpoints
"""

from typing import Dict
from fastapi import Depends, Query

from retailops.core.database import get_db
from retailops.core.security import get_current_user
from retailops.models.auth import User

__all__ = ["get_db", "get_current_user", "get_current_active_user", "get_pagination_params"]


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """
    Get current active user (inactive users are rejected by get_current_user).
    """
    return current_user


def get_pagination_params(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(100, ge=1, le=500, description="Maximum records to return"),
) -> Dict[str, int]:
    """
    Get pagination parameters.
    """
    return {"skip": skip, "limit": limit}
