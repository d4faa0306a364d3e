"""Authenticated user id supplied by the upstream identity provider.

Authentication happens in front of this service; the gateway forwards the
verified numeric user id in the X-User-Id header.
"""
from typing import Optional
from fastapi import Header, HTTPException


async def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> int:
    """FastAPI dependency returning the caller's user id, 401 when absent."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid user id")
    if user_id < 1:
        raise HTTPException(status_code=401, detail="Invalid user id")
    return user_id
