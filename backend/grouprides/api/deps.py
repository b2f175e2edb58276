"""Shared route dependencies."""
from fastapi import Header, HTTPException

from grouprides.core.errors import STATUS_UNAUTHORIZED


def current_user_id(x_user_id: int | None = Header(None, alias="X-User-Id")) -> int:
    """Acting user from the X-User-Id header (session auth lives in front of this service)."""
    if x_user_id is None:
        raise HTTPException(status_code=STATUS_UNAUTHORIZED, detail="Unauthorized")
    return x_user_id
