from fastapi import Header, HTTPException, status
from typing import Optional


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> int:
    """
    Extract the authenticated user id from the X-User-ID header.

    The header is set by the upstream gateway after authentication; it is
    trusted as-is.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-ID header is required"
        )

    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header must be an integer"
        )
