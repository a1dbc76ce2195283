import secrets
from typing import Optional

from fastapi import Header, HTTPException

from prode.core.config import settings
from prode.db.session import get_db  # noqa: F401  (routes import it from here)


def require_admin(x_admin_token: Optional[str] = Header(default=None)) -> str:
    """Operator endpoints: the `x-admin-token` header must match ADMIN_TOKEN."""
    if not settings.ADMIN_TOKEN:
        raise HTTPException(status_code=403, detail="Admin endpoints disabled (ADMIN_TOKEN not set)")

    if x_admin_token is None or not secrets.compare_digest(x_admin_token, settings.ADMIN_TOKEN):
        raise HTTPException(status_code=401, detail="Invalid admin token")
    return "admin"
