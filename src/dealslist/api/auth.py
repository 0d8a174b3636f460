"""Bearer token authentication for the admin API."""

from fastapi import Header, HTTPException

from .config import get_settings


async def verify_admin_token(authorization: str | None = Header(None)) -> None:
    """Validate the bearer token sent by the admin dashboard."""
    expected = f"Bearer {get_settings().ADMIN_API_KEY}"
    if authorization != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")
