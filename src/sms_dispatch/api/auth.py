"""Bearer token authentication for the dispatch API."""

from fastapi import Header, HTTPException

from sms_dispatch.config import get_settings


async def verify_worker_token(authorization: str = Header(...)) -> None:
    """Validate the bearer token presented by the upstream worker."""
    api_key = get_settings().WORKER_API_KEY
    if not api_key or authorization != f"Bearer {api_key}":
        raise HTTPException(status_code=401, detail="Invalid or missing bearer token")
