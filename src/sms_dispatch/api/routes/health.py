"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Report liveness and the shared rate limiter's state."""
    limiter = getattr(request.app.state.service, "rate_limiter", None)
    snapshot = getattr(limiter, "snapshot", None)
    return {
        "status": "ok",
        "rate_limiting": snapshot().to_dict() if callable(snapshot) else "disabled",
    }
