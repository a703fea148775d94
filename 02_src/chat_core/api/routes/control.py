"""Control API routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import Application
from ...config import REALTIME_CHANNEL
from ...logging_config import get_logger

logger = get_logger(__name__)


class StatusResponse(BaseModel):
    """Response model for status."""

    status: str


class HealthResponse(BaseModel):
    """Open chat views and realtime listeners."""

    status: str
    open_sessions: int
    subscribers: int


def create_control_router(app: Application) -> APIRouter:
    """Create control router."""
    router = APIRouter(prefix="/api/control", tags=["control"])

    @router.get("/health", response_model=HealthResponse)
    async def health() -> dict:
        return {
            "status": "ok",
            "open_sessions": app.session_count,
            "subscribers": app.broker.subscriber_count(REALTIME_CHANNEL),
        }

    @router.post("/reset", response_model=StatusResponse)
    async def reset_system() -> dict:
        """Drop every session and clear persisted chat data."""
        try:
            await app.reset()
        except Exception as e:
            logger.error("Reset failed: %s", e, exc_info=True)
            raise HTTPException(status_code=500, detail=str(e))
        return {"status": "ok"}

    return router
