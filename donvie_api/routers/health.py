"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from donvie_api import __version__
from donvie_api.config.env import get_session_backend
from donvie_api.db.redis_client import RedisClient
from donvie_api.db.session import get_db

router = APIRouter()
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    services: dict[str, str]


def check_database(db: Session) -> str:
    """Returns "up" if healthy, "down: <reason>" otherwise."""
    try:
        db.execute(text("SELECT 1"))
        return "up"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return f"down: {str(e)[:50]}"


def check_redis() -> str:
    """PING Redis; only consulted when SESSION_BACKEND=redis."""
    try:
        RedisClient.get_client().ping()
        return "up"
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return f"down: {str(e)[:50]}"


@router.get("/health", response_model=HealthResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthResponse:
    """Service status and dependency health. 503 if any dependency is down."""
    services = {"api": "up", "database": check_database(db)}
    if get_session_backend() == "redis":
        services["redis"] = check_redis()

    if any(state.startswith("down") for state in services.values()):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="unhealthy", version=__version__, services=services)

    return HealthResponse(status="healthy", version=__version__, services=services)
