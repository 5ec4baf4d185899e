"""Health check endpoint. No tenant required."""

import logging
import os
from datetime import datetime, timezone

from fastapi import APIRouter, Response
from sqlalchemy.exc import SQLAlchemyError

from apps.control_plane.db import ping
from apps.control_plane.schemas.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(response: Response) -> HealthResponse:
    """Returns ok, version (GIT_SHA or dev), current time (ISO) and database reachability.
    503 when the database cannot be reached."""
    version = os.getenv("GIT_SHA", "dev").strip() or "dev"
    database = "ok"
    try:
        ping()
    except SQLAlchemyError:
        logger.warning("health: database unreachable", exc_info=True)
        database = "unavailable"
        response.status_code = 503
    return HealthResponse(
        ok=database == "ok",
        version=version,
        time=datetime.now(timezone.utc).isoformat(),
        database=database,
    )
