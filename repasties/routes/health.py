"""
Repasties — Health Check Route
===============================

What:  GET /health for monitoring and load balancer probes.
How:   Opens and releases one connection (SELECT 1) and reports which
       highlight strategy this process selected at start-up.

Status levels:
    healthy:   database reachable (HTTP 200)
    unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from repasties import __version__
from repasties.exceptions import StoreConnectionError
from repasties.schemas.snippet import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request):
    """Probe the database and report the highlighter in use."""
    connections = request.app.state.connections
    renderer = request.app.state.renderer

    db_status = "connected"
    overall = "healthy"

    try:
        async with connections.connection() as conn:
            await conn.execute(text("SELECT 1"))
    except StoreConnectionError:
        db_status = "disconnected"
        overall = "unhealthy"
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database query failed: %s", str(e))

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        highlighter=renderer.strategy_name,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
