# src/gopher_social/api/v1/endpoints/system.py
"""Liveness and operational metrics endpoints."""

from __future__ import annotations

import asyncio
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request

from gopher_social.api.v1.dependencies import require_basic_auth
from gopher_social.core.settings import settings
from gopher_social.db.session import engine
from gopher_social.schemas.common import HealthResponse

router = APIRouter(tags=["system"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Report that the service is up, with its environment and version."""
    return HealthResponse(status="ok", env=settings.env, version=settings.app_version)


@router.get("/debug/vars")
async def debug_vars(
    request: Request,
    _: Annotated[str, Depends(require_basic_auth)],
) -> dict[str, Any]:
    """Expose runtime counters for operators.

    Args:
        request: Incoming request, used to reach the app-wide rate limiter.

    Returns:
        The build version, connection pool status, number of live asyncio
        tasks and the number of clients tracked by the rate limiter.
    """
    limiter = getattr(request.app.state, "rate_limiter", None)
    return {
        "version": settings.app_version,
        "database": {
            "dialect": engine.dialect.name,
            "pool": engine.pool.status(),
        },
        "tasks": len(asyncio.all_tasks()),
        "rate_limiter": {
            "enabled": limiter is not None,
            "tracked_clients": len(limiter) if limiter is not None else 0,
        },
    }
