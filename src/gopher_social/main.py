# src/gopher_social/main.py
"""Main entry point for the GopherSocial application."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from gopher_social.api.v1 import (
    auth_router,
    comments_router,
    posts_router,
    system_router,
    users_router,
)
from gopher_social.core.errors import install_exception_handlers
from gopher_social.core.middleware import install_middleware
from gopher_social.core.settings import settings
from gopher_social.services.mailer import close_mailer
from gopher_social.services.rate_limiter import FixedWindowLimiter

logger = logging.getLogger(__name__)
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

API_PREFIX = "/v1"


async def _prune_rate_limiter(limiter: FixedWindowLimiter) -> None:
    while True:
        await asyncio.sleep(limiter.window)
        limiter.prune()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("server started addr=%s env=%s version=%s", settings.addr, settings.env, settings.app_version)
    limiter: FixedWindowLimiter | None = app.state.rate_limiter
    prune_task = asyncio.create_task(_prune_rate_limiter(limiter)) if limiter is not None else None

    yield

    if prune_task is not None:
        prune_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await prune_task
    await close_mailer()
    logger.info("server stopped addr=%s", settings.addr)


def create_app() -> FastAPI:
    """Build the application with its middleware, error handlers and routes."""
    app = FastAPI(
        title="GopherSocial API",
        description="API for GopherSocial, a social network for gophers",
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.state.request_timeout = settings.request_timeout_seconds
    app.state.rate_limiter = (
        FixedWindowLimiter(settings.rate_limiter_requests, settings.rate_limiter_window_seconds)
        if settings.rate_limiter_enabled
        else None
    )

    install_exception_handlers(app)
    install_middleware(app)

    app.include_router(system_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(users_router, prefix=API_PREFIX)
    app.include_router(posts_router, prefix=API_PREFIX)
    app.include_router(comments_router, prefix=API_PREFIX)
    return app


app = create_app()


def _listen_address(addr: str) -> tuple[str, int]:
    host, _, port = addr.rpartition(":")
    return host or "0.0.0.0", int(port)


if __name__ == "__main__":
    import uvicorn

    host, port = _listen_address(settings.addr)
    uvicorn.run("gopher_social.main:app", host=host, port=port)
