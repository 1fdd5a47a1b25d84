"""HTTP middleware stack.

Outermost first: request id, real client IP, access log, exception recovery,
CORS, rate limiting and the request deadline. Responses produced here are
built with :func:`error_response` because exception handlers only run inside
the routing layer.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from uuid import uuid4

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from gopher_social.core.errors import TooManyRequests, error_response, internal_error_response
from gopher_social.core.settings import settings

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

REQUEST_ID_HEADER = "X-Request-ID"
TIMEOUT_MESSAGE = "request timed out"


def client_ip(request: Request) -> str:
    """Return the originating client address.

    Proxy headers win over the socket peer: ``True-Client-IP``, then
    ``X-Real-IP``, then the first hop of ``X-Forwarded-For``.
    """
    for header in ("True-Client-IP", "X-Real-IP"):
        value = request.headers.get(header, "").strip()
        if value:
            return value
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client is not None:
        return request.client.host
    return "unknown"


async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def real_ip_middleware(request: Request, call_next: CallNext) -> Response:
    request.state.client_ip = client_ip(request)
    return await call_next(request)


async def access_log_middleware(request: Request, call_next: CallNext) -> Response:
    started_at = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "http_request request_id=%s method=%s path=%s status=%s ip=%s duration_ms=%.2f",
        getattr(request.state, "request_id", "-"),
        request.method,
        request.url.path,
        response.status_code,
        getattr(request.state, "client_ip", "-"),
        (time.perf_counter() - started_at) * 1000,
    )
    return response


async def recover_middleware(request: Request, call_next: CallNext) -> Response:
    try:
        return await call_next(request)
    except Exception as exc:
        return internal_error_response(request, exc)


async def rate_limit_middleware(request: Request, call_next: CallNext) -> Response:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        return await call_next(request)

    key = getattr(request.state, "client_ip", None) or client_ip(request)
    allowed, retry_after = limiter.allow(key)
    if not allowed:
        exc = TooManyRequests(retry_after)
        logger.warning(
            "rate limit exceeded method=%s path=%s ip=%s",
            request.method,
            request.url.path,
            key,
        )
        return error_response(exc.status_code, exc.message, exc.headers)
    return await call_next(request)


class RequestDeadlineMiddleware:
    """Bound each HTTP request by ``app.state.request_timeout`` seconds.

    At the deadline the handler itself is cancelled, so no work outlives the
    request. The 504 is only sent when no response has started yet.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        timeout = getattr(scope["app"].state, "request_timeout", settings.request_timeout_seconds)
        response_started = False

        async def send_tracking(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        deadline = asyncio.timeout(timeout)
        try:
            async with deadline:
                await self.app(scope, receive, send_tracking)
        except TimeoutError:
            if not deadline.expired():
                raise
            logger.error(
                "request deadline exceeded method=%s path=%s timeout=%s",
                scope["method"],
                scope["path"],
                timeout,
            )
            if response_started:
                return
            response = error_response(status.HTTP_504_GATEWAY_TIMEOUT, TIMEOUT_MESSAGE)
            await response(scope, receive, send)


def install_middleware(app: FastAPI) -> None:
    """Register the stack on ``app``; the last one added runs first."""
    app.add_middleware(RequestDeadlineMiddleware)
    app.middleware("http")(rate_limit_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_allowed_origin],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Accept", "Authorization", "Content-Type", "X-CSRF-Token"],
        expose_headers=["Link"],
        max_age=300,
    )
    app.middleware("http")(recover_middleware)
    app.middleware("http")(access_log_middleware)
    app.middleware("http")(real_ip_middleware)
    app.middleware("http")(request_id_middleware)
