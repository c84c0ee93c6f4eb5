"""
HTTP middleware: request IDs, real client IP, request logging, connection
timeouts and CORS with decision logging.
"""

import asyncio
import logging
import time
import uuid

from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request ID to every request and response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def real_ip(headers: Headers) -> str | None:
    """Resolve the originating client address from proxy headers."""
    for name in ("true-client-ip", "x-real-ip"):
        value = headers.get(name)
        if value:
            return value.strip()

    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return None


class RealIPMiddleware:
    """Rewrite the ASGI client address from True-Client-IP, X-Real-IP or X-Forwarded-For."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            address = real_ip(Headers(scope=scope))
            if address:
                client = scope.get("client") or (None, 0)
                scope = {**scope, "client": (address, client[1])}
        await self.app(scope, receive, send)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with its status and duration."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        client = request.client.host if request.client else "-"
        request_id = getattr(request.state, "request_id", "-")
        line = f'"{request.method} {request.url.path} HTTP/{request.scope.get("http_version", "1.1")}" from {client}'

        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception(f"{line} - failed in {elapsed:.2f}ms [{request_id}]")
            raise

        elapsed = (time.perf_counter() - start) * 1000
        logger.info(f"{line} - {response.status_code} in {elapsed:.2f}ms [{request_id}]")
        return response


class RequestReadTimeout(Exception):
    """Raised when the request body is not received within the read timeout."""

    pass


class TimeoutMiddleware:
    """Bound how long a request may take to read and to answer.

    The read timeout covers receiving the whole request body. The write
    timeout covers producing the response. Zero disables either.
    """

    def __init__(self, app: ASGIApp, *, read_timeout: float = 0, write_timeout: float = 0):
        self.app = app
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not (self.read_timeout or self.write_timeout):
            await self.app(scope, receive, send)
            return

        loop = asyncio.get_running_loop()
        read_deadline = loop.time() + self.read_timeout if self.read_timeout else None
        body_complete = False
        response_started = False

        async def timed_receive() -> Message:
            nonlocal body_complete
            if read_deadline is None or body_complete:
                return await receive()

            remaining = read_deadline - loop.time()
            try:
                message = await asyncio.wait_for(receive(), max(remaining, 0))
            except TimeoutError:
                raise RequestReadTimeout() from None

            if message["type"] != "http.request" or not message.get("more_body", False):
                body_complete = True
            return message

        async def tracked_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        path = scope.get("path", "")
        try:
            if self.write_timeout:
                async with asyncio.timeout(self.write_timeout):
                    await self.app(scope, timed_receive, tracked_send)
            else:
                await self.app(scope, timed_receive, tracked_send)
        except RequestReadTimeout:
            logger.warning(f"Read timeout ({self.read_timeout}s) exceeded for {path}")
            if not response_started:
                await PlainTextResponse("Request Timeout", status_code=408)(
                    scope, receive, send
                )
        except TimeoutError:
            logger.warning(f"Write timeout ({self.write_timeout}s) exceeded for {path}")
            if not response_started:
                await PlainTextResponse("Service Unavailable", status_code=503)(
                    scope, receive, send
                )


class DebugCORSMiddleware(CORSMiddleware):
    """Starlette CORS middleware that logs its decisions when debug is on."""

    def __init__(self, app: ASGIApp, *, debug: bool = False, **kwargs):
        super().__init__(app, **kwargs)
        self.debug = debug

    def is_allowed_origin(self, origin: str) -> bool:
        allowed = super().is_allowed_origin(origin)
        if self.debug:
            logger.info(f"CORS: origin {origin} {'allowed' if allowed else 'not allowed'}")
        return allowed

    def preflight_response(self, request_headers: Headers) -> Response:
        if self.debug:
            logger.info(
                f"CORS: preflight request, origin={request_headers.get('origin')} "
                f"method={request_headers.get('access-control-request-method')} "
                f"headers={request_headers.get('access-control-request-headers', '')}"
            )
        response = super().preflight_response(request_headers=request_headers)
        if self.debug and response.status_code != 200:
            logger.info(f"CORS: preflight rejected: {response.body.decode(errors='replace')}")
        return response
