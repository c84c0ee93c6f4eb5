"""Placeholder API endpoints.

Clients fetch a CSRF token with GET and echo it back on POST in the
configured request header.
"""

from fastapi import APIRouter, FastAPI, Request, Response

from corsguard.core.config.settings import ServerSettings
from corsguard.web.csrf import csrf_token

API_PREFIX = "/api"
TOKEN_HEADER = "X-CSRF-Token"

router = APIRouter()


@router.get("")
@router.get("/", include_in_schema=False)
async def get_api(request: Request) -> Response:
    """Answer 200, handing out a CSRF token when protection is active."""
    response = Response(status_code=200)
    token = csrf_token(request)
    if token is not None:
        response.headers[TOKEN_HEADER] = token
    return response


@router.post("")
@router.post("/", include_in_schema=False)
async def post_api() -> Response:
    """Answer 200. CSRFMiddleware has already checked the token."""
    return Response(status_code=200)


def register(app: FastAPI, settings: ServerSettings) -> None:  # noqa: ARG001
    """Mount the API routes under /api."""
    app.include_router(router, prefix=API_PREFIX, tags=["api"])
