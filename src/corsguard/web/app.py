"""FastAPI application factory shared by every server variant."""

import logging
from collections.abc import Callable

from fastapi import FastAPI

from corsguard import __version__
from corsguard.core.config.settings import ServerSettings
from corsguard.core.exceptions import ConfigError
from corsguard.web.csrf import CSRFMiddleware
from corsguard.web.middleware import (
    DebugCORSMiddleware,
    RealIPMiddleware,
    RequestIDMiddleware,
    RequestLoggingMiddleware,
    TimeoutMiddleware,
)
from corsguard.web.routers.api import API_PREFIX

logger = logging.getLogger(__name__)

RouteRegistrar = Callable[[FastAPI, ServerSettings], None]


def create_app(
    settings: ServerSettings,
    register_routes: RouteRegistrar,
    *,
    cors: bool = True,
    csrf: bool = True,
    title: str = "corsguard",
) -> FastAPI:
    """
    Build the application for one server variant.

    Requests pass through, outermost first: request ID, real IP, request
    logging, timeouts, CORS, then CSRF for paths under /api, then the router.
    Unhandled exceptions become 500 responses in Starlette's error middleware.

    Args:
        settings: Frozen server settings
        register_routes: Callback that adds the variant's routes
        cors: Install the CORS middleware
        csrf: Install the CSRF middleware (also requires settings.csrf.enabled)
        title: Application title

    Returns:
        FastAPI: Configured application
    """
    app = FastAPI(
        title=title,
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings

    register_routes(app, settings)

    # Starlette wraps later middleware around earlier ones
    if csrf and settings.csrf.enabled:
        if settings.csrf.key is None:
            raise ConfigError("csrf.key is required when CSRF is enabled")
        app.add_middleware(
            CSRFMiddleware,
            secret_key=settings.csrf.key.get_secret_value(),
            cookie_name=settings.csrf.cookie_name,
            header_name=settings.csrf.header_name,
            secure=settings.csrf.secure,
            same_site=settings.csrf.same_site,
            max_age=settings.csrf.max_age,
            protected_paths=[API_PREFIX],
        )
    else:
        logger.info("CSRF protection disabled")

    if cors:
        app.add_middleware(
            DebugCORSMiddleware,
            allow_origins=settings.cors.allowed_origins,
            allow_credentials=settings.cors.allow_credentials,
            allow_headers=settings.cors.allowed_headers,
            expose_headers=settings.cors.exposed_headers,
            allow_methods=settings.cors.allowed_methods,
            debug=settings.cors.debug,
        )

    app.add_middleware(
        TimeoutMiddleware,
        read_timeout=settings.timeout.read,
        write_timeout=settings.timeout.write,
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RealIPMiddleware)
    app.add_middleware(RequestIDMiddleware)

    return app
