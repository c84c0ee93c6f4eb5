"""uvicorn listener for corsguard applications."""

import logging

import uvicorn
from fastapi import FastAPI

from corsguard.core.config.settings import ServerSettings
from corsguard.core.exceptions import ServerStartupError

logger = logging.getLogger(__name__)


def build_uvicorn_config(app: FastAPI, settings: ServerSettings) -> uvicorn.Config:
    """Create the uvicorn configuration for the given settings.

    Access logging is left to RequestLoggingMiddleware and uvicorn logs
    through the handlers configured by the CLI.
    """
    return uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        timeout_keep_alive=settings.timeout.keep_alive,
        access_log=False,
        log_config=None,
        server_header=False,
    )


def run_server(app: FastAPI, settings: ServerSettings) -> None:
    """
    Run the listener until it is stopped.

    Raises:
        ServerStartupError: If the listener cannot bind or fails to start
    """
    server = uvicorn.Server(build_uvicorn_config(app, settings))
    try:
        server.run()
    except SystemExit as e:
        # uvicorn exits the process when the socket cannot be bound
        raise ServerStartupError(
            settings.host, settings.port, "listener exited during startup"
        ) from e

    if not server.started:
        raise ServerStartupError(settings.host, settings.port, "listener did not start")

    logger.info(f"http server on {settings.address} stopped")
