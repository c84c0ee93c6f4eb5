"""Static file serving for the UI server."""

import logging

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from corsguard.core.config.settings import ServerSettings
from corsguard.core.exceptions import ConfigError

logger = logging.getLogger(__name__)


def register(app: FastAPI, settings: ServerSettings) -> None:
    """Serve settings.static_dir at /, with index.html for directories."""
    static_dir = settings.static_dir.expanduser()
    if not static_dir.is_dir():
        raise ConfigError(
            f"Static directory not found: {static_dir}",
            {"static_dir": str(static_dir)},
        )

    logger.info(f"Serving static files from {static_dir.resolve()}")
    app.mount("/", StaticFiles(directory=static_dir, html=True), name="ui")
