"""Configuration loading for corsguard."""

from .settings import (
    ApplicationSettings,
    CorsSettings,
    CsrfSettings,
    ServerSettings,
    TimeoutSettings,
    build_server_settings,
    get_settings,
    load_config_file,
)

__all__ = [
    "ApplicationSettings",
    "CorsSettings",
    "CsrfSettings",
    "ServerSettings",
    "TimeoutSettings",
    "build_server_settings",
    "get_settings",
    "load_config_file",
]
