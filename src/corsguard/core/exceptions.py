"""corsguard exceptions."""

from typing import Any


class CorsguardError(Exception):
    """Base exception for corsguard errors."""

    pass


class ConfigError(CorsguardError):
    """Exception raised when configuration cannot be loaded or validated."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.details = details or {}
        super().__init__(message)


class ServerStartupError(CorsguardError):
    """Exception raised when the HTTP listener fails to start."""

    def __init__(self, host: str, port: int, message: str):
        self.host = host
        self.port = port
        super().__init__(f"Server on {host}:{port} failed to start: {message}")
