"""Shared test fixtures and configuration."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add src to path for testing
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from corsguard.core.config.settings import (  # noqa: E402
    ServerSettings,
    build_server_settings,
)
from corsguard.web.app import create_app  # noqa: E402
from corsguard.web.routers import api  # noqa: E402

ALLOWED_ORIGIN = "http://allowed.example.com"
CSRF_KEY = "0123456789abcdef0123456789abcdef"


@pytest.fixture
def api_config() -> dict:
    """Config file contents for the API server."""
    return {
        "serverAPI": {
            "host": "127.0.0.1",
            "port": 8080,
            "timeout": {"read": 15, "write": 15, "idle": 60},
            "cors": {
                "allowedOrigins": [ALLOWED_ORIGIN],
                "allowCredentials": True,
                "allowedHeaders": ["Content-Type", "X-CSRF-Token"],
                "exposedHeaders": ["X-CSRF-Token"],
                "debug": True,
            },
            "csrf": {
                "key": CSRF_KEY,
                # TestClient talks plain http, so the cookie must not be Secure
                "secure": False,
                "cookieName": "_csrf",
                "header": "X-CSRF-Token",
            },
        }
    }


@pytest.fixture
def api_settings(api_config) -> ServerSettings:
    """Validated settings for the API server."""
    return build_server_settings(api_config, "serverAPI")


@pytest.fixture
def api_app(api_settings):
    """API application with the full middleware chain."""
    return create_app(api_settings, api.register)


@pytest.fixture
def test_client(api_app):
    """Create a test client for the API application."""
    with TestClient(api_app) as client:
        yield client
