"""Tests for the static UI server."""

import pytest
from fastapi.testclient import TestClient

from corsguard.core.config.settings import build_server_settings
from corsguard.core.exceptions import ConfigError
from corsguard.web.app import create_app
from corsguard.web.routers import ui


@pytest.fixture
def static_dir(tmp_path):
    """Directory with a tiny UI."""
    (tmp_path / "index.html").write_text("<h1>corsguard</h1>")
    (tmp_path / "index.js").write_text("console.log('hi');")
    return tmp_path


@pytest.fixture
def ui_client(static_dir):
    settings = build_server_settings(
        {"serverUI": {"staticDir": str(static_dir)}},
        "serverUI",
        {"csrf.enabled": False},
    )
    return TestClient(create_app(settings, ui.register, cors=False, csrf=False))


class TestStaticUI:
    """Test static file serving."""

    @pytest.mark.unit
    def test_index_served_at_root(self, ui_client):
        """Test / serves index.html."""
        # Act
        response = ui_client.get("/")

        # Assert
        assert response.status_code == 200
        assert "<h1>corsguard</h1>" in response.text

    @pytest.mark.unit
    def test_asset_served(self, ui_client):
        """Test files are served by name."""
        # Act
        response = ui_client.get("/index.js")

        # Assert
        assert response.status_code == 200
        assert "console.log" in response.text

    @pytest.mark.unit
    def test_missing_asset(self, ui_client):
        """Test unknown files answer 404."""
        # Act
        response = ui_client.get("/missing.css")

        # Assert
        assert response.status_code == 404

    @pytest.mark.unit
    def test_no_api_routes(self, ui_client):
        """Test the UI server has no CSRF-protected API."""
        # Act
        response = ui_client.post("/api")

        # Assert
        assert response.status_code in (404, 405)
        assert "X-Request-ID" in response.headers

    @pytest.mark.unit
    def test_missing_static_dir(self, tmp_path):
        """Test a missing static directory fails at startup."""
        # Arrange
        settings = build_server_settings(
            {}, "serverUI", {"staticDir": str(tmp_path / "nope"), "csrf.enabled": False}
        )

        # Act / Assert
        with pytest.raises(ConfigError, match="Static directory not found"):
            create_app(settings, ui.register, cors=False, csrf=False)
