"""Unit tests for the uvicorn listener wrapper."""

from unittest.mock import MagicMock, patch

import pytest
import uvicorn

from corsguard.core.exceptions import ServerStartupError
from corsguard.server import build_uvicorn_config, run_server


class TestBuildUvicornConfig:
    """Test translation of settings into uvicorn options."""

    @pytest.mark.unit
    def test_listener_options(self, api_app, api_settings):
        """Test host, port and keep-alive come from the settings."""
        # Act
        config = build_uvicorn_config(api_app, api_settings)

        # Assert
        assert isinstance(config, uvicorn.Config)
        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.timeout_keep_alive == 60
        assert config.access_log is False
        assert config.app is api_app


class TestRunServer:
    """Test listener lifecycle handling."""

    @pytest.mark.unit
    def test_clean_run(self, api_app, api_settings):
        """Test a started and stopped server returns normally."""
        # Arrange
        server = MagicMock(started=True)

        # Act
        with patch("corsguard.server.uvicorn.Server", return_value=server) as server_cls:
            run_server(api_app, api_settings)

        # Assert
        server_cls.assert_called_once()
        server.run.assert_called_once_with()

    @pytest.mark.unit
    def test_bind_failure(self, api_app, api_settings):
        """Test uvicorn's exit on bind errors becomes ServerStartupError."""
        # Arrange
        server = MagicMock(started=False)
        server.run.side_effect = SystemExit(1)

        # Act / Assert
        with patch("corsguard.server.uvicorn.Server", return_value=server):
            with pytest.raises(ServerStartupError, match="127.0.0.1:8080"):
                run_server(api_app, api_settings)

    @pytest.mark.unit
    def test_never_started(self, api_app, api_settings):
        """Test a listener that returns without starting is an error."""
        # Arrange
        server = MagicMock(started=False)

        # Act / Assert
        with patch("corsguard.server.uvicorn.Server", return_value=server):
            with pytest.raises(ServerStartupError, match="did not start"):
                run_server(api_app, api_settings)
