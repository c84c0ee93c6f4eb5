"""Integration tests against a real uvicorn listener."""

import socket
import threading
import time

import httpx
import pytest
import uvicorn

from corsguard.core.config.settings import build_server_settings
from corsguard.core.exceptions import ServerStartupError
from corsguard.server import build_uvicorn_config, run_server
from corsguard.web.app import create_app
from corsguard.web.routers import api


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def live_server(api_config):
    """Run the API server in a background thread."""
    settings = build_server_settings(api_config, "serverAPI", {"port": free_port()})
    app = create_app(settings, api.register)
    server = uvicorn.Server(build_uvicorn_config(app, settings))

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()
    deadline = time.monotonic() + 10
    while not server.started:
        if time.monotonic() > deadline:
            pytest.fail("server did not start")
        time.sleep(0.05)

    yield f"http://{settings.address}"

    server.should_exit = True
    thread.join(timeout=10)


class TestLiveServer:
    """Test the full stack over a real socket."""

    @pytest.mark.integration
    def test_csrf_round_trip(self, live_server):
        """Test GET then POST with the echoed token and cookie."""
        # Arrange
        with httpx.Client(base_url=live_server) as client:
            get_response = client.get("/api")
            token = get_response.headers["X-CSRF-Token"]

            # Act
            post_response = client.post("/api", headers={"X-CSRF-Token": token})
            forged = httpx.post(f"{live_server}/api", headers={"X-CSRF-Token": token})

        # Assert
        assert get_response.status_code == 200
        assert post_response.status_code == 200
        assert forged.status_code == 403

    @pytest.mark.integration
    def test_bind_failure_is_fatal(self, api_config):
        """Test an occupied port raises ServerStartupError."""
        # Arrange
        with socket.socket() as sock:
            sock.bind(("127.0.0.1", 0))
            sock.listen()
            port = sock.getsockname()[1]
            settings = build_server_settings(api_config, "serverAPI", {"port": port})
            app = create_app(settings, api.register)

            # Act / Assert
            with pytest.raises(ServerStartupError):
                run_server(app, settings)
