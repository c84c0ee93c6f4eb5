"""Command-line interface for corsguard."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from corsguard import __version__
from corsguard.core.config.settings import (
    ServerSettings,
    build_server_settings,
    get_settings,
    load_config_file,
)
from corsguard.core.exceptions import CorsguardError
from corsguard.server import run_server
from corsguard.utils.xdg import get_default_config_path
from corsguard.web.app import RouteRegistrar, create_app
from corsguard.web.routers import api, ui

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Command-line flag -> dotted config key
SERVER_FLAGS = {
    "host": "host",
    "port": "port",
    "read_timeout": "timeout.read",
    "write_timeout": "timeout.write",
    "idle_timeout": "timeout.idle",
}

SECURITY_FLAGS = {
    "cors_allowed_origin": "cors.allowedOrigins",
    "cors_allowed_header": "cors.allowedHeaders",
    "cors_exposed_header": "cors.exposedHeaders",
    "cors_allowed_method": "cors.allowedMethods",
    "cors_allow_credentials": "cors.allowCredentials",
    "cors_debug": "cors.debug",
    "csrf_key": "csrf.key",
    "csrf_secure": "csrf.secure",
    "csrf_cookie_name": "csrf.cookieName",
    "csrf_header": "csrf.header",
}

UI_FLAGS = {
    "static_dir": "staticDir",
}

# The UI server runs without CSRF protection
UI_SECTION = "serverUI"


@dataclass(frozen=True)
class CliState:
    """Options given to the root command."""

    config_path: Path


def configure_logging(level: str) -> None:
    """Configure the root logger for the process."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, force=True)


def collect_overrides(params: dict[str, Any], *flag_maps: dict[str, str]) -> dict[str, Any]:
    """Turn the flags the user actually gave into dotted-key overrides."""
    overrides: dict[str, Any] = {}
    for flag_map in flag_maps:
        for name, key in flag_map.items():
            value = params.get(name)
            if value is None or value == ():
                continue
            overrides[key] = list(value) if isinstance(value, tuple) else value

    if params.get("no_csrf"):
        overrides["csrf.enabled"] = False
    return overrides


def server_options(func):
    """Listener flags shared by every server command."""
    options = [
        click.option("--host", help="Bind address (overrides <section>.host)"),
        click.option("--port", type=int, help="Bind port (overrides <section>.port)"),
        click.option(
            "--read-timeout", type=int, help="Request read timeout in seconds"
        ),
        click.option(
            "--write-timeout", type=int, help="Response write timeout in seconds"
        ),
        click.option(
            "--idle-timeout", type=int, help="Keep-alive idle timeout in seconds"
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def security_options(func):
    """CORS and CSRF flags for the API server commands."""
    options = [
        click.option(
            "--cors-allowed-origin",
            multiple=True,
            help="Origin allowed to make cross-origin requests (repeatable)",
        ),
        click.option(
            "--cors-allowed-header",
            multiple=True,
            help="Request header allowed in cross-origin requests (repeatable)",
        ),
        click.option(
            "--cors-exposed-header",
            multiple=True,
            help="Response header exposed to cross-origin clients (repeatable)",
        ),
        click.option(
            "--cors-allowed-method",
            multiple=True,
            help="Method allowed in cross-origin requests (repeatable)",
        ),
        click.option(
            "--cors-allow-credentials/--no-cors-allow-credentials",
            default=None,
            help="Allow credentials on cross-origin requests",
        ),
        click.option(
            "--cors-debug/--no-cors-debug",
            default=None,
            help="Log CORS decisions",
        ),
        click.option("--csrf-key", help="CSRF signing key, at least 32 bytes"),
        click.option(
            "--csrf-secure/--no-csrf-secure",
            default=None,
            help="Set the Secure flag on the CSRF cookie",
        ),
        click.option("--csrf-cookie-name", help="Name of the CSRF cookie"),
        click.option("--csrf-header", help="Header carrying the CSRF token"),
        click.option("--no-csrf", is_flag=True, help="Disable CSRF protection"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def load_server_settings(
    state: CliState, section: str, overrides: dict[str, Any]
) -> ServerSettings:
    """Read the config file once and build the variant's settings."""
    data = load_config_file(state.config_path)
    return build_server_settings(data, section, overrides)


def start_server(
    state: CliState,
    section: str,
    register_routes: RouteRegistrar,
    overrides: dict[str, Any],
    *,
    cors: bool = True,
    csrf: bool = True,
) -> None:
    """Bootstrap one server variant. Any failure aborts the command."""
    try:
        settings = load_server_settings(state, section, overrides)
        app = create_app(
            settings, register_routes, cors=cors, csrf=csrf, title=f"corsguard {section}"
        )
        click.echo(f"starting http server on {settings.address}...")
        run_server(app, settings)
    except CorsguardError as e:
        raise click.ClickException(str(e)) from e


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="corsguard")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    envvar="CORSGUARD_CONFIG",
    help="Config file (YAML, JSON or TOML). Defaults to $XDG_CONFIG_HOME/corsguard/config.yaml",
)
@click.option(
    "--log-level",
    type=click.Choice(
        ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False
    ),
    help="Log level (overrides LOG_LEVEL)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, log_level: str | None) -> None:
    """corsguard - HTTP servers with CORS and CSRF middleware"""
    if log_level is None:
        try:
            log_level = get_settings().log_level
        except ValidationError as e:
            raise click.ClickException(f"Invalid application settings: {e}") from e
    configure_logging(log_level)
    ctx.obj = CliState(config_path=config_path or get_default_config_path())


@cli.command()
def info() -> None:
    """Show project information."""
    click.echo(f"corsguard v{__version__}")
    click.echo("HTTP servers with CORS and CSRF middleware")


@cli.command(name="server-api")
@server_options
@security_options
@click.pass_obj
def server_api(state: CliState, **params: Any) -> None:
    """Start the API server (config section: serverAPI)."""
    overrides = collect_overrides(params, SERVER_FLAGS, SECURITY_FLAGS)
    start_server(state, "serverAPI", api.register, overrides)


@cli.command(name="server-backend")
@server_options
@security_options
@click.pass_obj
def server_backend(state: CliState, **params: Any) -> None:
    """Start the backend server (config section: serverBackend)."""
    overrides = collect_overrides(params, SERVER_FLAGS, SECURITY_FLAGS)
    start_server(state, "serverBackend", api.register, overrides)


@cli.command(name="server")
@server_options
@security_options
@click.pass_obj
def server(state: CliState, **params: Any) -> None:
    """Start the standalone API server (config section: server)."""
    overrides = collect_overrides(params, SERVER_FLAGS, SECURITY_FLAGS)
    start_server(state, "server", api.register, overrides)


@cli.command(name="server-ui")
@server_options
@click.option(
    "--static-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory with the static UI files (overrides serverUI.staticDir)",
)
@click.pass_obj
def server_ui(state: CliState, **params: Any) -> None:
    """Start the static UI server (config section: serverUI)."""
    overrides = collect_overrides(params, SERVER_FLAGS, UI_FLAGS)
    overrides["csrf.enabled"] = False
    start_server(state, UI_SECTION, ui.register, overrides, cors=False, csrf=False)


@cli.command(name="config-check")
@click.argument("section")
@click.option("--no-csrf", is_flag=True, help="Validate without CSRF settings")
@click.pass_obj
def config_check(state: CliState, section: str, no_csrf: bool) -> None:
    """Validate a config section and print the resolved settings.

    The CSRF key is masked in the output. The serverUI section is checked
    with CSRF off, as server-ui runs it.
    """
    ui_section = section.lower() == UI_SECTION.lower()
    overrides = {"csrf.enabled": False} if no_csrf or ui_section else {}
    try:
        settings = load_server_settings(state, section, overrides)
    except CorsguardError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(settings.model_dump(mode="json", by_alias=True), indent=2))


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
