"""
Application and server configuration management.

Application settings come from environment variables and a .env file.
Server settings come from a config file section merged with command-line
overrides, and are frozen once built.
"""

import copy
import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings

from corsguard.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Keep-alive used by uvicorn when neither idle nor read timeout is configured
DEFAULT_KEEP_ALIVE = 5
MIN_CSRF_KEY_BYTES = 32


def _split_list(v: Any) -> list[str]:
    if isinstance(v, str):
        return [item.strip() for item in v.split(",") if item.strip()]
    return [str(item) for item in v] if v else []


class ApplicationSettings(BaseSettings):
    """Application configuration."""

    app_name: str = Field(default="corsguard", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = str(v).upper()
        if v not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return str(v)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class TimeoutSettings(BaseModel):
    """Connection timeouts in seconds. Zero disables a timeout."""

    read: int = Field(default=0, ge=0)
    write: int = Field(default=0, ge=0)
    idle: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def keep_alive(self) -> int:
        """Idle timeout, falling back to the read timeout."""
        if self.idle:
            return self.idle
        if self.read:
            return self.read
        return DEFAULT_KEEP_ALIVE


class CorsSettings(BaseModel):
    """CORS policy."""

    allowed_origins: list[str] = Field(default_factory=list, alias="allowedOrigins")
    allow_credentials: bool = Field(default=False, alias="allowCredentials")
    allowed_headers: list[str] = Field(default_factory=list, alias="allowedHeaders")
    exposed_headers: list[str] = Field(default_factory=list, alias="exposedHeaders")
    allowed_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "HEAD"], alias="allowedMethods"
    )
    debug: bool = False

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator(
        "allowed_origins",
        "allowed_headers",
        "exposed_headers",
        "allowed_methods",
        mode="before",
    )
    @classmethod
    def parse_list(cls, v: Any) -> list[str]:
        return _split_list(v)

    @field_validator("allowed_methods")
    @classmethod
    def upper_methods(cls, v: list[str]) -> list[str]:
        return [method.upper() for method in v]


class CsrfSettings(BaseModel):
    """CSRF protection policy."""

    enabled: bool = True
    key: SecretStr | None = None
    secure: bool = True
    cookie_name: str = Field(default="_csrf", alias="cookieName", min_length=1)
    header_name: str = Field(default="X-CSRF-Token", alias="header", min_length=1)
    max_age: int = Field(default=12 * 60 * 60, alias="maxAge", gt=0)
    same_site: Literal["lax", "strict", "none"] = Field(default="lax", alias="sameSite")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("same_site", mode="before")
    @classmethod
    def lower_same_site(cls, v: Any) -> str:
        return str(v).lower()

    @model_validator(mode="after")
    def require_key(self) -> "CsrfSettings":
        if not self.enabled:
            return self
        key = self.key.get_secret_value() if self.key else ""
        if len(key.encode("utf-8")) < MIN_CSRF_KEY_BYTES:
            raise ValueError(
                f"csrf.key must be at least {MIN_CSRF_KEY_BYTES} bytes when CSRF is enabled"
            )
        return self


class ServerSettings(BaseModel):
    """Configuration of one HTTP server variant."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)
    timeout: TimeoutSettings = Field(default_factory=dict, validate_default=True)
    cors: CorsSettings = Field(default_factory=dict, validate_default=True)
    csrf: CsrfSettings = Field(default_factory=dict, validate_default=True)
    static_dir: Path = Field(default=Path("ui/web/static"), alias="staticDir")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def _load_yaml(stream) -> Any:
    return yaml.safe_load(stream)


_PARSERS = {
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
    ".json": json.load,
    ".toml": tomllib.load,
}


def load_config_file(path: Path | str) -> dict[str, Any]:
    """
    Load a configuration file.

    The format is chosen by extension: YAML, JSON or TOML.

    Args:
        path: Path to the config file

    Returns:
        dict: Parsed configuration mapping

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    path = Path(path)
    parser = _PARSERS.get(path.suffix.lower())
    if parser is None:
        raise ConfigError(
            f"Unsupported config file type '{path.suffix}': {path}",
            {"path": str(path)},
        )

    try:
        with path.open("rb") as f:
            data = parser(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {path}", {"path": str(path)}) from e
    except OSError as e:
        raise ConfigError(
            f"Cannot read config file {path}: {e}", {"path": str(path)}
        ) from e
    except (
        yaml.YAMLError,
        json.JSONDecodeError,
        tomllib.TOMLDecodeError,
        UnicodeDecodeError,
    ) as e:
        raise ConfigError(
            f"Cannot parse config file {path}: {e}", {"path": str(path)}
        ) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping at the top level",
            {"path": str(path)},
        )

    logger.info(f"Using config file: {path}")
    return data


def _find_section(data: dict[str, Any], section: str) -> dict[str, Any]:
    # Section names match case-insensitively
    for name, value in data.items():
        if str(name).lower() == section.lower():
            if value is None:
                return {}
            if not isinstance(value, dict):
                raise ConfigError(f"Config section '{section}' must be a mapping")
            return value
    return {}


def _set_dotted(target: dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    node = target
    for part in parents:
        child = node.get(part)
        if child is None:
            child = node[part] = {}
        elif not isinstance(child, dict):
            raise ConfigError(f"Cannot override '{dotted_key}': '{part}' is not a mapping")
        node = child
    node[leaf] = value


def _format_errors(error: ValidationError, section: str) -> str:
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"])
        prefix = f"{section}.{location}" if location else section
        messages.append(f"{prefix}: {item['msg']}")
    return "; ".join(messages)


def build_server_settings(
    data: dict[str, Any],
    section: str,
    overrides: dict[str, Any] | None = None,
) -> ServerSettings:
    """
    Build validated settings for one server variant.

    Args:
        data: Parsed config file contents
        section: Name of the variant's section, e.g. "serverAPI"
        overrides: Values from command-line flags keyed by dotted config key

    Returns:
        ServerSettings: Frozen settings instance

    Raises:
        ConfigError: If the merged configuration is invalid
    """
    merged = copy.deepcopy(_find_section(data, section))
    for dotted_key, value in (overrides or {}).items():
        _set_dotted(merged, dotted_key, value)

    try:
        return ServerSettings.model_validate(merged)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration: {_format_errors(e, section)}",
            {"section": section, "error_count": e.error_count()},
        ) from e


def load_settings() -> ApplicationSettings:
    """
    Load application settings from environment variables and .env file.

    Returns:
        ApplicationSettings: Configured settings instance
    """
    return ApplicationSettings()


_settings: ApplicationSettings | None = None


def get_settings() -> ApplicationSettings:
    """
    Get cached application settings instance (singleton pattern).

    Returns:
        ApplicationSettings: Cached settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
