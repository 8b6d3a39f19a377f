"""Typed client configuration.

The config file is optional TOML, by default `<user-config-dir>/config.toml`:

    [server]
    base_url = "https://ota.example.com"
    timeout = 15

    [endpoints]
    activate = "/core/version/bundle/{bundle_id}/activate"
    valid = "/core/version/bundle/{bundle_id}/valid"

    [logging]
    level = "INFO"
    format = "json"

Missing keys fall back to the defaults below. `OTA_BASE_URL` and
`OTA_LOG_LEVEL` override the file.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from ota.platform.paths import user_config_dir

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "EndpointsConfig",
    "LoggingConfig",
    "ServerConfig",
    "default_config_path",
    "load_config",
    "load_config_or_default",
    "DEFAULT_BASE_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_ACTIVATE_PATH",
    "DEFAULT_MANDATORY_PATH",
    "DEFAULT_VALID_PATH",
]

DEFAULT_BASE_URL = "http://localhost:4000"
DEFAULT_TIMEOUT_SECONDS = 30.0

# Path templates for bundle mutations; `{bundle_id}` is substituted.
# Deployed servers disagree on the activation route, and the enable/disable
# route is not standard: `valid` is a placeholder to set per deployment.
DEFAULT_ACTIVATE_PATH = "/core/version/bundle/{bundle_id}/active"
DEFAULT_MANDATORY_PATH = "/core/version/bundle/{bundle_id}/mandatory"
DEFAULT_VALID_PATH = "/core/version/bundle/{bundle_id}/valid"

_LOG_FORMATS = ("text", "json")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class ServerConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class EndpointsConfig:
    """Route templates for bundle mutations."""

    activate: str = DEFAULT_ACTIVATE_PATH
    mandatory: str = DEFAULT_MANDATORY_PATH
    valid: str = DEFAULT_VALID_PATH


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "WARNING"
    format: str = "text"


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    server: ServerConfig = field(default_factory=ServerConfig)
    endpoints: EndpointsConfig = field(default_factory=EndpointsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML).

        Raises:
            ValueError: On a value that is present but unusable.
        """
        server: StrDict = get_table(data, "server") or {}
        endpoints: StrDict = get_table(data, "endpoints") or {}
        logging_table: StrDict = get_table(data, "logging") or {}

        timeout = get_float(server, "timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("server.timeout must be positive")

        log_format = (get_str(logging_table, "format") or "text").lower()
        if log_format not in _LOG_FORMATS:
            raise ValueError(f"logging.format must be one of {', '.join(_LOG_FORMATS)}")

        return cls(
            server=ServerConfig(
                base_url=(get_str(server, "base_url") or DEFAULT_BASE_URL).rstrip("/"),
                timeout=timeout or DEFAULT_TIMEOUT_SECONDS,
            ),
            endpoints=EndpointsConfig(
                activate=_template(endpoints, "activate", DEFAULT_ACTIVATE_PATH),
                mandatory=_template(endpoints, "mandatory", DEFAULT_MANDATORY_PATH),
                valid=_template(endpoints, "valid", DEFAULT_VALID_PATH),
            ),
            logging=LoggingConfig(
                level=(get_str(logging_table, "level") or "WARNING").upper(),
                format=log_format,
            ),
        )

    def with_env_overrides(self, environ: Mapping[str, str] | None = None) -> Config:
        env = os.environ if environ is None else environ
        config = self
        base_url = env.get("OTA_BASE_URL", "").strip()
        if base_url:
            config = replace(config, server=replace(config.server, base_url=base_url.rstrip("/")))
        level = env.get("OTA_LOG_LEVEL", "").strip()
        if level:
            config = replace(config, logging=replace(config.logging, level=level.upper()))
        return config


def _template(table: Mapping[str, object], key: str, default: str) -> str:
    value = get_str(table, key)
    if value is None:
        return default
    if "{bundle_id}" not in value:
        raise ValueError(f"endpoints.{key} must contain '{{bundle_id}}'")
    if not value.startswith("/"):
        value = "/" + value
    return value


def default_config_path() -> Path:
    override = os.environ.get("OTA_CONFIG")
    if override:
        return Path(override).expanduser()
    return user_config_dir() / "config.toml"


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and syntax errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to config.toml file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config, falling back to defaults when the file does not exist.

    A file that exists but cannot be parsed is still an error: silently
    ignoring it would point the client at the wrong server.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
