"""Core domain types and shared plumbing."""

from .config import Config, ConfigError, load_config, load_config_or_default
from .errors import ErrorCode
from .models import Application, AuthKey, Bundle, Environment, SetupStatus, User, Version
from .result import Err, Ok, Result

__all__ = [
    # config
    "Config",
    "ConfigError",
    "load_config",
    "load_config_or_default",
    # errors
    "ErrorCode",
    # models
    "Application",
    "AuthKey",
    "Bundle",
    "Environment",
    "SetupStatus",
    "User",
    "Version",
    # result
    "Err",
    "Ok",
    "Result",
]
