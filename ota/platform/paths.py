"""User-level directory lookup.

The client keeps two small files per operator account: `config.toml`
(server address, endpoint overrides, logging) and `credentials.toml`
(the session token). Both live in the directory returned by
`user_config_dir()`.
"""

from __future__ import annotations

import os
import sys
from functools import lru_cache
from pathlib import Path

__all__ = [
    "APP_NAME",
    "clear_caches",
    "home",
    "is_windows",
    "user_config_dir",
]

APP_NAME = "ota"


def is_windows() -> bool:
    return sys.platform == "win32"


@lru_cache(maxsize=1)
def home() -> Path:
    """Get the user's home directory.

    Uses USERPROFILE on Windows, HOME on Unix, then Path.home().
    """
    if is_windows():
        userprofile = os.environ.get("USERPROFILE")
        if userprofile:
            return Path(userprofile)
    else:
        home_env = os.environ.get("HOME")
        if home_env:
            return Path(home_env)

    return Path.home()


@lru_cache(maxsize=1)
def user_config_dir() -> Path:
    """Get the per-user configuration directory.

    Location: $OTA_HOME if set, else ~/.config/ota/ (Linux/macOS, honoring
    XDG_CONFIG_HOME) or %APPDATA%/ota/ (Windows).
    """
    override = os.environ.get("OTA_HOME")
    if override:
        return Path(override).expanduser()

    if is_windows():
        app_data = os.environ.get("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
        return home() / "AppData" / "Roaming" / APP_NAME

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME
    return home() / ".config" / APP_NAME


def clear_caches() -> None:
    """Clear cached paths (tests change environment variables)."""
    home.cache_clear()
    user_config_dir.cache_clear()
