"""Platform abstraction layer."""

from .files import atomic_write_text, restrict_to_owner
from .paths import APP_NAME, home, is_windows, user_config_dir

__all__ = [
    # files
    "atomic_write_text",
    "restrict_to_owner",
    # paths
    "APP_NAME",
    "home",
    "is_windows",
    "user_config_dir",
]
