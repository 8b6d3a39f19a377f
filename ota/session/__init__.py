"""Session lifecycle: stored credential, validation, forced logout."""

from .guard import SessionError, SessionGuard, SessionState
from .navigation import ConsoleNavigator, Navigator, RecordingNavigator, Route
from .token_store import FileTokenStore, MemoryTokenStore, TokenStore, TokenStoreError

__all__ = [
    "ConsoleNavigator",
    "FileTokenStore",
    "MemoryTokenStore",
    "Navigator",
    "RecordingNavigator",
    "Route",
    "SessionError",
    "SessionGuard",
    "SessionState",
    "TokenStore",
    "TokenStoreError",
]
