"""Durable storage for the operator's bearer token.

The token lives in its own small file, `<user-config-dir>/credentials.toml`:

  token = "eyJhbGciOi..."

It is written atomically and restricted to the owner. `MemoryTokenStore`
keeps the same contract without touching disk (tests, embedding).
"""

from __future__ import annotations

import json
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ota.core.result import Err, Ok, Result
from ota.platform.files import atomic_write_text, restrict_to_owner
from ota.platform.paths import user_config_dir

__all__ = [
    "FileTokenStore",
    "MemoryTokenStore",
    "TokenStore",
    "TokenStoreError",
    "default_credentials_path",
]

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"


@dataclass(frozen=True, slots=True)
class TokenStoreError:
    message: str
    path: Path | None = None
    hint: str | None = None


class TokenStore(Protocol):
    def get(self) -> str | None:
        """Return the stored token, or None."""
        ...

    def set(self, token: str) -> Result[None, TokenStoreError]: ...

    def clear(self) -> Result[None, TokenStoreError]: ...


def default_credentials_path() -> Path:
    return user_config_dir() / "credentials.toml"


class FileTokenStore:
    def __init__(self, path: Path | None = None) -> None:
        self.path = path or default_credentials_path()

    def get(self) -> str | None:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("cannot read %s: %s", self.path, e)
            return None

        try:
            data = tomllib.loads(raw.decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
            logger.warning("ignoring unreadable credentials file %s: %s", self.path, e)
            return None

        token = data.get(TOKEN_KEY)
        if not isinstance(token, str) or not token.strip():
            return None
        return token.strip()

    def set(self, token: str) -> Result[None, TokenStoreError]:
        # JSON string escaping is valid TOML basic-string escaping, except that
        # TOML has no surrogate-pair escapes and forbids a raw DEL.
        quoted = json.dumps(token, ensure_ascii=False).replace("\x7f", "\\u007f")
        content = f"{TOKEN_KEY} = {quoted}\n"
        try:
            atomic_write_text(self.path, content)
            restrict_to_owner(self.path)
        except OSError as e:
            return Err(TokenStoreError(f"Could not write {self.path}: {e}", path=self.path))
        return Ok(None)

    def clear(self) -> Result[None, TokenStoreError]:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            return Err(TokenStoreError(f"Could not remove {self.path}: {e}", path=self.path))
        return Ok(None)


class MemoryTokenStore:
    def __init__(self, token: str | None = None) -> None:
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> Result[None, TokenStoreError]:
        self._token = token
        return Ok(None)

    def clear(self) -> Result[None, TokenStoreError]:
        self._token = None
        return Ok(None)
