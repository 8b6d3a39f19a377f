"""Auth keys: long-lived credentials for CI uploads."""

from __future__ import annotations

import logging

from ota.core.models import AuthKey
from ota.core.result import Err, Ok, Result
from ota.gateway.endpoints import ReleaseApi

from .errors import ServiceError, from_api_error

__all__ = ["AuthKeyService", "mask_key"]

logger = logging.getLogger(__name__)


def mask_key(key: str, visible: int = 4) -> str:
    """Hide all but the last `visible` characters of a secret."""
    if len(key) <= visible:
        return "*" * len(key)
    return "*" * (len(key) - visible) + key[-visible:]


class AuthKeyService:
    def __init__(self, api: ReleaseApi) -> None:
        self._api = api

    async def list_keys(self) -> Result[list[AuthKey], ServiceError]:
        result = await self._api.list_auth_keys()
        if isinstance(result, Err):
            return Err(from_api_error(result.error))
        return Ok(sorted(result.value, key=lambda k: k.created_at or "", reverse=True))

    async def create(self, name: str) -> Result[str, ServiceError]:
        """Create a key and return its secret. The secret is only shown once."""
        name = name.strip()
        if not name:
            return Err(ServiceError("invalid_input", "Key name is required"))
        result = await self._api.create_auth_key(name)
        if isinstance(result, Err):
            logger.warning("creating auth key %r failed: %s", name, result.error.message)
            return Err(from_api_error(result.error))
        logger.info("created auth key %r", name)
        return Ok(result.value)
