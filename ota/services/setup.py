"""First-run setup: create the initial operator account on a fresh server."""

from __future__ import annotations

import logging

from ota.core.models import SetupStatus, User
from ota.core.result import Err, Ok, Result
from ota.gateway.endpoints import ReleaseApi

from .errors import ServiceError, from_api_error

__all__ = ["SetupService"]

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class SetupService:
    def __init__(self, api: ReleaseApi) -> None:
        self._api = api

    async def status(self) -> Result[SetupStatus, ServiceError]:
        result = await self._api.setup_status()
        if isinstance(result, Err):
            return Err(from_api_error(result.error))
        return Ok(result.value)

    async def init_user(self, username: str, password: str) -> Result[User, ServiceError]:
        """Create the first admin.

        Refused locally when the server reports setup as completed; the
        server refuses as well, but this gives a clearer message.
        """
        username = username.strip()
        if not username:
            return Err(ServiceError("invalid_input", "Username is required"))
        if len(password) < MIN_PASSWORD_LENGTH:
            return Err(
                ServiceError(
                    "invalid_input",
                    f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                )
            )

        status = await self.status()
        if isinstance(status, Err):
            return status
        if status.value.completed:
            return Err(
                ServiceError(
                    "already_completed",
                    "Setup is already completed on this server",
                    hint="sign in with `ota login`",
                )
            )

        created = await self._api.init_user(username, password)
        if isinstance(created, Err):
            logger.warning("initial user creation failed: %s", created.error.message)
            return Err(from_api_error(created.error))
        logger.info("created initial user %s", created.value.username)
        return Ok(created.value)
