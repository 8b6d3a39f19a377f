"""Session guard: who is logged in, and whether protected data may be shown.

States:

    UNAUTHENTICATED --login/validate--> VALIDATING --ok--> AUTHENTICATED
                                        VALIDATING --fail--> UNAUTHENTICATED
    AUTHENTICATED --logout / 401--> UNAUTHENTICATED

The initial state is VALIDATING when a stored token exists, else
UNAUTHENTICATED. Ending a session always runs the same teardown, in this
order: clear credential, reset the entity cache, navigate to login. The
cache is emptied before navigation so whatever renders next cannot show
protected data from the previous session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal

from ota.cache.store import EntityCache
from ota.core.models import User
from ota.core.result import Err, Ok, Result
from ota.gateway.endpoints import ReleaseApi
from ota.gateway.envelope import ApiError

from .navigation import Navigator, Route
from .token_store import TokenStore

__all__ = [
    "SessionError",
    "SessionErrorKind",
    "SessionGuard",
    "SessionState",
]

logger = logging.getLogger(__name__)

SessionErrorKind = Literal[
    "not_authenticated",
    "invalid_credentials",
    "unreachable",
    "storage",
]


class SessionState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    VALIDATING = "validating"
    AUTHENTICATED = "authenticated"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class SessionError:
    kind: SessionErrorKind
    message: str
    hint: str | None = None


def _from_api_error(error: ApiError) -> SessionError:
    if error.kind == "transport":
        return SessionError("unreachable", error.message, hint=error.hint)
    if error.kind == "unauthorized":
        return SessionError("not_authenticated", error.message, hint="run `ota login`")
    return SessionError("invalid_credentials", error.message)


class SessionGuard:
    def __init__(
        self,
        api: ReleaseApi,
        tokens: TokenStore,
        cache: EntityCache,
        navigator: Navigator,
    ) -> None:
        self._api = api
        self._tokens = tokens
        self._cache = cache
        self._navigator = navigator
        self.user: User | None = None
        self.last_error: SessionError | None = None
        self._validated_token: str | None = None
        self.state = (
            SessionState.VALIDATING if tokens.get() is not None else SessionState.UNAUTHENTICATED
        )

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    async def validate(self, *, force: bool = False) -> bool:
        """Resolve the operator's identity from the stored token.

        Safe to call repeatedly: an already validated token is not re-checked
        unless `force` is set. Any failure removes the stored token and empties
        the cache; only a 401 also sends the operator back to the login route.
        """
        token = self._tokens.get()
        if token is None:
            self._set_unauthenticated()
            self.last_error = SessionError("not_authenticated", "Not logged in", "run `ota login`")
            return False

        if not force and self.is_authenticated and token == self._validated_token:
            return True

        self.state = SessionState.VALIDATING
        result = await self._api.current_user()
        match result:
            case Ok(user):
                self.user = user
                self._validated_token = token
                self.state = SessionState.AUTHENTICATED
                self.last_error = None
                logger.info("session validated for %s", user.username)
                return True
            case Err(error):
                self.last_error = _from_api_error(error)
                if error.kind == "unauthorized":
                    # Already torn down unless no handler is bound to the gateway.
                    if self.state is not SessionState.UNAUTHENTICATED:
                        self._end_session()
                    return False
                if error.kind == "transport":
                    logger.warning("could not validate session: %s", error.pretty())
                else:
                    logger.info("stored token rejected: %s", error.message)
                self._clear_credential()
                self._cache.reset()
                self._set_unauthenticated()
                return False

    async def login(self, username: str, password: str) -> Result[User, SessionError]:
        """Exchange credentials for a token, store it, then validate it."""
        token = await self._api.login(username, password)
        if isinstance(token, Err):
            error = _from_api_error(token.error)
            self.last_error = error
            return Err(error)

        stored = self._tokens.set(token.value)
        if isinstance(stored, Err):
            return Err(SessionError("storage", stored.error.message, hint=stored.error.hint))

        # A different operator may be signing in; never show the previous one's data.
        self._cache.reset()
        if not await self.validate(force=True) or self.user is None:
            return Err(
                self.last_error or SessionError("invalid_credentials", "Token was not accepted")
            )
        return Ok(self.user)

    def logout(self) -> None:
        """End the session. Never fails; storage problems are only logged."""
        logger.info("logging out")
        self._end_session()

    def handle_unauthorized(self) -> None:
        """Callback for the gateway when the server answers 401."""
        logger.info("server rejected the session token")
        self.last_error = SessionError(
            "not_authenticated", "Session expired or not authorized", hint="run `ota login`"
        )
        self._end_session()

    def require_authenticated(self) -> Result[User, SessionError]:
        """Gate for protected views."""
        if self.is_authenticated and self.user is not None:
            return Ok(self.user)
        return Err(
            self.last_error
            or SessionError("not_authenticated", "Not logged in", hint="run `ota login`")
        )

    def _end_session(self) -> None:
        self._clear_credential()
        self._cache.reset()
        self._set_unauthenticated()
        self._navigator.navigate(Route.LOGIN)

    def _clear_credential(self) -> None:
        cleared = self._tokens.clear()
        if isinstance(cleared, Err):
            logger.error("could not remove stored token: %s", cleared.error.message)

    def _set_unauthenticated(self) -> None:
        self.user = None
        self._validated_token = None
        self.state = SessionState.UNAUTHENTICATED
