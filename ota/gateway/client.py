"""Gateway: authenticated requests against the release server.

The gateway owns the mechanism of talking to the server: URL joining,
bearer injection, JSON encoding, envelope normalization and 401 detection.
What happens on a 401 is policy and belongs to whoever registers
`on_unauthorized` (the session guard). The ordering guarantee is:

    credential cleared -> on_unauthorized() -> caller receives Err(unauthorized)

so by the time any caller sees an unauthorized error, the session is
already torn down.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Protocol
from urllib.parse import quote, urlencode

from ota.core.result import Err, Result

from .envelope import ApiError, normalize, transport_failure
from .http import HttpClient, HttpRequest

__all__ = ["CredentialSource", "Gateway", "path_param"]

logger = logging.getLogger(__name__)


class CredentialSource(Protocol):
    """Where the gateway reads (and on 401 drops) the bearer token."""

    def get(self) -> str | None: ...

    def clear(self) -> object: ...


def path_param(value: str) -> str:
    """Quote an id for safe interpolation into a path segment."""
    return quote(value, safe="")


class Gateway:
    def __init__(
        self,
        base_url: str,
        http: HttpClient,
        credentials: CredentialSource,
        *,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._http = http
        self._credentials = credentials
        self._on_unauthorized = on_unauthorized

    def set_unauthorized_handler(self, handler: Callable[[], None] | None) -> None:
        self._on_unauthorized = handler

    def url_for(self, path: str, query: Mapping[str, str] | None = None) -> str:
        if not path.startswith("/"):
            path = "/" + path
        url = f"{self.base_url}{path}"
        if query:
            url = f"{url}?{urlencode(dict(query))}"
        return url

    async def request(
        self,
        method: str,
        path: str,
        *,
        body: Mapping[str, object] | None = None,
        query: Mapping[str, str] | None = None,
        authenticated: bool = True,
    ) -> Result[object, ApiError]:
        """Send a request and normalize the answer.

        Args:
            method: HTTP method
            path: Server path, e.g. "/core/version/abc"
            body: JSON body, if any
            query: Query string parameters
            authenticated: Attach the bearer token (False for /login and setup)

        Returns:
            Ok(payload) with the envelope's `data`, or Err(ApiError)
        """
        url = self.url_for(path, query)
        headers: dict[str, str] = {}
        encoded: bytes | None = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            encoded = json.dumps(dict(body)).encode("utf-8")
        if authenticated:
            token = self._credentials.get()
            if token:
                headers["Authorization"] = f"Bearer {token}"

        logger.debug("request %s %s", method, path, extra={"method": method, "path": path})
        sent = await self._http.send(
            HttpRequest(method=method, url=url, headers=headers, body=encoded)
        )
        if isinstance(sent, Err):
            logger.warning(
                "transport failure for %s %s: %s",
                method,
                path,
                sent.error,
                extra={"method": method, "path": path},
            )
            return Err(transport_failure(sent.error))

        response = sent.value
        normalized = normalize(response)
        unauthorized = isinstance(normalized, Err) and normalized.error.kind == "unauthorized"
        if unauthorized and not authenticated:
            # Public routes (login, setup) have no session to end; a 401 there
            # is the server rejecting the submitted credentials.
            detail = normalized.error.hint if isinstance(normalized, Err) else None
            return Err(ApiError(kind="domain", message=detail or "Invalid credentials", status=401))
        if unauthorized:
            logger.info(
                "401 from %s %s, ending session",
                method,
                path,
                extra={"method": method, "path": path, "status": 401},
            )
            self._credentials.clear()
            if self._on_unauthorized is not None:
                self._on_unauthorized()
        elif isinstance(normalized, Err):
            logger.info(
                "%s %s failed: %s",
                method,
                path,
                normalized.error.message,
                extra={"method": method, "path": path, "status": response.status},
            )
        return normalized

    async def get(
        self, path: str, *, query: Mapping[str, str] | None = None, authenticated: bool = True
    ) -> Result[object, ApiError]:
        return await self.request("GET", path, query=query, authenticated=authenticated)

    async def post(
        self, path: str, body: Mapping[str, object], *, authenticated: bool = True
    ) -> Result[object, ApiError]:
        return await self.request("POST", path, body=body, authenticated=authenticated)

    async def put(
        self, path: str, body: Mapping[str, object] | None = None
    ) -> Result[object, ApiError]:
        return await self.request("PUT", path, body=body)

