"""HTTP transport for the release server.

This module provides:
- HttpClient: Protocol for sending one request (injectable for tests)
- RealHttpClient: Real implementation using urllib, run off the event loop
- MockHttpClient: Scripted implementation for testing

The transport does not interpret status codes: any response the server
produced, 4xx/5xx included, is `Ok(HttpResponse)`. Only failures to get a
response at all (DNS, refused connection, timeout) are `Err(HttpError)`.
"""

from __future__ import annotations

import asyncio
import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from ota import __version__
from ota.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpRequest",
    "HttpResponse",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """Transport failure details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class HttpRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict[str, str])
    body: bytes | None = None

    def json(self) -> object | None:
        """Decode the request body (tests inspect what was sent)."""
        if self.body is None:
            return None
        return json.loads(self.body.decode("utf-8"))


@dataclass(frozen=True, slots=True)
class HttpResponse:
    status: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> object | None:
        """Decode the body as JSON, or None if it is empty or not JSON."""
        if not self.body:
            return None
        try:
            data: object = json.loads(self.body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        return data


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations.

    Implementations must not raise for expected network failures; they
    return `Err(HttpError)` instead.
    """

    async def send(self, request: HttpRequest) -> Result[HttpResponse, HttpError]:
        """Send one request and return the raw response."""
        ...


class RealHttpClient:
    """HTTP client using urllib.

    urllib blocks, so each request runs in a worker thread via
    `asyncio.to_thread`. The worker only performs I/O; callers resume on the
    event loop thread, which is the only thread that touches client state.
    """

    def __init__(self, timeout: float = 30.0, user_agent: str | None = None) -> None:
        self.timeout = timeout
        self.user_agent = user_agent or f"ota-admin/{__version__}"
        self._ssl_context = ssl.create_default_context()

    async def send(self, request: HttpRequest) -> Result[HttpResponse, HttpError]:
        return await asyncio.to_thread(self._send_blocking, request)

    def _send_blocking(self, request: HttpRequest) -> Result[HttpResponse, HttpError]:
        url = request.url
        headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
        headers.update(request.headers)
        try:
            req = urllib.request.Request(
                url,
                data=request.body,
                headers=headers,
                method=request.method,
            )
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                return Ok(HttpResponse(status=response.status, body=response.read()))
        except urllib.error.HTTPError as e:
            # The server answered; status interpretation belongs to the gateway.
            try:
                body = e.read()
            except OSError:
                body = b""
            return Ok(HttpResponse(status=e.code, body=body))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))


type _Scripted = HttpResponse | HttpError


class MockHttpClient:
    """Scripted HTTP client for testing.

    Responses are queued per (method, url). Each call pops the next one; the
    last queued response is repeated once the queue is down to one entry.

    Usage:
        client = MockHttpClient()
        client.set_json("GET", "http://srv/core/version/v1", {"success": True, "data": {...}})
        result = await client.send(HttpRequest("GET", "http://srv/core/version/v1"))

    `hold()` returns an event the call waits on before answering, which lets
    tests decide the order in which concurrent requests complete.
    """

    def __init__(self) -> None:
        self._responses: dict[tuple[str, str], list[_Scripted]] = {}
        self._gates: dict[tuple[str, str], asyncio.Event] = {}
        self.calls: list[HttpRequest] = []

    def set_response(self, method: str, url: str, response: HttpResponse | HttpError) -> None:
        """Replace the queue for (method, url) with a single response."""
        self._responses[(method.upper(), url)] = [response]

    def queue_response(self, method: str, url: str, response: HttpResponse | HttpError) -> None:
        """Append a response to the queue for (method, url)."""
        self._responses.setdefault((method.upper(), url), []).append(response)

    def set_json(self, method: str, url: str, payload: object, status: int = 200) -> None:
        self.set_response(method, url, HttpResponse(status, json.dumps(payload).encode("utf-8")))

    def queue_json(self, method: str, url: str, payload: object, status: int = 200) -> None:
        self.queue_response(method, url, HttpResponse(status, json.dumps(payload).encode("utf-8")))

    def hold(self, method: str, url: str) -> asyncio.Event:
        """Block calls to (method, url) until the returned event is set."""
        event = asyncio.Event()
        self._gates[(method.upper(), url)] = event
        return event

    async def send(self, request: HttpRequest) -> Result[HttpResponse, HttpError]:
        self.calls.append(request)
        key = (request.method.upper(), request.url)

        gate = self._gates.get(key)
        if gate is not None:
            await gate.wait()

        queue = self._responses.get(key)
        if not queue:
            return Ok(HttpResponse(404, b'{"success": false, "message": "Not found (mock)"}'))

        scripted = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(scripted, HttpError):
            return Err(scripted)
        return Ok(scripted)

    def requests_to(self, method: str, url: str) -> list[HttpRequest]:
        """Calls made to (method, url), in order."""
        return [c for c in self.calls if c.method.upper() == method.upper() and c.url == url]
