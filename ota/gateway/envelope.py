"""The one response shape every gateway call returns.

The release server is inconsistent: most routes answer
`{"success": true, "data": ...}` or `{"success": false, "message": ...}`,
validation failures use `{"success": false, "errors": [...]}`, and a few
routes return a bare body. `normalize()` folds all of that into
`Result[object, ApiError]` so no caller ever branches on response shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ota.core.result import Err, Ok, Result
from ota.core.structured import as_obj_list, as_str_dict, get_str

from .http import HttpError, HttpResponse

__all__ = [
    "ApiError",
    "ApiErrorKind",
    "ApiResult",
    "GENERIC_TRANSPORT_MESSAGE",
    "UNREACHABLE_MESSAGE",
    "normalize",
    "transport_failure",
]

ApiErrorKind = Literal["domain", "transport", "unauthorized"]

UNREACHABLE_MESSAGE = "Unable to reach the release server"
GENERIC_TRANSPORT_MESSAGE = "Unexpected response from the release server"
UNAUTHORIZED_MESSAGE = "Session expired or not authorized"


@dataclass(frozen=True, slots=True)
class ApiError:
    """Failure reported by the gateway.

    kind:
        domain: the server processed the request and said no (`success: false`)
        transport: no usable response (network failure, non-2xx without a body,
            malformed payload)
        unauthorized: 401; the session has already been torn down when the
            caller sees this
    """

    kind: ApiErrorKind
    message: str
    status: int = 0
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


type ApiResult[T] = Result[T, ApiError]


def transport_failure(error: HttpError) -> ApiError:
    return ApiError(
        kind="transport",
        message=UNREACHABLE_MESSAGE,
        status=error.status,
        hint=error.message,
    )


def _error_text(body: dict[str, object]) -> str | None:
    for key in ("error", "message"):
        text = get_str(body, key)
        if text is not None:
            return text
    # Validation failures carry a list, under `errors` or `error`.
    for key in ("errors", "error"):
        items = as_obj_list(body.get(key))
        if items:
            parts = [e.strip() for e in items if isinstance(e, str) and e.strip()]
            if parts:
                return "; ".join(parts)
    return None


def normalize(response: HttpResponse) -> Result[object, ApiError]:
    """Map a raw HTTP response onto the canonical envelope."""
    if response.status == 401:
        body = as_str_dict(response.json())
        detail = _error_text(body) if body is not None else None
        return Err(
            ApiError(kind="unauthorized", message=UNAUTHORIZED_MESSAGE, status=401, hint=detail)
        )

    decoded = response.json()
    body = as_str_dict(decoded)

    if body is not None and isinstance(body.get("success"), bool):
        if body["success"]:
            return Ok(body.get("data"))
        message = _error_text(body) or "The release server rejected the request"
        return Err(ApiError(kind="domain", message=message, status=response.status))

    if not response.ok:
        # A non-2xx with a readable error still carries the server's reason.
        detail = _error_text(body) if body is not None else None
        if detail is not None:
            return Err(ApiError(kind="domain", message=detail, status=response.status))
        return Err(
            ApiError(
                kind="transport",
                message=GENERIC_TRANSPORT_MESSAGE,
                status=response.status,
                hint=f"HTTP {response.status}",
            )
        )

    if decoded is None and response.body:
        return Err(
            ApiError(
                kind="transport",
                message=GENERIC_TRANSPORT_MESSAGE,
                status=response.status,
                hint="response body is not JSON",
            )
        )

    if body is not None and "data" in body and set(body) <= {"data", "message"}:
        # `{"data": ...}` without a success flag: unwrap once, never twice.
        return Ok(body["data"])

    return Ok(decoded)
