"""Error type shared by the account services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ota.gateway.envelope import ApiError

__all__ = ["ServiceError", "ServiceErrorKind", "from_api_error"]

ServiceErrorKind = Literal[
    "domain",
    "transport",
    "unauthorized",
    "invalid_input",
    "already_completed",
]


@dataclass(frozen=True, slots=True)
class ServiceError:
    kind: ServiceErrorKind
    message: str
    hint: str | None = None


def from_api_error(error: ApiError) -> ServiceError:
    return ServiceError(kind=error.kind, message=error.message, hint=error.hint)
