"""Error type for release coordination."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ota.gateway.envelope import ApiError

__all__ = ["ReleaseError", "ReleaseErrorKind", "from_api_error"]

ReleaseErrorKind = Literal[
    # Reported by the gateway
    "domain",
    "transport",
    "unauthorized",
    # Decided locally, before any request
    "not_found",
    "pending",
    "invalid_target",
    # The mutation succeeded but re-reading the version did not
    "refresh_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Failure of a coordinator operation, ready to show to the operator."""

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message


def from_api_error(error: ApiError) -> ReleaseError:
    return ReleaseError(kind=error.kind, message=error.message, hint=error.hint)
