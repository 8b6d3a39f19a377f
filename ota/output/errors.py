"""Error presentation and exit code mapping."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ota.core.config import ConfigError
from ota.core.errors import ErrorCode
from ota.gateway.envelope import ApiError
from ota.output.console import Style
from ota.release.errors import ReleaseError
from ota.services.errors import ServiceError
from ota.session.guard import SessionError

if TYPE_CHECKING:
    from ota.output.console import ConsoleProtocol

__all__ = [
    "ClientError",
    "exit_code_for",
    "print_error",
]

type ClientError = ApiError | ReleaseError | ServiceError | SessionError | ConfigError


def print_error(error: ClientError, console: ConsoleProtocol) -> None:
    """Print any client-side error with its hint on a second, dimmed line."""
    match error:
        case ReleaseError(kind="refresh_failed", message=message):
            console.warning(message)
        case _:
            console.error(error.message)
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def exit_code_for(error: ClientError) -> int:
    match error:
        case (
            ApiError(kind="unauthorized")
            | ReleaseError(kind="unauthorized")
            | ServiceError(kind="unauthorized")
            | SessionError(kind="not_authenticated" | "invalid_credentials")
        ):
            return int(ErrorCode.AUTH_ERROR)
        case (
            ApiError(kind="transport")
            | ReleaseError(kind="transport")
            | ServiceError(kind="transport")
            | SessionError(kind="unreachable")
        ):
            return int(ErrorCode.NETWORK_ERROR)
        case (
            ApiError(kind="domain")
            | ReleaseError(kind="domain" | "refresh_failed")
            | ServiceError(kind="domain")
        ):
            return int(ErrorCode.DOMAIN_ERROR)
        case SessionError(kind="storage") | ConfigError():
            return int(ErrorCode.IO_ERROR)
    # not_found, pending, invalid_target, invalid_input, already_completed
    return int(ErrorCode.USER_ERROR)
