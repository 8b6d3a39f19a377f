"""Exit codes for CLI commands.

The numeric values are process exit codes and must stay stable so scripts
wrapping `ota` can branch on them:
- 0: Success
- 1: User error (bad input, unknown id, disabled activation target)
- 2: Auth error (not logged in, session expired, 401 from the server)
- 3: Domain error (server answered `success: false`)
- 4: Network error (server unreachable, malformed response)
- 5: I/O error (config or credential file unreadable)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    AUTH_ERROR = 2
    DOMAIN_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
