"""Navigation indirection.

The session guard decides *that* the operator must go back to the login
surface; a `Navigator` decides what that means for the current front end.
The CLI prints instructions, tests record the route.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ota.output.console import ConsoleProtocol

__all__ = [
    "ConsoleNavigator",
    "Navigator",
    "RecordingNavigator",
    "Route",
]


class Route(Enum):
    LOGIN = "/login"

    def __str__(self) -> str:
        return self.value


class Navigator(Protocol):
    def navigate(self, route: Route) -> None: ...


class ConsoleNavigator:
    """Tells the operator where to go next."""

    def __init__(self, console: ConsoleProtocol) -> None:
        self._console = console

    def navigate(self, route: Route) -> None:
        if route is Route.LOGIN:
            self._console.warning("session ended; run `ota login` to sign in again")


def _empty_routes() -> list[Route]:
    return []


@dataclass
class RecordingNavigator:
    routes: list[Route] = field(default_factory=_empty_routes)

    def navigate(self, route: Route) -> None:
        self.routes.append(route)

    @property
    def last(self) -> Route | None:
        return self.routes[-1] if self.routes else None
