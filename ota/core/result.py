"""Result type used at every seam of the client.

Remote calls, config loading and credential storage all report expected
failures as values rather than exceptions. A caller either gets `Ok(value)`
or `Err(error)` and must branch on it:

    match await api.get_version(version_id):
        case Ok(version):
            ...
        case Err(error):
            console.error(error.message)

`Ok`/`Err` are frozen so that a result handed to several callers cannot be
altered by one of them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying `value`."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying `error`."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
