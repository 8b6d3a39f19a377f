"""Shared helpers for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import TYPE_CHECKING, Any, NoReturn

import typer

from ota.core.models import User
from ota.core.result import Err, Result
from ota.output.errors import ClientError, exit_code_for, print_error

if TYPE_CHECKING:
    from ota.cli.context import CLIContext


def run[T](coro: Coroutine[Any, Any, T]) -> T:
    """Drive one command's coroutine to completion."""
    return asyncio.run(coro)


def fail(error: ClientError, ctx: CLIContext) -> NoReturn:
    print_error(error, ctx.console)
    raise typer.Exit(code=exit_code_for(error))


def unwrap_or_exit[T](result: Result[T, ClientError], ctx: CLIContext) -> T:
    """Return the value, or print the error and exit with its code.

    Replaces the pattern:
        match result:
            case Err(e):
                print_error(e, ctx.console)
                raise typer.Exit(code=exit_code_for(e))
            case Ok(value):
                ...
    """
    if isinstance(result, Err):
        fail(result.error, ctx)
    return result.value


async def require_session(ctx: CLIContext) -> User:
    """Validate the stored token before touching protected data."""
    await ctx.session.validate()
    return unwrap_or_exit(ctx.session.require_authenticated(), ctx)


def not_blank(value: str) -> str:
    """typer callback: reject empty or whitespace-only arguments."""
    if not value.strip():
        raise typer.BadParameter("must not be empty")
    return value.strip()
