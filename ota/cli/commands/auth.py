"""Sign in and out."""

from __future__ import annotations

import typer

from ota.cli.commands._helpers import require_session, run, unwrap_or_exit
from ota.cli.context import build_context
from ota.output.console import Style


def login(
    username: str = typer.Option(..., "--username", "-u", prompt=True, help="Operator name"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="Operator password"
    ),
) -> None:
    """Sign in and store the session token."""
    ctx = build_context()
    user = unwrap_or_exit(run(ctx.session.login(username, password)), ctx)
    ctx.console.success(f"signed in as {user.username}")


def logout() -> None:
    """Forget the stored session token."""
    build_context().session.logout()


def whoami() -> None:
    """Show the operator behind the stored token."""
    ctx = build_context()
    user = run(require_session(ctx))
    ctx.console.print(user.username, Style.BOLD)
    if user.roles:
        ctx.console.print(f"roles: {', '.join(user.roles)}", Style.DIM)
