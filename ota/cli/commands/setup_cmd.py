"""First-run setup of a fresh release server."""

from __future__ import annotations

import typer

from ota.cli.commands._helpers import not_blank, run, unwrap_or_exit
from ota.cli.context import build_context

setup_app = typer.Typer(
    no_args_is_help=True,
    help="Inspect or complete first-run setup.",
    add_completion=False,
)


@setup_app.command("status")
def status() -> None:
    """Report whether the server already has an operator account."""
    ctx = build_context()
    setup = unwrap_or_exit(run(ctx.setup.status()), ctx)
    if setup.completed:
        ctx.console.success("setup completed")
    else:
        ctx.console.warning("setup pending; run `ota setup init`")


@setup_app.command("init")
def init(
    username: str = typer.Option(
        ..., "--username", "-u", prompt=True, callback=not_blank, help="Admin name"
    ),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        prompt=True,
        hide_input=True,
        confirmation_prompt=True,
        help="Admin password",
    ),
) -> None:
    """Create the first admin account."""
    ctx = build_context()
    user = unwrap_or_exit(run(ctx.setup.init_user(username, password)), ctx)
    ctx.console.success(f"created {user.username}; sign in with `ota login`")
