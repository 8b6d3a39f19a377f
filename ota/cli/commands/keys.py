"""Auth keys for CI uploads."""

from __future__ import annotations

import typer

from ota.cli.commands._helpers import not_blank, require_session, run, unwrap_or_exit
from ota.cli.context import CLIContext, build_context
from ota.core.models import AuthKey
from ota.output.console import Style
from ota.output.tables import render_auth_keys
from ota.services.auth_keys import mask_key

keys_app = typer.Typer(no_args_is_help=True, help="List and create auth keys.")


async def _list(ctx: CLIContext) -> list[AuthKey]:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.auth_keys.list_keys(), ctx)


async def _create(ctx: CLIContext, name: str) -> str:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.auth_keys.create(name), ctx)


@keys_app.command("list")
def list_keys(
    show_secrets: bool = typer.Option(False, "--show-secrets", help="Print keys unmasked"),
) -> None:
    """List auth keys (secrets masked)."""
    ctx = build_context()
    keys = run(_list(ctx))
    render_auth_keys(ctx.console, keys)
    for key in keys:
        if key.key:
            shown = key.key if show_secrets else mask_key(key.key)
            ctx.console.print(f"{key.name}: {shown}", Style.DIM)


@keys_app.command("create")
def create_key(name: str = typer.Argument(..., callback=not_blank, help="Key name")) -> None:
    """Create an auth key and print its secret once."""
    ctx = build_context()
    secret = run(_create(ctx, name))
    ctx.console.success(f"created auth key {name}")
    ctx.console.print(secret, Style.BOLD)
