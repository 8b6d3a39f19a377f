"""Applications."""

from __future__ import annotations

from enum import Enum

import typer

from ota.cli.commands._helpers import not_blank, require_session, run, unwrap_or_exit
from ota.cli.context import CLIContext, build_context
from ota.core.models import Application
from ota.output.tables import render_applications

apps_app = typer.Typer(no_args_is_help=True, help="List and create applications.")


class OsChoice(str, Enum):
    ios = "ios"
    android = "android"


async def _list(ctx: CLIContext) -> list[Application]:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.load_applications(), ctx)


async def _create(ctx: CLIContext, name: str, os: OsChoice) -> Application | None:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.create_application(name, os.value), ctx)


@apps_app.command("list")
def list_apps() -> None:
    """List applications."""
    ctx = build_context()
    render_applications(ctx.console, run(_list(ctx)))


@apps_app.command("create")
def create_app(
    name: str = typer.Argument(..., callback=not_blank, help="Application name"),
    os: OsChoice = typer.Option(..., "--os", case_sensitive=False, help="Target platform"),
) -> None:
    """Create an application."""
    ctx = build_context()
    app = run(_create(ctx, name, os))
    if app is None:
        ctx.console.success(f"created {name} ({os.value})")
    else:
        ctx.console.success(f"created {app.name} ({app.os}) with id {app.id}")
