"""Versions of an environment."""

from __future__ import annotations

import typer

from ota.cli.commands._helpers import require_session, run, unwrap_or_exit
from ota.cli.context import CLIContext, build_context
from ota.core.models import Version
from ota.output.tables import render_versions

versions_app = typer.Typer(no_args_is_help=True, help="List versions.")


async def _list(ctx: CLIContext, environment_id: str) -> list[Version]:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.load_versions(environment_id), ctx)


@versions_app.command("list")
def list_versions(environment_id: str = typer.Argument(..., help="Environment id")) -> None:
    """List the versions published to an environment."""
    ctx = build_context()
    render_versions(ctx.console, run(_list(ctx, environment_id)))
