"""Environments of an application."""

from __future__ import annotations

import typer

from ota.cli.commands._helpers import not_blank, require_session, run, unwrap_or_exit
from ota.cli.context import CLIContext, build_context
from ota.core.models import Environment
from ota.output.console import Style
from ota.output.tables import render_environments

envs_app = typer.Typer(no_args_is_help=True, help="List and publish environments.")


async def _list(ctx: CLIContext, app_id: str) -> list[Environment]:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.load_environments(app_id), ctx)


async def _create(ctx: CLIContext, app_id: str, name: str) -> Environment | None:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.create_environment(app_id, name), ctx)


@envs_app.command("list")
def list_envs(app_id: str = typer.Argument(..., help="Application id")) -> None:
    """List the environments of an application."""
    ctx = build_context()
    render_environments(ctx.console, run(_list(ctx, app_id)))


@envs_app.command("create")
def create_env(
    app_id: str = typer.Argument(..., help="Application id"),
    name: str = typer.Argument(..., callback=not_blank, help="Environment name"),
) -> None:
    """Publish a new environment for an application."""
    ctx = build_context()
    env = run(_create(ctx, app_id, name))
    ctx.console.success(f"created environment {name}")
    if env is not None and env.access_key:
        ctx.console.print(f"access key: {env.access_key}", Style.DIM)
