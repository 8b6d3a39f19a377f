"""Roll a version back to its previous bundle."""

from __future__ import annotations

import typer

from ota.cache.store import EntityKind
from ota.cli.commands._helpers import require_session, run, unwrap_or_exit
from ota.cli.context import CLIContext, build_context
from ota.output.tables import render_release
from ota.release.history import ReleaseView


async def _rollback(
    ctx: CLIContext, app_id: str, environment_id: str, version_id: str
) -> ReleaseView:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.rollback(app_id, environment_id, version_id), ctx)


def rollback(
    app_id: str = typer.Argument(..., help="Application id"),
    environment_id: str = typer.Argument(..., help="Environment id"),
    version_id: str = typer.Argument(..., help="Version id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Serve the bundle published before the current one."""
    if not yes:
        typer.confirm(f"Roll back version {version_id}?", abort=True)
    ctx = build_context()
    view = run(_rollback(ctx, app_id, environment_id, version_id))
    active = view.active
    if active is None:
        ctx.console.warning("rolled back; the version has no active bundle now")
    else:
        ctx.console.success(f"rolled back; bundle {active.id} is active")
    render_release(ctx.console, view, ctx.cache.pending(EntityKind.BUNDLE))
