"""Bundles of a version: inspect, activate, enable/disable, mandatory."""

from __future__ import annotations

import typer

from ota.cache.store import EntityKind
from ota.cli.commands._helpers import require_session, run, unwrap_or_exit
from ota.cli.context import CLIContext, build_context
from ota.core.models import Bundle
from ota.output.tables import render_release
from ota.release.history import ReleaseView

bundles_app = typer.Typer(no_args_is_help=True, help="Inspect and change the bundles of a version.")

_VERSION_ARG = typer.Argument(..., help="Version id")
_BUNDLE_ARG = typer.Argument(..., help="Bundle id")


def _show(ctx: CLIContext, view: ReleaseView) -> None:
    render_release(ctx.console, view, ctx.cache.pending(EntityKind.BUNDLE))


async def _load(ctx: CLIContext, version_id: str) -> ReleaseView:
    await require_session(ctx)
    return unwrap_or_exit(await ctx.releases.load_version_and_bundles(version_id), ctx)


async def _activate(ctx: CLIContext, version_id: str, bundle_id: str) -> ReleaseView:
    await _load(ctx, version_id)
    return unwrap_or_exit(await ctx.releases.activate_bundle(bundle_id), ctx)


async def _set_enabled(
    ctx: CLIContext, version_id: str, bundle_id: str, enabled: bool
) -> tuple[Bundle, bool]:
    """Returns the bundle and whether anything changed."""
    await _load(ctx, version_id)
    bundle = ctx.cache.bundle(bundle_id)
    if bundle is not None and bundle.is_valid == enabled:
        return bundle, False
    return unwrap_or_exit(await ctx.releases.toggle_enabled(bundle_id), ctx), True


async def _set_mandatory(
    ctx: CLIContext, version_id: str, bundle_id: str, mandatory: bool | None
) -> tuple[Bundle, bool]:
    await _load(ctx, version_id)
    bundle = ctx.cache.bundle(bundle_id)
    if bundle is not None and mandatory is not None and bundle.is_mandatory == mandatory:
        return bundle, False
    return unwrap_or_exit(await ctx.releases.toggle_mandatory(bundle_id), ctx), True


def _show_cached(ctx: CLIContext, version_id: str) -> None:
    view = ctx.releases.cached_view(version_id)
    if view is not None:
        _show(ctx, view)


@bundles_app.command("show")
def show(version_id: str = _VERSION_ARG) -> None:
    """Show the active bundle and the history of a version."""
    ctx = build_context()
    _show(ctx, run(_load(ctx, version_id)))


@bundles_app.command("activate")
def activate(version_id: str = _VERSION_ARG, bundle_id: str = _BUNDLE_ARG) -> None:
    """Serve a bundle as the version's current release."""
    ctx = build_context()
    view = run(_activate(ctx, version_id, bundle_id))
    ctx.console.success(f"bundle {bundle_id} is now active")
    _show(ctx, view)


def _toggle_enabled(version_id: str, bundle_id: str, enabled: bool) -> None:
    ctx = build_context()
    bundle, changed = run(_set_enabled(ctx, version_id, bundle_id, enabled))
    state = "enabled" if bundle.is_valid else "disabled"
    if changed:
        ctx.console.success(f"bundle {bundle_id} {state}")
    else:
        ctx.console.info(f"bundle {bundle_id} already {state}")
    _show_cached(ctx, version_id)


@bundles_app.command("enable")
def enable(version_id: str = _VERSION_ARG, bundle_id: str = _BUNDLE_ARG) -> None:
    """Allow devices to receive a bundle again."""
    _toggle_enabled(version_id, bundle_id, True)


@bundles_app.command("disable")
def disable(version_id: str = _VERSION_ARG, bundle_id: str = _BUNDLE_ARG) -> None:
    """Stop offering a bundle to devices."""
    _toggle_enabled(version_id, bundle_id, False)


@bundles_app.command("mandatory")
def mandatory(
    version_id: str = _VERSION_ARG,
    bundle_id: str = _BUNDLE_ARG,
    value: bool | None = typer.Option(
        None, "--on/--off", help="Target state (default: flip the current one)"
    ),
) -> None:
    """Mark a bundle as a forced update, or clear the flag."""
    ctx = build_context()
    bundle, changed = run(_set_mandatory(ctx, version_id, bundle_id, value))
    state = "mandatory" if bundle.is_mandatory else "optional"
    if changed:
        ctx.console.success(f"bundle {bundle_id} is now {state}")
    else:
        ctx.console.info(f"bundle {bundle_id} already {state}")
    _show_cached(ctx, version_id)
