from __future__ import annotations

import os

import typer

from ota import __version__
from ota.cli.commands.apps import apps_app
from ota.cli.commands.auth import login, logout, whoami
from ota.cli.commands.bundles import bundles_app
from ota.cli.commands.envs import envs_app
from ota.cli.commands.keys import keys_app
from ota.cli.commands.rollback import rollback
from ota.cli.commands.setup_cmd import setup_app
from ota.cli.commands.versions import versions_app

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Administer OTA releases: applications, environments, versions and bundles.",
)


# Commands
app.command()(login)
app.command()(logout)
app.command()(whoami)
app.command()(rollback)

# Sub-apps
app.add_typer(setup_app, name="setup")
app.add_typer(apps_app, name="apps")
app.add_typer(envs_app, name="envs")
app.add_typer(versions_app, name="versions")
app.add_typer(bundles_app, name="bundles")
app.add_typer(keys_app, name="keys")


def _print_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit."
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log requests to stderr."),
    base_url: str | None = typer.Option(
        None, "--base-url", help="Release server URL (overrides the config file)"
    ),
) -> None:
    # Picked up by Config.with_env_overrides() when the context is built.
    if verbose:
        os.environ["OTA_LOG_LEVEL"] = "DEBUG"
    if base_url:
        os.environ["OTA_BASE_URL"] = base_url


def main() -> None:
    app()
