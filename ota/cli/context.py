from __future__ import annotations

from dataclasses import dataclass

import typer

from ota import __version__
from ota.cache.store import EntityCache
from ota.core.config import Config, default_config_path, load_config_or_default
from ota.core.observability import setup_logging
from ota.core.result import Err
from ota.gateway.client import Gateway
from ota.gateway.endpoints import ReleaseApi
from ota.gateway.http import HttpClient, RealHttpClient
from ota.output.console import ConsoleProtocol, RichConsole
from ota.output.errors import exit_code_for, print_error
from ota.release.coordinator import ReleaseCoordinator
from ota.services.auth_keys import AuthKeyService
from ota.services.setup import SetupService
from ota.session.guard import SessionGuard
from ota.session.navigation import ConsoleNavigator
from ota.session.token_store import FileTokenStore, TokenStore


@dataclass(frozen=True, slots=True)
class CLIContext:
    config: Config
    console: ConsoleProtocol
    api: ReleaseApi
    cache: EntityCache
    session: SessionGuard
    releases: ReleaseCoordinator
    setup: SetupService
    auth_keys: AuthKeyService


def create_context(
    config: Config,
    *,
    console: ConsoleProtocol,
    http: HttpClient,
    tokens: TokenStore,
) -> CLIContext:
    """Wire one client session.

    A single `EntityCache` is shared by the coordinator and the session
    guard, and the guard's teardown is bound to the gateway's 401 hook.
    """
    cache = EntityCache()
    gateway = Gateway(config.server.base_url, http, tokens)
    api = ReleaseApi(gateway, config.endpoints)
    session = SessionGuard(api, tokens, cache, ConsoleNavigator(console))
    gateway.set_unauthorized_handler(session.handle_unauthorized)
    return CLIContext(
        config=config,
        console=console,
        api=api,
        cache=cache,
        session=session,
        releases=ReleaseCoordinator(api, cache),
        setup=SetupService(api),
        auth_keys=AuthKeyService(api),
    )


def build_context() -> CLIContext:
    console = RichConsole()
    path = default_config_path()
    config_result = load_config_or_default(path)
    if isinstance(config_result, Err):
        print_error(config_result.error, console)
        raise typer.Exit(code=exit_code_for(config_result.error))

    config = config_result.value.with_env_overrides()
    setup_logging(config.logging.level, config.logging.format)

    http = RealHttpClient(timeout=config.server.timeout, user_agent=f"ota-admin/{__version__}")
    return create_context(config, console=console, http=http, tokens=FileTokenStore())
