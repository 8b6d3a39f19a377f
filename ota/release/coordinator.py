"""Release coordinator: reads and mutations over the entity cache.

Every operation composes gateway calls with cache writes and reports
`Result[..., ReleaseError]`. The reconciliation rule differs per mutation:

- activate: no local write at all; on success the version and its bundles
  are re-read, because only the server knows the resulting current bundle.
- enable/disable: optimistic. The cache flips first; on failure it goes back
  to the value captured before the flip (not a second negation, which would
  be wrong if another write landed in between).
- mandatory: pessimistic. The cache changes only after the server agreed.
- rollback: no local write; on success the version is re-read.

A mutation marks its entity pending in the cache for its whole duration and
a second mutation on the same entity is refused until the first completes.
Requests are never cancelled: if two reads of the same version overlap, the
one that completes last wins.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace
from ota.cache.store import Entity, EntityCache, EntityKind
from ota.core.models import Application, Bundle, Environment, OperatingSystem, Version
from ota.core.result import Err, Ok, Result
from ota.gateway.endpoints import ReleaseApi
from ota.gateway.envelope import ApiError

from .errors import ReleaseError, from_api_error
from .history import ReleaseView, build_view

__all__ = ["ReleaseCoordinator"]

logger = logging.getLogger(__name__)


def _not_loaded(what: str, entity_id: str, hint: str) -> ReleaseError:
    return ReleaseError(kind="not_found", message=f"Unknown {what}: {entity_id}", hint=hint)


def _busy(what: str, entity_id: str) -> ReleaseError:
    return ReleaseError(
        kind="pending",
        message=f"A change to {what} {entity_id} is already in progress",
        hint="wait for it to finish and try again",
    )


class ReleaseCoordinator:
    def __init__(self, api: ReleaseApi, cache: EntityCache) -> None:
        self._api = api
        self._cache = cache

    @property
    def cache(self) -> EntityCache:
        return self._cache

    async def _load[T](
        self,
        kinds: tuple[EntityKind, ...],
        fetch: Callable[[], Awaitable[Result[T, ApiError]]],
        apply: Callable[[T], None],
    ) -> Result[T, ReleaseError]:
        """Run one fetch with loading/error bookkeeping.

        On failure only the error flag changes; items stay as they were.
        """
        for kind in kinds:
            self._cache.set_loading(kind, True)
            self._cache.set_error(kind, None)
        try:
            result = await fetch()
            if isinstance(result, Err):
                for kind in kinds:
                    self._cache.set_error(kind, result.error.message)
                return Err(from_api_error(result.error))
            apply(result.value)
            return Ok(result.value)
        finally:
            for kind in kinds:
                self._cache.set_loading(kind, False)

    # -------------------------------------------------------------------------
    # Applications and environments
    # -------------------------------------------------------------------------

    async def load_applications(self) -> Result[list[Application], ReleaseError]:
        def apply(apps: list[Application]) -> None:
            self._cache.replace_all(EntityKind.APPLICATION, apps)

        return await self._load((EntityKind.APPLICATION,), self._api.list_applications, apply)

    async def load_environments(self, app_id: str) -> Result[list[Environment], ReleaseError]:
        def apply(envs: list[Environment]) -> None:
            self._cache.replace_where(
                EntityKind.ENVIRONMENT, lambda e: _owned_by_app(e, app_id), envs
            )
            self._cache.select(EntityKind.APPLICATION, app_id)

        return await self._load(
            (EntityKind.ENVIRONMENT,), lambda: self._api.list_environments(app_id), apply
        )

    async def create_application(
        self, name: str, os: OperatingSystem
    ) -> Result[Application | None, ReleaseError]:
        """Create an application and reload the list.

        The server does not echo the new id, so the created application is
        looked up by name in the reloaded list (None if it is not there).
        """
        created = await self._api.create_application(name, os)
        if isinstance(created, Err):
            logger.warning("create application %r failed: %s", name, created.error.message)
            return Err(from_api_error(created.error))
        logger.info("created application %r (%s)", name, os)

        reloaded = await self.load_applications()
        if isinstance(reloaded, Err):
            return Err(_refresh_failed("application created", reloaded.error))
        matches = [a for a in reloaded.value if a.name == name and a.os == os]
        return Ok(matches[-1] if matches else None)

    async def create_environment(
        self, app_id: str, name: str
    ) -> Result[Environment | None, ReleaseError]:
        """Publish a new environment under an application and reload its environments."""
        app = self._cache.application(app_id)
        if app is None:
            loaded = await self.load_applications()
            if isinstance(loaded, Err):
                return Err(loaded.error)
            app = self._cache.application(app_id)
        if app is None:
            return Err(_not_loaded("application", app_id, "run `ota apps list`"))

        created = await self._api.create_environment(app.name, name)
        if isinstance(created, Err):
            logger.warning(
                "create environment %r failed: %s",
                name,
                created.error.message,
                extra={"kind": "environment", "entity_id": app_id},
            )
            return Err(from_api_error(created.error))
        logger.info("created environment %r for %s", name, app.name)

        reloaded = await self.load_environments(app_id)
        if isinstance(reloaded, Err):
            return Err(_refresh_failed("environment created", reloaded.error))
        matches = [e for e in reloaded.value if e.name == name]
        return Ok(matches[-1] if matches else None)

    # -------------------------------------------------------------------------
    # Versions and bundles
    # -------------------------------------------------------------------------

    async def load_versions(self, environment_id: str) -> Result[list[Version], ReleaseError]:
        def apply(versions: list[Version]) -> None:
            self._cache.replace_where(
                EntityKind.VERSION, lambda v: _owned_by_environment(v, environment_id), versions
            )
            self._cache.select(EntityKind.ENVIRONMENT, environment_id)

        return await self._load(
            (EntityKind.VERSION,), lambda: self._api.list_versions(environment_id), apply
        )

    async def load_version_and_bundles(self, version_id: str) -> Result[ReleaseView, ReleaseError]:
        """Fetch a version and its bundles and store them as one snapshot.

        `is_active` is computed against the version fetched here, never a
        cached one. Nothing is written unless both fetches succeed, so the
        cached version and bundles always agree on which bundle is current.
        """
        kinds = (EntityKind.VERSION, EntityKind.BUNDLE)
        for kind in kinds:
            self._cache.set_loading(kind, True)
            self._cache.set_error(kind, None)
        try:
            version = await self._api.get_version(version_id)
            if isinstance(version, Err):
                self._cache.set_error(EntityKind.VERSION, version.error.message)
                logger.warning("loading version %s failed: %s", version_id, version.error.message)
                return Err(from_api_error(version.error))

            bundles = await self._api.list_bundles(version_id)
            if isinstance(bundles, Err):
                self._cache.set_error(EntityKind.BUNDLE, bundles.error.message)
                logger.warning(
                    "loading bundles of %s failed: %s", version_id, bundles.error.message
                )
                return Err(from_api_error(bundles.error))

            view = build_view(version.value, bundles.value)
            self._cache.upsert(EntityKind.VERSION, view.version)
            self._cache.replace_where(
                EntityKind.BUNDLE, lambda b: _owned_by_version(b, version_id), view.bundles
            )
            self._cache.select(EntityKind.VERSION, version_id)
            return Ok(view)
        finally:
            for kind in kinds:
                self._cache.set_loading(kind, False)

    def cached_view(self, version_id: str) -> ReleaseView | None:
        """The last stored snapshot of a version, without any request."""
        version = self._cache.version(version_id)
        if version is None:
            return None
        return build_view(version, self._cache.bundles_for(version_id))

    async def activate_bundle(self, bundle_id: str) -> Result[ReleaseView, ReleaseError]:
        """Make a bundle the one served for its version.

        Disabled bundles are refused before any request is sent.
        """
        bundle = self._cache.bundle(bundle_id)
        if bundle is None:
            return Err(_not_loaded("bundle", bundle_id, "load its version first"))
        if not bundle.is_valid:
            return Err(
                ReleaseError(
                    kind="invalid_target",
                    message=f"Bundle {bundle_id} is disabled and cannot be activated",
                    hint="enable it first",
                )
            )
        if not self._cache.mark_pending(EntityKind.BUNDLE, bundle_id):
            return Err(_busy("bundle", bundle_id))

        try:
            result = await self._api.set_bundle_active(bundle_id)
            if isinstance(result, Err):
                logger.warning(
                    "activate %s failed: %s",
                    bundle_id,
                    result.error.message,
                    extra={"kind": "bundle", "entity_id": bundle_id},
                )
                return Err(from_api_error(result.error))
            logger.info("activated bundle %s", bundle_id, extra={"entity_id": bundle_id})
        finally:
            self._cache.clear_pending(EntityKind.BUNDLE, bundle_id)

        refreshed = await self.load_version_and_bundles(bundle.version_id)
        if isinstance(refreshed, Err):
            return Err(_refresh_failed("bundle activated", refreshed.error))
        return refreshed

    async def toggle_enabled(self, bundle_id: str) -> Result[Bundle, ReleaseError]:
        """Flip `is_valid` optimistically; restore the captured value on failure."""
        bundle = self._cache.bundle(bundle_id)
        if bundle is None:
            return Err(_not_loaded("bundle", bundle_id, "load its version first"))
        if not self._cache.mark_pending(EntityKind.BUNDLE, bundle_id):
            return Err(_busy("bundle", bundle_id))

        prior = bundle.is_valid
        desired = not prior
        flipped = replace(bundle, is_valid=desired)
        self._cache.upsert(EntityKind.BUNDLE, flipped)
        try:
            result = await self._api.set_bundle_valid(bundle_id, desired)
            if isinstance(result, Err):
                current = self._cache.bundle(bundle_id)
                # Absent after a logout reset: nothing to restore.
                if current is not None:
                    self._cache.upsert(EntityKind.BUNDLE, replace(current, is_valid=prior))
                logger.warning(
                    "%s %s failed, reverted: %s",
                    "enable" if desired else "disable",
                    bundle_id,
                    result.error.message,
                    extra={"kind": "bundle", "entity_id": bundle_id},
                )
                return Err(from_api_error(result.error))
        finally:
            self._cache.clear_pending(EntityKind.BUNDLE, bundle_id)

        logger.info(
            "%s bundle %s",
            "enabled" if desired else "disabled",
            bundle_id,
            extra={"entity_id": bundle_id},
        )
        return Ok(self._cache.bundle(bundle_id) or flipped)

    async def toggle_mandatory(self, bundle_id: str) -> Result[Bundle, ReleaseError]:
        """Request the negated mandatory flag; store it only once the server agreed."""
        bundle = self._cache.bundle(bundle_id)
        if bundle is None:
            return Err(_not_loaded("bundle", bundle_id, "load its version first"))
        if not self._cache.mark_pending(EntityKind.BUNDLE, bundle_id):
            return Err(_busy("bundle", bundle_id))

        desired = not bundle.is_mandatory
        try:
            result = await self._api.set_bundle_mandatory(bundle_id, desired)
            if isinstance(result, Err):
                logger.warning(
                    "set mandatory=%s on %s failed: %s",
                    desired,
                    bundle_id,
                    result.error.message,
                    extra={"kind": "bundle", "entity_id": bundle_id},
                )
                return Err(from_api_error(result.error))
        finally:
            self._cache.clear_pending(EntityKind.BUNDLE, bundle_id)

        current = self._cache.bundle(bundle_id)
        updated = replace(current or bundle, is_mandatory=desired)
        if current is not None:
            self._cache.upsert(EntityKind.BUNDLE, updated)
        logger.info("bundle %s mandatory=%s", bundle_id, desired, extra={"entity_id": bundle_id})
        return Ok(updated)

    async def rollback(
        self, app_id: str, environment_id: str, version_id: str
    ) -> Result[ReleaseView, ReleaseError]:
        """Roll a version back to its previous bundle, then re-read it."""
        if not self._cache.mark_pending(EntityKind.VERSION, version_id):
            return Err(_busy("version", version_id))
        try:
            result = await self._api.rollback(app_id, environment_id, version_id)
            if isinstance(result, Err):
                logger.warning(
                    "rollback of %s failed: %s",
                    version_id,
                    result.error.message,
                    extra={"kind": "version", "entity_id": version_id},
                )
                return Err(from_api_error(result.error))
            logger.info("rolled back version %s", version_id, extra={"entity_id": version_id})
        finally:
            self._cache.clear_pending(EntityKind.VERSION, version_id)

        refreshed = await self.load_version_and_bundles(version_id)
        if isinstance(refreshed, Err):
            return Err(_refresh_failed("rollback applied", refreshed.error))
        return refreshed


def _refresh_failed(done: str, error: ReleaseError) -> ReleaseError:
    # An unauthorized refresh keeps its kind: the session is already gone.
    if error.kind == "unauthorized":
        return error
    return ReleaseError(
        kind="refresh_failed",
        message=f"{done.capitalize()}, but reloading failed: {error.message}",
        hint=error.hint,
    )


def _owned_by_app(entity: Entity, app_id: str) -> bool:
    return isinstance(entity, Environment) and entity.app_id == app_id


def _owned_by_environment(entity: Entity, environment_id: str) -> bool:
    return isinstance(entity, Version) and entity.environment_id == environment_id


def _owned_by_version(entity: Entity, version_id: str) -> bool:
    return isinstance(entity, Bundle) and entity.version_id == version_id
