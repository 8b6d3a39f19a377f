"""Entity cache: the last known-good copy of every collection.

One `EntityCache` instance is created per client session and injected into
the release coordinator and the session guard; nothing else writes to it.

Each collection (applications, environments, versions, bundles) holds its
items keyed by id plus coarse `loading`/`error` flags. Writes swap in a
freshly built mapping, so readers never observe a half-applied replace.
A failed fetch only sets `error`; stale items stay visible.

The cache also tracks which entities have a mutation in flight
(`mark_pending`) so every view sees the same "busy" state.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from ota.core.models import Application, Bundle, Environment, Version

__all__ = [
    "CollectionState",
    "Entity",
    "EntityCache",
    "EntityKind",
]

type Entity = Application | Environment | Version | Bundle


class EntityKind(Enum):
    APPLICATION = "application"
    ENVIRONMENT = "environment"
    VERSION = "version"
    BUNDLE = "bundle"

    def __str__(self) -> str:
        return self.value


_KIND_TYPES: dict[EntityKind, type] = {
    EntityKind.APPLICATION: Application,
    EntityKind.ENVIRONMENT: Environment,
    EntityKind.VERSION: Version,
    EntityKind.BUNDLE: Bundle,
}


def _empty_items() -> dict[str, Entity]:
    return {}


@dataclass
class _Collection:
    items: dict[str, Entity] = field(default_factory=_empty_items)
    loading: bool = False
    error: str | None = None


@dataclass(frozen=True, slots=True)
class CollectionState:
    """Read-only snapshot of one collection."""

    items: Mapping[str, Entity]
    loading: bool
    error: str | None


class EntityCache:
    def __init__(self) -> None:
        self._collections: dict[EntityKind, _Collection] = {k: _Collection() for k in EntityKind}
        self._pending: set[tuple[EntityKind, str]] = set()
        self._selected: dict[EntityKind, str] = {}

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list(self, kind: EntityKind) -> list[Entity]:
        return list(self._collections[kind].items.values())

    def get(self, kind: EntityKind, entity_id: str) -> Entity | None:
        return self._collections[kind].items.get(entity_id)

    def state(self, kind: EntityKind) -> CollectionState:
        c = self._collections[kind]
        return CollectionState(items=MappingProxyType(c.items), loading=c.loading, error=c.error)

    def loading(self, kind: EntityKind) -> bool:
        return self._collections[kind].loading

    def error(self, kind: EntityKind) -> str | None:
        return self._collections[kind].error

    def application(self, app_id: str) -> Application | None:
        item = self.get(EntityKind.APPLICATION, app_id)
        return item if isinstance(item, Application) else None

    def environment(self, environment_id: str) -> Environment | None:
        item = self.get(EntityKind.ENVIRONMENT, environment_id)
        return item if isinstance(item, Environment) else None

    def version(self, version_id: str) -> Version | None:
        item = self.get(EntityKind.VERSION, version_id)
        return item if isinstance(item, Version) else None

    def bundle(self, bundle_id: str) -> Bundle | None:
        item = self.get(EntityKind.BUNDLE, bundle_id)
        return item if isinstance(item, Bundle) else None

    def applications(self) -> list[Application]:
        return [a for a in self.list(EntityKind.APPLICATION) if isinstance(a, Application)]

    def environments_for(self, app_id: str) -> list[Environment]:
        return [
            e
            for e in self.list(EntityKind.ENVIRONMENT)
            if isinstance(e, Environment) and e.app_id == app_id
        ]

    def versions_for(self, environment_id: str) -> list[Version]:
        return [
            v
            for v in self.list(EntityKind.VERSION)
            if isinstance(v, Version) and v.environment_id == environment_id
        ]

    def bundles_for(self, version_id: str) -> list[Bundle]:
        return [
            b
            for b in self.list(EntityKind.BUNDLE)
            if isinstance(b, Bundle) and b.version_id == version_id
        ]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _checked(self, kind: EntityKind, items: Iterable[Entity]) -> dict[str, Entity]:
        expected = _KIND_TYPES[kind]
        fresh: dict[str, Entity] = {}
        for item in items:
            if not isinstance(item, expected):
                raise TypeError(f"{kind} collection cannot hold {type(item).__name__}")
            fresh[item.id] = item
        return fresh

    def replace_all(self, kind: EntityKind, items: Iterable[Entity]) -> None:
        """Replace the whole collection. Last write wins; no merge with old items."""
        self._collections[kind].items = self._checked(kind, items)

    def replace_where(
        self,
        kind: EntityKind,
        belongs: Callable[[Entity], bool],
        items: Iterable[Entity],
    ) -> None:
        """Replace only the entries `belongs` selects, e.g. the bundles of one version.

        Entries outside the selection keep their position; the fresh items
        are appended in the order given.
        """
        fresh = self._checked(kind, items)
        kept = {k: v for k, v in self._collections[kind].items.items() if not belongs(v)}
        for key in fresh:
            kept.pop(key, None)
        kept.update(fresh)
        self._collections[kind].items = kept

    def upsert(self, kind: EntityKind, item: Entity) -> None:
        fresh = self._checked(kind, [item])
        items = dict(self._collections[kind].items)
        items.update(fresh)
        self._collections[kind].items = items

    def set_loading(self, kind: EntityKind, loading: bool) -> None:
        self._collections[kind].loading = loading

    def set_error(self, kind: EntityKind, error: str | None) -> None:
        self._collections[kind].error = error

    # -------------------------------------------------------------------------
    # Pending mutations
    # -------------------------------------------------------------------------

    def mark_pending(self, kind: EntityKind, entity_id: str) -> bool:
        """Flag a mutation in flight. Returns False if one already is."""
        key = (kind, entity_id)
        if key in self._pending:
            return False
        self._pending.add(key)
        return True

    def clear_pending(self, kind: EntityKind, entity_id: str) -> None:
        self._pending.discard((kind, entity_id))

    def is_pending(self, kind: EntityKind, entity_id: str) -> bool:
        return (kind, entity_id) in self._pending

    def pending(self, kind: EntityKind) -> frozenset[str]:
        return frozenset(eid for k, eid in self._pending if k == kind)

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select(self, kind: EntityKind, entity_id: str | None) -> None:
        if entity_id is None:
            self._selected.pop(kind, None)
        else:
            self._selected[kind] = entity_id

    def selected(self, kind: EntityKind) -> Entity | None:
        entity_id = self._selected.get(kind)
        if entity_id is None:
            return None
        return self.get(kind, entity_id)

    def reset(self) -> None:
        """Drop everything (logout, forced or explicit)."""
        self._collections = {k: _Collection() for k in EntityKind}
        self._pending = set()
        self._selected = {}
