"""Process-wide entity cache, injected rather than global."""

from .store import CollectionState, Entity, EntityCache, EntityKind

__all__ = [
    "CollectionState",
    "Entity",
    "EntityCache",
    "EntityKind",
]
