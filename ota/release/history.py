"""Active/history split for one version's bundles."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

from ota.core.models import Bundle, Version

__all__ = [
    "ReleaseView",
    "build_view",
    "mark_active",
    "recent_first",
    "split_active",
]


def mark_active(bundles: Iterable[Bundle], version: Version) -> list[Bundle]:
    """Derive `is_active` from `version.current_bundle_id`.

    At most one bundle comes out active: duplicate ids are dropped (first
    occurrence wins) and a current id that matches nothing leaves every
    bundle inactive.
    """
    seen: set[str] = set()
    marked: list[Bundle] = []
    for bundle in bundles:
        if bundle.id in seen:
            continue
        seen.add(bundle.id)
        is_active = version.current_bundle_id is not None and bundle.id == version.current_bundle_id
        if bundle.is_active != is_active:
            bundle = replace(bundle, is_active=is_active)
        marked.append(bundle)
    return marked


def recent_first(bundles: Iterable[Bundle]) -> list[Bundle]:
    return sorted(bundles, key=lambda b: b.sequence_id, reverse=True)


def split_active(bundles: Iterable[Bundle]) -> tuple[Bundle | None, list[Bundle]]:
    """Return (active bundle, the rest by descending sequence id)."""
    ordered = recent_first(bundles)
    active = next((b for b in ordered if b.is_active), None)
    history = [b for b in ordered if not b.is_active]
    return active, history


@dataclass(frozen=True, slots=True)
class ReleaseView:
    """A version together with its bundles, as one consistent snapshot.

    `bundles` keeps the server's order; `active`/`history` are the display order.
    """

    version: Version
    bundles: tuple[Bundle, ...]

    @property
    def active(self) -> Bundle | None:
        return split_active(self.bundles)[0]

    @property
    def history(self) -> list[Bundle]:
        return split_active(self.bundles)[1]


def build_view(version: Version, bundles: Iterable[Bundle]) -> ReleaseView:
    return ReleaseView(version=version, bundles=tuple(mark_active(bundles, version)))
