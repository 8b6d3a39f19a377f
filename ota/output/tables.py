"""Tabular rendering of cached entities."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from ota.core.models import Application, AuthKey, Bundle, Environment, Version
from ota.output.console import Style
from ota.release.history import ReleaseView

if TYPE_CHECKING:
    from ota.output.console import ConsoleProtocol

__all__ = [
    "format_hash",
    "format_size",
    "render_applications",
    "render_auth_keys",
    "render_environments",
    "render_release",
    "render_versions",
]

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB")


def format_size(size: int) -> str:
    """Human readable size in 1024 steps, e.g. 1536 -> "1.5 KB"."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.1f}".removesuffix(".0")
    return f"{text} {_SIZE_UNITS[unit]}"


def format_hash(digest: str, group: int = 8) -> str:
    """Split a digest into dash separated groups for reading aloud."""
    if not digest:
        return "-"
    return "-".join(digest[i : i + group] for i in range(0, len(digest), group))


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def render_applications(console: ConsoleProtocol, apps: Sequence[Application]) -> None:
    if not apps:
        console.print("No applications yet", Style.DIM)
        return
    console.table(["ID", "Name", "OS"], [[a.id, a.name, a.os] for a in apps], title="Applications")


def render_environments(console: ConsoleProtocol, environments: Sequence[Environment]) -> None:
    if not environments:
        console.print("No environments yet", Style.DIM)
        return
    console.table(
        ["ID", "Name", "Access key"],
        [[e.id, e.name, e.access_key or "-"] for e in environments],
        title="Environments",
    )


def render_versions(console: ConsoleProtocol, versions: Sequence[Version]) -> None:
    if not versions:
        console.print("No versions published yet", Style.DIM)
        return
    rows = [
        [v.id, v.app_version, str(v.version_number), v.current_bundle_id or "-"]
        for v in sorted(versions, key=lambda v: v.version_number, reverse=True)
    ]
    console.table(["ID", "App version", "Number", "Current bundle"], rows, title="Versions")


def _bundle_row(bundle: Bundle, pending: Iterable[str]) -> list[str]:
    state = "enabled" if bundle.is_valid else "disabled"
    if bundle.id in pending:
        state += " (pending)"
    return [
        str(bundle.sequence_id),
        bundle.id,
        state,
        _yes_no(bundle.is_mandatory),
        format_size(bundle.size),
        f"{bundle.installed}/{bundle.failed}",
        bundle.created_at or "-",
    ]


_BUNDLE_COLUMNS = ["Seq", "ID", "State", "Mandatory", "Size", "Installed/Failed", "Created"]


def render_release(
    console: ConsoleProtocol,
    view: ReleaseView,
    pending: Iterable[str] = (),
) -> None:
    """Show the active bundle first, then the history newest first."""
    pending = frozenset(pending)
    version = view.version
    console.header(f"{version.app_version} (version {version.version_number})")

    active = view.active
    if active is None:
        console.print("No active bundle", Style.WARNING)
    else:
        console.table(_BUNDLE_COLUMNS, [_bundle_row(active, pending)], title="Active bundle")
        console.print(f"hash: {format_hash(active.hash)}", Style.DIM)
        if active.download_file:
            console.print(f"download: {active.download_file}", Style.DIM)

    history = view.history
    if history:
        console.table(
            _BUNDLE_COLUMNS, [_bundle_row(b, pending) for b in history], title="History"
        )
    elif active is None:
        console.print("No bundles published for this version", Style.DIM)


def render_auth_keys(console: ConsoleProtocol, keys: Sequence[AuthKey]) -> None:
    if not keys:
        console.print("No auth keys", Style.DIM)
        return
    rows = [[k.id, k.name, _yes_no(k.is_valid), k.created_at or "-"] for k in keys]
    console.table(["ID", "Name", "Valid", "Created"], rows, title="Auth keys")
