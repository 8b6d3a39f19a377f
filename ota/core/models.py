"""Entities served by the release server.

Hierarchy: Application → Environment → Version → Bundle. Every type is
frozen; the cache replaces whole entities rather than mutating them.
`from_payload` returns None when the payload lacks what makes the entity
usable (at least an id), so one malformed record can be reported instead of
crashing a listing.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, get_args

from .structured import get_bool, get_int, get_list, get_object_id, get_str

__all__ = [
    "Application",
    "AuthKey",
    "Bundle",
    "Environment",
    "OperatingSystem",
    "SetupStatus",
    "User",
    "Version",
]

OperatingSystem = Literal["ios", "android"]
OPERATING_SYSTEMS: tuple[OperatingSystem, ...] = get_args(OperatingSystem)


def _first_str(data: Mapping[str, object], *keys: str) -> str | None:
    for key in keys:
        value = get_str(data, key)
        if value is not None:
            return value
    return None


def _first_int(data: Mapping[str, object], *keys: str) -> int | None:
    for key in keys:
        value = get_int(data, key)
        if value is not None:
            return value
    return None


@dataclass(frozen=True, slots=True)
class Application:
    id: str
    name: str
    os: OperatingSystem

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> Application | None:
        app_id = get_str(data, "id")
        name = get_str(data, "name")
        os_name = (get_str(data, "os") or "").lower()
        if app_id is None or name is None:
            return None
        for candidate in OPERATING_SYSTEMS:
            if candidate == os_name:
                return cls(id=app_id, name=name, os=candidate)
        return None


@dataclass(frozen=True, slots=True)
class Environment:
    id: str
    app_id: str
    name: str
    access_key: str

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> Environment | None:
        env_id = get_str(data, "id")
        app_id = get_object_id(data, "appId")
        name = get_str(data, "name")
        if env_id is None or app_id is None or name is None:
            return None
        return cls(
            id=env_id,
            app_id=app_id,
            name=name,
            # The server names the field `key`.
            access_key=_first_str(data, "accessKey", "key") or "",
        )


@dataclass(frozen=True, slots=True)
class Version:
    id: str
    environment_id: str
    app_version: str
    version_number: int
    # None: no bundle has been activated (or the last one was rolled back).
    current_bundle_id: str | None
    created_at: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> Version | None:
        version_id = get_str(data, "id")
        environment_id = get_object_id(data, "environmentId")
        if version_id is None or environment_id is None:
            return None
        return cls(
            id=version_id,
            environment_id=environment_id,
            app_version=get_str(data, "appVersion") or "",
            version_number=get_int(data, "versionNumber") or 0,
            current_bundle_id=get_object_id(data, "currentBundleId"),
            created_at=get_str(data, "createdAt"),
        )


@dataclass(frozen=True, slots=True)
class Bundle:
    """A published release artifact.

    `is_active` is derived from the owning version's `current_bundle_id`
    when the bundle is loaded; it is never read from the server.
    `active`, `failed` and `installed` are device counters reported by the
    server, unrelated to `is_active`.
    """

    id: str
    version_id: str
    environment_id: str
    app_id: str
    sequence_id: int
    hash: str
    size: int
    download_file: str
    is_mandatory: bool
    is_valid: bool
    failed: int = 0
    installed: int = 0
    active: int = 0
    created_by: str | None = None
    created_at: str | None = None
    description: str = ""
    is_active: bool = False

    @classmethod
    def from_payload(
        cls, data: Mapping[str, object], *, version_id: str | None = None
    ) -> Bundle | None:
        """Parse a bundle; `version_id` fills in for listings scoped to one version."""
        bundle_id = get_str(data, "id")
        owner = (
            get_object_id(data, "versionId")
            or get_object_id(data, "deploymentVersionId")
            or version_id
        )
        if bundle_id is None or owner is None:
            return None
        is_valid = get_bool(data, "isValid")
        return cls(
            id=bundle_id,
            version_id=owner,
            environment_id=get_object_id(data, "environmentId") or "",
            app_id=get_object_id(data, "appId") or "",
            sequence_id=_first_int(data, "sequenceId", "bundleVersionId") or 0,
            hash=get_str(data, "hash") or "",
            size=get_int(data, "size") or 0,
            download_file=_first_str(data, "downloadFile", "download") or "",
            is_mandatory=get_bool(data, "isMandatory") or False,
            is_valid=True if is_valid is None else is_valid,
            failed=get_int(data, "failed") or 0,
            installed=get_int(data, "installed") or 0,
            active=get_int(data, "active") or 0,
            created_by=get_str(data, "createdBy"),
            created_at=get_str(data, "createdAt"),
            description=get_str(data, "description") or "",
        )


@dataclass(frozen=True, slots=True)
class User:
    id: str
    username: str
    roles: tuple[str, ...] = ()
    is_valid: bool = True

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> User | None:
        user_id = get_str(data, "id")
        username = get_str(data, "username")
        if user_id is None or username is None:
            return None
        roles = tuple(r for r in (get_list(data, "roles") or []) if isinstance(r, str))
        is_valid = get_bool(data, "isValid")
        return cls(
            id=user_id,
            username=username,
            roles=roles,
            is_valid=True if is_valid is None else is_valid,
        )


@dataclass(frozen=True, slots=True)
class AuthKey:
    """Long-lived credential for non-interactive API access."""

    id: str
    name: str
    key: str
    is_valid: bool = True
    created_by: str | None = None
    created_at: str | None = None

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> AuthKey | None:
        key_id = get_str(data, "id")
        name = get_str(data, "name")
        if key_id is None or name is None:
            return None
        is_valid = get_bool(data, "isValid")
        return cls(
            id=key_id,
            name=name,
            key=get_str(data, "key") or "",
            is_valid=True if is_valid is None else is_valid,
            created_by=get_str(data, "createdBy"),
            created_at=get_str(data, "createdAt"),
        )


@dataclass(frozen=True, slots=True)
class SetupStatus:
    completed: bool

    @classmethod
    def from_payload(cls, data: Mapping[str, object]) -> SetupStatus | None:
        completed = get_bool(data, "completed")
        if completed is None:
            return None
        return cls(completed=completed)
