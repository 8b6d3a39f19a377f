"""Typed adapters for the release server's REST surface.

Each method issues one request through the `Gateway` and parses the
envelope's payload into model types. A payload of the wrong shape is a
transport error ("unexpected response"), never an exception.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TypeVar

from ota.core.config import EndpointsConfig
from ota.core.models import (
    Application,
    AuthKey,
    Bundle,
    Environment,
    OperatingSystem,
    SetupStatus,
    User,
    Version,
)
from ota.core.result import Err, Ok, Result
from ota.core.structured import as_obj_list, as_str_dict, get_str

from .client import Gateway, path_param
from .envelope import GENERIC_TRANSPORT_MESSAGE, ApiError

__all__ = ["ReleaseApi"]

T = TypeVar("T")


def _malformed(what: str) -> ApiError:
    return ApiError(kind="transport", message=GENERIC_TRANSPORT_MESSAGE, hint=f"malformed {what}")


def _parse_one[T](
    payload: object,
    parser: Callable[[Mapping[str, object]], T | None],
    what: str,
) -> Result[T, ApiError]:
    data = as_str_dict(payload)
    if data is None:
        return Err(_malformed(what))
    parsed = parser(data)
    if parsed is None:
        return Err(_malformed(what))
    return Ok(parsed)


def _parse_many[T](
    payload: object,
    parser: Callable[[Mapping[str, object]], T | None],
    what: str,
) -> Result[list[T], ApiError]:
    # The server encodes an empty collection as null.
    if payload is None:
        return Ok([])
    items = as_obj_list(payload)
    if items is None:
        return Err(_malformed(f"{what} list"))
    parsed: list[T] = []
    for item in items:
        one = _parse_one(item, parser, what)
        if isinstance(one, Err):
            return one
        parsed.append(one.value)
    return Ok(parsed)


class ReleaseApi:
    """Endpoint adapters. Stateless apart from the injected gateway."""

    def __init__(self, gateway: Gateway, endpoints: EndpointsConfig | None = None) -> None:
        self.gateway = gateway
        self.endpoints = endpoints or EndpointsConfig()

    def _bundle_path(self, template: str, bundle_id: str) -> str:
        return template.format(bundle_id=path_param(bundle_id))

    # -------------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------------

    async def login(self, username: str, password: str) -> Result[str, ApiError]:
        """Exchange credentials for a bearer token."""
        result = await self.gateway.post(
            "/login", {"username": username, "password": password}, authenticated=False
        )
        if isinstance(result, Err):
            return result
        if isinstance(result.value, str) and result.value.strip():
            return Ok(result.value.strip())
        data = as_str_dict(result.value)
        token = None
        if data is not None:
            token = get_str(data, "access_token") or get_str(data, "token")
        if token is None:
            return Err(_malformed("login response"))
        return Ok(token)

    async def current_user(self) -> Result[User, ApiError]:
        result = await self.gateway.get("/core/user")
        if isinstance(result, Err):
            return result
        return _parse_one(result.value, User.from_payload, "user")

    # -------------------------------------------------------------------------
    # Applications and environments
    # -------------------------------------------------------------------------

    async def list_applications(self) -> Result[list[Application], ApiError]:
        result = await self.gateway.get("/core/app")
        if isinstance(result, Err):
            return result
        return _parse_many(result.value, Application.from_payload, "application")

    async def create_application(self, name: str, os: OperatingSystem) -> Result[None, ApiError]:
        """Create an application. The server echoes name/os only, no id."""
        result = await self.gateway.post("/core/app", {"appName": name, "os": os})
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def list_environments(self, app_id: str) -> Result[list[Environment], ApiError]:
        result = await self.gateway.get(f"/core/environment/{path_param(app_id)}")
        if isinstance(result, Err):
            return result
        return _parse_many(result.value, Environment.from_payload, "environment")

    async def create_environment(self, app_name: str, name: str) -> Result[None, ApiError]:
        """Create an environment under the application called `app_name`."""
        result = await self.gateway.post(
            "/core/environment", {"environmentName": name, "appName": app_name}
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    # -------------------------------------------------------------------------
    # Versions and bundles
    # -------------------------------------------------------------------------

    async def list_versions(self, environment_id: str) -> Result[list[Version], ApiError]:
        result = await self.gateway.get("/core/version", query={"environmentId": environment_id})
        if isinstance(result, Err):
            return result
        return _parse_many(result.value, Version.from_payload, "version")

    async def get_version(self, version_id: str) -> Result[Version, ApiError]:
        result = await self.gateway.get(f"/core/version/{path_param(version_id)}")
        if isinstance(result, Err):
            return result
        return _parse_one(result.value, Version.from_payload, "version")

    async def list_bundles(self, version_id: str) -> Result[list[Bundle], ApiError]:
        result = await self.gateway.get(f"/core/version/bundle/{path_param(version_id)}")
        if isinstance(result, Err):
            return result

        def parse(data: Mapping[str, object]) -> Bundle | None:
            return Bundle.from_payload(data, version_id=version_id)

        return _parse_many(result.value, parse, "bundle")

    async def set_bundle_active(self, bundle_id: str) -> Result[None, ApiError]:
        result = await self.gateway.put(self._bundle_path(self.endpoints.activate, bundle_id))
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def set_bundle_mandatory(self, bundle_id: str, mandatory: bool) -> Result[None, ApiError]:
        result = await self.gateway.put(
            self._bundle_path(self.endpoints.mandatory, bundle_id), {"isMandatory": mandatory}
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def set_bundle_valid(self, bundle_id: str, valid: bool) -> Result[None, ApiError]:
        result = await self.gateway.put(
            self._bundle_path(self.endpoints.valid, bundle_id), {"isValid": valid}
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    async def rollback(
        self, app_id: str, environment_id: str, version_id: str
    ) -> Result[None, ApiError]:
        """Roll the version back to the bundle published before the current one.

        The response body is either the new current bundle or a bare message
        when no earlier bundle exists; callers re-read the version either way.
        """
        result = await self.gateway.post(
            "/core/rollback",
            {"appId": app_id, "environmentId": environment_id, "versionId": version_id},
        )
        if isinstance(result, Err):
            return result
        return Ok(None)

    # -------------------------------------------------------------------------
    # Auth keys and first-run setup
    # -------------------------------------------------------------------------

    async def list_auth_keys(self) -> Result[list[AuthKey], ApiError]:
        result = await self.gateway.get("/core/auth-keys")
        if isinstance(result, Err):
            return result
        return _parse_many(result.value, AuthKey.from_payload, "auth key")

    async def create_auth_key(self, name: str) -> Result[str, ApiError]:
        """Create an auth key and return the generated secret."""
        result = await self.gateway.post("/core/auth-key/create", {"name": name})
        if isinstance(result, Err):
            return result
        if isinstance(result.value, str) and result.value:
            return Ok(result.value)
        data = as_str_dict(result.value)
        key = get_str(data, "key") if data is not None else None
        if key is None:
            return Err(_malformed("auth key"))
        return Ok(key)

    async def setup_status(self) -> Result[SetupStatus, ApiError]:
        result = await self.gateway.get("/setup/status", authenticated=False)
        if isinstance(result, Err):
            return result
        return _parse_one(result.value, SetupStatus.from_payload, "setup status")

    async def init_user(
        self, username: str, password: str, roles: tuple[str, ...] = ("admin",)
    ) -> Result[User, ApiError]:
        """Create the first operator account on a fresh server."""
        result = await self.gateway.post(
            "/init-user",
            {"username": username, "password": password, "roles": list(roles)},
            authenticated=False,
        )
        if isinstance(result, Err):
            return result
        return _parse_one(result.value, User.from_payload, "user")
