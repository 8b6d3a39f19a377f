"""Payload builders and a wired client for tests."""

from __future__ import annotations

from dataclasses import dataclass

from ota.cache.store import EntityCache
from ota.gateway.client import Gateway
from ota.gateway.endpoints import ReleaseApi
from ota.gateway.http import MockHttpClient
from ota.release.coordinator import ReleaseCoordinator
from ota.session.guard import SessionGuard
from ota.session.navigation import RecordingNavigator
from ota.session.token_store import MemoryTokenStore

BASE_URL = "http://ota.test"
TOKEN = "tok-123"


def url(path: str) -> str:
    return f"{BASE_URL}{path}"


def ok(data: object) -> dict[str, object]:
    return {"success": True, "data": data}


def failure(message: str) -> dict[str, object]:
    return {"success": False, "message": message}


def version_payload(
    version_id: str = "v1",
    current: str | None = "b2",
    *,
    environment_id: str = "e1",
    app_version: str = "1.0.0",
    number: int = 1,
) -> dict[str, object]:
    return {
        "id": version_id,
        "environmentId": environment_id,
        "appVersion": app_version,
        "versionNumber": number,
        "currentBundleId": current if current is not None else "000000000000000000000000",
    }


def bundle_payload(
    bundle_id: str,
    sequence_id: int,
    *,
    version_id: str = "v1",
    valid: bool = True,
    mandatory: bool = False,
) -> dict[str, object]:
    return {
        "id": bundle_id,
        "versionId": version_id,
        "environmentId": "e1",
        "appId": "a1",
        "sequenceId": sequence_id,
        "hash": f"{bundle_id}hash0000deadbeef",
        "size": 2048,
        "downloadFile": f"https://cdn.test/{bundle_id}.zip",
        "isMandatory": mandatory,
        "isValid": valid,
    }


def user_payload(username: str = "admin") -> dict[str, object]:
    return {"id": "u1", "username": username, "roles": ["admin"], "isValid": True}


@dataclass
class Client:
    """Everything one session wires together, backed by fakes."""

    http: MockHttpClient
    tokens: MemoryTokenStore
    cache: EntityCache
    navigator: RecordingNavigator
    gateway: Gateway
    api: ReleaseApi
    session: SessionGuard
    releases: ReleaseCoordinator

    def serve_version(
        self,
        version: dict[str, object],
        bundles: list[dict[str, object]],
    ) -> None:
        version_id = str(version["id"])
        self.http.set_json("GET", url(f"/core/version/{version_id}"), ok(version))
        self.http.set_json("GET", url(f"/core/version/bundle/{version_id}"), ok(bundles))


def make_client(token: str | None = TOKEN) -> Client:
    http = MockHttpClient()
    tokens = MemoryTokenStore(token)
    cache = EntityCache()
    navigator = RecordingNavigator()
    gateway = Gateway(BASE_URL, http, tokens)
    api = ReleaseApi(gateway)
    session = SessionGuard(api, tokens, cache, navigator)
    gateway.set_unauthorized_handler(session.handle_unauthorized)
    return Client(
        http=http,
        tokens=tokens,
        cache=cache,
        navigator=navigator,
        gateway=gateway,
        api=api,
        session=session,
        releases=ReleaseCoordinator(api, cache),
    )
