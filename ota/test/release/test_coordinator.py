"""Tests for the release coordinator's reads, mutations and reconciliation."""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest

from ota.cache.store import EntityKind
from ota.core.models import Application
from ota.core.result import Err, Ok
from ota.gateway.http import HttpError
from ota.session.navigation import Route
from ota.test._fakes import (
    Client,
    bundle_payload,
    failure,
    ok,
    url,
    version_payload,
)

def _shop(app_id: str) -> dict[str, object]:
    return {"id": app_id, "name": "Shop", "os": "ios"}


VALID_URL = url("/core/version/bundle/b1/valid")
MANDATORY_URL = url("/core/version/bundle/b1/mandatory")


async def _settle() -> None:
    """Let started tasks run up to their first real suspension."""
    for _ in range(3):
        await asyncio.sleep(0)


def _three_bundles(**b1: bool) -> list[dict[str, object]]:
    return [
        bundle_payload("b1", 1, **b1),
        bundle_payload("b2", 2),
        bundle_payload("b3", 3),
    ]


async def _loaded(client: Client, current: str | None = "b2", **b1: bool) -> None:
    client.serve_version(version_payload("v1", current), _three_bundles(**b1))
    result = await client.releases.load_version_and_bundles("v1")
    assert isinstance(result, Ok)


class TestListings:
    @pytest.mark.asyncio
    async def test_load_applications(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/app"), ok([_shop("a1")]))
        result = await client.releases.load_applications()
        assert isinstance(result, Ok)
        assert [a.id for a in client.cache.applications()] == ["a1"]
        assert not client.cache.loading(EntityKind.APPLICATION)

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_stale_items(self, client: Client) -> None:
        client.cache.replace_all(
            EntityKind.APPLICATION, [Application(id="a1", name="Shop", os="ios")]
        )
        client.http.set_response("GET", url("/core/app"), HttpError(url("/core/app"), 0, "down"))
        result = await client.releases.load_applications()
        assert isinstance(result, Err)
        assert result.error.kind == "transport"
        assert client.cache.error(EntityKind.APPLICATION) == "Unable to reach the release server"
        assert [a.id for a in client.cache.applications()] == ["a1"]
        assert not client.cache.loading(EntityKind.APPLICATION)

    @pytest.mark.asyncio
    async def test_versions_of_other_environments_survive(self, client: Client) -> None:
        client.http.set_json(
            "GET", url("/core/version?environmentId=e1"), ok([version_payload("v1")])
        )
        client.http.set_json(
            "GET",
            url("/core/version?environmentId=e2"),
            ok([version_payload("v9", environment_id="e2")]),
        )
        await client.releases.load_versions("e2")
        await client.releases.load_versions("e1")
        assert [v.id for v in client.cache.versions_for("e1")] == ["v1"]
        assert [v.id for v in client.cache.versions_for("e2")] == ["v9"]


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_application_reloads_list(self, client: Client) -> None:
        client.http.set_json("POST", url("/core/app"), ok({"name": "Shop", "os": "ios"}))
        client.http.set_json("GET", url("/core/app"), ok([_shop("a7")]))
        result = await client.releases.create_application("Shop", "ios")
        assert result == Ok(Application(id="a7", name="Shop", os="ios"))
        assert client.cache.application("a7") is not None

    @pytest.mark.asyncio
    async def test_create_application_rejected(self, client: Client) -> None:
        client.http.set_json("POST", url("/core/app"), failure("App already exists"))
        result = await client.releases.create_application("Shop", "ios")
        assert isinstance(result, Err)
        assert result.error.kind == "domain"
        assert client.http.requests_to("GET", url("/core/app")) == []

    @pytest.mark.asyncio
    async def test_create_environment_resolves_app_name(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/app"), ok([_shop("a1")]))
        client.http.set_json("POST", url("/core/environment"), ok({"key": "K", "name": "prod"}))
        client.http.set_json(
            "GET",
            url("/core/environment/a1"),
            ok([{"id": "e1", "appId": "a1", "name": "prod", "key": "K"}]),
        )
        result = await client.releases.create_environment("a1", "prod")
        assert isinstance(result, Ok)
        assert result.value is not None
        assert result.value.access_key == "K"
        (sent,) = client.http.requests_to("POST", url("/core/environment"))
        assert sent.json() == {"environmentName": "prod", "appName": "Shop"}

    @pytest.mark.asyncio
    async def test_create_environment_unknown_app(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/app"), ok([]))
        result = await client.releases.create_environment("a404", "prod")
        assert isinstance(result, Err)
        assert result.error.kind == "not_found"
        assert client.http.requests_to("POST", url("/core/environment")) == []


class TestLoadVersionAndBundles:
    @pytest.mark.asyncio
    async def test_current_bundle_is_the_only_active_one(self, client: Client) -> None:
        client.serve_version(version_payload("v1", "b2"), _three_bundles())
        result = await client.releases.load_version_and_bundles("v1")

        assert isinstance(result, Ok)
        view = result.value
        assert [b.is_active for b in view.bundles] == [False, True, False]
        assert view.active is not None
        assert view.active.id == "b2"
        assert [b.id for b in view.history] == ["b3", "b1"]
        cached = client.cache.bundles_for("v1")
        assert [b.is_active for b in cached] == [False, True, False]
        assert client.cache.selected(EntityKind.VERSION) == view.version

    @pytest.mark.asyncio
    async def test_zero_bundles(self, client: Client) -> None:
        client.serve_version(version_payload("v1", None), [])
        result = await client.releases.load_version_and_bundles("v1")
        assert isinstance(result, Ok)
        assert result.value.active is None
        assert result.value.history == []

    @pytest.mark.asyncio
    async def test_current_outside_fetched_list(self, client: Client) -> None:
        client.serve_version(version_payload("v1", "b99"), _three_bundles())
        result = await client.releases.load_version_and_bundles("v1")
        assert isinstance(result, Ok)
        assert result.value.active is None
        assert len(result.value.history) == 3

    @pytest.mark.asyncio
    async def test_bundle_fetch_failure_writes_nothing(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/version/v1"), ok(version_payload("v1")))
        client.http.set_json("GET", url("/core/version/bundle/v1"), failure("db down"))
        result = await client.releases.load_version_and_bundles("v1")
        assert isinstance(result, Err)
        assert client.cache.version("v1") is None
        assert client.cache.bundles_for("v1") == []
        assert client.cache.error(EntityKind.BUNDLE) == "db down"
        assert not client.cache.loading(EntityKind.VERSION)
        assert not client.cache.loading(EntityKind.BUNDLE)

    @pytest.mark.asyncio
    async def test_reload_replaces_bundles_of_that_version(self, client: Client) -> None:
        await _loaded(client)
        client.serve_version(version_payload("v1", "b4"), [bundle_payload("b4", 4)])
        await client.releases.load_version_and_bundles("v1")
        assert [b.id for b in client.cache.bundles_for("v1")] == ["b4"]

    @pytest.mark.asyncio
    async def test_overlapping_reads_last_completion_wins(self, client: Client) -> None:
        version_url = url("/core/version/v1")
        client.http.queue_json("GET", version_url, ok(version_payload("v1", "b1")))
        client.http.queue_json("GET", version_url, ok(version_payload("v1", "b3")))
        client.http.set_json("GET", url("/core/version/bundle/v1"), ok(_three_bundles()))
        gate = client.http.hold("GET", version_url)

        first = asyncio.create_task(client.releases.load_version_and_bundles("v1"))
        second = asyncio.create_task(client.releases.load_version_and_bundles("v1"))
        await _settle()
        gate.set()
        await asyncio.gather(first, second)

        active = [b.id for b in client.cache.bundles_for("v1") if b.is_active]
        assert len(active) == 1
        version = client.cache.version("v1")
        assert version is not None
        assert active == [version.current_bundle_id]


class TestActivate:
    @pytest.mark.asyncio
    async def test_success_reloads_from_server(self, client: Client) -> None:
        await _loaded(client, "b2")
        client.http.set_json("PUT", url("/core/version/bundle/b3/active"), ok(None))
        client.serve_version(version_payload("v1", "b3"), _three_bundles())

        result = await client.releases.activate_bundle("b3")

        assert isinstance(result, Ok)
        assert result.value.active is not None
        assert result.value.active.id == "b3"
        active = [b.id for b in client.cache.bundles_for("v1") if b.is_active]
        assert active == ["b3"]
        assert not client.cache.is_pending(EntityKind.BUNDLE, "b3")

    @pytest.mark.asyncio
    async def test_no_optimistic_write(self, client: Client) -> None:
        await _loaded(client, "b2")
        activate_url = url("/core/version/bundle/b3/active")
        client.http.set_json("PUT", activate_url, ok(None))
        gate = client.http.hold("PUT", activate_url)

        task = asyncio.create_task(client.releases.activate_bundle("b3"))
        await _settle()
        assert [b.id for b in client.cache.bundles_for("v1") if b.is_active] == ["b2"]
        assert client.cache.is_pending(EntityKind.BUNDLE, "b3")
        gate.set()
        await task

    @pytest.mark.asyncio
    async def test_failure_leaves_cache_untouched(self, client: Client) -> None:
        await _loaded(client, "b2")
        before = client.cache.bundles_for("v1")
        client.http.set_json("PUT", url("/core/version/bundle/b3/active"), failure("nope"))

        result = await client.releases.activate_bundle("b3")

        assert isinstance(result, Err)
        assert result.error.kind == "domain"
        assert client.cache.bundles_for("v1") == before
        assert not client.cache.is_pending(EntityKind.BUNDLE, "b3")

    @pytest.mark.asyncio
    async def test_disabled_bundle_refused_locally(self, client: Client) -> None:
        await _loaded(client, "b2", valid=False)
        result = await client.releases.activate_bundle("b1")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_target"
        assert client.http.requests_to("PUT", url("/core/version/bundle/b1/active")) == []

    @pytest.mark.asyncio
    async def test_unknown_bundle(self, client: Client) -> None:
        result = await client.releases.activate_bundle("nope")
        assert isinstance(result, Err)
        assert result.error.kind == "not_found"

    @pytest.mark.asyncio
    async def test_second_mutation_refused_while_pending(self, client: Client) -> None:
        await _loaded(client, "b2")
        activate_url = url("/core/version/bundle/b1/active")
        client.http.set_json("PUT", activate_url, ok(None))
        gate = client.http.hold("PUT", activate_url)

        first = asyncio.create_task(client.releases.activate_bundle("b1"))
        await _settle()
        second = await client.releases.toggle_enabled("b1")

        assert isinstance(second, Err)
        assert second.error.kind == "pending"
        gate.set()
        assert isinstance(await first, Ok)
        assert len(client.http.requests_to("PUT", activate_url)) == 1

    @pytest.mark.asyncio
    async def test_reload_failure_reported(self, client: Client) -> None:
        await _loaded(client, "b2")
        client.http.set_json("PUT", url("/core/version/bundle/b3/active"), ok(None))
        client.http.set_json("GET", url("/core/version/v1"), failure("db down"))
        result = await client.releases.activate_bundle("b3")
        assert isinstance(result, Err)
        assert result.error.kind == "refresh_failed"


class TestToggleEnabled:
    @pytest.mark.asyncio
    async def test_twice_restores_original(self, client: Client) -> None:
        await _loaded(client)
        client.http.set_json("PUT", VALID_URL, ok(None))
        original = client.cache.bundle("b1")

        first = await client.releases.toggle_enabled("b1")
        second = await client.releases.toggle_enabled("b1")

        assert isinstance(first, Ok)
        assert first.value.is_valid is False
        assert isinstance(second, Ok)
        assert client.cache.bundle("b1") == original
        sent = [r.json() for r in client.http.requests_to("PUT", VALID_URL)]
        assert sent == [{"isValid": False}, {"isValid": True}]

    @pytest.mark.asyncio
    async def test_optimistic_then_reverted(self, client: Client) -> None:
        await _loaded(client)
        client.http.set_json("PUT", VALID_URL, failure("nope"))
        gate = client.http.hold("PUT", VALID_URL)

        task = asyncio.create_task(client.releases.toggle_enabled("b1"))
        await _settle()
        flipped = client.cache.bundle("b1")
        assert flipped is not None
        assert flipped.is_valid is False
        gate.set()
        result = await task

        assert isinstance(result, Err)
        restored = client.cache.bundle("b1")
        assert restored is not None
        assert restored.is_valid is True
        assert not client.cache.is_pending(EntityKind.BUNDLE, "b1")

    @pytest.mark.asyncio
    async def test_revert_uses_captured_value_not_negation(self, client: Client) -> None:
        await _loaded(client)
        client.http.set_json("PUT", VALID_URL, failure("nope"))
        gate = client.http.hold("PUT", VALID_URL)

        task = asyncio.create_task(client.releases.toggle_enabled("b1"))
        await _settle()
        # Another write lands while the request is in flight.
        current = client.cache.bundle("b1")
        assert current is not None
        client.cache.upsert(
            EntityKind.BUNDLE, replace(current, is_valid=True, is_mandatory=True)
        )
        gate.set()
        await task

        after = client.cache.bundle("b1")
        assert after is not None
        assert after.is_valid is True
        assert after.is_mandatory is True

    @pytest.mark.asyncio
    async def test_unauthorized_ends_session_and_skips_revert(self, client: Client) -> None:
        await _loaded(client)
        client.http.set_json("PUT", VALID_URL, failure("expired"), status=401)

        result = await client.releases.toggle_enabled("b1")

        assert isinstance(result, Err)
        assert result.error.kind == "unauthorized"
        assert client.cache.bundle("b1") is None
        assert client.tokens.get() is None
        assert client.navigator.last is Route.LOGIN


class TestToggleMandatory:
    @pytest.mark.asyncio
    async def test_applied_only_after_success(self, client: Client) -> None:
        await _loaded(client)
        client.http.set_json("PUT", MANDATORY_URL, ok(None))
        gate = client.http.hold("PUT", MANDATORY_URL)

        task = asyncio.create_task(client.releases.toggle_mandatory("b1"))
        await _settle()
        pending = client.cache.bundle("b1")
        assert pending is not None
        assert pending.is_mandatory is False
        gate.set()
        result = await task

        assert isinstance(result, Ok)
        assert result.value.is_mandatory is True
        stored = client.cache.bundle("b1")
        assert stored is not None
        assert stored.is_mandatory is True
        (sent,) = client.http.requests_to("PUT", MANDATORY_URL)
        assert sent.json() == {"isMandatory": True}

    @pytest.mark.asyncio
    async def test_sends_negation_of_current(self, client: Client) -> None:
        await _loaded(client, mandatory=True)
        client.http.set_json("PUT", MANDATORY_URL, ok(None))
        await client.releases.toggle_mandatory("b1")
        (sent,) = client.http.requests_to("PUT", MANDATORY_URL)
        assert sent.json() == {"isMandatory": False}

    @pytest.mark.asyncio
    async def test_failure_leaves_cache(self, client: Client) -> None:
        await _loaded(client)
        before = client.cache.bundle("b1")
        client.http.set_json("PUT", MANDATORY_URL, failure("nope"))
        result = await client.releases.toggle_mandatory("b1")
        assert isinstance(result, Err)
        assert client.cache.bundle("b1") == before


class TestRollback:
    @pytest.mark.asyncio
    async def test_success_reloads(self, client: Client) -> None:
        await _loaded(client, "b3")
        client.http.set_json("POST", url("/core/rollback"), ok(bundle_payload("b2", 2)))
        client.serve_version(version_payload("v1", "b2"), _three_bundles())

        result = await client.releases.rollback("a1", "e1", "v1")

        assert isinstance(result, Ok)
        assert result.value.active is not None
        assert result.value.active.id == "b2"
        assert not client.cache.is_pending(EntityKind.VERSION, "v1")

    @pytest.mark.asyncio
    async def test_failure_leaves_cache_unchanged(self, client: Client) -> None:
        await _loaded(client, "b3")
        bundles_before = client.cache.bundles_for("v1")
        version_before = client.cache.version("v1")
        client.http.set_json("POST", url("/core/rollback"), failure("No previous bundle"))

        result = await client.releases.rollback("a1", "e1", "v1")

        assert isinstance(result, Err)
        assert result.error.message == "No previous bundle"
        assert client.cache.bundles_for("v1") == bundles_before
        assert client.cache.version("v1") == version_before
        assert len(client.http.requests_to("GET", url("/core/version/v1"))) == 1

    @pytest.mark.asyncio
    async def test_pending_per_version(self, client: Client) -> None:
        client.http.set_json("POST", url("/core/rollback"), ok(None))
        client.serve_version(version_payload("v1", None), [])
        gate = client.http.hold("POST", url("/core/rollback"))

        first = asyncio.create_task(client.releases.rollback("a1", "e1", "v1"))
        await _settle()
        second = await client.releases.rollback("a1", "e1", "v1")
        assert isinstance(second, Err)
        assert second.error.kind == "pending"
        gate.set()
        assert isinstance(await first, Ok)

    @pytest.mark.asyncio
    async def test_applied_but_refresh_failed(self, client: Client) -> None:
        client.http.set_json("POST", url("/core/rollback"), ok(None))
        client.http.set_response(
            "GET", url("/core/version/v1"), HttpError(url("/core/version/v1"), 0, "down")
        )
        result = await client.releases.rollback("a1", "e1", "v1")
        assert isinstance(result, Err)
        assert result.error.kind == "refresh_failed"
        assert "reloading failed" in result.error.message
