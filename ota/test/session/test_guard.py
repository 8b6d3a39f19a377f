"""Tests for the session guard lifecycle."""

from __future__ import annotations

import pytest

from ota.cache.store import EntityKind
from ota.core.models import Application
from ota.core.result import Err, Ok, Result
from ota.gateway.http import HttpError
from ota.session.guard import SessionState
from ota.session.navigation import Route
from ota.session.token_store import MemoryTokenStore, TokenStoreError
from ota.test._fakes import Client, failure, make_client, ok, url, user_payload


def _seed(client: Client) -> None:
    apps = [Application(id="a1", name="Shop", os="ios")]
    client.cache.replace_all(EntityKind.APPLICATION, apps)


class TestInitialState:
    def test_with_token_is_validating(self) -> None:
        assert make_client().session.state is SessionState.VALIDATING

    def test_without_token_is_unauthenticated(self) -> None:
        assert make_client(token=None).session.state is SessionState.UNAUTHENTICATED


class TestValidate:
    @pytest.mark.asyncio
    async def test_success(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/user"), ok(user_payload("ann")))
        assert await client.session.validate() is True
        assert client.session.state is SessionState.AUTHENTICATED
        assert client.session.user is not None
        assert client.session.user.username == "ann"

    @pytest.mark.asyncio
    async def test_repeat_does_not_refetch(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/user"), ok(user_payload()))
        await client.session.validate()
        await client.session.validate()
        assert len(client.http.requests_to("GET", url("/core/user"))) == 1
        await client.session.validate(force=True)
        assert len(client.http.requests_to("GET", url("/core/user"))) == 2

    @pytest.mark.asyncio
    async def test_rejected_token_removed(self, client: Client) -> None:
        _seed(client)
        client.http.set_json("GET", url("/core/user"), failure("User not found"))
        assert await client.session.validate() is False
        assert client.session.state is SessionState.UNAUTHENTICATED
        assert client.tokens.get() is None
        assert client.cache.applications() == []

    @pytest.mark.asyncio
    async def test_unauthorized_runs_teardown(self, client: Client) -> None:
        _seed(client)
        client.http.set_json("GET", url("/core/user"), {}, status=401)
        assert await client.session.validate() is False
        assert client.session.state is SessionState.UNAUTHENTICATED
        assert client.tokens.get() is None
        assert client.cache.applications() == []
        assert client.navigator.routes == [Route.LOGIN]

    @pytest.mark.asyncio
    async def test_network_failure_removes_token(self, client: Client) -> None:
        _seed(client)
        client.http.set_response(
            "GET", url("/core/user"), HttpError(url("/core/user"), 0, "refused")
        )
        assert await client.session.validate() is False
        assert client.session.state is SessionState.UNAUTHENTICATED
        assert client.tokens.get() is None
        assert client.cache.applications() == []
        assert client.navigator.routes == []
        assert client.session.last_error is not None
        assert client.session.last_error.kind == "unreachable"

    @pytest.mark.asyncio
    async def test_no_token(self) -> None:
        client = make_client(token=None)
        assert await client.session.validate() is False
        assert client.http.calls == []
        assert client.session.require_authenticated() == Err(client.session.last_error)


class TestLogin:
    @pytest.mark.asyncio
    async def test_stores_token_and_validates(self) -> None:
        client = make_client(token=None)
        client.http.set_json("POST", url("/login"), ok({"access_token": "fresh"}))
        client.http.set_json("GET", url("/core/user"), ok(user_payload("ann")))

        result = await client.session.login("ann", "pw")

        assert isinstance(result, Ok)
        assert result.value.username == "ann"
        assert client.tokens.get() == "fresh"
        (me,) = client.http.requests_to("GET", url("/core/user"))
        assert me.headers["Authorization"] == "Bearer fresh"
        assert client.session.require_authenticated() == Ok(result.value)

    @pytest.mark.asyncio
    async def test_clears_previous_operators_data(self, client: Client) -> None:
        _seed(client)
        client.http.set_json("POST", url("/login"), ok({"access_token": "fresh"}))
        client.http.set_json("GET", url("/core/user"), ok(user_payload("bob")))
        await client.session.login("bob", "pw")
        assert client.cache.applications() == []

    @pytest.mark.asyncio
    async def test_bad_credentials(self) -> None:
        client = make_client(token=None)
        client.http.set_json("POST", url("/login"), failure("Invalid password"), status=401)
        result = await client.session.login("ann", "wrong")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_credentials"
        assert result.error.message == "Invalid password"
        assert client.tokens.get() is None
        assert client.navigator.routes == []

    @pytest.mark.asyncio
    async def test_token_issued_but_server_gone(self) -> None:
        client = make_client(token=None)
        client.http.set_json("POST", url("/login"), ok({"access_token": "fresh"}))
        client.http.set_response(
            "GET", url("/core/user"), HttpError(url("/core/user"), 0, "refused")
        )
        result = await client.session.login("ann", "pw")
        assert isinstance(result, Err)
        assert result.error.kind == "unreachable"
        assert client.session.user is None
        assert client.tokens.get() is None

    @pytest.mark.asyncio
    async def test_storage_failure(self) -> None:
        class BrokenStore(MemoryTokenStore):
            def set(self, token: str) -> Result[None, TokenStoreError]:
                return Err(TokenStoreError("disk full"))

        client = make_client(token=None)
        client.session._tokens = BrokenStore()  # pyright: ignore[reportPrivateUsage]
        client.http.set_json("POST", url("/login"), ok({"access_token": "fresh"}))
        result = await client.session.login("ann", "pw")
        assert isinstance(result, Err)
        assert result.error.kind == "storage"


class TestLogout:
    @pytest.mark.asyncio
    async def test_teardown_order(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/user"), ok(user_payload()))
        await client.session.validate()
        _seed(client)
        observed: list[tuple[str | None, int]] = []

        def navigate(route: Route) -> None:
            observed.append((client.tokens.get(), len(client.cache.applications())))

        client.navigator.navigate = navigate  # type: ignore[method-assign]
        client.session.logout()

        assert observed == [(None, 0)]
        assert client.session.state is SessionState.UNAUTHENTICATED
        assert client.session.user is None
