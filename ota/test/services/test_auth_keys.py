"""Tests for auth key management."""

from __future__ import annotations

import pytest

from ota.core.result import Err, Ok
from ota.services.auth_keys import AuthKeyService, mask_key
from ota.test._fakes import Client, ok, url


def _key(key_id: str, created_at: str) -> dict[str, object]:
    return {"id": key_id, "name": f"key-{key_id}", "key": "s3cr3t", "createdAt": created_at}


class TestList:
    @pytest.mark.asyncio
    async def test_newest_first(self, client: Client) -> None:
        client.http.set_json(
            "GET",
            url("/core/auth-keys"),
            ok([_key("k1", "2024-01-01T00:00:00Z"), _key("k2", "2024-03-01T00:00:00Z")]),
        )
        result = await AuthKeyService(client.api).list_keys()
        assert isinstance(result, Ok)
        assert [k.id for k in result.value] == ["k2", "k1"]

    @pytest.mark.asyncio
    async def test_unauthorized_ends_session(self, client: Client) -> None:
        client.http.set_json("GET", url("/core/auth-keys"), {}, status=401)
        result = await AuthKeyService(client.api).list_keys()
        assert isinstance(result, Err)
        assert result.error.kind == "unauthorized"
        assert client.tokens.get() is None


class TestCreate:
    @pytest.mark.asyncio
    async def test_returns_secret(self, client: Client) -> None:
        client.http.set_json("POST", url("/core/auth-key/create"), ok("abcd1234"))
        assert await AuthKeyService(client.api).create(" ci ") == Ok("abcd1234")
        (sent,) = client.http.requests_to("POST", url("/core/auth-key/create"))
        assert sent.json() == {"name": "ci"}

    @pytest.mark.asyncio
    async def test_blank_name(self, client: Client) -> None:
        result = await AuthKeyService(client.api).create("   ")
        assert isinstance(result, Err)
        assert result.error.kind == "invalid_input"


def test_mask_key() -> None:
    assert mask_key("abcd1234") == "****1234"
    assert mask_key("abc") == "***"
