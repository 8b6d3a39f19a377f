from __future__ import annotations

from collections.abc import Iterator

import pytest

from ota.platform.paths import clear_caches
from ota.test._fakes import Client, make_client


@pytest.fixture
def client() -> Client:
    return make_client()


@pytest.fixture(autouse=True)
def _isolated_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory
) -> Iterator[None]:
    """Keep tests away from the real config dir and from caller overrides."""
    for name in ("OTA_BASE_URL", "OTA_LOG_LEVEL", "OTA_CONFIG"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OTA_HOME", str(tmp_path_factory.mktemp("ota-home")))
    clear_caches()
    yield
    clear_caches()
