# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from rtm_client.client import RTMClient
from rtm_client.index.index_store import IndexStore
from rtm_client.scheduler.request_scheduler import RateLimits, RequestScheduler
from rtm_client.user import RTMUser

from .fakes import FakeTransport


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the client and the CLI.

    A SimpleNamespace instead of the env-driven Settings keeps tests isolated
    from the developer's .env.
    """
    return SimpleNamespace(
        app_name="rtm",
        log_level="WARNING",
        api_key="key",
        api_secret="secret",
        perms="delete",
        api_scheme="https",
        auth_url="www.rememberthemilk.com/services/auth/",
        base_url="api.rememberthemilk.com/services/rest/",
        api_version=2,
        api_format="json",
        http_timeout_seconds=5.0,
        data_dir=tmp_path / "data",
        user_file=tmp_path / "data" / "user.json",
        index_cache_path=tmp_path / "indexcache.json",
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> IndexStore:
    s = IndexStore(settings.index_cache_path)
    s.load()
    return s


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def client(settings: SimpleNamespace, store: IndexStore, transport: FakeTransport) -> RTMClient:
    """Client wired with fakes; zero spacing so tests never wait."""
    return RTMClient(
        "key",
        "secret",
        RTMClient.PERM_DELETE,
        settings=settings,
        index_store=store,
        scheduler=RequestScheduler(RateLimits(min_interval=0.0)),
        transport=transport,
    )


@pytest.fixture()
def user(client: RTMClient) -> RTMUser:
    u = client.create_user(42, "bob", "Bob Example", "token-42")
    u.timeline = 777
    return u
