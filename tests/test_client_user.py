# tests/test_client_user.py

from __future__ import annotations

import json

import pytest

from rtm_client.api.errors import RTMError
from rtm_client.client import RTMClient
from rtm_client.core.ports import HttpReply
from rtm_client.scheduler.request_scheduler import RateLimits, RequestScheduler
from rtm_client.user import RTMUser

from .fakes import fail, ok


def test_unknown_permission_is_rejected(settings, store, transport) -> None:
    with pytest.raises(ValueError):
        RTMClient("k", "s", "admin", settings=settings, index_store=store, transport=transport)


def test_from_settings_needs_credentials(settings) -> None:
    settings.api_key = ""
    with pytest.raises(RuntimeError):
        RTMClient.from_settings(settings)


def test_default_store_loads_configured_cache(settings, transport) -> None:
    settings.index_cache_path.write_text(
        json.dumps({"USERS": {"42": {"3": {"list_id": 1, "taskseries_id": 2, "task_id": 3}}}}), "utf-8"
    )
    scheduler = RequestScheduler(RateLimits(min_interval=0.0))
    client = RTMClient("k", "s", settings=settings, scheduler=scheduler, transport=transport)
    assert client.index_store.lookup(42, 3).task_id == 3


def test_user_needs_client_and_timeline() -> None:
    u = RTMUser("5", "ann", "Ann", "t")
    assert u.id == 5
    with pytest.raises(RuntimeError):
        _ = u.client
    with pytest.raises(RuntimeError):
        _ = u.timeline


def test_export_import_round_trip(client, user) -> None:
    raw = client.export_user_to_string(user)
    data = json.loads(raw)
    assert data == {
        "id": 42,
        "username": "bob",
        "fullname": "Bob Example",
        "authToken": "token-42",
        "timeline": 777,
        "client": {"apiKey": "key", "apiSecret": "secret", "perms": "delete"},
    }

    again = client.import_user_from_string(raw)
    assert again.id == 42
    assert again.timeline == 777
    assert again.client is client


def test_import_with_other_credentials_gets_sibling_client(client, user) -> None:
    data = client.export_user(user)
    data["client"] = {"apiKey": "other", "apiSecret": "shh", "perms": "read"}

    imported = client.import_user(data)

    assert imported.client is not client
    assert imported.client.key == "other"
    assert imported.client.perms == "read"
    assert imported.client.index_store is client.index_store
    assert imported.client.scheduler is client.scheduler


def test_import_missing_properties(client) -> None:
    with pytest.raises(ValueError, match="Missing User Properties"):
        client.import_user({"id": 1, "username": "x", "fullname": "y"})
    with pytest.raises(ValueError):
        client.import_user_from_string("[1, 2]")


@pytest.mark.asyncio
async def test_auth_flow(client, transport) -> None:
    transport.replies["rtm.auth.getFrob"] = ok(frob="frob-1")
    transport.replies["rtm.auth.getToken"] = ok(
        auth={"token": "tok", "perms": "delete", "user": {"id": "987", "username": "ann", "fullname": "Ann A"}}
    )
    transport.replies["rtm.timelines.create"] = ok(timeline="555")

    url, frob = await client.get_auth_url()
    assert frob == "frob-1"
    assert url.startswith("https://www.rememberthemilk.com/services/auth/?api_key=key&perms=delete&frob=frob-1&api_sig=")

    user = await client.get_auth_token(frob)
    assert (user.id, user.username, user.auth_token, user.timeline) == (987, "ann", "tok", 555)
    assert transport.last("rtm.timelines.create")["auth_token"] == "tok"


@pytest.mark.asyncio
async def test_get_auth_token_without_user_is_auth_error(client, transport) -> None:
    transport.replies["rtm.auth.getToken"] = ok(auth={"token": "tok"})
    with pytest.raises(RTMError) as exc:
        await client.get_auth_token("f")
    assert exc.value.code == RTMError.AUTH


@pytest.mark.asyncio
async def test_verify_auth_token(client, transport, user) -> None:
    assert await user.verify_auth_token() is True
    assert transport.last("rtm.auth.checkToken")["auth_token"] == "token-42"

    transport.replies["rtm.auth.checkToken"] = fail(98, "Login failed / Invalid auth token")
    assert await client.verify_auth_token("bad") is False


@pytest.mark.asyncio
async def test_verify_auth_token_propagates_local_errors(client, transport) -> None:
    transport.replies["rtm.auth.checkToken"] = HttpReply(502, "")
    with pytest.raises(RTMError):
        await client.verify_auth_token("x")


@pytest.mark.asyncio
async def test_async_context_closes_transport(client, transport) -> None:
    async with client:
        pass
    assert transport.closed


@pytest.mark.asyncio
async def test_client_get_with_and_without_user(client, transport, user) -> None:
    transport.replies["rtm.test.echo"] = ok(echo="yes")

    resp = await client.get("rtm.test.echo", {"auth_token": "explicit"})
    assert resp.echo == "yes"
    assert transport.last("rtm.test.echo")["auth_token"] == "explicit"

    await client.get("rtm.test.echo", user=user)
    assert transport.last("rtm.test.echo")["auth_token"] == "token-42"
