# tests/test_api_request.py

from __future__ import annotations

import hashlib

import httpx
import pytest

from rtm_client.api.errors import ReferenceNotFoundError, RTMError
from rtm_client.api.request import build_request_url
from rtm_client.api.response import RTMSuccess, parse_response
from rtm_client.api.sign import form_query, sign
from rtm_client.api.transport import HttpxTransport
from rtm_client.core.ports import HttpReply

from .fakes import fail, ok


def test_sign_sorts_keys_and_prefixes_secret() -> None:
    # example from the RTM authentication docs
    params = {"yxz": "foo", "feg": "bar", "abc": "baz"}
    expected = hashlib.md5(b"BANANASabcbazfegbaryxzfoo").hexdigest()
    assert sign(params, "BANANAS") == expected


def test_form_query_encodes_everything() -> None:
    assert form_query({"name": "Buy milk ^tomorrow", "tags": "a,b"}) == "name=Buy%20milk%20%5Etomorrow&tags=a%2Cb"


def test_request_url_carries_token_and_signature(client, user) -> None:
    url = build_request_url("rtm.tasks.getList", {"filter": "status:incomplete"}, client=client, user=user)

    assert url.startswith("https://api.rememberthemilk.com/services/rest/?filter=status%3Aincomplete&auth_token=token-42")
    query = dict(p.split("=", 1) for p in url.split("?", 1)[1].split("&"))
    assert query["method"] == "rtm.tasks.getList"
    assert query["api_key"] == "key"
    assert query["version"] == "2"
    assert query["format"] == "json"

    unsigned = {
        "filter": "status:incomplete",
        "auth_token": "token-42",
        "method": "rtm.tasks.getList",
        "api_key": "key",
        "version": 2,
        "format": "json",
    }
    assert query["api_sig"] == sign(unsigned, "secret")


def test_request_url_without_user_has_no_token(client) -> None:
    url = build_request_url("rtm.auth.getFrob", None, client=client)
    assert "auth_token" not in url


def test_parse_success_drops_stat() -> None:
    resp = parse_response('{"rsp": {"stat": "ok", "auth": {"user": {"id": "9"}}, "frob": "f"}}')
    assert isinstance(resp, RTMSuccess)
    assert resp.is_ok
    assert resp.frob == "f"
    assert resp.get("auth.user.id") == "9"
    assert resp.has("auth.user")
    assert not resp.has("auth.token")
    assert "stat" not in resp.data


def test_parse_fail_and_garbage() -> None:
    err = parse_response('{"rsp": {"stat": "fail", "err": {"code": "98", "msg": "Login failed / Invalid auth token"}}}')
    assert isinstance(err, RTMError)
    assert err.code == 98
    assert not err.is_local
    assert str(err) == "ERROR 98: Login failed / Invalid auth token"

    for raw in ("", "<html>", '{"x": 1}', '{"rsp": {"stat": "weird"}}', '{"rsp": {"stat": "fail"}}'):
        bad = parse_response(raw)
        assert isinstance(bad, RTMError)
        assert bad.code == RTMError.RESPONSE


def test_reference_error_is_an_rtm_error() -> None:
    err = RTMError.reference_error(7)
    assert isinstance(err, ReferenceNotFoundError)
    assert isinstance(err, RTMError)
    assert err.code == -3
    assert err.reference == 7
    assert err.is_local


@pytest.mark.asyncio
async def test_user_calls_return_payload(transport, user) -> None:
    transport.replies["rtm.test.echo"] = ok(hello="world")
    resp = await user.get("rtm.test.echo")
    assert resp.hello == "world"
    assert transport.last("rtm.test.echo")["auth_token"] == "token-42"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("reply", "code"),
    [
        (HttpReply(503, "busy"), RTMError.RATE_LIMIT),
        (HttpReply(500, "oops"), RTMError.SERVER),
        (HttpReply(200, "not json"), RTMError.RESPONSE),
        (fail(112, "Method not found"), 112),
    ],
)
async def test_error_mapping(transport, user, reply, code) -> None:
    transport.replies["rtm.test.echo"] = reply
    with pytest.raises(RTMError) as exc:
        await user.get("rtm.test.echo")
    assert exc.value.code == code


@pytest.mark.asyncio
async def test_httpx_transport_maps_network_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    transport = HttpxTransport(timeout_seconds=1.0)
    transport._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    try:
        with pytest.raises(RTMError) as exc:
            await transport.fetch("https://api.rememberthemilk.com/services/rest/?method=x")
        assert exc.value.code == RTMError.NETWORK
    finally:
        await transport.aclose()


@pytest.mark.asyncio
async def test_httpx_transport_returns_status_and_body() -> None:
    transport = HttpxTransport()
    transport._client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(503, text="slow down"))
    )
    reply = await transport.fetch("https://api.rememberthemilk.com/services/rest/")
    await transport.aclose()
    assert reply == HttpReply(503, "slow down")
