# src/rtm_client/api/request.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .errors import RTMError
from .response import RTMSuccess, parse_response
from .sign import form_query, sign

if TYPE_CHECKING:
    from ..client import RTMClient
    from ..user import RTMUser

logger = logging.getLogger(__name__)


def build_request_url(
    method: str,
    params: Mapping[str, Any] | None,
    *,
    client: RTMClient,
    user: RTMUser | None = None,
) -> str:
    """
    Signed request URL for an RTM API method.

    Adds auth_token (when the user has one), method, api_key, version and
    format, then signs the lot.
    """
    settings = client.settings
    query: dict[str, Any] = dict(params or {})

    if user is not None and user.auth_token:
        query["auth_token"] = user.auth_token

    query["method"] = method
    query["api_key"] = client.key
    query["version"] = settings.api_version
    query["format"] = settings.api_format
    query["api_sig"] = sign(query, client.secret)

    return f"{settings.api_scheme}://{settings.base_url}?{form_query(query)}"


async def _send(client: RTMClient, method: str, url: str) -> RTMSuccess:
    reply = await client.transport.fetch(url)

    if reply.status_code == 503:
        logger.warning("RTM rate limit hit on %s", method)
        raise RTMError.rate_limit_error()
    if 500 <= reply.status_code <= 599:
        logger.warning("RTM server error %s on %s", reply.status_code, method)
        raise RTMError.server_error()

    parsed = parse_response(reply.text)
    if isinstance(parsed, RTMError):
        logger.debug("RTM %s failed: %s", method, parsed)
        raise parsed
    return parsed


async def call_api(
    client: RTMClient,
    method: str,
    params: Mapping[str, Any] | None = None,
    user: RTMUser | None = None,
) -> RTMSuccess:
    """
    Make an RTM API call and return the parsed success response.

    Calls made for a user go through the client's scheduler (one lane per user);
    client-only calls (auth handshake) are sent straight away.
    Raises RTMError for anything but an 'ok' response.
    """
    url = build_request_url(method, params, client=client, user=user)
    logger.debug("RTM call %s user=%s", method, getattr(user, "id", None))

    async def request_fn() -> RTMSuccess:
        return await _send(client, method, url)

    if user is None:
        return await request_fn()
    return await client.scheduler.schedule(user.id, request_fn)
