# src/rtm_client/api/auth.py

"""
RTM desktop-app auth handshake.

1. get_auth_url(): fetch a frob and build the URL the user opens in a browser
2. the user authorizes the app on rememberthemilk.com
3. get_auth_token(frob): exchange the frob for a token -> RTMUser (with a timeline)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import RTMError
from .request import call_api
from .sign import form_query, sign

if TYPE_CHECKING:
    from ..client import RTMClient
    from ..user import RTMUser

logger = logging.getLogger(__name__)


async def get_frob(client: RTMClient) -> str:
    resp = await call_api(client, "rtm.auth.getFrob")
    frob = resp.get("frob")
    if not frob:
        raise RTMError.response_error()
    return str(frob)


def build_auth_url(client: RTMClient, frob: str) -> str:
    params = {
        "api_key": client.key,
        "perms": client.perms,
        "frob": frob,
    }
    params["api_sig"] = sign(params, client.secret)
    settings = client.settings
    return f"{settings.api_scheme}://{settings.auth_url}?{form_query(params)}"


async def get_auth_url(client: RTMClient) -> tuple[str, str]:
    """Returns (auth_url, frob)."""
    frob = await get_frob(client)
    return build_auth_url(client, frob), frob


async def get_auth_token(client: RTMClient, frob: str) -> RTMUser:
    resp = await call_api(client, "rtm.auth.getToken", {"frob": frob})

    token = resp.get("auth.token")
    user_id = resp.get("auth.user.id")
    if not token or user_id is None:
        raise RTMError.auth_error("Token response did not include a user")

    user = client.create_user(
        user_id,
        resp.get("auth.user.username", ""),
        resp.get("auth.user.fullname", ""),
        str(token),
    )

    timeline = await user.get("rtm.timelines.create")
    user.timeline = timeline.get("timeline")
    logger.info("Authorized RTM user id=%s username=%s", user.id, user.username)
    return user


async def verify_auth_token(client: RTMClient, token: str) -> bool:
    """
    True if RTM accepts the token.

    Only an RTM 'fail' answer means "not valid"; local errors (network,
    unparsable response) propagate.
    """
    try:
        await call_api(client, "rtm.auth.checkToken", {"auth_token": token})
    except RTMError as e:
        if e.is_local:
            raise
        logger.info("Auth token rejected: %s", e)
        return False
    return True
