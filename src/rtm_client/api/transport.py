# src/rtm_client/api/transport.py

from __future__ import annotations

import logging

import httpx

from ..core.ports import HttpReply
from .errors import RTMError

logger = logging.getLogger(__name__)


class HttpxTransport:
    """
    Default transport on a lazily created httpx.AsyncClient.

    Network-level failures (connect/read timeouts, DNS, resets) surface as
    RTMError.network_error(); HTTP status handling is left to the caller.
    """

    def __init__(self, *, timeout_seconds: float = 30.0) -> None:
        self._timeout = httpx.Timeout(timeout_seconds, connect=min(5.0, timeout_seconds))
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers={"Accept": "application/json"},
                follow_redirects=True,
            )
        return self._client

    async def fetch(self, url: str) -> HttpReply:
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            logger.warning("RTM request failed: %s", e.__class__.__name__)
            raise RTMError.network_error() from e
        return HttpReply(status_code=response.status_code, text=response.text)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
