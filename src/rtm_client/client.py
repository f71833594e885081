# src/rtm_client/client.py

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from .api import auth as _auth
from .api.request import call_api
from .api.response import RTMSuccess
from .api.transport import HttpxTransport
from .config import Settings, get_settings
from .core.ports import IndexRepo, RequestGate, Transport
from .index.index_store import IndexStore
from .scheduler.request_scheduler import RequestScheduler
from .user import RTMUser

logger = logging.getLogger(__name__)


class RTMClient:
    """
    An RTM API client: API key, shared secret and access permissions.

    The client also owns the collaborators every user request goes through:
    - index_store: local task/list indices (loaded here, during setup)
    - scheduler: per-user request spacing
    - transport: HTTP

    Usage:
        async with RTMClient(key, secret, RTMClient.PERM_DELETE) as client:
            url, frob = await client.get_auth_url()
            ...
            user = await client.get_auth_token(frob)
            tasks = await user.tasks.update()
    """

    PERM_READ = "read"
    PERM_WRITE = "write"
    PERM_DELETE = "delete"

    def __init__(
        self,
        key: str,
        secret: str,
        perms: str = PERM_READ,
        *,
        settings: Settings | None = None,
        index_store: IndexRepo | None = None,
        scheduler: RequestGate | None = None,
        transport: Transport | None = None,
    ) -> None:
        if perms not in (self.PERM_READ, self.PERM_WRITE, self.PERM_DELETE):
            raise ValueError(f"Unknown RTM permission level: {perms!r}")

        self._key = key
        self._secret = secret
        self._perms = perms
        self._settings = settings or get_settings()

        if index_store is None:
            index_store = IndexStore(self._settings.index_cache_path)
            index_store.load()
        self._index_store = index_store

        self._scheduler = scheduler or RequestScheduler(self._settings.rate_limits())
        self._transport = transport or HttpxTransport(timeout_seconds=self._settings.http_timeout_seconds)

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs: Any) -> RTMClient:
        settings = settings or get_settings()
        if not settings.api_key or not settings.api_secret:
            raise RuntimeError("RTM API key/secret are not set. Set RTM_API_KEY and RTM_API_SECRET in your .env.")
        return cls(settings.api_key, settings.api_secret, settings.perms, settings=settings, **kwargs)

    # ---- properties ----

    @property
    def key(self) -> str:
        return self._key

    @property
    def secret(self) -> str:
        return self._secret

    @property
    def perms(self) -> str:
        return self._perms

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def index_store(self) -> IndexRepo:
        return self._index_store

    @property
    def scheduler(self) -> RequestGate:
        return self._scheduler

    @property
    def transport(self) -> Transport:
        return self._transport

    # ---- lifecycle ----

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> RTMClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    # ---- API ----

    async def get(
        self,
        method: str,
        params: Mapping[str, Any] | None = None,
        user: RTMUser | None = None,
    ) -> RTMSuccess:
        """
        Make the named RTM API call.

        Methods that need an auth token either pass `auth_token` in params or
        pass a user (whose calls are then throttled per user).
        """
        return await call_api(self, method, params, user)

    async def get_auth_url(self) -> tuple[str, str]:
        return await _auth.get_auth_url(self)

    async def get_auth_token(self, frob: str) -> RTMUser:
        return await _auth.get_auth_token(self, frob)

    async def verify_auth_token(self, token: str | RTMUser) -> bool:
        if isinstance(token, RTMUser):
            token = token.auth_token
        return await _auth.verify_auth_token(self, token)

    # ---- users ----

    def create_user(self, user_id: Any, username: str, fullname: str, auth_token: str) -> RTMUser:
        user = RTMUser(user_id, username, fullname, auth_token)
        user.client = self
        return user

    def export_user(self, user: RTMUser) -> dict[str, Any]:
        """Everything needed to rebuild the user later (see import_user)."""
        owner = user.client_or_none or self
        return {
            "id": user.id,
            "username": user.username,
            "fullname": user.fullname,
            "authToken": user.auth_token,
            "timeline": user.timeline_or_none,
            "client": {
                "apiKey": owner.key,
                "apiSecret": owner.secret,
                "perms": owner.perms,
            },
        }

    def export_user_to_string(self, user: RTMUser) -> str:
        return json.dumps(self.export_user(user))

    def import_user(self, properties: Mapping[str, Any]) -> RTMUser:
        """
        Rebuild an exported user.

        The user is attached to this client unless the export names different
        API credentials, in which case a sibling client sharing this client's
        settings, index store, scheduler and transport is created for it.
        """
        required = ("id", "username", "fullname", "authToken")
        if any(properties.get(k) in (None, "") for k in required):
            raise ValueError("Missing User Properties")

        user = RTMUser(
            properties["id"],
            properties["username"],
            properties["fullname"],
            properties["authToken"],
        )
        if properties.get("timeline"):
            user.timeline = properties["timeline"]

        owner: RTMClient = self
        exported = properties.get("client")
        if isinstance(exported, Mapping):
            key = exported.get("apiKey") or self.key
            secret = exported.get("apiSecret") or self.secret
            perms = exported.get("perms") or self.perms
            if (key, secret, perms) != (self.key, self.secret, self.perms):
                owner = RTMClient(
                    key,
                    secret,
                    perms,
                    settings=self._settings,
                    index_store=self._index_store,
                    scheduler=self._scheduler,
                    transport=self._transport,
                )
        user.client = owner
        return user

    def import_user_from_string(self, raw: str) -> RTMUser:
        data = json.loads(raw)
        if not isinstance(data, Mapping):
            raise ValueError("Missing User Properties")
        return self.import_user(data)
