# src/rtm_client/user.py

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .api.request import call_api
from .api.response import RTMSuccess
from .index.index_models import coerce_id
from .lists.list_api import UserLists
from .tasks.task_api import UserTasks

if TYPE_CHECKING:
    from .client import RTMClient


class RTMUser:
    """
    An authorized RTM user: id, username, full name and auth token.

    Created by RTMClient.create_user / import_user or returned by
    RTMClient.get_auth_token. Requests made through the user carry its token
    and are throttled on the user's own scheduler lane.

    Wrappers:
      user.tasks  -> UserTasks (fetch, add, and by-index task operations)
      user.lists  -> UserLists (fetch, add, remove, rename)
    """

    def __init__(self, user_id: Any, username: str, fullname: str, auth_token: str) -> None:
        self._id = coerce_id(user_id)
        self._username = username
        self._fullname = fullname
        self._auth_token = auth_token
        self._client: RTMClient | None = None
        self._timeline: int | None = None

        self._tasks: UserTasks | None = None
        self._lists: UserLists | None = None

    def __repr__(self) -> str:
        return f"RTMUser(id={self._id}, username={self._username!r})"

    # ---- properties ----

    @property
    def id(self) -> int:
        return self._id

    @property
    def username(self) -> str:
        return self._username

    @property
    def fullname(self) -> str:
        return self._fullname

    @property
    def auth_token(self) -> str:
        return self._auth_token

    @auth_token.setter
    def auth_token(self, token: str) -> None:
        self._auth_token = token

    @property
    def client(self) -> RTMClient:
        if self._client is None:
            raise RuntimeError("User does not have Client specified")
        return self._client

    @client.setter
    def client(self, client: RTMClient) -> None:
        self._client = client

    @property
    def client_or_none(self) -> RTMClient | None:
        return self._client

    @property
    def timeline(self) -> int:
        """RTM timeline: required by every write call."""
        if self._timeline is None:
            raise RuntimeError("User does not have a valid timeline set")
        return self._timeline

    @timeline.setter
    def timeline(self, timeline: Any) -> None:
        self._timeline = None if timeline in (None, "") else coerce_id(timeline)

    @property
    def timeline_or_none(self) -> int | None:
        return self._timeline

    # ---- API ----

    async def get(self, method: str, params: Mapping[str, Any] | None = None) -> RTMSuccess:
        """Make an RTM API call with this user's auth token."""
        return await call_api(self.client, method, params, self)

    async def verify_auth_token(self) -> bool:
        return await self.client.verify_auth_token(self._auth_token)

    @property
    def tasks(self) -> UserTasks:
        if self._tasks is None:
            self._tasks = UserTasks(self)
        return self._tasks

    @property
    def lists(self) -> UserLists:
        if self._lists is None:
            self._lists = UserLists(self)
        return self._lists
