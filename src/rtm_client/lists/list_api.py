# src/rtm_client/lists/list_api.py

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..api.errors import ReferenceNotFoundError
from ..api.response import RTMSuccess
from .list_models import RTMList

if TYPE_CHECKING:
    from ..user import RTMUser

logger = logging.getLogger(__name__)

RESERVED_LIST_NAMES = frozenset({"Inbox", "Sent"})


def _as_list(raw: Any) -> list[Any]:
    if raw is None or raw == "":
        return []
    return raw if isinstance(raw, list) else [raw]


# ---- API calls ----


async def fetch_lists(user: RTMUser) -> list[RTMList]:
    """
    rtm.lists.getList -> RTMList[], numbered 1..N in list-id order.

    List numbers are positional and not kept in the index store: lists are
    few and rarely change, and task numbers stay free of gaps this way.
    """
    resp = await user.get("rtm.lists.getList")

    raw: list[dict[str, Any]] = []
    for props in _as_list(resp.get("lists.list")):
        if not isinstance(props, dict) or props.get("id") in (None, ""):
            logger.warning("Skipping list without id user=%s", user.id)
            continue
        raw.append(props)

    lists = [RTMList.from_api(props) for props in raw]
    lists.sort(key=lambda lst: lst.id)
    for position, lst in enumerate(lists, start=1):
        lst.index = position

    logger.debug("Fetched %d lists user=%s", len(lists), user.id)
    return lists


async def add_list(user: RTMUser, name: str, list_filter: str | None = None) -> RTMSuccess:
    """rtm.lists.add (a filter makes it a Smart List)."""
    if name in RESERVED_LIST_NAMES:
        raise ValueError("Invalid List Name")
    params: dict[str, Any] = {"timeline": user.timeline, "name": name}
    if list_filter:
        params["filter"] = list_filter
    return await user.get("rtm.lists.add", params)


async def remove_list(user: RTMUser, list_id: int) -> RTMSuccess:
    return await user.get("rtm.lists.delete", {"timeline": user.timeline, "list_id": list_id})


async def rename_list(user: RTMUser, list_id: int, name: str) -> RTMSuccess:
    return await user.get(
        "rtm.lists.setName",
        {"timeline": user.timeline, "list_id": list_id, "name": name},
    )


# ---- user wrapper ----


class UserLists:
    """RTM list functions for one user (user.lists)."""

    def __init__(self, user: RTMUser) -> None:
        self._user = user
        self._items: list[RTMList] | None = None

    def get(self) -> list[RTMList]:
        """Lists from the last update()."""
        if self._items is None:
            raise RuntimeError("User's RTM Lists need to be updated first")
        return self._items

    async def update(self) -> list[RTMList]:
        self._items = await fetch_lists(self._user)
        return self._items

    async def add(self, name: str, list_filter: str | None = None) -> RTMSuccess:
        return await add_list(self._user, name, list_filter)

    async def _id_by_name(self, name: str) -> int:
        lists = await self.update()
        wanted = name.strip().lower()
        ids = [lst.id for lst in lists if lst.name.lower() == wanted]
        if len(ids) != 1:
            raise ReferenceNotFoundError(name)
        return ids[0]

    async def remove(self, name: str) -> RTMSuccess:
        """Delete the list with this name (case-insensitive, must be unique)."""
        return await remove_list(self._user, await self._id_by_name(name))

    async def rename(self, old_name: str, new_name: str) -> RTMSuccess:
        return await rename_list(self._user, await self._id_by_name(old_name), new_name)

    def find(self, index: int) -> RTMList | None:
        for lst in self._items or []:
            if lst.index == index:
                return lst
        return None

    async def resolve(self, index: int) -> RTMList:
        """
        The list behind a list number.

        Numbers come from the last update(); if there was none, or the number
        is unknown, the lists are fetched once more before giving up with
        ReferenceNotFoundError.
        """
        found = self.find(index)
        if found is None:
            logger.info("List index %s unknown for user %s; refreshing", index, self._user.id)
            await self.update()
            found = self.find(index)
            if found is None:
                raise ReferenceNotFoundError(index)
        return found

    async def remove_index(self, index: int) -> RTMSuccess:
        lst = await self.resolve(index)
        return await remove_list(self._user, lst.id)

    async def rename_index(self, index: int, new_name: str) -> RTMSuccess:
        lst = await self.resolve(index)
        return await rename_list(self._user, lst.id, new_name)
