# src/rtm_client/tasks/task_api.py

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any

from ..api.errors import ReferenceNotFoundError
from ..api.response import RTMSuccess
from ..index.index_models import IndexEntry
from ..index.index_store import persist_best_effort
from .task_models import RTMTask

if TYPE_CHECKING:
    from ..user import RTMUser

logger = logging.getLogger(__name__)


def _as_list(raw: Any) -> list[Any]:
    if raw is None or raw == "":
        return []
    return raw if isinstance(raw, list) else [raw]


def _iter_raw_tasks(resp: RTMSuccess) -> Iterator[tuple[Any, dict[str, Any], dict[str, Any]]]:
    """
    Walk rtm.tasks.getList: tasks.list[] -> taskseries[] -> task[].

    RTM sends a single object instead of a one-element array at every level.
    """
    for lst in _as_list(resp.get("tasks.list")):
        if not isinstance(lst, dict):
            continue
        for series in _as_list(lst.get("taskseries")):
            if not isinstance(series, dict):
                continue
            for task in _as_list(series.get("task")):
                if isinstance(task, dict):
                    yield lst.get("id"), series, task


def smart_add_name(
    name: str,
    *,
    due: str | None = None,
    priority: int | str | None = None,
    list_name: str | None = None,
    tags: Sequence[str] | str | None = None,
    location: str | None = None,
    start: str | None = None,
    repeat: str | None = None,
    estimate: str | None = None,
    to: str | None = None,
    url: str | None = None,
    note: str | None = None,
) -> str:
    """Fold task properties into RTM 'Smart Add' syntax."""
    parts = [name]
    if due:
        parts.append(f"^{due}")
    if priority:
        parts.append(f"!{priority}")
    if list_name:
        parts.append(f"#{list_name}")
    if tags:
        for tag in [tags] if isinstance(tags, str) else tags:
            parts.append(f"#{tag}")
    if location:
        parts.append(f"@{location}")
    if start:
        parts.append(f"~{start}")
    if repeat:
        parts.append(f"*{repeat}")
    if estimate:
        parts.append(f"={estimate}")
    if to:
        parts.append(f"+{to}")
    if url:
        parts.append(url)
    if note:
        parts.append(f"//{note}")
    return " ".join(parts)


def _task_params(user: RTMUser, entry: IndexEntry, **extra: Any) -> dict[str, Any]:
    if not entry.is_task:
        raise ValueError(f"Not a task reference: {entry}")
    params: dict[str, Any] = {
        "timeline": user.timeline,
        "list_id": entry.list_id,
        "taskseries_id": entry.taskseries_id,
        "task_id": entry.task_id,
    }
    params.update(extra)
    return params


def _priority_param(priority: int | str | None) -> str:
    if priority in (None, 0, "0", "N", "n", ""):
        return "N"
    p = str(priority).strip()
    if p not in ("1", "2", "3"):
        raise ValueError("Incorrect priority.  Must be 1, 2, 3 or 0 (none)")
    return p


def _direction_param(direction: str) -> str:
    d = direction.strip().lower()
    if d not in ("up", "down"):
        raise ValueError("Incorrect priority direction.  Must be either 'up' or 'down'")
    return d


# ---- API calls ----


async def fetch_tasks(user: RTMUser, list_filter: str | None = None) -> list[RTMTask]:
    """
    rtm.tasks.getList -> RTMTask[].

    Every task gets its local index from the client's index store; the store
    is persisted once at the end of the fetch.
    """
    params: dict[str, Any] = {}
    if list_filter:
        params["filter"] = list_filter
    resp = await user.get("rtm.tasks.getList", params)
    store = user.client.index_store

    out: list[RTMTask] = []
    for list_id, series, task in _iter_raw_tasks(resp):
        try:
            entry = IndexEntry.for_task(list_id, series.get("id"), task.get("id"))
        except (TypeError, ValueError):
            logger.warning("Skipping task with bad ids user=%s series=%r", user.id, series.get("id"))
            continue
        index = store.resolve_or_assign(user.id, entry)
        out.append(RTMTask.from_api(list_id, series, task, index=index))

    persist_best_effort(store)
    logger.debug("Fetched %d tasks user=%s filter=%r", len(out), user.id, list_filter)
    return out


async def add_task(user: RTMUser, name: str, **props: Any) -> RTMSuccess:
    """rtm.tasks.add with Smart Add parsing (props: see smart_add_name)."""
    params = {
        "timeline": user.timeline,
        "name": smart_add_name(name, **props),
        "parse": "1",
    }
    return await user.get("rtm.tasks.add", params)


async def complete_task(user: RTMUser, entry: IndexEntry) -> RTMSuccess:
    return await user.get("rtm.tasks.complete", _task_params(user, entry))


async def uncomplete_task(user: RTMUser, entry: IndexEntry) -> RTMSuccess:
    return await user.get("rtm.tasks.uncomplete", _task_params(user, entry))


async def set_priority(user: RTMUser, entry: IndexEntry, priority: int | str | None) -> RTMSuccess:
    params = _task_params(user, entry, priority=_priority_param(priority))
    return await user.get("rtm.tasks.setPriority", params)


async def move_priority(user: RTMUser, entry: IndexEntry, direction: str) -> RTMSuccess:
    params = _task_params(user, entry, direction=_direction_param(direction))
    return await user.get("rtm.tasks.movePriority", params)


async def add_tags(user: RTMUser, entry: IndexEntry, tags: Sequence[str]) -> RTMSuccess:
    params = _task_params(user, entry, tags=",".join(tags))
    return await user.get("rtm.tasks.addTags", params)


async def remove_tags(user: RTMUser, entry: IndexEntry, tags: Sequence[str]) -> RTMSuccess:
    params = _task_params(user, entry, tags=",".join(tags))
    return await user.get("rtm.tasks.removeTags", params)


async def add_note(user: RTMUser, entry: IndexEntry, title: str, text: str) -> RTMSuccess:
    params = _task_params(user, entry, note_title=title, note_text=text)
    return await user.get("rtm.tasks.notes.add", params)


async def delete_task(user: RTMUser, entry: IndexEntry) -> RTMSuccess:
    return await user.get("rtm.tasks.delete", _task_params(user, entry))


async def move_task(user: RTMUser, entry: IndexEntry, to_list_id: int) -> RTMSuccess:
    # moveTo names the source list from_list_id instead of list_id
    params = _task_params(user, entry, to_list_id=to_list_id)
    params["from_list_id"] = params.pop("list_id")
    return await user.get("rtm.tasks.moveTo", params)


async def postpone_task(user: RTMUser, entry: IndexEntry) -> RTMSuccess:
    return await user.get("rtm.tasks.postpone", _task_params(user, entry))


async def set_due_date(user: RTMUser, entry: IndexEntry, due: str) -> RTMSuccess:
    """Due date in any format RTM parses ('' clears it)."""
    params = _task_params(user, entry, due=due, parse=1)
    return await user.get("rtm.tasks.setDueDate", params)


async def set_start_date(user: RTMUser, entry: IndexEntry, start: str) -> RTMSuccess:
    params = _task_params(user, entry, start=start, parse=1)
    return await user.get("rtm.tasks.setStartDate", params)


async def set_name(user: RTMUser, entry: IndexEntry, name: str) -> RTMSuccess:
    return await user.get("rtm.tasks.setName", _task_params(user, entry, name=name))


async def set_url(user: RTMUser, entry: IndexEntry, url: str) -> RTMSuccess:
    return await user.get("rtm.tasks.setURL", _task_params(user, entry, url=url))


# ---- user wrapper ----


class UserTasks:
    """
    RTM task functions for one user (user.tasks).

    Tasks are addressed by their local index. An index the store does not know
    triggers one silent refresh (update()); if it is still unknown the call
    raises ReferenceNotFoundError.
    """

    def __init__(self, user: RTMUser) -> None:
        self._user = user
        self._items: list[RTMTask] | None = None

    def get(self) -> list[RTMTask]:
        """Tasks from the last update()."""
        if self._items is None:
            raise RuntimeError("User's RTM Tasks need to be updated first")
        return self._items

    def find(self, index: int) -> RTMTask | None:
        for task in self._items or []:
            if task.index == index:
                return task
        return None

    async def update(self, list_filter: str | None = None) -> list[RTMTask]:
        """Fetch the user's lists and tasks and attach each task's list."""
        lists, tasks = await asyncio.gather(
            self._user.lists.update(),
            fetch_tasks(self._user, list_filter),
        )
        by_id = {lst.id: lst for lst in lists}
        for task in tasks:
            task.task_list = by_id.get(task.list_id)
        self._items = tasks
        return tasks

    async def add(self, name: str, **props: Any) -> list[RTMTask]:
        """Add a task (Smart Add), then refresh and return the task list."""
        await add_task(self._user, name, **props)
        return await self.update()

    async def resolve(self, index: int) -> IndexEntry:
        store = self._user.client.index_store
        entry = store.lookup(self._user.id, index)
        if entry is None or not entry.is_task:
            logger.info("Task index %s unknown for user %s; refreshing", index, self._user.id)
            await self.update()
            entry = store.lookup(self._user.id, index)
            if entry is None or not entry.is_task:
                raise ReferenceNotFoundError(index)
        return entry

    def clear_indices(self) -> None:
        """Drop this user's indices (renumbered on the next update)."""
        self._user.client.index_store.clear(self._user.id)
        self._items = None

    # ---- by-index operations ----

    async def complete(self, index: int) -> RTMSuccess:
        return await complete_task(self._user, await self.resolve(index))

    async def uncomplete(self, index: int) -> RTMSuccess:
        return await uncomplete_task(self._user, await self.resolve(index))

    async def priority(self, index: int, priority: int | str | None) -> RTMSuccess:
        # validate before resolve(), which may refresh
        value = _priority_param(priority)
        return await set_priority(self._user, await self.resolve(index), value)

    async def move_priority(self, index: int, direction: str) -> RTMSuccess:
        d = _direction_param(direction)
        return await move_priority(self._user, await self.resolve(index), d)

    async def add_tags(self, index: int, tags: Sequence[str]) -> RTMSuccess:
        return await add_tags(self._user, await self.resolve(index), tags)

    async def remove_tags(self, index: int, tags: Sequence[str]) -> RTMSuccess:
        return await remove_tags(self._user, await self.resolve(index), tags)

    async def add_note(self, index: int, title: str, text: str) -> RTMSuccess:
        return await add_note(self._user, await self.resolve(index), title, text)

    async def delete(self, index: int) -> RTMSuccess:
        return await delete_task(self._user, await self.resolve(index))

    async def move(self, index: int, to_list_id: int) -> RTMSuccess:
        return await move_task(self._user, await self.resolve(index), to_list_id)

    async def postpone(self, index: int) -> RTMSuccess:
        return await postpone_task(self._user, await self.resolve(index))

    async def set_due_date(self, index: int, due: str) -> RTMSuccess:
        return await set_due_date(self._user, await self.resolve(index), due)

    async def set_start_date(self, index: int, start: str) -> RTMSuccess:
        return await set_start_date(self._user, await self.resolve(index), start)

    async def set_name(self, index: int, name: str) -> RTMSuccess:
        return await set_name(self._user, await self.resolve(index), name)

    async def set_url(self, index: int, url: str) -> RTMSuccess:
        return await set_url(self._user, await self.resolve(index), url)
