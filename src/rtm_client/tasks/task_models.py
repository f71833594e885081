# src/rtm_client/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..index.index_models import IndexEntry, coerce_id
from ..lists.list_models import RTMList


def _ts(raw: Any) -> datetime | None:
    """RTM timestamps are ISO 8601 UTC ('2015-05-07T10:19:54Z'); '' means unset."""
    if raw is None:
        return None
    s = str(raw).strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def _opt_id(raw: Any) -> int | None:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return coerce_id(raw)
    except ValueError:
        return None


def _unwrap(raw: Any, key: str) -> list[Any]:
    """RTM wraps collections as [] or {key: item} or {key: [items]}."""
    if isinstance(raw, dict):
        raw = raw.get(key)
    if raw is None or raw == "":
        return []
    return raw if isinstance(raw, list) else [raw]


def parse_priority(raw: Any) -> int:
    """'N' (none) -> 0, otherwise 1..3."""
    s = str(raw).strip().upper()
    if s in ("", "N"):
        return 0
    try:
        return int(s)
    except ValueError:
        return 0


@dataclass(slots=True)
class RTMNote:
    id: int | None
    title: str | None
    body: str
    created: datetime | None
    modified: datetime | None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> RTMNote:
        return cls(
            id=_opt_id(raw.get("id")),
            title=(raw.get("title") or None),
            body=str(raw.get("$t", "")),
            created=_ts(raw.get("created")),
            modified=_ts(raw.get("modified")),
        )


@dataclass(slots=True)
class RTMTask:
    """
    One RTM task: the taskseries properties combined with one of its tasks.

    A repeating series with several task occurrences yields several RTMTask
    objects sharing the series fields. The (list_id, taskseries_id, task_id)
    triple identifies the task in every API call.
    """

    list_id: int
    taskseries_id: int
    task_id: int
    name: str

    index: int | None = None

    # taskseries
    created: datetime | None = None
    modified: datetime | None = None
    source: str | None = None
    url: str | None = None
    location_id: int | None = None
    tags: list[str] = field(default_factory=list)
    participants: list[Any] = field(default_factory=list)
    notes: list[RTMNote] = field(default_factory=list)

    # task
    due: datetime | None = None
    has_due_time: bool = False
    added: datetime | None = None
    completed: datetime | None = None
    deleted: datetime | None = None
    priority: int = 0
    postponed: int = 0
    estimate: str | None = None

    # attached by UserTasks.update()
    task_list: RTMList | None = None

    @classmethod
    def from_api(
        cls,
        list_id: Any,
        series: dict[str, Any],
        task: dict[str, Any],
        *,
        index: int | None = None,
    ) -> RTMTask:
        return cls(
            list_id=coerce_id(list_id),
            taskseries_id=coerce_id(series["id"]),
            task_id=coerce_id(task["id"]),
            name=str(series.get("name", "")),
            index=index,
            created=_ts(series.get("created")),
            modified=_ts(series.get("modified")),
            source=series.get("source") or None,
            url=series.get("url") or None,
            location_id=_opt_id(series.get("location_id")),
            tags=[str(t) for t in _unwrap(series.get("tags"), "tag")],
            participants=_unwrap(series.get("participants"), "contact"),
            notes=[RTMNote.from_api(n) for n in _unwrap(series.get("notes"), "note") if isinstance(n, dict)],
            due=_ts(task.get("due")),
            has_due_time=str(task.get("has_due_time", "0")) == "1",
            added=_ts(task.get("added")),
            completed=_ts(task.get("completed")),
            deleted=_ts(task.get("deleted")),
            priority=parse_priority(task.get("priority", "N")),
            postponed=_opt_id(task.get("postponed")) or 0,
            estimate=task.get("estimate") or None,
        )

    @property
    def entry(self) -> IndexEntry:
        return IndexEntry(self.list_id, self.taskseries_id, self.task_id)

    @property
    def is_completed(self) -> bool:
        return self.completed is not None
