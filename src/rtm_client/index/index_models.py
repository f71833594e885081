# src/rtm_client/index/index_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def coerce_id(value: Any) -> int:
    """RTM sends ids as numeric strings; everything local keys on int."""
    if isinstance(value, bool):
        raise ValueError(f"not an id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"not an id: {value!r}")
        return int(value)
    return int(str(value).strip())


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """
    Remote identifiers behind one local index.

    Task entries carry all three ids. List entries carry only list_id.
    Equality compares every field, so two tasks sharing a task_id in
    different series or lists never collapse into one index.
    """

    list_id: int
    taskseries_id: int | None = None
    task_id: int | None = None

    def __post_init__(self) -> None:
        if (self.taskseries_id is None) != (self.task_id is None):
            raise ValueError(f"half a task reference: {self!r}")

    @classmethod
    def for_task(cls, list_id: Any, taskseries_id: Any, task_id: Any) -> IndexEntry:
        return cls(
            list_id=coerce_id(list_id),
            taskseries_id=coerce_id(taskseries_id),
            task_id=coerce_id(task_id),
        )

    @classmethod
    def for_list(cls, list_id: Any) -> IndexEntry:
        return cls(list_id=coerce_id(list_id))

    @property
    def is_task(self) -> bool:
        return self.taskseries_id is not None and self.task_id is not None

    def to_json(self) -> dict[str, int]:
        out = {"list_id": self.list_id}
        if self.is_task:
            out["taskseries_id"] = self.taskseries_id  # type: ignore[assignment]
            out["task_id"] = self.task_id  # type: ignore[assignment]
        return out

    @classmethod
    def from_json(cls, raw: Any) -> IndexEntry | None:
        """Parse one persisted entry; None for anything malformed."""
        if not isinstance(raw, dict) or "list_id" not in raw:
            return None
        try:
            has_series = raw.get("taskseries_id") is not None
            has_task = raw.get("task_id") is not None
            if has_series and has_task:
                return cls.for_task(raw["list_id"], raw["taskseries_id"], raw["task_id"])
            if has_series or has_task:
                return None
            return cls.for_list(raw["list_id"])
        except (TypeError, ValueError):
            return None
