# src/rtm_client/lists/list_models.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..index.index_models import coerce_id


def _flag(raw: Any) -> bool:
    return str(raw).strip() == "1"


def _int(raw: Any, default: int = 0) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


@dataclass(slots=True)
class RTMList:
    id: int
    name: str
    deleted: bool
    locked: bool
    archived: bool
    position: int
    smart: bool
    sort_order: int
    filter: str | None = None
    index: int | None = None

    @classmethod
    def from_api(cls, props: dict[str, Any], *, index: int | None = None) -> RTMList:
        """Build from one element of rtm.lists.getList -> lists.list[]."""
        return cls(
            id=coerce_id(props["id"]),
            name=str(props.get("name", "")),
            deleted=_flag(props.get("deleted", "0")),
            locked=_flag(props.get("locked", "0")),
            archived=_flag(props.get("archived", "0")),
            position=_int(props.get("position", 0)),
            smart=_flag(props.get("smart", "0")),
            sort_order=_int(props.get("sort_order", 0)),
            filter=props.get("filter") or None,
            index=index,
        )
