# src/rtm_client/__init__.py

"""Async Remember The Milk API client with stable local task/list indices."""

from __future__ import annotations

from .api.errors import ReferenceNotFoundError, RTMError
from .api.response import RTMSuccess
from .client import RTMClient
from .index.index_models import IndexEntry
from .index.index_store import IndexPersistenceError, IndexStore
from .lists.list_models import RTMList
from .scheduler.request_scheduler import RateLimits, RequestScheduler, SchedulerState
from .tasks.task_models import RTMNote, RTMTask
from .user import RTMUser

__all__ = [
    "IndexEntry",
    "IndexPersistenceError",
    "IndexStore",
    "RTMClient",
    "RTMError",
    "RTMList",
    "RTMNote",
    "RTMSuccess",
    "RTMTask",
    "RTMUser",
    "RateLimits",
    "ReferenceNotFoundError",
    "RequestScheduler",
    "SchedulerState",
]
