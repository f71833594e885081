# src/rtm_client/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the client.

The API and helper layers depend on Protocols instead of concrete implementations.
This keeps the HTTP transport, index storage and throttling swappable and makes
testing easier (see tests/fakes.py).
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol, TypeVar

from ..index.index_models import IndexEntry

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class HttpReply:
    status_code: int
    text: str


class Transport(Protocol):
    """Outbound HTTP: GET a fully signed URL, return status + body."""

    def fetch(self, url: str) -> Awaitable[HttpReply]: ...

    def aclose(self) -> Awaitable[None]: ...


class IndexRepo(Protocol):
    def load(self) -> None: ...
    def resolve_or_assign(self, user_id: Any, entry: IndexEntry) -> int: ...
    def lookup(self, user_id: Any, index: Any) -> IndexEntry | None: ...
    def entries(self, user_id: Any) -> dict[int, IndexEntry]: ...
    def persist(self) -> None: ...
    def clear(self, user_id: Any) -> None: ...


class RequestGate(Protocol):
    """Per-user throttle: decides when request_fn may run."""

    def schedule(self, user_id: Any, request_fn: Callable[[], Awaitable[T]]) -> Awaitable[T]: ...
