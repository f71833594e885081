# src/rtm_client/index/index_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .index_models import IndexEntry, coerce_id

if TYPE_CHECKING:
    from ..core.ports import IndexRepo

logger = logging.getLogger(__name__)


class IndexPersistenceError(RuntimeError):
    """The index file could not be read or written."""


class IndexStore:
    """
    Per-user map of small local indices -> remote task/list identifiers.

    Lifecycle:
    - load() once during client setup (missing file => empty store)
    - resolve_or_assign() mutates memory only
    - persist() flushes the whole table; callers batch it after a fetch
    - clear() drops one user's table and persists immediately

    File shape:
      {"USERS": {"<user_id>": {"<index>": {"list_id": ..., "taskseries_id": ..., "task_id": ...}}}}

    The file is not safe for concurrent writers across processes.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()
        self._users: dict[int, dict[int, IndexEntry]] = {}
        # reverse map kept in step with _users: entry -> index
        self._reverse: dict[int, dict[IndexEntry, int]] = {}

    @property
    def path(self) -> Path:
        return self._path

    # ---- low-level helpers ----

    def _table(self, user_id: int) -> dict[int, IndexEntry]:
        table = self._users.get(user_id)
        if table is None:
            table = self._users[user_id] = {}
            self._reverse[user_id] = {}
        return table

    def _to_json(self) -> dict[str, Any]:
        users: dict[str, Any] = {}
        for user_id, table in self._users.items():
            users[str(user_id)] = {str(idx): entry.to_json() for idx, entry in sorted(table.items())}
        return {"USERS": users}

    def _load_user(self, user_id: int, raw: dict[str, Any]) -> int:
        table = self._table(user_id)
        reverse = self._reverse[user_id]
        loaded = 0

        parsed: list[tuple[int, IndexEntry]] = []
        for raw_idx, raw_entry in raw.items():
            try:
                idx = int(raw_idx)
            except (TypeError, ValueError):
                logger.warning("Index cache: skipping bad index %r for user %s", raw_idx, user_id)
                continue
            if idx < 1:
                logger.warning("Index cache: skipping non-positive index %s for user %s", idx, user_id)
                continue
            entry = IndexEntry.from_json(raw_entry)
            if entry is None:
                logger.warning("Index cache: skipping malformed entry at %s for user %s", idx, user_id)
                continue
            parsed.append((idx, entry))

        # Lowest index wins when a damaged file maps one item twice.
        for idx, entry in sorted(parsed):
            if entry in reverse:
                logger.warning(
                    "Index cache: %s duplicates index %s for user %s; dropped",
                    idx,
                    reverse[entry],
                    user_id,
                )
                continue
            table[idx] = entry
            reverse[entry] = idx
            loaded += 1
        return loaded

    # ---- public API ----

    def load(self) -> None:
        """Read the backing file, replacing the in-memory table."""
        self._users = {}
        self._reverse = {}

        if not self._path.exists():
            logger.debug("Index cache %s not found; starting empty", self._path)
            return

        try:
            raw = self._path.read_text("utf-8")
        except OSError as e:
            logger.exception("Failed to read index cache %s", self._path)
            raise IndexPersistenceError(f"Could not read index cache {self._path}") from e

        try:
            data = json.loads(raw) if raw.strip() else {}
        except json.JSONDecodeError:
            logger.warning("Index cache %s is not valid JSON; starting empty", self._path)
            return

        users = data.get("USERS") if isinstance(data, dict) else None
        if not isinstance(users, dict):
            if data:
                logger.warning("Index cache %s has no USERS table; starting empty", self._path)
            return

        total = 0
        for raw_user, raw_table in users.items():
            try:
                user_id = coerce_id(raw_user)
            except ValueError:
                logger.warning("Index cache: skipping bad user id %r", raw_user)
                continue
            if not isinstance(raw_table, dict):
                continue
            total += self._load_user(user_id, raw_table)

        logger.info("Index cache loaded path=%s users=%d entries=%d", self._path, len(self._users), total)

    def resolve_or_assign(self, user_id: Any, entry: IndexEntry) -> int:
        """
        Return the index already held by entry, or mint the smallest free one.

        Memory only; call persist() after a batch.
        """
        uid = coerce_id(user_id)
        table = self._table(uid)
        reverse = self._reverse[uid]

        existing = reverse.get(entry)
        if existing is not None:
            return existing

        index = 1
        while index in table:
            index += 1

        table[index] = entry
        reverse[entry] = index
        logger.debug("Assigned index %s user=%s entry=%s", index, uid, entry)
        return index

    def lookup(self, user_id: Any, index: Any) -> IndexEntry | None:
        """Stored entry for (user, index), or None when unknown."""
        try:
            uid = coerce_id(user_id)
            idx = int(index)
        except (TypeError, ValueError):
            return None
        table = self._users.get(uid)
        if table is None:
            return None
        return table.get(idx)

    def entries(self, user_id: Any) -> dict[int, IndexEntry]:
        table = self._users.get(coerce_id(user_id))
        return dict(sorted(table.items())) if table else {}

    def persist(self) -> None:
        """Write the whole table to disk (atomic replace)."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(json.dumps(self._to_json()), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            logger.exception("Failed to write index cache %s", self._path)
            raise IndexPersistenceError(f"Could not write index cache {self._path}") from e

        with contextlib.suppress(OSError):
            os.chmod(self._path, 0o600)
        logger.debug("Index cache saved path=%s users=%d", self._path, len(self._users))

    def clear(self, user_id: Any) -> None:
        """Forget every index of one user and persist right away."""
        uid = coerce_id(user_id)
        dropped = len(self._users.pop(uid, {}))
        self._reverse.pop(uid, None)
        logger.info("Cleared %d indices for user %s", dropped, uid)
        self.persist()


def persist_best_effort(store: IndexRepo) -> bool:
    """
    persist() for fetch paths: a failed write is logged, not raised.

    The in-memory table stays authoritative for this process either way.
    """
    try:
        store.persist()
    except IndexPersistenceError:
        logger.warning("Index cache not saved; indices stay valid for this session only")
        return False
    return True
