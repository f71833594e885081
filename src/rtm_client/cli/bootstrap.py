# src/rtm_client/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (private) data directory exists,
- wires the client (index store, scheduler, transport) into AppState,
- persists the authorized user as JSON so later runs skip the login.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path

from ..client import RTMClient
from ..config import get_settings
from ..core.state import AppState
from ..user import RTMUser

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    Path(settings.user_file).parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, client: RTMClient | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and client are injectable so tests can run without env/network.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if client is None:
        client = RTMClient.from_settings(settings)

    state = AppState(settings=settings, client=client)
    state.user = load_user(state)
    return state


def load_user(state: AppState) -> RTMUser | None:
    raw_path = getattr(state.settings, "user_file", None)
    if not raw_path:
        return None
    path = Path(raw_path)
    if not path.exists():
        return None
    try:
        user = state.client.import_user_from_string(path.read_text("utf-8"))
    except (OSError, ValueError):
        # ValueError covers both bad JSON and missing properties
        logger.exception("Failed to load saved user from %s", path)
        return None
    logger.info("Loaded saved user id=%s from %s", user.id, path)
    return user


def save_user(state: AppState) -> None:
    if state.user is None:
        return
    path = Path(state.settings.user_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(state.client.export_user(state.user), indent=2), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # The file holds the auth token and the API secret.
        os.chmod(path, 0o600)
    logger.info("Saved user id=%s to %s", state.user.id, path)


def forget_user(state: AppState) -> None:
    path = Path(state.settings.user_file)
    with contextlib.suppress(FileNotFoundError):
        path.unlink()
    state.user = None
    logger.info("Removed saved user file %s", path)
