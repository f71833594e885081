# src/rtm_client/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..client import RTMClient
    from ..user import RTMUser


@dataclass
class AppState:
    """Everything a CLI command needs: settings, the client and the saved user (if any)."""

    settings: Any
    client: RTMClient
    user: RTMUser | None = None
