# src/rtm_client/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole client (normal "settings layer").
- No secrets required at import time (API key/secret may be empty until used).
- The index cache location keeps its historical override: RTM_INDEX_CACHE.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .scheduler.request_scheduler import RateLimits

ENV_PREFIX = "RTM"

DEFAULT_INDEX_CACHE = Path.home() / ".rtm.indexcache.json"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip()
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- API credentials ----
    api_key: str
    api_secret: str
    perms: str

    # ---- API endpoints ----
    api_scheme: str
    auth_url: str
    base_url: str
    api_version: int
    api_format: str

    # ---- Rate limiting (milliseconds) ----
    min_interval_ms: int
    burst_size: int
    burst_window_ms: int
    burst_cooldown_ms: int

    # ---- Transport ----
    http_timeout_seconds: float

    # ---- Local data paths ----
    data_dir: Path
    user_file: Path
    index_cache_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "rtm")
        log_level = _env(_k("LOG_LEVEL"), "WARNING")

        api_key = (_first_env(_k("API_KEY"), default="") or "").strip()
        api_secret = (_first_env(_k("API_SECRET"), _k("SHARED_SECRET"), default="") or "").strip()
        perms = _env(_k("PERMS"), "read").strip().lower() or "read"

        api_scheme = _env(_k("API_SCHEME"), "https")
        auth_url = _env(_k("AUTH_URL"), "www.rememberthemilk.com/services/auth/")
        base_url = _env(_k("BASE_URL"), "api.rememberthemilk.com/services/rest/")
        api_version = _env_int(_k("API_VERSION"), 2)
        api_format = _env(_k("API_FORMAT"), "json")

        # RTM asks for no more than one request per second, per user.
        min_interval_ms = _env_int(_k("MIN_INTERVAL_MS"), 1000)
        burst_size = _env_int(_k("BURST_SIZE"), 0)
        burst_window_ms = _env_int(_k("BURST_WINDOW_MS"), 333)
        burst_cooldown_ms = _env_int(_k("BURST_COOLDOWN_MS"), 120000)

        http_timeout_seconds = _env_float(_k("HTTP_TIMEOUT_SECONDS"), 30.0)

        data_dir = _env_path(_k("DATA_DIR"), Path.home() / ".local" / "rtm")
        user_file = _env_path(_k("USER_FILE"), data_dir / "user.json")
        index_cache_path = _env_path(_k("INDEX_CACHE"), DEFAULT_INDEX_CACHE)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            api_key=api_key,
            api_secret=api_secret,
            perms=perms,
            api_scheme=api_scheme,
            auth_url=auth_url,
            base_url=base_url,
            api_version=api_version,
            api_format=api_format,
            min_interval_ms=min_interval_ms,
            burst_size=burst_size,
            burst_window_ms=burst_window_ms,
            burst_cooldown_ms=burst_cooldown_ms,
            http_timeout_seconds=http_timeout_seconds,
            data_dir=data_dir,
            user_file=user_file,
            index_cache_path=index_cache_path,
        )

    def rate_limits(self) -> RateLimits:
        return RateLimits(
            min_interval=max(0, self.min_interval_ms) / 1000.0,
            burst_size=max(0, self.burst_size),
            burst_window=max(0, self.burst_window_ms) / 1000.0,
            burst_cooldown=max(0, self.burst_cooldown_ms) / 1000.0,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
