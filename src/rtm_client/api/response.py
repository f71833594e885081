# src/rtm_client/api/response.py

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import STATUS_FAIL, STATUS_OK, RTMError, RTMResponse

logger = logging.getLogger(__name__)

_MISSING = object()


class RTMSuccess(RTMResponse):
    """
    A successful response: every property of `rsp` except `stat`.

    Top-level properties are reachable as attributes (resp.frob, resp.tasks);
    nested ones through get("auth.user.id") / has("auth.user.id").
    """

    def __init__(self, rsp: dict[str, Any]) -> None:
        super().__init__(STATUS_OK)
        self._data = {k: v for k, v in rsp.items() if k != "stat"}

    @property
    def data(self) -> dict[str, Any]:
        return self._data

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(name) from None

    def _walk(self, path: str) -> Any:
        obj: Any = self._data
        for part in path.split("."):
            if not isinstance(obj, dict) or part not in obj:
                return _MISSING
            obj = obj[part]
        return obj

    def has(self, path: str) -> bool:
        return self._walk(path) is not _MISSING

    def get(self, path: str, default: Any = None) -> Any:
        val = self._walk(path)
        return default if val is _MISSING else val

    def __repr__(self) -> str:
        return f"RTMSuccess({json.dumps(self._data, default=str)})"


def parse_response(raw: str | bytes) -> RTMSuccess | RTMError:
    """Parse a raw JSON body into RTMSuccess or RTMError (never raises)."""
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Unparsable response body: %.200r", raw)
        return RTMError.response_error()

    rsp = payload.get("rsp") if isinstance(payload, dict) else None
    if not isinstance(rsp, dict) or not rsp.get("stat"):
        return RTMError.response_error()

    stat = rsp["stat"]
    if stat == STATUS_OK:
        return RTMSuccess(rsp)

    if stat == STATUS_FAIL:
        err = rsp.get("err")
        if not isinstance(err, dict):
            return RTMError.response_error()
        return RTMError(err.get("code", 0), err.get("msg", "Unknown error"))

    return RTMError.response_error()
