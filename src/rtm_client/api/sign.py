# src/rtm_client/api/sign.py

"""
RTM request signing.

api_sig = md5(shared_secret + k1 + v1 + k2 + v2 + ...), keys sorted.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote


def _concat(params: Mapping[str, Any]) -> str:
    return "".join(f"{key}{params[key]}" for key in sorted(params))


def sign(params: Mapping[str, Any], secret: str) -> str:
    """Signature for params (api_sig itself must not be among them)."""
    to_hash = f"{secret}{_concat(params)}"
    return hashlib.md5(to_hash.encode("utf-8")).hexdigest()


def form_query(params: Mapping[str, Any]) -> str:
    """URI-encoded query string, keeping the caller's key order."""
    return "&".join(
        f"{quote(str(key), safe='')}={quote(str(value), safe='')}" for key, value in params.items()
    )
