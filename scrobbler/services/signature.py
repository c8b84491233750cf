"""Last.fm API request signing.

Every authenticated write call carries ``api_sig``: the MD5 of all request
parameters except ``format``, sorted by key, written as ``<key><value>`` with
no separators, followed by the shared secret.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping
from typing import Any

UNSIGNED_PARAMS = frozenset({"format"})


def signature_base_string(params: Mapping[str, Any], secret: str) -> str:
    """Return the exact string that gets hashed for ``params``."""
    keys = sorted(k for k in params if k not in UNSIGNED_PARAMS)
    return "".join(f"{k}{params[k]}" for k in keys) + secret


def api_signature(params: Mapping[str, Any], secret: str) -> str:
    """Compute the ``api_sig`` value for a parameter set."""
    base = signature_base_string(params, secret)
    return hashlib.md5(base.encode("utf-8")).hexdigest()
