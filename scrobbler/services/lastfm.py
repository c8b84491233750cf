"""Shared plumbing for the Last.fm web service (ws.audioscrobbler.com/2.0)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx

from scrobbler.schemas.lastfm import LastfmErrorBody

USER_AGENT = "vinyl-scrobbler/1.0"


class LastfmApiError(RuntimeError):
    """The API answered but reported an error code instead of a result."""

    def __init__(self, method: str, code: int | str, message: str | None):
        super().__init__(f"Last.fm {method} API error ({code}): {message or ''}")
        self.method = method
        self.code = code
        self.message = message or ""


def error_from_payload(data: Any) -> LastfmErrorBody | None:
    """Return the error body if ``data`` is a Last.fm error document."""
    if isinstance(data, dict) and data.get("error") is not None:
        return LastfmErrorBody.model_validate(data)
    return None


@asynccontextmanager
async def lastfm_http(client: httpx.AsyncClient | None) -> AsyncIterator[httpx.AsyncClient]:
    """Yield ``client`` if one was injected, else a short-lived one."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(headers={"User-Agent": USER_AGENT}) as owned:
        yield owned
