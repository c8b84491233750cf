"""Scrobble pipeline: tag UID → album mapping → Last.fm tracklist → scrobble batch.

"Nothing to do" outcomes (empty payload, unmapped tag, empty tracklist) end
the run normally. Store, network and API failures are re-raised so the
delivering transport retries the whole message.
"""

from __future__ import annotations

import base64
import binascii
import enum
import json
import logging
import re

import httpx
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from scrobbler.config import Settings
from scrobbler.config import settings as app_settings
from scrobbler.database import async_session
from scrobbler.schemas.album import ScanPayload
from scrobbler.services.album_service import AlbumResolver
from scrobbler.services.lastfm import USER_AGENT
from scrobbler.services.scrobble_service import ScrobbleSubmitter
from scrobbler.services.tracklist_service import TracklistFetcher

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


class PipelineOutcome(str, enum.Enum):
    scrobbled = "scrobbled"
    empty_payload = "empty_payload"
    unmapped_tag = "unmapped_tag"
    empty_tracklist = "empty_tracklist"


def normalize_rfid(value: str | None) -> str:
    """Trim a tag UID and collapse inner whitespace ("AB  CD\\t12" → "AB CD 12")."""
    return _WHITESPACE.sub(" ", (value or "").strip())


def _b64_text(data: str | bytes) -> str | None:
    try:
        text = base64.b64decode(data, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return None
    return text if _WHITESPACE.sub(" ", text).strip().isprintable() else None


def decode_payload(data: str | bytes | None) -> ScanPayload | None:
    """Decode a trigger message.

    ``data`` is normally base64 (Pub/Sub); anything that does not decode to
    printable text is taken as the plain identifier. The text is either a bare
    tag UID or ``{"rfid": ..., "userId": ...}``. Returns None when nothing
    usable was sent.
    """
    if not data:
        return None
    text = _b64_text(data)
    if text is None:
        logger.debug("Trigger payload is not base64 text, using it as-is")
        text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data

    text = text.strip()
    if text.startswith("{"):
        try:
            payload = ScanPayload.model_validate(json.loads(text))
        except (ValueError, ValidationError):
            logger.warning("Trigger payload looks like JSON but is not a scan object")
            return None
    else:
        payload = ScanPayload(rfid=text)

    payload.rfid = normalize_rfid(payload.rfid)
    payload.user_id = (payload.user_id or "").strip() or None
    if not payload.rfid:
        return None
    return payload


class ScrobblePipeline:
    """
    Runs one scan through resolve → fetch → submit.

    Usage:
        pipeline = ScrobblePipeline(settings, async_session)
        await pipeline.handle_message(message_data)
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        client: httpx.AsyncClient | None = None,
        fetcher: TracklistFetcher | None = None,
        submitter: ScrobbleSubmitter | None = None,
    ) -> None:
        self._settings = settings
        self._session_factory = session_factory
        self._client = client
        self.fetcher = fetcher or TracklistFetcher(settings, client)
        self.submitter = submitter or ScrobbleSubmitter(settings, client)

    async def handle_message(self, data: str | bytes | None) -> PipelineOutcome:
        """Entry point for a raw (base64) trigger message."""
        if not data:
            logger.info("Received an empty message. Aborting.")
            return PipelineOutcome.empty_payload

        payload = decode_payload(data)
        if payload is None:
            logger.info("Decoded RFID UID is empty. Aborting.")
            return PipelineOutcome.empty_payload

        logger.info("Received and decoded RFID UID: %s", payload.rfid)
        return await self.run(payload.rfid, owner_id=payload.user_id)

    async def run(self, rfid: str, owner_id: str | None = None) -> PipelineOutcome:
        rfid = normalize_rfid(rfid)
        if not rfid:
            logger.info("RFID UID is empty after normalization. Aborting.")
            return PipelineOutcome.empty_payload

        try:
            async with self._session_factory() as db:
                album = await AlbumResolver(db).find_album_by_rfid(rfid, owner_id=owner_id)
            if album is None:
                logger.info("No album found for RFID: %s", rfid)
                return PipelineOutcome.unmapped_tag
            logger.info("Found album: %s - %s", album.artist, album.album)

            tracks = await self.fetcher.get_album_tracks(album.artist, album.album)
            if not tracks:
                logger.info("Could not find a tracklist for %s - %s", album.artist, album.album)
                return PipelineOutcome.empty_tracklist
            logger.info("Found %d tracks. Preparing to scrobble.", len(tracks))

            await self.submitter.scrobble_tracks(tracks, album.artist, album.album)
        except Exception:
            logger.exception("An error occurred during the scrobbling process")
            raise

        return PipelineOutcome.scrobbled

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()


# ---------------------------------------------------------------------------
# Singleton / FastAPI dependency
# ---------------------------------------------------------------------------

_pipeline: ScrobblePipeline | None = None


async def get_pipeline() -> ScrobblePipeline:
    """
    FastAPI dependency — returns the shared pipeline.

    Built once from the application settings; the HTTP client is reused
    across requests.
    """
    global _pipeline
    if _pipeline is None:
        if not app_settings.lastfm_configured:
            logger.warning("Last.fm credentials are not fully configured — scrobbles will be rejected")
        _pipeline = ScrobblePipeline(
            app_settings,
            async_session,
            client=httpx.AsyncClient(headers={"User-Agent": USER_AGENT}),
        )
    return _pipeline


async def close_pipeline() -> None:
    """Release the shared pipeline's HTTP client (call on app shutdown)."""
    global _pipeline
    if _pipeline:
        await _pipeline.aclose()
        _pipeline = None
