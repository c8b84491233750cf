"""Batch scrobbling via Last.fm ``track.scrobble``.

All tracks of an album go out in a single signed request. Timestamps are
synthesized backwards from "now" so the last track is the most recent play
and the service lists them in album order.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import httpx

from scrobbler.config import Settings
from scrobbler.schemas.lastfm import ScrobbleResponse, ScrobbleResult, Track
from scrobbler.services.lastfm import LastfmApiError, error_from_payload, lastfm_http
from scrobbler.services.signature import api_signature

logger = logging.getLogger(__name__)

SCROBBLE_METHOD = "track.scrobble"


@dataclass(frozen=True)
class ScrobbleEntry:
    artist: str
    album: str
    track: str
    timestamp: int


def assign_timestamps(count: int, now: int, spacing: int = 180) -> list[int]:
    """Return ``count`` timestamps ending at ``now``, ``spacing`` seconds apart."""
    return [now - (count - i - 1) * spacing for i in range(count)]


def build_batch(
    tracks: Sequence[Track],
    artist: str,
    album: str,
    now: int,
    spacing: int = 180,
) -> list[ScrobbleEntry]:
    timestamps = assign_timestamps(len(tracks), now, spacing)
    return [
        ScrobbleEntry(artist=artist, album=album, track=t.name, timestamp=ts)
        for t, ts in zip(tracks, timestamps)
    ]


def build_scrobble_params(
    batch: Sequence[ScrobbleEntry],
    *,
    api_key: str,
    session_key: str,
    secret: str,
) -> dict[str, str]:
    """Build the signed form body for a ``track.scrobble`` call."""
    params: dict[str, str] = {
        "method": SCROBBLE_METHOD,
        "sk": session_key,
        "api_key": api_key,
    }
    for i, entry in enumerate(batch):
        params[f"artist[{i}]"] = entry.artist
        params[f"album[{i}]"] = entry.album
        params[f"track[{i}]"] = entry.track
        params[f"timestamp[{i}]"] = str(entry.timestamp)

    params["api_sig"] = api_signature(params, secret)
    params["format"] = "json"
    return params


class ScrobbleSubmitter:
    def __init__(
        self,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._client = client
        self._clock = clock

    async def scrobble_tracks(
        self,
        tracks: Sequence[Track],
        artist: str,
        album: str,
    ) -> list[ScrobbleResult]:
        """
        Scrobble an album's tracks in one request.

        Raises:
            LastfmApiError: the API rejected the request.
            httpx.HTTPError: network failure or an error status without an API error body.
        """
        if not tracks:
            raise ValueError("scrobble_tracks() needs at least one track")

        batch = build_batch(
            tracks, artist, album,
            now=int(self._clock()),
            spacing=self._settings.scrobble_spacing_sec,
        )
        params = build_scrobble_params(
            batch,
            api_key=self._settings.lastfm_api_key,
            session_key=self._settings.lastfm_session_key,
            secret=self._settings.lastfm_api_secret,
        )

        logger.info("Submitting %d scrobbles for %s - %s", len(batch), artist, album)
        try:
            async with lastfm_http(self._client) as client:
                resp = await client.post(self._settings.lastfm_api_url, data=params)
        except httpx.HTTPError as exc:
            logger.error("Error calling Last.fm %s: %s", SCROBBLE_METHOD, exc)
            raise

        try:
            data = resp.json()
        except ValueError:
            resp.raise_for_status()
            raise

        err = error_from_payload(data)
        if err is not None:
            raise LastfmApiError(SCROBBLE_METHOD, err.error, err.message)
        resp.raise_for_status()

        parsed = ScrobbleResponse.model_validate(data)
        results = [ScrobbleResult.from_echo(echo) for echo in parsed.scrobbles.scrobble]

        logger.info(
            "Scrobble successful. Logged %d tracks (accepted=%d, ignored=%d):",
            len(results), parsed.scrobbles.attr.accepted, parsed.scrobbles.attr.ignored,
        )
        for r in results:
            if r.accepted:
                logger.info('  - "%s" by %s', r.track, r.artist)
            else:
                logger.warning(
                    '  - "%s" by %s ignored (%d): %s',
                    r.track, r.artist, r.ignored_code, r.ignored_message,
                )
        return results
