"""Album tracklist lookup via Last.fm ``album.getinfo``.

A missing tracklist is a normal outcome here: every failure is logged and
reported as an empty list, never raised.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from scrobbler.config import Settings
from scrobbler.schemas.lastfm import AlbumInfoResponse, Track
from scrobbler.services.lastfm import error_from_payload, lastfm_http

logger = logging.getLogger(__name__)


class TracklistFetcher:
    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client

    async def get_album_tracks(self, artist: str, album: str) -> list[Track]:
        """
        Fetch the tracklist for an album, in the catalog's track order.

        Args:
            artist: Artist name as stored in the album mapping.
            album: Album title as stored in the album mapping.

        Returns:
            List of tracks, or an empty list if the album is unknown
            or the lookup failed.
        """
        params = {
            "method": "album.getinfo",
            "api_key": self._settings.lastfm_api_key,
            "artist": artist,
            "album": album,
            "format": "json",
        }

        try:
            async with lastfm_http(self._client) as client:
                resp = await client.get(self._settings.lastfm_api_url, params=params)
            data = resp.json()
        except httpx.HTTPError as exc:
            logger.error("Error calling Last.fm album.getinfo for %s - %s: %s", artist, album, exc)
            return []
        except ValueError:
            logger.error(
                "Last.fm album.getinfo returned a non-JSON body (HTTP %s) for %s - %s",
                resp.status_code, artist, album,
            )
            return []

        try:
            err = error_from_payload(data)
        except ValidationError as exc:
            logger.error("Malformed album.getinfo error for %s - %s: %s", artist, album, exc)
            return []
        if err is not None:
            logger.error(
                "Last.fm album.getinfo error (%s) for %s - %s: %s",
                err.error, artist, album, err.message,
            )
            return []
        if resp.is_error:
            logger.error("Last.fm album.getinfo HTTP %s for %s - %s", resp.status_code, artist, album)
            return []

        try:
            info = AlbumInfoResponse.model_validate(data)
        except ValidationError as exc:
            logger.error("Unexpected album.getinfo response for %s - %s: %s", artist, album, exc)
            return []

        tracks = info.tracks
        if not tracks:
            logger.warning("Last.fm has no track data for %s - %s", artist, album)
        return tracks
