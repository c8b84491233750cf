"""Pydantic schemas for Last.fm API responses.

Last.fm serializes a one-element collection as a bare object and a longer one
as a list (``album.tracks.track``, ``scrobbles.scrobble``). ``OneOrMany`` names
that shape; ``as_list`` normalizes it and is applied as a ``mode="before"``
validator so models always expose plain lists.
"""

from __future__ import annotations

from typing import Any, List, TypeVar, Union

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")

OneOrMany = Union[T, List[T]]


def as_list(value: OneOrMany[T] | None) -> list[T]:
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------

class LastfmErrorBody(BaseModel):
    """Error payload returned with HTTP 200 or 4xx by the API."""

    error: int | str
    message: str | None = None


class TextNode(BaseModel):
    text: str = Field("", alias="#text")
    corrected: int = 0

    model_config = {"populate_by_name": True}

    @classmethod
    def coerce(cls, v: Any) -> Any:
        # Some echo fields arrive as plain strings.
        if isinstance(v, str):
            return {"#text": v}
        return v


# ---------------------------------------------------------------------------
# album.getinfo
# ---------------------------------------------------------------------------

class Track(BaseModel):
    name: str


class AlbumTracks(BaseModel):
    track: list[Track] = Field(default_factory=list)

    @field_validator("track", mode="before")
    @classmethod
    def _one_or_many(cls, v):
        return as_list(v)


class AlbumInfo(BaseModel):
    name: str = ""
    artist: str = ""
    tracks: AlbumTracks | None = None

    @field_validator("tracks", mode="before")
    @classmethod
    def _empty_tracks(cls, v):
        # Albums without track data may carry "" instead of an object.
        return v or None


class AlbumInfoResponse(BaseModel):
    album: AlbumInfo | None = None

    @property
    def tracks(self) -> list[Track]:
        if self.album is None or self.album.tracks is None:
            return []
        return self.album.tracks.track


# ---------------------------------------------------------------------------
# track.scrobble
# ---------------------------------------------------------------------------

class IgnoredMessage(BaseModel):
    code: int = 0
    text: str = Field("", alias="#text")

    model_config = {"populate_by_name": True}


class ScrobbleEcho(BaseModel):
    track: TextNode = Field(default_factory=TextNode)
    artist: TextNode = Field(default_factory=TextNode)
    album: TextNode = Field(default_factory=TextNode)
    timestamp: int | None = None
    ignored_message: IgnoredMessage = Field(
        default_factory=IgnoredMessage, alias="ignoredMessage"
    )

    model_config = {"populate_by_name": True}

    @field_validator("track", "artist", "album", mode="before")
    @classmethod
    def _text_nodes(cls, v):
        return TextNode.coerce(v)


class ScrobbleAttr(BaseModel):
    accepted: int = 0
    ignored: int = 0


class Scrobbles(BaseModel):
    attr: ScrobbleAttr = Field(default_factory=ScrobbleAttr, alias="@attr")
    scrobble: list[ScrobbleEcho] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @field_validator("scrobble", mode="before")
    @classmethod
    def _one_or_many(cls, v):
        return as_list(v)


class ScrobbleResponse(BaseModel):
    scrobbles: Scrobbles


class ScrobbleResult(BaseModel):
    """Per-track outcome reported back to callers and logs."""

    track: str
    artist: str
    album: str
    timestamp: int | None = None
    ignored_code: int = 0
    ignored_message: str = ""

    @property
    def accepted(self) -> bool:
        return self.ignored_code == 0

    @classmethod
    def from_echo(cls, echo: ScrobbleEcho) -> ScrobbleResult:
        return cls(
            track=echo.track.text,
            artist=echo.artist.text,
            album=echo.album.text,
            timestamp=echo.timestamp,
            ignored_code=echo.ignored_message.code,
            ignored_message=echo.ignored_message.text,
        )
