from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from scrobbler.config import Settings
from scrobbler.schemas.lastfm import Track
from scrobbler.services.lastfm import LastfmApiError
from scrobbler.services.scrobble_service import (
    ScrobbleSubmitter,
    assign_timestamps,
    build_batch,
    build_scrobble_params,
)
from scrobbler.services.signature import api_signature

API_URL = "https://lastfm.test/2.0/"
NOW = 1_700_000_000


def _settings() -> Settings:
    return Settings(
        _env_file=None,
        lastfm_api_url=API_URL,
        lastfm_api_key="test_api_key",
        lastfm_api_secret="test_api_secret",
        lastfm_session_key="test_session_key",
    )


def _form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _echo(track: str, artist: str = "Artist", album: str = "Album", ts: int = NOW) -> dict:
    return {
        "track": {"corrected": "0", "#text": track},
        "artist": {"corrected": "0", "#text": artist},
        "album": {"corrected": "0", "#text": album},
        "timestamp": str(ts),
        "ignoredMessage": {"code": "0", "#text": ""},
    }


def test_assign_timestamps_ends_at_now_and_steps_180s():
    ts = assign_timestamps(4, NOW)
    assert ts[-1] == NOW
    assert [b - a for a, b in zip(ts, ts[1:])] == [180, 180, 180]


def test_assign_timestamps_single_track():
    assert assign_timestamps(1, NOW) == [NOW]


def test_build_scrobble_params_signs_everything_but_format():
    batch = build_batch([Track(name="One"), Track(name="Two")], "Artist", "Album", now=NOW)
    params = build_scrobble_params(
        batch, api_key="k", session_key="sk", secret="secret"
    )

    assert params["method"] == "track.scrobble"
    assert params["format"] == "json"
    assert params["track[0]"] == "One"
    assert params["track[1]"] == "Two"
    assert params["timestamp[0]"] == str(NOW - 180)
    assert params["timestamp[1]"] == str(NOW)

    unsigned = {k: v for k, v in params.items() if k not in ("api_sig", "format")}
    assert params["api_sig"] == api_signature(unsigned, "secret")


@pytest.mark.asyncio
async def test_scrobble_posts_one_signed_form_request():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "scrobbles": {
                "@attr": {"accepted": 2, "ignored": 0},
                "scrobble": [_echo("Track 1", ts=NOW - 180), _echo("Track 2")],
            }
        })

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW + 0.7)
    try:
        results = await submitter.scrobble_tracks(
            [Track(name="Track 1"), Track(name="Track 2")], "Artist", "Album"
        )
    finally:
        await client.aclose()

    assert len(seen) == 1
    req = seen[0]
    assert req.method == "POST"
    assert req.headers["content-type"] == "application/x-www-form-urlencoded"

    form = _form(req)
    assert form["method"] == "track.scrobble"
    assert form["sk"] == "test_session_key"
    assert form["api_key"] == "test_api_key"
    assert form["track[0]"] == "Track 1"
    assert form["artist[1]"] == "Artist"
    assert form["album[1]"] == "Album"
    assert form["timestamp[0]"] == str(NOW - 180)
    assert form["timestamp[1]"] == str(NOW)
    assert form["format"] == "json"
    unsigned = {k: v for k, v in form.items() if k not in ("api_sig", "format")}
    assert form["api_sig"] == api_signature(unsigned, "test_api_secret")

    assert [r.track for r in results] == ["Track 1", "Track 2"]
    assert all(r.accepted for r in results)


@pytest.mark.asyncio
async def test_single_scrobble_echo_becomes_list():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "scrobbles": {"@attr": {"accepted": 1, "ignored": 0}, "scrobble": _echo("Only")}
        })

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW)
    try:
        results = await submitter.scrobble_tracks([Track(name="Only")], "Artist", "Album")
    finally:
        await client.aclose()

    assert len(results) == 1
    assert results[0].track == "Only"
    assert results[0].timestamp == NOW


@pytest.mark.asyncio
async def test_ignored_scrobble_is_reported_not_raised():
    echo = _echo("Old")
    echo["ignoredMessage"] = {"code": "3", "#text": "Timestamp too old"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={
            "scrobbles": {"@attr": {"accepted": 0, "ignored": 1}, "scrobble": echo}
        })

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW)
    try:
        results = await submitter.scrobble_tracks([Track(name="Old")], "Artist", "Album")
    finally:
        await client.aclose()

    assert results[0].accepted is False
    assert results[0].ignored_code == 3
    assert results[0].ignored_message == "Timestamp too old"


@pytest.mark.asyncio
async def test_api_error_code_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": 9, "message": "Invalid session key"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW)
    try:
        with pytest.raises(LastfmApiError) as exc_info:
            await submitter.scrobble_tracks([Track(name="T")], "Artist", "Album")
    finally:
        await client.aclose()

    assert exc_info.value.code == 9
    assert "Invalid session key" in str(exc_info.value)


@pytest.mark.asyncio
async def test_network_error_propagates():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW)
    try:
        with pytest.raises(httpx.ConnectTimeout):
            await submitter.scrobble_tracks([Track(name="T")], "Artist", "Album")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_server_error_without_api_body_raises_status_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="<html>Bad Gateway</html>")

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW)
    try:
        with pytest.raises(httpx.HTTPStatusError):
            await submitter.scrobble_tracks([Track(name="T")], "Artist", "Album")
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_empty_track_list_is_rejected():
    submitter = ScrobbleSubmitter(_settings(), clock=lambda: NOW)
    with pytest.raises(ValueError):
        await submitter.scrobble_tracks([], "Artist", "Album")


@pytest.mark.asyncio
async def test_api_error_without_message_still_raises_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": 16, "message": None})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    submitter = ScrobbleSubmitter(_settings(), client, clock=lambda: NOW)
    try:
        with pytest.raises(LastfmApiError) as exc_info:
            await submitter.scrobble_tracks([Track(name="T")], "Artist", "Album")
    finally:
        await client.aclose()

    assert exc_info.value.code == 16
    assert exc_info.value.message == ""
