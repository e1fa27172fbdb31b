"""
Shared fixtures: a fake streaming service behind httpx.MockTransport,
JSON stores in a temp dir, and a ready-to-use authenticated session.
"""

import asyncio
import json
from typing import Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from juke.config import ServerConfig
from juke.models import TokenSet, UserRecord
from juke.services import (
    InMemorySessionStore,
    JsonTrackStore,
    JsonUserStore,
    SessionContext,
    TokenStore,
)


def run(coro):
    return asyncio.run(coro)


def make_track(track_id: str, preview: Optional[str] = "https://p.example/preview.mp3", name: str = "") -> Dict:
    return {
        "id": track_id,
        "name": name or f"Track {track_id}",
        "preview_url": preview,
        "artists": [{"id": f"a-{track_id}", "name": f"Artist {track_id}"}],
        "album": {"images": [{"url": f"https://i.example/{track_id}.jpg"}]},
    }


class FakeSpotify:
    """
    Minimal accounts + Web API server.

    recommendation_rounds is consumed one list per /v1/recommendations call;
    the last list repeats once exhausted.
    """

    def __init__(self):
        self.calls: List[httpx.Request] = []
        self.profile = {"id": "user-1", "display_name": "Test User"}
        self.token_response = {
            "access_token": "access-1",
            "token_type": "Bearer",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
            "scope": "user-top-read",
        }
        self.top_tracks = [make_track("seed-1"), make_track("seed-2")]
        self.recommendation_rounds: List[List[Dict]] = [[]]
        self.playlist_id = "playlist-1"
        self.fail_playlist_add = False
        self.fail_playlist_create = False
        self.unavailable_paths: set = set()

    def paths(self) -> List[str]:
        return [r.url.path for r in self.calls]

    def count(self, path: str) -> int:
        return sum(1 for p in self.paths() if p == path)

    def form(self, request: httpx.Request) -> Dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        path = request.url.path
        if path in self.unavailable_paths:
            return httpx.Response(503, json={"error": {"status": 503, "message": "service unavailable"}})
        if path == "/api/token":
            return httpx.Response(200, json=self.token_response)
        if path == "/v1/me":
            return httpx.Response(200, json=self.profile)
        if path == "/v1/me/top/tracks":
            return httpx.Response(200, json={"items": self.top_tracks})
        if path == "/v1/recommendations":
            rounds = self.recommendation_rounds
            batch = rounds.pop(0) if len(rounds) > 1 else rounds[0]
            return httpx.Response(200, json={"tracks": batch})
        if path.startswith("/v1/users/") and path.endswith("/playlists"):
            if self.fail_playlist_create:
                return httpx.Response(503, json={"error": {"status": 503, "message": "down"}})
            body = json.loads(request.content)
            return httpx.Response(201, json={"id": self.playlist_id, "name": body["name"]})
        if path.startswith("/v1/playlists/") and path.endswith("/tracks"):
            if self.fail_playlist_add:
                return httpx.Response(502, json={"error": {"status": 502, "message": "bad gateway"}})
            return httpx.Response(201, json={"snapshot_id": "snap-1"})
        if path == "/v1/search":
            return httpx.Response(200, json={"tracks": {"items": [make_track("found-1")]}})
        return httpx.Response(404, json={"error": {"status": 404, "message": "not found"}})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def spotify() -> FakeSpotify:
    return FakeSpotify()


@pytest.fixture
def config(tmp_path) -> ServerConfig:
    return ServerConfig(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://testserver/callback",
        session_secret="test-secret",
        data_source="json",
        users_json_path=tmp_path / "users.json",
        songs_json_path=tmp_path / "songs.json",
    )


@pytest.fixture
def user_store(tmp_path) -> JsonUserStore:
    return JsonUserStore(tmp_path / "users.json")


@pytest.fixture
def track_store(tmp_path) -> JsonTrackStore:
    return JsonTrackStore(tmp_path / "songs.json")


@pytest.fixture
def session() -> SessionContext:
    """Session of an authenticated user-1 with a valid token."""
    ctx = SessionContext(InMemorySessionStore(), "sid-1")
    TokenStore(ctx).set(TokenSet(access_token="access-1", refresh_token="refresh-1"))
    ctx.set("loggedIn", True)
    ctx.set("user", {"id": "user-1", "display_name": "Test User"})
    return ctx


@pytest.fixture
def registered_user(user_store) -> UserRecord:
    user = UserRecord(id="user-1", name="Test User")
    run(user_store.insert(user))
    return user
