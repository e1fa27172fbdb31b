"""
Upstream Client: authenticated calls against the streaming service's Web API.

Every call reads the bearer token from the session's Token Store. No retry
or backoff happens here; callers decide what to do with a failure.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..errors import NotAuthenticated, UpstreamRejected, UpstreamUnavailable
from .session_store import SessionContext
from .token_store import TokenStore

logger = logging.getLogger(__name__)

# Upper bound the recommendations endpoint accepts for limit
MAX_RECOMMENDATION_LIMIT = 100
SEED_TYPES = ("seed_tracks", "seed_artists", "seed_genres")


def _error_message(response: httpx.Response) -> str:
    """Best-effort message from an upstream error body ({"error": {"message": ...}})."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    err = body.get("error") if isinstance(body, dict) else None
    if isinstance(err, dict):
        return err.get("message") or str(err)
    return str(err or body)


class UpstreamClient:
    """Bearer-authenticated JSON client; one shared httpx.AsyncClient per process."""

    def __init__(self, http: httpx.AsyncClient, api_url: str = "https://api.spotify.com"):
        self._http = http
        self._api_url = api_url.rstrip("/")

    async def call(
        self,
        session: SessionContext,
        endpoint: str,
        method: str = "GET",
        body: Optional[Any] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call endpoint (relative to the API root, e.g. "v1/me") and return parsed JSON.

        Raises NotAuthenticated before any network attempt when the session has
        no access token, and on 401. Raises UpstreamUnavailable on transport
        errors, non-JSON bodies, 429 and 5xx; UpstreamRejected on other 4xx.
        """
        token = TokenStore(session).get()
        if token is None:
            raise NotAuthenticated("Access token is not set or invalid")

        url = f"{self._api_url}/{endpoint.lstrip('/')}"
        headers = {
            "Authorization": f"Bearer {token.access_token}",
            "Content-Type": "application/json",
        }
        try:
            response = await self._http.request(
                method.upper(),
                url,
                headers=headers,
                params=params,
                json=body if body is not None else None,
            )
        except httpx.HTTPError as e:
            logger.error("[upstream] %s %s failed: %s", method.upper(), endpoint, e)
            raise UpstreamUnavailable(f"{method.upper()} {endpoint}: {e}") from e

        status = response.status_code
        if status == 401:
            raise NotAuthenticated(_error_message(response))
        if status == 429 or status >= 500:
            logger.error("[upstream] %s %s -> %s", method.upper(), endpoint, status)
            raise UpstreamUnavailable(
                f"{method.upper()} {endpoint} -> {status}: {_error_message(response)}",
                upstream_status=status,
            )
        if status >= 400:
            raise UpstreamRejected(
                f"{method.upper()} {endpoint} -> {status}: {_error_message(response)}",
                upstream_status=status,
            )
        if status == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"{method.upper()} {endpoint}: response is not JSON") from e

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def get_profile(self, session: SessionContext) -> Dict:
        profile = await self.call(session, "v1/me")
        if not isinstance(profile, dict) or not profile.get("id"):
            raise UpstreamUnavailable("Profile response has no id")
        return profile

    async def get_top_tracks(
        self,
        session: SessionContext,
        limit: int = 5,
        time_range: str = "short_term",
    ) -> List[Dict]:
        data = await self.call(
            session,
            "v1/me/top/tracks",
            params={"time_range": time_range, "limit": limit},
        )
        return list(data.get("items") or [])

    async def get_recommendations(
        self,
        session: SessionContext,
        seeds: Sequence[str],
        limit: int,
        seed_type: str = "seed_tracks",
    ) -> List[Dict]:
        if seed_type not in SEED_TYPES:
            raise ValueError(f"seed_type must be one of {SEED_TYPES}")
        data = await self.call(
            session,
            "v1/recommendations",
            params={"limit": min(limit, MAX_RECOMMENDATION_LIMIT), seed_type: ",".join(seeds)},
        )
        return list(data.get("tracks") or [])

    async def create_playlist(
        self,
        session: SessionContext,
        user_id: str,
        name: str,
        description: str = "",
        public: bool = False,
    ) -> Dict:
        playlist = await self.call(
            session,
            f"v1/users/{user_id}/playlists",
            "POST",
            {"name": name, "description": description, "public": public},
        )
        if not playlist.get("id"):
            raise UpstreamRejected("Playlist creation returned no id")
        return playlist

    async def add_tracks_to_playlist(
        self,
        session: SessionContext,
        playlist_id: str,
        track_ids: Sequence[str],
    ) -> Dict:
        return await self.call(
            session,
            f"v1/playlists/{playlist_id}/tracks",
            "POST",
            {"uris": [f"spotify:track:{tid}" for tid in track_ids]},
        )

    async def search(
        self,
        session: SessionContext,
        query: str,
        types: Sequence[str] = ("track", "artist", "album"),
        limit: int = 10,
    ) -> Dict:
        return await self.call(
            session,
            "v1/search",
            params={"q": query, "type": ",".join(types), "limit": limit},
        )
