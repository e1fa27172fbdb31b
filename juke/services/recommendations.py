"""
Recommendation Engine: bounded iterative top-up.

Requests candidates from the upstream recommendations endpoint, keeps the
ones that have a playable preview and that the user has not interacted with
yet, and asks again for the shortfall until the requested count is reached.
The upstream may keep returning the same tracks for a fixed seed set, so the
loop stops after max_stalled_rounds consecutive rounds that approve nothing.

The public entry point is get_recommendations.
"""

import asyncio
import logging
from typing import List, Sequence

from ..models import Track, ensure_tracks
from .session_store import SessionContext
from .upstream_client import UpstreamClient
from .user_store import UserStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_STALLED_ROUNDS = 3


def has_playable_preview(track: Track) -> bool:
    """Media-availability filter: the track must carry a non-empty preview URL."""
    return track.has_preview()


class RecommendationEngine:
    def __init__(
        self,
        upstream: UpstreamClient,
        user_store: UserStore,
        max_stalled_rounds: int = DEFAULT_MAX_STALLED_ROUNDS,
        top_tracks_limit: int = 5,
    ):
        if max_stalled_rounds < 1:
            raise ValueError("max_stalled_rounds must be at least 1")
        self._upstream = upstream
        self._users = user_store
        self._max_stalled_rounds = max_stalled_rounds
        self._top_tracks_limit = top_tracks_limit

    async def seeds_from_top_tracks(self, session: SessionContext) -> List[str]:
        """Ids of the user's recent top tracks, used as default seeds."""
        items = await self._upstream.get_top_tracks(session, limit=self._top_tracks_limit)
        return [t["id"] for t in items if t.get("id")]

    async def _is_novel(self, user_id: str, track: Track) -> bool:
        """Novelty filter: membership check against the persisted history."""
        seen = await self._users.has_interaction(user_id, track.id)
        if seen:
            logger.debug("[recommendations] track %r already registered", track.name)
        return not seen

    async def filter_candidates(self, user_id: str, candidates: List[Track]) -> List[Track]:
        """Apply both filters, preserving upstream order."""
        playable = []
        for track in candidates:
            if has_playable_preview(track):
                playable.append(track)
            else:
                logger.debug("[recommendations] track %r has no preview_url", track.name)
        # History reads are independent, so they run concurrently
        novel = await asyncio.gather(*(self._is_novel(user_id, t) for t in playable))
        return [t for t, ok in zip(playable, novel) if ok]

    async def get_recommendations(
        self,
        session: SessionContext,
        user_id: str,
        seed_ids: Sequence[str],
        target_count: int,
        seed_type: str = "seed_tracks",
    ) -> List[Track]:
        """
        Return up to target_count approved tracks in upstream order.

        A shorter list means the stall bound was hit; it is a valid result.
        Upstream and persistence errors propagate.
        """
        seeds = [s for s in seed_ids if s]
        if target_count <= 0 or not seeds:
            return []

        approved: List[Track] = []
        approved_ids = set()
        remaining = target_count
        stalled_rounds = 0
        rounds = 0

        while remaining > 0:
            rounds += 1
            raw = await self._upstream.get_recommendations(session, seeds, remaining, seed_type)
            candidates = ensure_tracks(raw)
            survivors = await self.filter_candidates(user_id, candidates)

            added = 0
            for track in survivors:
                # The upstream may repeat a track across rounds
                if track.id in approved_ids:
                    continue
                approved.append(track)
                approved_ids.add(track.id)
                added += 1
            remaining = target_count - len(approved)

            if added:
                stalled_rounds = 0
            else:
                stalled_rounds += 1
                logger.warning(
                    "[recommendations] round %d approved nothing (%d candidates, stalled %d/%d)",
                    rounds, len(candidates), stalled_rounds, self._max_stalled_rounds,
                )
                if stalled_rounds >= self._max_stalled_rounds:
                    logger.warning(
                        "[recommendations] giving up with %d/%d tracks for user %s",
                        len(approved), target_count, user_id,
                    )
                    break

        return approved[:target_count]
