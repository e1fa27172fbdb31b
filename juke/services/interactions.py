"""
User Interaction Recorder: like/dislike decisions.

Order of effects for one action: history append and counter increment
(one atomic store update), then playlist sync for likes, then the global
track snapshot. Later steps never roll back earlier ones; their failures
are reported on the ActionResult.
"""

import logging

from ..errors import JukeError, UnknownUser
from ..models import (
    Action,
    ActionResult,
    DocumentPatch,
    InteractionRecord,
    ProfileResponse,
    ProfileStats,
    SessionUser,
    TrackSnapshot,
)
from .session_store import SessionContext
from .track_store import TrackStore
from .upstream_client import UpstreamClient
from .user_store import UserStore

logger = logging.getLogger(__name__)

ACTIONS = ("like", "dislike")


class InteractionRecorder:
    def __init__(
        self,
        user_store: UserStore,
        track_store: TrackStore,
        upstream: UpstreamClient,
        playlist_name: str = "My Juke Playlist",
        playlist_description: str = "",
    ):
        self._users = user_store
        self._tracks = track_store
        self._upstream = upstream
        self._playlist_name = playlist_name
        self._playlist_description = playlist_description

    async def record_action(
        self,
        session: SessionContext,
        user_id: str,
        track: TrackSnapshot,
        action: Action,
    ) -> ActionResult:
        """
        Record a like or dislike of track for user_id.

        A track already in the history makes this a successful no-op: the first
        decision on a track is final.
        """
        if action not in ACTIONS:
            raise ValueError(f"action must be one of {ACTIONS}")
        user = await self._users.find_by_id(user_id)
        if user is None:
            logger.error("[interactions] no user record for %s", user_id)
            raise UnknownUser(f"No user record for {user_id}")
        if user.has_track(track.id):
            logger.info("[interactions] track %s already in history of %s", track.id, user_id)
            return ActionResult(track_id=track.id, action=action, recorded=False, duplicate=True)

        record = InteractionRecord(
            track_id=track.id,
            name=track.name,
            artists=track.artists,
            images=track.images,
            action=action,
        )
        if not await self._users.append_interaction(user_id, record):
            # A concurrent request recorded this track between the check and the write
            return ActionResult(track_id=track.id, action=action, recorded=False, duplicate=True)
        logger.info("[interactions] %s %s by %s", action, track.id, user_id)

        result = ActionResult(track_id=track.id, action=action, recorded=True)
        if action == "like":
            try:
                result.playlist_id = await self.ensure_playlist(session, user_id)
                await self._upstream.add_tracks_to_playlist(session, result.playlist_id, [track.id])
            except JukeError as e:
                logger.warning("[interactions] playlist sync failed for %s: %s", track.id, e)
                result.playlist_error = e.error_code

        try:
            await self._tracks.record_vote(track, user_id, action)
        except JukeError as e:
            logger.warning("[interactions] snapshot update failed for %s: %s", track.id, e)
            result.snapshot_error = e.error_code
        return result

    async def ensure_playlist(self, session: SessionContext, user_id: str) -> str:
        """Return the user's playlist id, creating the upstream playlist on first use."""
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UnknownUser(f"No user record for {user_id}")
        if user.playlist_id:
            return user.playlist_id

        playlist = await self._upstream.create_playlist(
            session,
            user_id,
            self._playlist_name,
            self._playlist_description,
            public=False,
        )
        if not await self._users.update_by_id(user_id, DocumentPatch(set={"playlist_id": playlist["id"]})):
            raise UnknownUser(f"No user record for {user_id}")
        logger.info("[interactions] created playlist %s for %s", playlist["id"], user_id)
        return playlist["id"]

    async def forget_playlist(self, user_id: str) -> None:
        """Drop the stored playlist id; the next like creates a new playlist."""
        if not await self._users.update_by_id(user_id, DocumentPatch(unset=["playlist_id"])):
            raise UnknownUser(f"No user record for {user_id}")

    async def get_profile(self, user_id: str) -> ProfileResponse:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise UnknownUser(f"No user record for {user_id}")
        history = list(reversed(user.recommendations))
        likes = sum(1 for r in history if r.action == "like")
        return ProfileResponse(
            user=SessionUser(id=user.id, display_name=user.name),
            playlist_id=user.playlist_id,
            recommendations=history,
            stats=ProfileStats(total_swipes=len(history), likes=likes, dislikes=len(history) - likes),
        )
