"""Persistent user record and its interaction history."""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Action = Literal["like", "dislike"]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SwipeCounts(BaseModel):
    likes: int = 0
    dislikes: int = 0


class InteractionRecord(BaseModel):
    """One like/dislike decision; the history keeps at most one per track_id."""

    track_id: str
    name: str = ""
    artists: List[str] = []
    images: List[str] = []
    action: Action
    recorded_at: str = Field(default_factory=_utc_now)


class UserRecord(BaseModel):
    """
    User document keyed by the upstream profile id.

    recommendations is append-only and chronological; swipes caches the
    like/dislike totals of that history.
    """

    id: str
    name: str = ""
    playlist_id: Optional[str] = None
    recommendations: List[InteractionRecord] = []
    swipes: SwipeCounts = Field(default_factory=SwipeCounts)

    def has_track(self, track_id: str) -> bool:
        return any(r.track_id == track_id for r in self.recommendations)

    def to_document(self) -> dict:
        """Document body without the id (the id is the document key)."""
        return self.model_dump(exclude={"id"})

    @classmethod
    def from_document(cls, user_id: str, doc: dict) -> "UserRecord":
        return cls.model_validate({**doc, "id": user_id})


class SessionUser(BaseModel):
    """Profile snapshot kept in the session."""

    id: str
    display_name: Optional[str] = None


class ProfileStats(BaseModel):
    total_swipes: int
    likes: int
    dislikes: int


class ProfileResponse(BaseModel):
    user: SessionUser
    playlist_id: Optional[str] = None
    recommendations: List[InteractionRecord]
    stats: ProfileStats
