"""Pydantic models for tokens, users, tracks and API bodies."""

from .actions import ActionRequest, ActionResult
from .patch import DocumentPatch, apply_patch
from .tokens import TokenSet
from .tracks import Track, TrackSnapshot, ensure_tracks
from .users import (
    Action,
    InteractionRecord,
    ProfileResponse,
    ProfileStats,
    SessionUser,
    SwipeCounts,
    UserRecord,
)

__all__ = [
    "Action",
    "ActionRequest",
    "ActionResult",
    "DocumentPatch",
    "InteractionRecord",
    "ProfileResponse",
    "ProfileStats",
    "SessionUser",
    "SwipeCounts",
    "TokenSet",
    "Track",
    "TrackSnapshot",
    "UserRecord",
    "apply_patch",
    "ensure_tracks",
]
