"""Like/dislike request bodies and results."""

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .users import Action


def _split_list(value: Union[str, List[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [v for v in value if v]


class ActionRequest(BaseModel):
    """Body of POST /api/like and /api/dislike (form field names kept from the web client)."""

    track_id: str = Field(min_length=1)
    track_name: str = ""
    track_artists: List[str] = []
    track_images: List[str] = []

    @field_validator("track_artists", "track_images", mode="before")
    @classmethod
    def accept_comma_separated(cls, v):
        return _split_list(v)


class ActionResult(BaseModel):
    """
    Outcome of one like/dislike.

    recorded is False for a replayed action (duplicate=True). playlist_error
    and snapshot_error report failed follow-up steps; the history entry is
    kept in that case.
    """

    track_id: str
    action: Action
    recorded: bool
    duplicate: bool = False
    playlist_id: Optional[str] = None
    playlist_error: Optional[str] = None
    snapshot_error: Optional[str] = None

    @property
    def status(self) -> str:
        if self.playlist_error or self.snapshot_error:
            return "partial"
        return "success"
