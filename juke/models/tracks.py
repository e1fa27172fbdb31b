"""Upstream track payloads and the global per-track vote snapshot."""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class Track(BaseModel):
    """
    Track object as returned by the resource API.

    Only the fields the filters and the recorder read are declared; the rest
    of the upstream payload is kept (extra="allow") and returned to clients.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    name: str = ""
    preview_url: Optional[str] = None
    artists: List[Dict] = []
    album: Dict = {}

    def has_preview(self) -> bool:
        return bool(self.preview_url)

    def artist_names(self) -> List[str]:
        return [a.get("name", "") for a in self.artists if a.get("name")]

    def image_urls(self) -> List[str]:
        return [img.get("url", "") for img in self.album.get("images") or [] if img.get("url")]


def ensure_tracks(items: List) -> List[Track]:
    """Convert upstream dicts to Track models, skipping entries without an id."""
    out = []
    for t in items or []:
        if isinstance(t, Track):
            out.append(t)
        elif isinstance(t, dict) and t.get("id"):
            out.append(Track.model_validate(t))
    return out


class TrackSnapshot(BaseModel):
    """Document in the songs collection: who liked and who disliked a track."""

    id: str
    name: str = ""
    artists: List[str] = []
    images: List[str] = []
    likes: List[str] = []
    dislikes: List[str] = []

    def to_document(self) -> dict:
        return self.model_dump(exclude={"id"})

    @classmethod
    def from_document(cls, track_id: str, doc: dict) -> "TrackSnapshot":
        return cls.model_validate({**doc, "id": track_id})
