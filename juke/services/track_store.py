"""
Track store: the global songs collection, one snapshot per upstream track id,
recording which users liked and which disliked the track.
"""

from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from ..errors import PersistenceError
from ..models import Action, DocumentPatch, TrackSnapshot, apply_patch
from .json_file import JsonFile
from .firestore import close_client, firestore_async_client, to_firestore_update


def _vote_field(action: Action) -> str:
    return "likes" if action == "like" else "dislikes"


class TrackStore(Protocol):
    """Protocol for track snapshot persistence."""

    async def find_by_id(self, track_id: str) -> Optional[TrackSnapshot]:
        ...

    async def insert(self, track: TrackSnapshot) -> bool:
        """Insert a snapshot. Returns False if the id exists."""
        ...

    async def update_by_id(self, track_id: str, patch: DocumentPatch) -> bool:
        """Apply patch as one write. Returns False if the track does not exist."""
        ...

    async def record_vote(self, track: TrackSnapshot, user_id: str, action: Action) -> bool:
        """
        Add user_id to the likes or dislikes set of track.id, creating the
        snapshot from track when absent. A user already present in either set
        is left as is. Returns True if the user was added.
        """
        ...

    async def close(self) -> None:
        ...


class JsonTrackStore:
    """Track store backed by a JSON file (e.g. data/songs.json). Same write model as JsonUserStore."""

    def __init__(self, path: Union[Path, str]):
        self._file = JsonFile(path)
        data = self._file.read()
        self._songs: Dict[str, Dict] = dict(data.get("songs", {})) if isinstance(data, dict) else {}

    async def _save(self) -> None:
        await self._file.write({"songs": self._songs})

    async def find_by_id(self, track_id: str) -> Optional[TrackSnapshot]:
        doc = self._songs.get(track_id)
        return TrackSnapshot.from_document(track_id, doc) if doc is not None else None

    async def insert(self, track: TrackSnapshot) -> bool:
        if track.id in self._songs:
            return False
        self._songs[track.id] = track.to_document()
        await self._save()
        return True

    async def update_by_id(self, track_id: str, patch: DocumentPatch) -> bool:
        doc = self._songs.get(track_id)
        if doc is None:
            return False
        apply_patch(doc, patch)
        await self._save()
        return True

    async def record_vote(self, track: TrackSnapshot, user_id: str, action: Action) -> bool:
        doc = self._songs.get(track.id)
        if doc is None:
            seeded = track.model_copy(update={"likes": [], "dislikes": []})
            doc = seeded.to_document()
            doc[_vote_field(action)].append(user_id)
            self._songs[track.id] = doc
            await self._save()
            return True
        if user_id in (doc.get("likes") or []) or user_id in (doc.get("dislikes") or []):
            return False
        apply_patch(doc, DocumentPatch(add_to_set={_vote_field(action): user_id}))
        await self._save()
        return True

    async def close(self) -> None:
        pass


class FirestoreTrackStore:
    """Track store backed by the Firestore 'songs' collection."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[Union[Path, str]] = None,
        collection: str = "songs",
    ):
        self._db = firestore_async_client(project_id, credentials_path)
        self._coll = self._db.collection(collection)

    async def find_by_id(self, track_id: str) -> Optional[TrackSnapshot]:
        from google.api_core import exceptions as gexc

        try:
            doc = await self._coll.document(track_id).get()
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"songs/{track_id} read failed: {e}") from e
        if not doc.exists:
            return None
        return TrackSnapshot.from_document(doc.id, doc.to_dict())

    async def insert(self, track: TrackSnapshot) -> bool:
        from google.api_core import exceptions as gexc

        try:
            await self._coll.document(track.id).create(track.to_document())
        except gexc.AlreadyExists:
            return False
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"songs/{track.id} insert failed: {e}") from e
        return True

    async def update_by_id(self, track_id: str, patch: DocumentPatch) -> bool:
        from google.api_core import exceptions as gexc

        try:
            await self._coll.document(track_id).update(to_firestore_update(patch))
        except gexc.NotFound:
            return False
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"songs/{track_id} update failed: {e}") from e
        return True

    async def record_vote(self, track: TrackSnapshot, user_id: str, action: Action) -> bool:
        from google.api_core import exceptions as gexc
        from google.cloud import firestore

        ref = self._coll.document(track.id)
        field = _vote_field(action)

        @firestore.async_transactional
        async def _vote(transaction) -> bool:
            snapshot = await ref.get(transaction=transaction)
            if not snapshot.exists:
                doc = track.model_copy(update={"likes": [], "dislikes": []}).to_document()
                doc[field] = [user_id]
                transaction.create(ref, doc)
                return True
            current = snapshot.to_dict() or {}
            if user_id in (current.get("likes") or []) or user_id in (current.get("dislikes") or []):
                return False
            transaction.update(ref, to_firestore_update(DocumentPatch(add_to_set={field: user_id})))
            return True

        try:
            return await _vote(self._db.transaction())
        except (gexc.GoogleAPIError, ValueError) as e:
            raise PersistenceError(f"songs/{track.id} vote failed: {e}") from e

    async def close(self) -> None:
        await close_client(self._db)
