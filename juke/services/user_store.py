"""
User store: user records keyed by the upstream profile id.
Persistence to JSON file or Firestore depending on DATA_SOURCE.
When using Firestore, document ID = upstream profile id.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from ..errors import PersistenceError, UnknownUser
from ..models import DocumentPatch, InteractionRecord, UserRecord, apply_patch
from .json_file import JsonFile
from .firestore import close_client, firestore_async_client, to_firestore_update

logger = logging.getLogger(__name__)


def _counter_field(action: str) -> str:
    return "swipes.likes" if action == "like" else "swipes.dislikes"


class UserStore(Protocol):
    """Protocol for user persistence. Implement for JSON file or Firestore."""

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        """Return the user record if it exists, else None."""
        ...

    async def insert(self, user: UserRecord) -> bool:
        """Insert a new record. Returns False (and changes nothing) if the id exists."""
        ...

    async def update_by_id(self, user_id: str, patch: DocumentPatch) -> bool:
        """Apply patch as one write. Returns False if the user does not exist."""
        ...

    async def has_interaction(self, user_id: str, track_id: str) -> bool:
        """True if track_id is in the user's persisted history."""
        ...

    async def append_interaction(self, user_id: str, record: InteractionRecord) -> bool:
        """
        Append record and increment the matching swipe counter in one indivisible
        update, unless the track is already in the history. Returns True if
        appended, False if it was already present. Raises UnknownUser if the
        user does not exist.
        """
        ...

    async def close(self) -> None:
        ...


class JsonUserStore:
    """
    User store backed by a JSON file (e.g. data/users.json).

    Each mutation reads and updates the in-memory documents without awaiting,
    so it is atomic with respect to other requests on the same event loop.
    The file is rewritten off the loop afterwards (see JsonFile). Meant for
    one process; use DATA_SOURCE=firebase when running several workers.
    """

    def __init__(self, path: Union[Path, str]):
        self._file = JsonFile(path)
        self._users: Dict[str, Dict] = {}
        self._load()

    def _load(self) -> None:
        data = self._file.read()
        if data is None:
            return
        users = data.get("users", data) if isinstance(data, dict) else data
        if isinstance(users, list):
            for u in users:
                uid = u.pop("id", None) or u.pop("_id", None)
                if uid:
                    self._users[uid] = u
        elif isinstance(users, dict):
            self._users = dict(users)

    async def _save(self) -> None:
        await self._file.write({"users": self._users})

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        doc = self._users.get(user_id)
        if doc is None:
            return None
        return UserRecord.from_document(user_id, doc)

    async def insert(self, user: UserRecord) -> bool:
        if user.id in self._users:
            return False
        self._users[user.id] = user.to_document()
        await self._save()
        return True

    async def update_by_id(self, user_id: str, patch: DocumentPatch) -> bool:
        doc = self._users.get(user_id)
        if doc is None:
            return False
        apply_patch(doc, patch)
        await self._save()
        return True

    async def has_interaction(self, user_id: str, track_id: str) -> bool:
        doc = self._users.get(user_id) or {}
        return any(r.get("track_id") == track_id for r in doc.get("recommendations") or [])

    async def append_interaction(self, user_id: str, record: InteractionRecord) -> bool:
        doc = self._users.get(user_id)
        if doc is None:
            raise UnknownUser(f"No user record for {user_id}")
        if any(r.get("track_id") == record.track_id for r in doc.get("recommendations") or []):
            return False
        apply_patch(
            doc,
            DocumentPatch(
                push={"recommendations": record.model_dump()},
                inc={_counter_field(record.action): 1},
            ),
        )
        await self._save()
        return True

    async def close(self) -> None:
        pass


class FirestoreUserStore:
    """User store backed by the Firestore 'users' collection (async client)."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[Union[Path, str]] = None,
        collection: str = "users",
    ):
        self._db = firestore_async_client(project_id, credentials_path)
        self._coll = self._db.collection(collection)

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        from google.api_core import exceptions as gexc

        try:
            doc = await self._coll.document(user_id).get()
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"users/{user_id} read failed: {e}") from e
        if not doc.exists:
            return None
        return UserRecord.from_document(doc.id, doc.to_dict())

    async def insert(self, user: UserRecord) -> bool:
        from google.api_core import exceptions as gexc

        try:
            # create() fails when the document exists, so concurrent first logins insert once
            await self._coll.document(user.id).create(user.to_document())
        except gexc.AlreadyExists:
            return False
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"users/{user.id} insert failed: {e}") from e
        return True

    async def update_by_id(self, user_id: str, patch: DocumentPatch) -> bool:
        from google.api_core import exceptions as gexc

        if patch.is_empty():
            return await self.find_by_id(user_id) is not None
        try:
            await self._coll.document(user_id).update(to_firestore_update(patch))
        except gexc.NotFound:
            return False
        except gexc.GoogleAPIError as e:
            raise PersistenceError(f"users/{user_id} update failed: {e}") from e
        return True

    async def has_interaction(self, user_id: str, track_id: str) -> bool:
        user = await self.find_by_id(user_id)
        return user is not None and user.has_track(track_id)

    async def append_interaction(self, user_id: str, record: InteractionRecord) -> bool:
        from google.api_core import exceptions as gexc
        from google.cloud import firestore

        ref = self._coll.document(user_id)

        @firestore.async_transactional
        async def _append(transaction) -> bool:
            snapshot = await ref.get(transaction=transaction)
            if not snapshot.exists:
                raise UnknownUser(f"No user record for {user_id}")
            history = (snapshot.to_dict() or {}).get("recommendations") or []
            if any(r.get("track_id") == record.track_id for r in history):
                return False
            transaction.update(
                ref,
                to_firestore_update(
                    DocumentPatch(
                        push={"recommendations": record.model_dump()},
                        inc={_counter_field(record.action): 1},
                    )
                ),
            )
            return True

        try:
            return await _append(self._db.transaction())
        # async_transactional raises ValueError once its commit retries run out
        except (gexc.GoogleAPIError, ValueError) as e:
            raise PersistenceError(f"users/{user_id} append failed: {e}") from e

    async def close(self) -> None:
        await close_client(self._db)
