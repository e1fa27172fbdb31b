"""
Shared Firestore plumbing for the user and track stores.

Both stores reuse the same Firebase app (same credentials_path and project_id)
and talk to Firestore through the async client.
"""

import inspect
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..models import DocumentPatch


def firestore_async_client(
    project_id: Optional[str] = None,
    credentials_path: Optional[Union[Path, str]] = None,
):
    """Initialize the default Firebase app once and return an async Firestore client."""
    import firebase_admin
    from firebase_admin import credentials, firestore_async

    if not firebase_admin._apps:
        if credentials_path:
            cred = credentials.Certificate(str(Path(credentials_path).resolve()))
            opts = {"projectId": project_id} if project_id else None
            firebase_admin.initialize_app(cred, opts)
        else:
            firebase_admin.initialize_app(options={"projectId": project_id} if project_id else None)
    return firestore_async.client()


def to_firestore_update(patch: DocumentPatch) -> Dict[str, Any]:
    """
    Translate a DocumentPatch into a Firestore update() mapping.

    Dotted keys are Firestore field paths. push and add_to_set both map to
    ArrayUnion; pushed history entries carry a timestamp so they never
    collapse into an existing element.
    """
    from google.cloud import firestore

    updates: Dict[str, Any] = dict(patch.set)
    for key, item in patch.push.items():
        updates[key] = firestore.ArrayUnion([item])
    for key, item in patch.add_to_set.items():
        updates[key] = firestore.ArrayUnion([item])
    for key, delta in patch.inc.items():
        updates[key] = firestore.Increment(delta)
    for key in patch.unset:
        updates[key] = firestore.DELETE_FIELD
    return updates


async def close_client(db: Any) -> None:
    """Close a Firestore client; close() is a coroutine on some library versions."""
    result = db.close()
    if inspect.isawaitable(result):
        await result
