"""Like/dislike, playlist and profile endpoints."""

from fastapi import APIRouter, Depends

from ..models import ActionRequest, ProfileResponse, TrackSnapshot
from ..services import SessionContext
from ..state import get_state
from .deps import require_login

router = APIRouter()


async def _record(request: ActionRequest, action: str, session: SessionContext) -> dict:
    track = TrackSnapshot(
        id=request.track_id,
        name=request.track_name,
        artists=request.track_artists,
        images=request.track_images,
    )
    result = await get_state().recorder.record_action(session, session.user_id, track, action)
    return {"status": result.status, **result.model_dump()}


@router.post("/like")
async def like(request: ActionRequest, session: SessionContext = Depends(require_login)):
    return await _record(request, "like", session)


@router.post("/dislike")
async def dislike(request: ActionRequest, session: SessionContext = Depends(require_login)):
    return await _record(request, "dislike", session)


@router.post("/playlist")
async def create_playlist(session: SessionContext = Depends(require_login)):
    """Create the user's playlist if it does not exist yet."""
    playlist_id = await get_state().recorder.ensure_playlist(session, session.user_id)
    return {"status": "ok", "playlist_id": playlist_id}


@router.delete("/playlist")
async def delete_playlist(session: SessionContext = Depends(require_login)):
    """Forget the stored playlist id (the upstream playlist itself is kept)."""
    await get_state().recorder.forget_playlist(session.user_id)
    return {"status": "ok", "message": "Playlist id removed"}


@router.get("/profile", response_model=ProfileResponse)
async def profile(session: SessionContext = Depends(require_login)):
    """User record with history newest first and like/dislike totals."""
    return await get_state().recorder.get_profile(session.user_id)
