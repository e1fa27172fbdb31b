"""Recommendation endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..services import SEED_TYPES, SessionContext
from ..state import get_state
from .deps import require_login

router = APIRouter()

MAX_RECOMMENDATION_COUNT = 50


def _tracks_payload(tracks) -> dict:
    return {"tracks": [t.model_dump() for t in tracks], "count": len(tracks)}


@router.get("")
async def recommendations(
    limit: Optional[int] = Query(None, ge=1, le=MAX_RECOMMENDATION_COUNT),
    session: SessionContext = Depends(require_login),
):
    """Recommendations seeded from the user's recent top tracks."""
    state = get_state()
    seeds = await state.engine.seeds_from_top_tracks(session)
    tracks = await state.engine.get_recommendations(
        session,
        session.user_id,
        seeds,
        limit or state.config.recommendation_count,
    )
    return _tracks_payload(tracks)


@router.get("/search")
async def search_recommendations(
    seed: Optional[str] = None,
    seed_type: Optional[str] = None,
    limit: Optional[int] = Query(None, ge=1, le=MAX_RECOMMENDATION_COUNT),
    session: SessionContext = Depends(require_login),
):
    """Recommendations seeded from one search result (track, artist or genre)."""
    if not seed or not seed_type:
        raise HTTPException(status_code=400, detail="No query provided")
    if seed_type not in SEED_TYPES:
        raise HTTPException(status_code=400, detail=f"seed_type must be one of {', '.join(SEED_TYPES)}")
    state = get_state()
    tracks = await state.engine.get_recommendations(
        session,
        session.user_id,
        [seed],
        limit or state.config.recommendation_count,
        seed_type=seed_type,
    )
    return _tracks_payload(tracks)


@router.get("/next")
async def next_recommendation(session: SessionContext = Depends(require_login)):
    """A single new track to show after a swipe; null when none could be found."""
    state = get_state()
    seeds = await state.engine.seeds_from_top_tracks(session)
    tracks = await state.engine.get_recommendations(session, session.user_id, seeds, 1)
    return {"recommendation": tracks[0].model_dump() if tracks else None}
