"""Catalog search passthrough."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..services import SessionContext
from ..state import get_state
from .deps import require_login

router = APIRouter()


@router.get("/search")
async def search(
    q: Optional[str] = None,
    limit: int = Query(10, ge=1, le=50),
    session: SessionContext = Depends(require_login),
):
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="No query provided")
    results = await get_state().upstream.search(session, q.strip(), limit=limit)
    return {"query": q.strip(), "results": results}
