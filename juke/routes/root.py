"""Root and health endpoints."""

from fastapi import APIRouter, Depends

from ..services import SessionContext
from ..state import get_state
from .deps import get_session

router = APIRouter()


@router.get("/")
async def root(session: SessionContext = Depends(get_session)):
    return {
        "name": "Juke API",
        "version": "1.0.0",
        "logged_in": session.logged_in,
        "user": session.get("user"),
        "endpoints": {
            "auth": ["/login", "/callback", "/logout"],
            "recommendations": ["/api/recommendations", "/api/recommendations/search", "/api/recommendations/next"],
            "interactions": ["/api/like", "/api/dislike", "/api/playlist", "/api/profile"],
            "search": ["/api/search"],
        },
    }


@router.get("/api/health")
def health():
    state = get_state()
    ok, errors = state.config.validate()
    return {
        "status": "healthy" if ok else "misconfigured",
        "started": state.is_started,
        "data_source": state.config.data_source,
        "user_store": type(state.user_store).__name__,
        "track_store": type(state.track_store).__name__,
        "config_errors": errors,
    }
