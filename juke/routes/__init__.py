"""Register all route modules on the FastAPI app."""

from fastapi import FastAPI

from .root import router as root_router
from .auth import router as auth_router
from .recommendations import router as recommendations_router
from .interactions import router as interactions_router
from .search import router as search_router


def register_routes(app: FastAPI) -> None:
    """Attach all API routers to the app."""
    app.include_router(root_router)
    app.include_router(auth_router, tags=["auth"])
    app.include_router(recommendations_router, prefix="/api/recommendations", tags=["recommendations"])
    app.include_router(interactions_router, prefix="/api", tags=["interactions"])
    app.include_router(search_router, prefix="/api", tags=["search"])
