"""
Juke API: FastAPI app factory.

Use: uvicorn juke.app:app
Or:  from juke import app
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .errors import JukeError
from .state import AppState, get_state, set_state
from .routes import register_routes

logger = logging.getLogger(__name__)

SESSION_COOKIE = "juke_session"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(state: Optional[AppState] = None) -> FastAPI:
    """Build FastAPI app with sessions, routes, error mapping, startup and shutdown."""
    if state is not None:
        set_state(state)
    state = get_state()
    configure_logging(state.config.log_level)

    app = FastAPI(
        title="Juke API",
        description="Session-authenticated recommendation proxy over the Spotify Web API",
        version="1.0.0",
    )
    app.add_middleware(
        SessionMiddleware,
        secret_key=state.config.session_secret,
        session_cookie=SESSION_COOKIE,
        max_age=state.config.session_max_age,
        same_site="lax",
    )
    register_routes(app)

    @app.exception_handler(JukeError)
    async def _juke_error(request: Request, exc: JukeError):
        if exc.status_code >= 500:
            logger.error("[api] %s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "error": exc.error_code, "message": exc.message},
        )

    @app.on_event("startup")
    async def _startup():
        current = get_state()
        ok, errors = current.config.validate()
        for err in errors:
            logger.warning("[startup] config: %s", err)
        await current.startup()
        logger.info(
            "[startup] Juke API ready (data source: %s, upstream: %s)",
            current.config.data_source, current.config.api_url,
        )

    @app.on_event("shutdown")
    async def _shutdown():
        await get_state().shutdown()
        logger.info("[shutdown] clients closed")

    return app
