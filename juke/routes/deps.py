"""Request dependencies: the session context and the logged-in guard."""

from fastapi import Depends, Request

from ..errors import NotAuthenticated
from ..services import SessionContext
from ..state import get_state


async def get_session(request: Request) -> SessionContext:
    return await SessionContext.from_request(request, get_state().session_store)


async def require_login(session: SessionContext = Depends(get_session)) -> SessionContext:
    """Session of a logged-in user with a non-expired access token."""
    if not session.logged_in or not session.user_id:
        raise NotAuthenticated("Log in first (GET /login)")
    await get_state().auth.ensure_fresh_token(session)
    return session
