"""Login, OAuth callback and logout. All three answer with redirects."""

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from ..errors import JukeError
from ..services import SessionContext
from ..state import get_state
from .deps import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


def _redirect(path: str) -> RedirectResponse:
    return RedirectResponse(path, status_code=302)


def _error_redirect(error_code: str) -> RedirectResponse:
    return _redirect("/#" + urlencode({"error": error_code}))


@router.get("/login")
async def login(show_dialog: bool = False, session: SessionContext = Depends(get_session)):
    """Start the authorization-code flow."""
    try:
        url = await get_state().auth.begin_authorization(session, show_dialog=show_dialog)
    except JukeError as e:
        logger.error("[auth] cannot start login: %s", e)
        return _error_redirect(e.error_code)
    return _redirect(url)


@router.get("/callback")
async def callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    session: SessionContext = Depends(get_session),
):
    """
    Upstream redirect target. Lands on / on success, or on /#error=<code>
    for a state mismatch, a refused authorization, a failed token exchange,
    or a persistence/session failure.
    """
    try:
        await get_state().auth.handle_callback(session, code, state, error=error)
    except JukeError as e:
        logger.warning("[auth] callback failed: %s (%s)", e.error_code, e.message)
        return _error_redirect(e.error_code)
    return _redirect("/")


@router.get("/logout")
async def logout(session: SessionContext = Depends(get_session)):
    await get_state().auth.logout(session)
    return _redirect("/")
