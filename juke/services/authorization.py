"""
Authorization Flow: OAuth authorization-code grant bound to the session.

ANONYMOUS --begin_authorization--> AWAITING_CALLBACK --handle_callback--> AUTHENTICATED

The anti-forgery state is single-use: handle_callback removes it from the
session before comparing, whatever the outcome.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from ..errors import AuthorizationDenied, NotAuthenticated, StateMismatch, TokenExchangeFailed
from ..models import SessionUser, TokenSet, UserRecord
from .session_store import SessionContext
from .token_store import TokenStore
from .upstream_client import UpstreamClient
from .user_store import UserStore

logger = logging.getLogger(__name__)

SCOPES = (
    "user-read-private",
    "user-read-email",
    "user-top-read",
    "playlist-modify-public",
    "playlist-modify-private",
)

STATE_KEY = "state"
STATE_BYTES = 24  # token_urlsafe(24) -> 32 characters


def generate_state() -> str:
    return secrets.token_urlsafe(STATE_BYTES)


@dataclass
class LoginResult:
    user: SessionUser
    created: bool


class AuthorizationFlow:
    """Drives login, callback, refresh and logout for one registered OAuth client."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        upstream: UpstreamClient,
        user_store: UserStore,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        accounts_url: str = "https://accounts.spotify.com",
    ):
        self._http = http
        self._upstream = upstream
        self._users = user_store
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._accounts_url = accounts_url.rstrip("/")

    @property
    def token_url(self) -> str:
        return f"{self._accounts_url}/api/token"

    async def begin_authorization(self, session: SessionContext, show_dialog: bool = False) -> str:
        """Store a fresh state in the session and return the upstream authorize URL."""
        state = generate_state()
        session.set(STATE_KEY, state)
        await session.save()
        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "scope": " ".join(SCOPES),
            "redirect_uri": self._redirect_uri,
            "state": state,
        }
        if show_dialog:
            params["show_dialog"] = "true"
        return f"{self._accounts_url}/authorize?{urlencode(params)}"

    async def handle_callback(
        self,
        session: SessionContext,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str] = None,
    ) -> LoginResult:
        """
        Validate state, exchange code for tokens, provision the user record.

        Raises StateMismatch, AuthorizationDenied, TokenExchangeFailed, and
        whatever the profile fetch, the user store or session save raise.
        """
        expected = session.pop(STATE_KEY, None)
        # Commit the consumed state before anything can fail, so a replay is rejected
        await session.save()
        if not state or not expected or state != expected:
            raise StateMismatch("Callback state does not match the session")
        if error:
            raise AuthorizationDenied(f"Authorization refused: {error}", error_code=error)
        if not code:
            raise TokenExchangeFailed("Callback carried no authorization code")

        token = await self._request_token(
            {"code": code, "redirect_uri": self._redirect_uri, "grant_type": "authorization_code"}
        )
        TokenStore(session).set(token)
        session.set("loggedIn", True)

        profile = await self._upstream.get_profile(session)
        snapshot = SessionUser(id=profile["id"], display_name=profile.get("display_name"))
        created = await self._provision_user(snapshot)
        session.set("user", snapshot.model_dump())
        await session.save()
        logger.info("[auth] user %s logged in (new=%s)", snapshot.id, created)
        return LoginResult(user=snapshot, created=created)

    async def _provision_user(self, snapshot: SessionUser) -> bool:
        """Insert the user record on first login; an existing record is left untouched."""
        if await self._users.find_by_id(snapshot.id) is not None:
            logger.debug("[auth] user %s already exists", snapshot.id)
            return False
        return await self._users.insert(UserRecord(id=snapshot.id, name=snapshot.display_name or ""))

    async def refresh_access_token(self, session: SessionContext) -> TokenSet:
        """Exchange the stored refresh token for a new access token."""
        tokens = TokenStore(session)
        current = tokens.get()
        if current is None or not current.refresh_token:
            raise NotAuthenticated("No refresh token in session")
        token = await self._request_token(
            {"grant_type": "refresh_token", "refresh_token": current.refresh_token}
        )
        if not token.refresh_token:
            token.refresh_token = current.refresh_token
        tokens.set(token)
        await session.save()
        logger.info("[auth] access token refreshed for %s", session.user_id)
        return token

    async def ensure_fresh_token(self, session: SessionContext) -> Optional[TokenSet]:
        """Refresh the access token when it has expired; return the usable token."""
        token = TokenStore(session).get()
        if token is None:
            raise NotAuthenticated("Access token is not set or invalid")
        if token.is_expired():
            return await self.refresh_access_token(session)
        return token

    async def logout(self, session: SessionContext) -> None:
        await session.destroy()

    async def _request_token(self, form: Dict[str, str]) -> TokenSet:
        try:
            response = await self._http.post(
                self.token_url,
                data=form,
                auth=(self._client_id, self._client_secret),
            )
        except httpx.HTTPError as e:
            logger.error("[auth] token request failed: %s", e)
            raise TokenExchangeFailed(f"Token endpoint unreachable: {e}") from e
        try:
            data = response.json()
        except ValueError as e:
            raise TokenExchangeFailed(f"Token endpoint returned non-JSON ({response.status_code})") from e
        if not isinstance(data, dict) or not data.get("access_token"):
            reason = data.get("error_description") or data.get("error") if isinstance(data, dict) else None
            logger.warning("[auth] failed to obtain access token: %s", reason or response.status_code)
            raise TokenExchangeFailed(f"No access token in response: {reason or response.status_code}")
        try:
            return TokenSet.model_validate(data)
        except ValidationError as e:
            raise TokenExchangeFailed(f"Malformed token response: {e}") from e
