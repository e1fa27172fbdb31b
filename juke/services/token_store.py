"""Token Store: the OAuth token set of the current session."""

from typing import Optional

from ..models import TokenSet
from .session_store import SessionContext

TOKEN_KEY = "token"


class TokenStore:
    """get/set/clear of the session's token set. Callers save() the session."""

    def __init__(self, session: SessionContext):
        self._session = session

    def get(self) -> Optional[TokenSet]:
        raw = self._session.get(TOKEN_KEY)
        if not raw or not raw.get("access_token"):
            return None
        return TokenSet.model_validate(raw)

    def set(self, token: TokenSet) -> None:
        self._session.set(TOKEN_KEY, token.stamp().model_dump())

    def clear(self) -> None:
        self._session.pop(TOKEN_KEY, None)
