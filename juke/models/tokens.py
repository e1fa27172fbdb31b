"""OAuth token set held in the session."""

import time
from typing import Optional

from pydantic import BaseModel, ConfigDict

# Treat a token as expired this many seconds before the upstream would
EXPIRY_LEEWAY_SECONDS = 60


class TokenSet(BaseModel):
    """
    Token endpoint response plus the computed absolute expiry.

    expires_at is filled by stamp() when the set is first stored so that
    expiry can be checked on later requests without knowing when the
    exchange happened.
    """

    model_config = ConfigDict(extra="ignore")

    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_in: int = 3600
    scope: Optional[str] = None
    expires_at: Optional[float] = None

    def stamp(self, now: Optional[float] = None) -> "TokenSet":
        if self.expires_at is None:
            self.expires_at = (now if now is not None else time.time()) + self.expires_in
        return self

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        current = now if now is not None else time.time()
        return current >= self.expires_at - EXPIRY_LEEWAY_SECONDS
