"""
Server-side sessions.

The browser carries a signed cookie (Starlette SessionMiddleware) that holds
only an opaque session id; the session data lives in a SessionStore. Route
handlers receive a SessionContext and pass it explicitly to every core
operation.
"""

import json
import logging
import secrets
import time
from typing import Any, Callable, Dict, MutableMapping, Optional, Protocol, Tuple

from ..errors import SessionPersistError

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "sid"


class SessionStore(Protocol):
    """Protocol for session persistence. Implement for memory, Redis, etc."""

    async def load(self, sid: str) -> Optional[Dict[str, Any]]:
        """Return the stored data for sid, or None if unknown or expired."""
        ...

    async def save(self, sid: str, data: Dict[str, Any]) -> None:
        """Persist data for sid. Raise SessionPersistError on failure."""
        ...

    async def delete(self, sid: str) -> None:
        """Remove sid. Unknown ids are ignored."""
        ...


class InMemorySessionStore:
    """
    Session store in process memory with idle expiry (one process, sticky sessions).

    Expired sessions are swept on save(), at most once per purge_interval
    seconds, so ids that never come back do not accumulate.
    """

    def __init__(
        self,
        ttl_seconds: int = 7 * 24 * 3600,
        purge_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self._ttl = ttl_seconds
        self._purge_interval = purge_interval
        self._clock = clock
        self._last_purge = clock()
        self._sessions: Dict[str, Tuple[Dict[str, Any], float]] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def load(self, sid: str) -> Optional[Dict[str, Any]]:
        entry = self._sessions.get(sid)
        if entry is None:
            return None
        data, last_seen = entry
        now = self._clock()
        if now - last_seen > self._ttl:
            self._sessions.pop(sid, None)
            return None
        self._sessions[sid] = (data, now)
        return json.loads(json.dumps(data))

    async def save(self, sid: str, data: Dict[str, Any]) -> None:
        try:
            # Round-trip so only JSON data is stored, like an external backend would
            copy = json.loads(json.dumps(data))
        except (TypeError, ValueError) as e:
            raise SessionPersistError(f"Session data is not serializable: {e}") from e
        now = self._clock()
        if now - self._last_purge >= self._purge_interval:
            removed = self.purge_expired()
            if removed:
                logger.debug("[sessions] purged %d expired sessions", removed)
        self._sessions[sid] = (copy, now)

    async def delete(self, sid: str) -> None:
        self._sessions.pop(sid, None)

    def purge_expired(self) -> int:
        """Drop expired sessions. Returns the number removed."""
        now = self._clock()
        self._last_purge = now
        expired = [sid for sid, (_, seen) in self._sessions.items() if now - seen > self._ttl]
        for sid in expired:
            del self._sessions[sid]
        return len(expired)


class SessionContext:
    """
    One browser's session for the duration of a request.

    Reads and writes go to a working copy; save() commits it to the store.
    Keys used by the core: state, token, loggedIn, user.
    """

    def __init__(
        self,
        store: SessionStore,
        sid: str,
        data: Optional[Dict[str, Any]] = None,
        cookie: Optional[MutableMapping[str, Any]] = None,
    ):
        self._store = store
        self.sid = sid
        self._data: Dict[str, Any] = dict(data or {})
        self._cookie = cookie
        self.destroyed = False

    @classmethod
    async def from_request(cls, request, store: SessionStore) -> "SessionContext":
        """Resolve the session for a Starlette request, minting a new id when needed."""
        cookie = request.session
        sid = cookie.get(SESSION_ID_KEY)
        data = await store.load(sid) if sid else None
        if not sid:
            sid = secrets.token_urlsafe(32)
            cookie[SESSION_ID_KEY] = sid
        return cls(store, sid, data, cookie)

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def pop(self, key: str, default: Any = None) -> Any:
        return self._data.pop(key, default)

    @property
    def logged_in(self) -> bool:
        return bool(self._data.get("loggedIn"))

    @property
    def user_id(self) -> Optional[str]:
        user = self._data.get("user") or {}
        return user.get("id")

    async def save(self) -> None:
        if self.destroyed:
            return
        await self._store.save(self.sid, self._data)

    async def destroy(self) -> None:
        """Drop the session server-side and clear the cookie. Safe to call twice."""
        self._data = {}
        await self._store.delete(self.sid)
        if self._cookie is not None:
            self._cookie.clear()
        self.destroyed = True
