"""
Error taxonomy.

Every failure the core can report derives from JukeError and carries a
machine-readable error_code (used in redirect fragments and JSON bodies)
and the HTTP status the API maps it to.
"""

from typing import Optional


class JukeError(Exception):
    """Base class for errors surfaced to route handlers."""

    error_code = "internal_error"
    status_code = 500

    def __init__(self, message: str = "", *, error_code: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if error_code:
            self.error_code = error_code


class StateMismatch(JukeError):
    """Callback state absent, forged, expired or already used."""

    error_code = "state_mismatch"
    status_code = 400


class AuthorizationDenied(JukeError):
    """The upstream redirected back with an error (e.g. user pressed cancel)."""

    error_code = "access_denied"
    status_code = 400


class TokenExchangeFailed(JukeError):
    """Token endpoint unreachable or answered without an access token."""

    error_code = "token_request_failed"
    status_code = 502


class NotAuthenticated(JukeError):
    """No usable access token in the session; the authorization flow must run again."""

    error_code = "not_authenticated"
    status_code = 401


class UpstreamUnavailable(JukeError):
    """Transport failure, non-JSON body, rate limit or 5xx from the resource API."""

    error_code = "upstream_unavailable"
    status_code = 502

    def __init__(self, message: str = "", *, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamRejected(JukeError):
    """The resource API answered 4xx (other than 401/429)."""

    error_code = "upstream_rejected"
    status_code = 502

    def __init__(self, message: str = "", *, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class UnknownUser(JukeError):
    """No persisted user record for the id in the session."""

    error_code = "unknown_user"
    status_code = 404


class PersistenceError(JukeError):
    """User or track store read/write failed."""

    error_code = "persistence_error"
    status_code = 503


class SessionPersistError(JukeError):
    """The session store could not persist the session."""

    error_code = "session_save_error"
    status_code = 500
