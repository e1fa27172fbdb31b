"""Core services: session, upstream, authorization, stores, engine, recorder."""

from .authorization import SCOPES, AuthorizationFlow, LoginResult, generate_state
from .interactions import InteractionRecorder
from .recommendations import RecommendationEngine, has_playable_preview
from .session_store import InMemorySessionStore, SessionContext, SessionStore
from .token_store import TokenStore
from .track_store import FirestoreTrackStore, JsonTrackStore, TrackStore
from .upstream_client import SEED_TYPES, UpstreamClient
from .user_store import FirestoreUserStore, JsonUserStore, UserStore

__all__ = [
    "SCOPES",
    "SEED_TYPES",
    "AuthorizationFlow",
    "FirestoreTrackStore",
    "FirestoreUserStore",
    "InMemorySessionStore",
    "InteractionRecorder",
    "JsonTrackStore",
    "JsonUserStore",
    "LoginResult",
    "RecommendationEngine",
    "SessionContext",
    "SessionStore",
    "TokenStore",
    "TrackStore",
    "UpstreamClient",
    "UserStore",
    "generate_state",
    "has_playable_preview",
]
