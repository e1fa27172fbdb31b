"""Application state: config, stores, the shared HTTP client and the core services."""

import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from .config import get_config, ServerConfig
from .services import (
    AuthorizationFlow,
    FirestoreTrackStore,
    FirestoreUserStore,
    InMemorySessionStore,
    InteractionRecorder,
    JsonTrackStore,
    JsonUserStore,
    RecommendationEngine,
    SessionStore,
    TrackStore,
    UpstreamClient,
    UserStore,
)

logger = logging.getLogger(__name__)


class AppState:
    """
    Process-wide collaborators.

    Stores are opened in the constructor; the HTTP client and the services
    that use it are built by startup() and released by shutdown().
    """

    def __init__(
        self,
        config: ServerConfig,
        user_store: Optional[UserStore] = None,
        track_store: Optional[TrackStore] = None,
        session_store: Optional[SessionStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.session_store = session_store or InMemorySessionStore(config.session_max_age)
        self.user_store = user_store or self._create_user_store(config)
        self.track_store = track_store or self._create_track_store(config)
        logger.info(
            "[startup] User store: %s, track store: %s",
            type(self.user_store).__name__, type(self.track_store).__name__,
        )
        self._transport = transport

        # Built in startup()
        self.http: Optional[httpx.AsyncClient] = None
        self.upstream: Optional[UpstreamClient] = None
        self.auth: Optional[AuthorizationFlow] = None
        self.engine: Optional[RecommendationEngine] = None
        self.recorder: Optional[InteractionRecorder] = None

    def _create_user_store(self, config: ServerConfig) -> Any:
        """Create user store from config (JSON or Firestore)."""
        if config.data_source == "firebase":
            _check_credentials(config.firebase_credentials_path)
            return FirestoreUserStore(
                project_id=config.firebase_project_id,
                credentials_path=config.firebase_credentials_path,
            )
        return JsonUserStore(config.users_json_path)

    def _create_track_store(self, config: ServerConfig) -> Any:
        """Create track store from config (JSON or Firestore)."""
        if config.data_source == "firebase":
            _check_credentials(config.firebase_credentials_path)
            return FirestoreTrackStore(
                project_id=config.firebase_project_id,
                credentials_path=config.firebase_credentials_path,
            )
        return JsonTrackStore(config.songs_json_path)

    @property
    def is_started(self) -> bool:
        return self.http is not None

    async def startup(self) -> None:
        if self.is_started:
            return
        config = self.config
        self.http = httpx.AsyncClient(timeout=config.http_timeout, transport=self._transport)
        self.upstream = UpstreamClient(self.http, config.api_url)
        self.auth = AuthorizationFlow(
            self.http,
            self.upstream,
            self.user_store,
            client_id=config.client_id or "",
            client_secret=config.client_secret or "",
            redirect_uri=config.redirect_uri or "",
            accounts_url=config.accounts_url,
        )
        self.engine = RecommendationEngine(
            self.upstream,
            self.user_store,
            max_stalled_rounds=config.max_stalled_rounds,
            top_tracks_limit=config.top_tracks_limit,
        )
        self.recorder = InteractionRecorder(
            self.user_store,
            self.track_store,
            self.upstream,
            playlist_name=config.playlist_name,
            playlist_description=config.playlist_description,
        )

    async def shutdown(self) -> None:
        if self.http is not None:
            await self.http.aclose()
            self.http = None
        await self.user_store.close()
        await self.track_store.close()


def _check_credentials(path: Optional[Path]) -> None:
    if not path or not Path(path).is_file():
        raise ValueError(
            f"DATA_SOURCE=firebase needs FIREBASE_CREDENTIALS_PATH to point to a service account file (got {path})"
        )


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        config = get_config()
        _state = AppState(config)
    return _state


def set_state(state: Optional[AppState]) -> None:
    """Replace the global state (tests and embedding applications)."""
    global _state
    _state = state
