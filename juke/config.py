"""
Server Configuration

Loads configuration from environment variables and provides defaults.
Supports loading from .env file using python-dotenv.
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Single .env at the project root
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(root_env)

DATA_SOURCES = ("json", "firebase")


@dataclass
class ServerConfig:
    """Server configuration."""

    # OAuth client registered with the streaming service
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    redirect_uri: Optional[str] = None

    # Sessions
    session_secret: str = "change-me"
    session_max_age: int = 7 * 24 * 3600

    # Server settings
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"

    # Upstream
    accounts_url: str = "https://accounts.spotify.com"
    api_url: str = "https://api.spotify.com"
    http_timeout: float = 10.0

    # Data source: "json" | "firebase"
    data_source: str = "json"
    users_json_path: Path = Path(__file__).parent.parent / "data" / "users.json"
    songs_json_path: Path = Path(__file__).parent.parent / "data" / "songs.json"
    firebase_credentials_path: Optional[Path] = None
    firebase_project_id: Optional[str] = None

    # Recommendations
    recommendation_count: int = 2
    max_stalled_rounds: int = 3
    top_tracks_limit: int = 5

    # Playlist created on first like
    playlist_name: str = "My Juke Playlist"
    playlist_description: str = "Playlist created by Juke. to store your liked songs."

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        base_dir = Path(__file__).parent.parent
        data_source = os.getenv("DATA_SOURCE", "json").strip().lower() or "json"

        def _path_env(key: str, default: Optional[Path] = None) -> Optional[Path]:
            v = os.getenv(key)
            if not v:
                return default
            p = Path(v)
            return p if p.is_absolute() else (base_dir / p).resolve()

        return cls(
            client_id=os.getenv("CLIENT_ID"),
            client_secret=os.getenv("CLIENT_SECRET"),
            redirect_uri=os.getenv("REDIRECT_URI"),
            session_secret=os.getenv("SESSION_SECRET", "change-me"),
            session_max_age=int(os.getenv("SESSION_MAX_AGE", str(7 * 24 * 3600))),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            accounts_url=os.getenv("ACCOUNTS_URL", "https://accounts.spotify.com").rstrip("/"),
            api_url=os.getenv("API_URL", "https://api.spotify.com").rstrip("/"),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "10")),
            data_source=data_source,
            users_json_path=_path_env("USERS_JSON_PATH", base_dir / "data" / "users.json"),
            songs_json_path=_path_env("SONGS_JSON_PATH", base_dir / "data" / "songs.json"),
            firebase_credentials_path=_path_env("FIREBASE_CREDENTIALS_PATH") or _path_env("GOOGLE_APPLICATION_CREDENTIALS"),
            firebase_project_id=os.getenv("FIREBASE_PROJECT_ID") or None,
            recommendation_count=int(os.getenv("RECOMMENDATION_COUNT", "2")),
            max_stalled_rounds=int(os.getenv("MAX_STALLED_ROUNDS", "3")),
            top_tracks_limit=int(os.getenv("TOP_TRACKS_LIMIT", "5")),
            playlist_name=os.getenv("PLAYLIST_NAME", "My Juke Playlist"),
            playlist_description=os.getenv(
                "PLAYLIST_DESCRIPTION", "Playlist created by Juke. to store your liked songs."
            ),
        )

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate the configuration.

        Returns:
            (is_valid, list_of_errors)
        """
        errors = []

        if not self.client_id or not self.client_secret:
            errors.append("CLIENT_ID and CLIENT_SECRET are required for the authorization flow")
        if not self.redirect_uri:
            errors.append("REDIRECT_URI is required for the authorization flow")
        if self.data_source not in DATA_SOURCES:
            errors.append(f"Unknown DATA_SOURCE {self.data_source!r}, expected one of {DATA_SOURCES}")
        if self.data_source == "firebase" and not self.firebase_credentials_path:
            errors.append("DATA_SOURCE=firebase requires FIREBASE_CREDENTIALS_PATH")
        if self.max_stalled_rounds < 1:
            errors.append("MAX_STALLED_ROUNDS must be at least 1")

        return len(errors) == 0, errors

    def ensure_directories(self):
        """Create data directories for the JSON stores if they don't exist."""
        if self.data_source == "json":
            self.users_json_path.parent.mkdir(parents=True, exist_ok=True)
            self.songs_json_path.parent.mkdir(parents=True, exist_ok=True)


# Global config instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
        _config.ensure_directories()
    return _config


def reload_config() -> ServerConfig:
    """Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
