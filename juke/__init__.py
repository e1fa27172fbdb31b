"""
Juke API Server

Usage: uvicorn juke:app --reload --port 3000
"""

from .config import ServerConfig, get_config, reload_config
from .errors import JukeError

__all__ = [
    "app",
    "ServerConfig",
    "JukeError",
    "get_config",
    "reload_config",
]


def __getattr__(name):
    # The app is built on first access so importing juke for tests or tools
    # does not open stores.
    if name == "app":
        from .server import app

        return app
    raise AttributeError(name)
