#!/usr/bin/env python3
"""
Juke API server entrypoint: uvicorn juke.server:app or python -m juke.server.
"""

import uvicorn

from .app import create_app
from .config import get_config

app = create_app()

if __name__ == "__main__":
    config = get_config()
    uvicorn.run(app, host=config.host, port=config.port)
