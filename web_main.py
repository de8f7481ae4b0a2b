"""
Entry point for the chessreview web server.

Development (hot-reload):
    python web_main.py

Reads config.yaml (or the file named by CHESSREVIEW_CONFIG) for the engine
path, storage location, logging and the listen address.
"""

import os

import uvicorn

from chessreview.config import load_config

if __name__ == "__main__":
    config = load_config(os.environ.get("CHESSREVIEW_CONFIG", "config.yaml"))
    uvicorn.run(
        "chessreview.web.app:app_from_config",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=True,
    )
