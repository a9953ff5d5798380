#!/usr/bin/env python3
"""
Start the LuxeBot API server
"""

import os

import uvicorn

from logging_config import setup_logging


def start_server():
    """Run the FastAPI app with the project's logging setup"""
    setup_logging()
    uvicorn.run(
        "luxebot.main:app",
        host=os.getenv("LUXEBOT_HOST", "0.0.0.0"),
        port=int(os.getenv("LUXEBOT_PORT", "8000")),
        log_config=None,
    )


if __name__ == "__main__":
    start_server()
