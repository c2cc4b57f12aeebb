"""
Entry point for running the chat demo server.

Usage:
    python -m chat_server

Host and port come from CHAT_SERVER_HOST / CHAT_SERVER_PORT (default 0.0.0.0:8000).
"""
import uvicorn

from chat_pipeline.config import get_config
from logging_setup import setup_logging

if __name__ == "__main__":
    config = get_config()
    setup_logging(level=config.log_level, use_json=config.log_json)

    uvicorn.run(
        "chat_server.server:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
    )
