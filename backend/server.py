#!/usr/bin/env python3
"""
Backend Server Entry Point

uvicorn launcher for the PR comment dashboard API. The API process also runs
the refresh scheduler unless SCHEDULER_ENABLED=false.

Usage:
    python backend/server.py
    python backend/server.py --host 0.0.0.0 --port 3611
    python backend/server.py --reload

    # Or through the CLI
    python main.py serve --port 3611
"""

import argparse
import logging

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3611


def run_server(host: str, port: int, reload: bool = False, log_level: str = "info") -> None:
    """Start uvicorn on backend.app:app."""
    import uvicorn

    if reload:
        # Each reload re-imports backend.app and starts a fresh scheduler thread
        logger.warning("Auto-reload enabled; use for development only")
    uvicorn.run(
        "backend.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


def main():
    """Launch the FastAPI backend server with the configured log level."""
    parser = argparse.ArgumentParser(description="PR Comment Radar API Server")
    parser.add_argument("--host", default=DEFAULT_HOST, help=f"Bind address (default: {DEFAULT_HOST})")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help=f"Port (default: {DEFAULT_PORT})")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    args = parser.parse_args()

    from utils.config_loader import load_config
    from utils.logger import setup_logger

    config = load_config()
    setup_logger(config.log_level)
    logger.info(f"API will be available at: http://{args.host}:{args.port}")
    logger.info(f"API docs available at: http://{args.host}:{args.port}/docs")

    run_server(args.host, args.port, reload=args.reload, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
