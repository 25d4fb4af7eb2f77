#!/usr/bin/env python3
"""
TaskTracker -- personal task lists behind cookie-based sessions.

Usage:
  python main.py
  python main.py --port 8000
  python main.py --host 0.0.0.0 --reload

Environment variables (or .env):
  SECRET_KEY      Session signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL    SQLAlchemy connection string. Defaults to ./tasktracker.db (SQLite).
  PORT / HOST     Listening address. Command-line flags take precedence.
  ALLOWED_ORIGIN  Browser origin allowed to call the API with credentials.
  DEBUG           true for local development (auto-generated key, non-Secure cookie).
"""

import argparse

import uvicorn

from core.config import get_settings


def _parse_args(argv=None) -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Run the TaskTracker API server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default=settings.host, help=f"Bind address (default: {settings.host})")
    parser.add_argument("--port", type=int, default=settings.port, help=f"Listening port (default: {settings.port})")
    parser.add_argument("--reload", action="store_true", help="Restart the server when source files change")
    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = _parse_args(argv)
    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
