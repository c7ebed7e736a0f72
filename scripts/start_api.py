#!/usr/bin/env python3
"""Startup script for cscompare API server."""

import argparse
import os
import sys

import uvicorn

from cscompare.config import CompareConfig
from cscompare.errors import GitVersionUnsupportedError
from cscompare.vcs import GitRepository


def main():
    """Check git, then serve the API."""
    parser = argparse.ArgumentParser(description="Start cscompare API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level for the server and the comparison code (default: info)",
    )
    args = parser.parse_args()

    # Every request would fail without a git that can synthesize trees
    try:
        git_version = GitRepository(CompareConfig()).validate_git_version()
    except GitVersionUnsupportedError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return 1

    os.environ["LOG_LEVEL"] = args.log_level.upper()
    print(f"Starting cscompare API on http://{args.host}:{args.port} (git {git_version})")

    uvicorn.run(
        "cscompare.api.app:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
