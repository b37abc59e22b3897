#!/usr/bin/env python3
"""
Serve the brandrag HTTP API with uvicorn.

Equivalent to ``uvicorn brandrag.api.main:app --host 127.0.0.1 --port 8000``.
"""

import sys
import argparse
from pathlib import Path

import uvicorn

# Add the parent directory to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from brandrag.core.config import DEBUG

APP_PATH = "brandrag.api.main:app"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Serve the brandrag API")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000,
                        help="Port to serve on (default: 8000)")
    parser.add_argument("--reload", action="store_true",
                        help="Restart on code changes (development only)")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if not 0 < args.port < 65536:
        print(f"Error: invalid port {args.port}")
        return 1

    print(f"brandrag API on http://{args.host}:{args.port}")
    if DEBUG:
        print(f"Docs at http://{args.host}:{args.port}/docs")

    uvicorn.run(
        APP_PATH,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if DEBUG else "info",
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
