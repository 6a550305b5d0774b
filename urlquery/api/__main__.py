"""
urlquery.api - Run as module

Usage: python -m urlquery.api [--host HOST] [--port PORT] [--max-limit N]

Command line flags win over URLQUERY_HOST, URLQUERY_PORT,
URLQUERY_MAX_LIMIT, URLQUERY_RELOAD and URLQUERY_LOG_LEVEL.
"""

import argparse
import os
from typing import List, Optional

import uvicorn

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8055


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m urlquery.api",
        description="Serve the urlquery compile/extract/read gateway.",
    )
    parser.add_argument("--host", default=os.environ.get("URLQUERY_HOST", DEFAULT_HOST))
    parser.add_argument("--port", type=int, default=int(os.environ.get("URLQUERY_PORT", DEFAULT_PORT)))
    parser.add_argument(
        "--max-limit",
        type=int,
        default=None,
        help="upper bound for the page size of /read (URLQUERY_MAX_LIMIT)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        default=os.environ.get("URLQUERY_RELOAD", "false").lower() == "true",
    )
    parser.add_argument("--log-level", default=os.environ.get("URLQUERY_LOG_LEVEL", "info"))
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Run the gateway under uvicorn."""
    args = parse_args(argv)
    # the app is built on import of urlquery.api, so settings travel through the environment
    if args.max_limit is not None:
        os.environ["URLQUERY_MAX_LIMIT"] = str(args.max_limit)

    print(f"urlquery gateway listening on http://{args.host}:{args.port} (dialect registry: /dialects)")

    uvicorn.run(
        "urlquery.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level,
    )


if __name__ == "__main__":
    main()
