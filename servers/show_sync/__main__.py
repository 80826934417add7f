"""
Command line entry point.

    python -m servers.show_sync sync [site ...]   run once (cron entry point)
    python -m servers.show_sync serve             run the HTTP API

`sync` exits non-zero if any site run failed.
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from .config.sites import SITES
from .logging_config import configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m servers.show_sync",
        description="Sync live-music listings into the record store",
    )
    parser.add_argument("--log-level", default="INFO", help="Minimum log level")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Run a sync now")
    sync.add_argument(
        "sites",
        nargs="*",
        metavar="site",
        help=f"Sites to sync (default: all of {', '.join(sorted(SITES))})",
    )

    serve = commands.add_parser("serve", help="Run the HTTP trigger API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    return parser


async def run_sync(sites: list[str]) -> int:
    """Run the requested sites and print each response; returns the exit code."""
    from .service import SyncService, scheduled_sync

    service = SyncService()
    if sites:
        responses = [await service.trigger(key) for key in sites]
    else:
        responses = [await scheduled_sync(service)]

    for status, body in responses:
        print(json.dumps(body, indent=2))

    return 0 if all(status == 200 for status, _ in responses) else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, json_output=args.json_logs)

    if args.command == "serve":
        import uvicorn

        from .server import create_app

        uvicorn.run(create_app(), host=args.host, port=args.port)
        return 0

    unknown = [key for key in args.sites if key not in SITES]
    if unknown:
        parser.error(f"unknown site(s): {', '.join(unknown)}")

    return asyncio.run(run_sync(args.sites))


if __name__ == "__main__":
    sys.exit(main())
