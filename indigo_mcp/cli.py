"""Command-line interface for the Indigo MCP server."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .config import load_config
from .logging_setup import configure_logging
from .server import build_server
from .services import ReadService, Runtime


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="indigo-mcp",
        description="Indigo protocol tool server for agents",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("serve", help="Run the MCP server (stdio or streamable HTTP per config)")
    sub.add_parser("assets", help="Print the iAsset list from the indexer")

    health_parser = sub.add_parser("health", help="Print CDP health analysis for an owner")
    health_parser.add_argument(
        "owner",
        help="Owner payment key hash (56-char hex) or bech32 address",
    )

    return parser


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    runtime = Runtime(config)

    if args.command == "serve":
        server = build_server(runtime)
        if config.server.transport == "streamable-http":
            await server.run_streamable_http_async()
        else:
            await server.run_stdio_async()
    elif args.command == "assets":
        print(json.dumps(await ReadService(runtime).get_assets(), indent=2))
    elif args.command == "health":
        report = await ReadService(runtime).analyze_cdp_health(args.owner)
        print(json.dumps(report, indent=2))
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))


if __name__ == "__main__":
    main()
