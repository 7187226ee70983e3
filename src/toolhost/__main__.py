"""Command-line entry point: run the starter server over stdio or HTTP."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Sequence

from toolhost.config import TRANSPORTS, ServerConfig, load_config
from toolhost.server.server import MCPServer
from toolhost.starter import create_server
from toolhost.transport.http import run_http
from toolhost.transport.stdio import StdioTransport
from toolhost.utilities.server_logging import MCP_TO_PYTHON_LEVEL
from toolhost.utilities.types import LogLevel

logger = logging.getLogger("toolhost")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="toolhost", description="Run the toolhost MCP server.")
    parser.add_argument("--transport", choices=TRANSPORTS, help="Transport to serve on (default: stdio).")
    parser.add_argument("--host", help="Interface to bind for the HTTP transport.")
    parser.add_argument("--port", type=int, help="Port for the HTTP transport.")
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        help="Log level for stderr and the initial client log level.",
    )
    parser.add_argument("--config", type=Path, help="Extra JSON config file, applied after the standard ones.")
    return parser.parse_args(list(argv) if argv is not None else None)


def _configure_logging(level: str) -> None:
    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=MCP_TO_PYTHON_LEVEL[LogLevel.from_string(level)],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def serve(server: MCPServer, config: ServerConfig) -> None:
    """Serve until the transport ends or a signal arrives."""
    if config.transport == "http":
        coro = run_http(server, config)
    else:
        coro = server.serve(StdioTransport())

    task = asyncio.ensure_future(coro)
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Not available on this platform
            pass

    try:
        await task
    except asyncio.CancelledError:
        logger.info("Shutting down")
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
        await server.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        config = load_config(working_dir=Path.cwd(), config_file=args.config)
        config = config.merge(
            {
                "transport": args.transport,
                "host": args.host,
                "port": args.port,
                "log_level": args.log_level,
            }
        )
    except ValueError as e:
        print(f"toolhost: {e}", file=sys.stderr)
        return 2

    _configure_logging(config.log_level)
    logger.info(f"Starting {config.name} {config.version} on {config.transport}")

    server = create_server(config)
    asyncio.run(serve(server, config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
