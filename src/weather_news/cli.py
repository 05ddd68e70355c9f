"""Command-line interface for the weather & news portal."""

from __future__ import annotations

import argparse
import asyncio
import errno
import logging
import socket
import sys

logger = logging.getLogger(__name__)


class PortUnavailableError(RuntimeError):
    """Raised when no port in the search range can be bound."""


def find_available_port(host: str, start_port: int, attempts: int = 10) -> int:
    """Return the first bindable port at or above `start_port`.

    A port already in use is skipped in favour of the next one up; any other
    bind error is raised.
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET

    for port in range(start_port, min(start_port + attempts, 65536)):
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            # Match uvicorn, which also binds with SO_REUSEADDR
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                sock.bind((host, port))
            except OSError as e:
                if e.errno != errno.EADDRINUSE:
                    raise
                logger.info(f"Port {port} is busy, trying {port + 1}")
                continue
        return port

    raise PortUnavailableError(
        f"No free port in {start_port}-{start_port + attempts - 1} on {host}"
    )


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def serve(host: str | None, port: int | None) -> int:
    """Start the web server."""
    import uvicorn

    from weather_news.api import create_app
    from weather_news.config import get_settings

    settings = get_settings()
    configure_logging(settings.debug)

    host = host or settings.host
    requested = port or settings.port
    try:
        chosen = find_available_port(host, requested, settings.port_retry_attempts)
    except (PortUnavailableError, OSError) as e:
        logger.error(f"Cannot start server: {e}")
        return 1

    logger.info(f"Server is running on port {chosen}")
    uvicorn.run(create_app(), host=host, port=chosen, proxy_headers=True)
    return 0


def init_db() -> int:
    """Create database tables without starting the server."""
    from weather_news.config import get_settings
    from weather_news.database.connection import Database

    settings = get_settings()
    configure_logging(settings.debug)

    async def _run() -> None:
        database = Database(settings.database_url, echo=settings.database_echo)
        await database.connect()
        try:
            await database.create_tables()
        finally:
            await database.close()

    asyncio.run(_run())
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Weather & News Portal - weather and headlines behind OAuth sign-in"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="%(prog)s 0.1.0",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the web server")
    serve_parser.add_argument("--host", default=None, help="Interface to bind (default: HOST)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to try first; busy ports are skipped upward (default: PORT)",
    )

    # Init-db command
    subparsers.add_parser("init-db", help="Create database tables")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "serve":
        return serve(args.host, args.port)
    return init_db()


if __name__ == "__main__":
    sys.exit(main())
