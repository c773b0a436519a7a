#!/usr/bin/env python3
"""
sqlstudio CLI - Main entry point.

Usage:
    sqlstudio open <file>     # Socket protocol, opens the hosted editor
    sqlstudio serve <file>    # HTTP protocol with the embedding page
"""

from __future__ import annotations

import argparse
import logging
import socket
import sys
import webbrowser
from pathlib import Path
from typing import List, Optional

import uvicorn

from .. import __version__
from ..config import Settings, load_settings
from ..core.errors import ConfigError
from ..server import create_app
from ..websocket.session import generate_token

logger = logging.getLogger("sqlstudio")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def is_port_in_use(port: int, host: str = "127.0.0.1") -> bool:
    """Check whether something already listens on host:port."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError:
            return True
    return False


def find_available_port(start: int, attempts: int, host: str = "127.0.0.1") -> int:
    """
    First free port in [start, start + attempts).

    Falls back to the last port tried when all of them are taken, letting
    the server report the bind error.
    """
    port = start
    for _ in range(attempts):
        if not is_port_in_use(port, host):
            return port
        logger.info(f"Port {port} is already used. Trying another port")
        port += 1
    return port - 1


def studio_client_url(settings: Settings, port: int, token: str) -> str:
    return f"{settings.studio_url.rstrip('/')}/client?c={port}:{token}"


def get_ip_address() -> str:
    """Best-effort LAN address of this machine."""
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        try:
            # No packet is sent, connect only selects the outgoing interface
            sock.connect(("10.255.255.255", 1))
            return sock.getsockname()[0]
        except OSError:
            return "0.0.0.0"


def _settings_from_args(args: argparse.Namespace, **extra) -> Settings:
    return load_settings(
        args.config,
        database=str(Path(args.file)),
        host=args.host,
        port=args.port,
        verbose=True if args.verbose else None,
        **extra,
    )


def cmd_open(args: argparse.Namespace) -> int:
    """Serve the socket protocol and open the hosted editor."""
    try:
        settings = _settings_from_args(args, enable_http=False)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1
    configure_logging(settings.log_level)

    logger.info("Generating authentication token")
    token = settings.token or generate_token()
    settings = settings.model_copy(update={"token": token})

    port = find_available_port(settings.port, settings.port_attempts, settings.host)
    logger.info(f"Listening to port {port}")

    application = create_app(settings)

    url = studio_client_url(settings, port, token)
    if args.no_browser:
        print(f"Open {url}")
    else:
        logger.info("Open LibSQL Studio in the browser")
        webbrowser.open(url)

    uvicorn.run(application, host=settings.host, port=port, log_level=settings.log_level.lower())
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP protocol with the embedding page."""
    try:
        settings = _settings_from_args(
            args,
            username=args.user,
            password=args.password,
            enable_websocket=False,
        )
    except ConfigError as e:
        print(f"Error: {e}")
        return 1
    configure_logging(settings.log_level)

    application = create_app(settings)

    print("Serving!")
    print(f"- Local:    http://localhost:{settings.port}")
    print(f"- Network:  http://{get_ip_address()}:{settings.port}")

    uvicorn.run(application, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", help="SQLite database file")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on")
    parser.add_argument("--host", help="Interface to bind")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log every SQL statement")
    parser.add_argument("--config", "-c", help="YAML config file")


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="sqlstudio",
        description="sqlstudio - browse a local SQLite file in a browser SQL editor"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # open
    open_parser = subparsers.add_parser("open", help="Serve over WebSocket and open the editor")
    _add_common_arguments(open_parser)
    open_parser.add_argument("--no-browser", action="store_true", help="Print the editor URL instead of opening it")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Serve the editor page over HTTP")
    _add_common_arguments(serve_parser)
    serve_parser.add_argument("--user", "-u", help="Basic auth username")
    serve_parser.add_argument("--pass", dest="password", help="Basic auth password")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "open": cmd_open,
        "serve": cmd_serve,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
