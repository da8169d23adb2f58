"""Command-line interface for the tsterm client.

Provides the main entry point: load settings, set up logging, and run
one interactive session on the current terminal.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="tsterm",
        description="Terminal sessions to tailnet machines over WebSockets",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/tsterm.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    connect_parser = subparsers.add_parser("connect", help="Start an interactive session")
    connect_parser.add_argument(
        "--host", type=str, default=None,
        help="host[:port] serving the tsterm backend (overrides server.host)",
    )
    connect_parser.add_argument(
        "--secure", action="store_true",
        help="Use wss:// for both channels",
    )
    connect_parser.add_argument(
        "--username", type=str, default=None,
        help="Default SSH username offered in the connection prompt",
    )

    return parser.parse_args(argv)


async def _connect(settings) -> None:
    """Run one session on the console until the user detaches."""
    from tsterm.client import TerminalClient
    from tsterm.terminal.console import ConsoleTerminal
    from tsterm.terminal.writer import OutputWriter
    from tsterm.ui.console import ConsoleDialogs

    terminal = ConsoleTerminal()
    writer = OutputWriter(terminal)
    dialogs = ConsoleDialogs(
        terminal,
        writer,
        default_port=settings.session.default_port,
        default_username=settings.session.default_username,
    )

    async with terminal:
        async with TerminalClient(settings, terminal, dialogs, writer=writer) as client:
            await client.run()
    print()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the tsterm CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from tsterm.config.settings import load_settings
    from tsterm.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    # A session puts the tty in raw mode; its log lines go to the file only
    setup_logging(settings.logging, console=args.command != "connect")

    if args.command == "connect":
        if args.host:
            settings.server.host = args.host
        if args.secure:
            settings.server.secure = True
        if args.username:
            settings.session.default_username = args.username
        logger.info("Connecting to %s", settings.server.control_url)
        try:
            asyncio.run(_connect(settings))
        except KeyboardInterrupt:
            sys.exit(130)


if __name__ == "__main__":
    main()
