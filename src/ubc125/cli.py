"""Command-line interface for the UBC125 scanner client.

Usage:
    # Interactive console on the default device
    ubc125 console

    # Console on another device, logging to a file
    ubc125 --debug console --device /dev/ttyACM1 --log-file ubc125.log

    # Network service
    ubc125 serve --server-addr 0.0.0.0:50051 --device /dev/ttyACM0
"""

from __future__ import annotations

import argparse
import logging
import sys

from ubc125 import console, server
from ubc125.config import DEFAULT_DEVICE_PATH, DEFAULT_SERVER_ADDR, ScannerConfig, ServiceConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    debug: bool = False, *, log_file: str | None = None, level: int | None = None
) -> None:
    """Configure logging.

    Args:
        debug: Log at DEBUG instead of INFO.
        log_file: Write to this file instead of stderr.
        level: Explicit level, overriding *debug*.
    """
    if level is None:
        level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT, filename=log_file)


def cmd_console(args: argparse.Namespace) -> int:
    """Run the interactive console."""
    if args.log_file:
        setup_logging(args.debug, log_file=args.log_file)
    else:
        # curses owns the terminal; only fatal errors reach stderr
        setup_logging(level=logging.ERROR)

    try:
        config = ScannerConfig(device_path=args.device)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    return console.run(config)


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the network service."""
    setup_logging(args.debug)

    try:
        scanner_config = ScannerConfig(device_path=args.device)
        service_config = ServiceConfig.from_address(args.server_addr)
    except ValueError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1
    return server.run(scanner_config, service_config)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Uniden UBC125XLT scanner control",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # console command
    console_parser = subparsers.add_parser("console", help="Run the interactive console")
    console_parser.add_argument(
        "-c", "--console-device", "--device", dest="device", default=DEFAULT_DEVICE_PATH,
        help=f"Serial device of the scanner (default: {DEFAULT_DEVICE_PATH})"
    )
    console_parser.add_argument(
        "--log-file",
        help="Write logs to this file (default: errors only, to stderr)"
    )

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the network service")
    serve_parser.add_argument(
        "-s", "--server-addr", default=DEFAULT_SERVER_ADDR,
        help=f"Address to listen on, HOST:PORT (default: {DEFAULT_SERVER_ADDR})"
    )
    serve_parser.add_argument(
        "--device", default=DEFAULT_DEVICE_PATH,
        help=f"Serial device of the scanner (default: {DEFAULT_DEVICE_PATH})"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    if args.command == "console":
        return cmd_console(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
