"""
Command line entry point.

Usage:
  replay-serve <directory> [--port PORT] [--host HOST] [--open] [--log-level LEVEL]
"""

import os
import sys
import asyncio
import logging
import argparse
from typing import List, Optional

from replay_serve import __version__
from replay_serve.config import (
    DEFAULT_HOST, DEFAULT_LOG_LEVEL, DEFAULT_PORT, HOST_ENV, LOG_FORMAT, LOG_LEVEL_ENV, PORT_ENV,
    ServeOptions, env_setting, parse_port,
)
from replay_serve.server import PortInUseError, PreviewServer, install_signal_handlers

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def port_type(value: str) -> int:
    try:
        return parse_port(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser.

    Environment overrides are passed to argparse as string defaults, so
    argparse runs them through the same type conversion as the flags.
    """
    parser = argparse.ArgumentParser(
        prog='replay-serve',
        description='Preview generated transcripts over HTTP on localhost',
    )
    parser.add_argument('directory', help='Directory containing the generated output')
    parser.add_argument('-p', '--port', type=port_type, default=env_setting(PORT_ENV, DEFAULT_PORT),
                        help=f'Port to listen on (default: {DEFAULT_PORT}, env {PORT_ENV})')
    parser.add_argument('--host', default=env_setting(HOST_ENV, DEFAULT_HOST),
                        help=f'Interface to bind (default: {DEFAULT_HOST}, env {HOST_ENV})')
    parser.add_argument('--open', dest='open_browser', action=argparse.BooleanOptionalAction, default=False,
                        help='Open the default browser once the server is up')
    parser.add_argument('--log-level', default=env_setting(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL),
                        type=str.upper, choices=LOG_LEVELS,
                        help=f'Logging level (default: {DEFAULT_LOG_LEVEL}, env {LOG_LEVEL_ENV})')
    parser.add_argument('-v', '--version', action='version', version=f'%(prog)s {__version__}')
    return parser


async def run(options: ServeOptions) -> None:
    """Serve options.directory until SIGINT/SIGTERM."""
    server = PreviewServer(options.directory, options.port, options.host, options.open_browser)
    shutdown = asyncio.Event()
    remove_handlers = install_signal_handlers(asyncio.get_running_loop(), shutdown)
    try:
        await server.serve(shutdown)
    finally:
        remove_handlers()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    # argparse does not check choices on defaults
    if args.log_level not in LOG_LEVELS:
        parser.error(f"invalid log level from {LOG_LEVEL_ENV}: {args.log_level!r} "
                     f"(choose from {', '.join(LOG_LEVELS)})")
    logging.basicConfig(level=args.log_level, format=LOG_FORMAT)

    options = ServeOptions(args.directory, args.port, args.host, args.open_browser)
    if not os.path.isdir(options.directory):
        print(f"Error: {options.directory} is not a directory", file=sys.stderr)
        return 1

    try:
        asyncio.run(run(options))
    except PortInUseError as e:
        print(f"Error: Port {e.port} is already in use", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print('\nShutting down.')
    return 0
