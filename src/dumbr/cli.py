#!/usr/bin/env python3
"""
dumbr CLI - start the mock server

Usage:
    dumbr -port 8080 -configuration routes.json
    dumbr -port 8443 -configuration routes.json -serverKey server.key -serverCrt server.crt
    python -m dumbr -version

Flags keep their single-dash spelling; the double-dash form works as well.
Every flag except -version falls back to a DUMBR_* environment variable.
"""

import argparse
import sys
from typing import List, Optional

from . import __build__, __version__
from .core.config import Config, ServerSettings

EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dumbr",
        description="Configuration driven HTTP mock server",
        allow_abbrev=False,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dumbr -port 8080 -configuration routes.json
  dumbr -port 8443 -configuration routes.json -serverKey server.key -serverCrt server.crt
        """
    )
    parser.add_argument(
        "-version", "--version",
        action="store_true",
        help="If specified will print out the version information and then exit"
    )
    parser.add_argument(
        "-templates", "--templates",
        default=Config.TEMPLATES,
        help="Specifies the path to the templates folder (env DUMBR_TEMPLATES)"
    )
    parser.add_argument(
        "-extension", "--extension",
        default=Config.TEMPLATE_EXTENSION,
        help="Only files whose path contains this string are loaded as templates (env DUMBR_TEMPLATE_EXTENSION)"
    )
    parser.add_argument(
        "-host", "--host",
        default=Config.HOST,
        help="Specifies the address to bind (env DUMBR_HOST)"
    )
    parser.add_argument(
        "-port", "--port",
        default=Config.PORT,
        help="Specifies the port to listen on (env DUMBR_PORT)"
    )
    parser.add_argument(
        "-serverKey", "--serverKey",
        dest="server_key",
        default=Config.SERVER_KEY,
        help="Specifies the server ssl key (env DUMBR_SERVER_KEY)"
    )
    parser.add_argument(
        "-serverCrt", "--serverCrt",
        dest="server_crt",
        default=Config.SERVER_CRT,
        help="Specifies the server SSL/TLS certificate (env DUMBR_SERVER_CRT)"
    )
    parser.add_argument(
        "-configuration", "--configuration",
        default=Config.CONFIGURATION,
        help="Path to json file containing configuration for service (env DUMBR_CONFIGURATION)"
    )
    parser.add_argument(
        "-logconfig", "--logconfig",
        dest="log_config",
        default=Config.LOG_CONFIG,
        help="The path to the logger configuration file (env DUMBR_LOG_CONFIG)"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ServerSettings:
    return ServerSettings(
        templates=args.templates,
        port=args.port,
        host=args.host,
        server_key=args.server_key,
        server_crt=args.server_crt,
        configuration=args.configuration,
        log_config=args.log_config or None,
        template_extension=args.extension,
    )


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the ``dumbr`` command. Returns the exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print("Version:", __version__)
        print("Build time:", __build__)
        return 0

    settings = settings_from_args(args)
    if not settings.is_complete:
        print("Missing required input parameters...")
        parser.print_help()
        return EXIT_USAGE

    from .server import start_server

    return start_server(settings)


if __name__ == "__main__":
    sys.exit(main())
