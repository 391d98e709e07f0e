"""Main CLI entry point."""

import argparse
import logging
import sys

from rserve import __version__
from rserve.exceptions import RserveError

from . import generate, serve, sign

SUBPARSERS = [
    generate,
    serve,
    sign,
]


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration.

    Logs go to stderr so that stdout only carries command output.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    if verbose:
        logging.getLogger("rserve").setLevel(logging.DEBUG)
        logging.getLogger("aiohttp").setLevel(logging.DEBUG)


def subcommand_version(args: argparse.Namespace) -> None:
    """Handler for version subcommand."""
    print(f"rserve {__version__}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rserve",
        description="Serve private files through signed, expiring URLs",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"rserve {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument(
        "--config-dir",
        type=str,
        default=None,
        help="Directory containing config.yaml (default: $RSERVE_CONFIG_DIR or ./config)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    for subparser in SUBPARSERS:
        subparser.add_parser(subparsers)

    version_parser = subparsers.add_parser("version", help="Show the version number")
    version_parser.set_defaults(func=subcommand_version)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    # Dispatch
    try:
        args.func(args)
    except RserveError as err:
        print(f"Error: {err}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
