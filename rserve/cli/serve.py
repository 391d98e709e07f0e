"""Server command."""

import argparse

from rserve.config import RserveConfig
from rserve.server import app


def subcommand_serve(args: argparse.Namespace) -> None:
    """Handler for serve subcommand."""
    config = RserveConfig.load(args.config_dir)
    app.run(config)


def add_parser(subparsers):
    parser_serve = subparsers.add_parser(
        "serve", help="Start an HTTP server that serves files for signed URLs"
    )
    parser_serve.set_defaults(func=subcommand_serve)
