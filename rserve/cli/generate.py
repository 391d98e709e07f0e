"""Keypair generation command."""

import argparse

from rserve.utils.keys import generate_keypair


def subcommand_generate(args: argparse.Namespace) -> None:
    """Handler for generate subcommand."""
    keypair = generate_keypair()
    print(f"RSERVE_PUBLIC_KEY={keypair.public_key}")
    print(f"RSERVE_PRIVATE_KEY={keypair.private_key}")


def add_parser(subparsers):
    parser_generate = subparsers.add_parser(
        "generate",
        help="Generate a public/private key pair",
        description=(
            "Generate an Ed25519 key pair. The public key configures the "
            "server and the private key configures the signer."
        ),
    )
    parser_generate.set_defaults(func=subcommand_generate)
