"""Signing command."""

import argparse
import asyncio
import logging
import sys

import aiohttp

from rserve.client import LinkChecker
from rserve.config import RserveConfig
from rserve.exceptions import UsageError
from rserve.utils.keys import load_private_key
from rserve.utils.url_signer import SignedUrl, UrlSigner

_LOGGER = logging.getLogger(__name__)

REMOTE_SEPARATOR = ":"


def parse_target(target: str, bind_remote: bool) -> tuple[str | None, str]:
    """Split a target into its remote (if bound) and path.

    When the remote is bound into the signature every target must use the
    ``remote:path`` form.
    """
    if not bind_remote:
        return None, target
    remote, sep, path = target.partition(REMOTE_SEPARATOR)
    if not sep or not remote or not path:
        raise UsageError(f"Expected a target of the form remote:path, got '{target}'")
    if "|" in remote:
        raise UsageError(f"Remote name cannot contain '|': '{remote}'")
    return remote, path


def sign_targets(
    config: RserveConfig, targets: list[str], now: float | None = None
) -> list[SignedUrl]:
    """Sign every target with the configured private key.

    All targets are parsed before anything is signed, so a single malformed
    target aborts the whole command.
    """
    config.require_issuer()
    parsed = [parse_target(target, config.bind_remote) for target in targets]
    signer = UrlSigner(load_private_key(config.private_key), config.base_url)
    return [signer.sign(path, remote=remote, now=now) for remote, path in parsed]


async def check_links(signed_urls: list[SignedUrl]) -> None:
    """Confirm that the server accepts each signed URL."""
    async with aiohttp.ClientSession() as session:
        checker = LinkChecker(session)
        for signed_url in signed_urls:
            _LOGGER.debug("Checking %s", signed_url.path)
            await checker.check(signed_url.url)


def subcommand_sign(args: argparse.Namespace) -> None:
    """Handler for sign subcommand."""
    config = RserveConfig.load(args.config_dir)
    signed_urls = sign_targets(config, args.targets)

    if not args.skip_check:
        try:
            asyncio.run(check_links(signed_urls))
        except aiohttp.ClientError as err:
            print(f"Error: Could not reach {config.base_url}: {err}", file=sys.stderr)
            print("Use --skip-check to sign without contacting the server.", file=sys.stderr)
            sys.exit(1)

    for signed_url in signed_urls:
        print(signed_url.curl_command() if args.curl else signed_url.url)


def add_parser(subparsers):
    parser_sign = subparsers.add_parser(
        "sign",
        help="Create shareable links",
        description=(
            "Create a signed link for each target that stays valid for 48 "
            "hours. Targets take the form remote:path when the remote is "
            "bound into the signature."
        ),
    )
    parser_sign.add_argument(
        "targets", nargs="+", metavar="PATH", help="file path to sign"
    )
    parser_sign.add_argument(
        "--curl",
        action="store_true",
        help="print a curl command that downloads each file instead of the URL",
    )
    parser_sign.add_argument(
        "--skip-check",
        action="store_true",
        help="do not confirm that the server accepts the generated links",
    )
    parser_sign.set_defaults(func=subcommand_sign)
