"""Validation gate for signed file requests.

Each request passes through an ordered series of checks. The first failing
check raises a ValidationError and nothing after it runs:

1. method and path shape
2. presence of ``expires_at`` and ``signature``
3. base64url decoding of the signature
4. parsing of the expiry as a signed 64-bit integer
5. expiry against the current time
6. Ed25519 verification of the canonical message

Expiry is checked before the signature, so an expired link reports expiry
even when its signature is also wrong.
"""

import logging
import re
import time
from collections.abc import Mapping
from dataclasses import dataclass

from rserve.exceptions import (
    BadEncoding,
    InvalidSignature,
    LinkExpired,
    MissingParameter,
    RouteNotFound,
    ValidationResult,
)
from rserve.utils.keys import decode_base64url
from rserve.utils.url_signer import (
    EXPIRES_AT_PARAM,
    SIGNATURE_PARAM,
    Message,
    UrlVerifier,
)

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "HEAD")

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_DECIMAL_RE = re.compile(r"-?[0-9]+")


def parse_expires_at(value: str) -> int:
    """Parse a base-10 signed 64-bit integer of Unix seconds."""
    if not _DECIMAL_RE.fullmatch(value):
        raise BadEncoding("Error parsing expires_at")
    try:
        expires_at = int(value)
    except ValueError as err:
        raise BadEncoding("Error parsing expires_at") from err
    if not INT64_MIN <= expires_at <= INT64_MAX:
        raise BadEncoding("Error parsing expires_at")
    return expires_at


@dataclass(frozen=True)
class ValidatedRequest:
    """A request that passed every check and may be resolved."""

    path: str
    expires_at: int
    head_only: bool
    result: ValidationResult = ValidationResult.VALID


class RequestGate:
    """Decides whether a request may proceed to file retrieval.

    The gate holds only the verifier and the bound remote, both read-only, so
    one instance is shared by all concurrent requests.
    """

    def __init__(self, verifier: UrlVerifier, remote: str | None = None) -> None:
        """Initialize the gate.

        Args:
            verifier: Checks signatures with the server's public key.
            remote: Remote name included in the signed message, or None when
                the deployment signs only the path.
        """
        self._verifier = verifier
        self._remote = remote

    def validate(
        self,
        method: str,
        path: str,
        query: Mapping[str, str],
        now: float | None = None,
    ) -> ValidatedRequest:
        """Run every check against a request.

        Args:
            method: HTTP method of the request.
            path: Decoded path of the request URL.
            query: Query parameters of the request URL.
            now: Current time in Unix seconds, defaults to the wall clock.

        Raises:
            ValidationError: The first check that failed.
        """
        if method not in ALLOWED_METHODS or path in ("", "/"):
            raise RouteNotFound()

        expires_param = query.get(EXPIRES_AT_PARAM, "")
        if not expires_param:
            raise MissingParameter(EXPIRES_AT_PARAM)
        signature_param = query.get(SIGNATURE_PARAM, "")
        if not signature_param:
            raise MissingParameter(SIGNATURE_PARAM)

        try:
            signature = decode_base64url(signature_param)
        except ValueError as err:
            raise BadEncoding("Error decoding signature") from err

        expires_at = parse_expires_at(expires_param)

        if now is None:
            now = time.time()
        if expires_at < now:
            raise LinkExpired()

        message = Message(path, expires_at, self._remote)
        try:
            valid = self._verifier.verify(message, signature)
        except UnicodeEncodeError:
            valid = False
        if not valid:
            raise InvalidSignature()

        logger.debug("Validated %s expiring at %d", message.normalized_path, expires_at)
        return ValidatedRequest(
            path=message.normalized_path,
            expires_at=expires_at,
            head_only=method == "HEAD",
        )
