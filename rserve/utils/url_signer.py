"""URL Signing Utility.

This module provides the canonical message format shared by the issuer and
the verifier, the UrlSigner used to mint signed links, and the UrlVerifier
used to check them. Signatures are Ed25519 over the encoded Message.
"""

import datetime
import logging
import shlex
import time
import urllib.parse
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature as CryptographyInvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .keys import encode_base64url

logger = logging.getLogger(__name__)

__all__ = [
    "Message",
    "SignedUrl",
    "UrlSigner",
    "UrlVerifier",
]

DEFAULT_EXPIRATION = datetime.timedelta(hours=48)

EXPIRES_AT_PARAM = "expires_at"
SIGNATURE_PARAM = "signature"
SEPARATOR = "|"


@dataclass(frozen=True)
class Message:
    """The exact payload that is signed and verified."""

    path: str
    expires_at: int
    remote: str | None = None

    def __post_init__(self) -> None:
        if self.remote is not None and SEPARATOR in self.remote:
            raise ValueError("Remote cannot contain pipe character")

    @property
    def normalized_path(self) -> str:
        """Path with a guaranteed leading slash."""
        if self.path.startswith("/"):
            return self.path
        return "/" + self.path

    def encode(self) -> bytes:
        """Encode the message into bytes."""
        fields = [self.normalized_path, str(self.expires_at)]
        if self.remote is not None:
            fields.insert(0, self.remote)
        return SEPARATOR.join(fields).encode("utf-8")


@dataclass(frozen=True)
class SignedUrl:
    """A capability URL for a single file."""

    base_url: str
    path: str
    expires_at: int
    signature: str

    @property
    def url(self) -> str:
        """Full URL including the signature query parameters."""
        path = urllib.parse.quote(Message(self.path, self.expires_at).normalized_path)
        query = urllib.parse.urlencode(
            {EXPIRES_AT_PARAM: str(self.expires_at), SIGNATURE_PARAM: self.signature}
        )
        return f"{self.base_url}{path}?{query}"

    def curl_command(self) -> str:
        """Shell command that downloads the file to its base name."""
        filename = self.path.rstrip("/").rsplit("/", 1)[-1]
        return f"curl -o {shlex.quote(filename)} {shlex.quote(self.url)}"


class UrlSigner:
    """Mints signed URLs with an Ed25519 private key."""

    def __init__(
        self,
        private_key: Ed25519PrivateKey,
        base_url: str,
        expiration: datetime.timedelta = DEFAULT_EXPIRATION,
    ) -> None:
        """Initialize the signer.

        Args:
            private_key: Key used to sign messages.
            base_url: Scheme and host prefix of generated URLs, e.g.
                ``https://files.example.com``.
            expiration: How long generated links stay valid.
        """
        self._private_key = private_key
        self._base_url = base_url.rstrip("/")
        self._expiration = expiration

    def sign_message(self, message: Message) -> str:
        """Return the base64url signature for a message."""
        return encode_base64url(self._private_key.sign(message.encode()))

    def sign(
        self, path: str, remote: str | None = None, now: float | None = None
    ) -> SignedUrl:
        """Generate a signed URL for a path.

        Args:
            path: The file path to grant access to.
            remote: Remote name to bind into the message, if the deployment
                includes it.
            now: Issuance time in Unix seconds, defaults to the current time.
        """
        if now is None:
            now = time.time()
        expires_at = int(now + self._expiration.total_seconds())
        message = Message(path, expires_at, remote)
        signature = self.sign_message(message)
        logger.debug("Signed %s expiring at %d", message.normalized_path, expires_at)
        return SignedUrl(
            base_url=self._base_url,
            path=path,
            expires_at=expires_at,
            signature=signature,
        )


class UrlVerifier:
    """Checks signatures with an Ed25519 public key."""

    def __init__(self, public_key: Ed25519PublicKey) -> None:
        self._public_key = public_key

    def verify(self, message: Message, signature: bytes) -> bool:
        """Return True only if the signature is valid for the message."""
        try:
            self._public_key.verify(signature, message.encode())
        except CryptographyInvalidSignature:
            return False
        return True
