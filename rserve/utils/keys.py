"""Ed25519 key generation and base64url key encoding."""

import base64
import binascii
import logging
from dataclasses import dataclass

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from rserve.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "KeyPair",
    "generate_keypair",
    "load_private_key",
    "load_public_key",
    "decode_base64url",
    "encode_base64url",
]

PUBLIC_KEY_SIZE = 32
SEED_SIZE = 32
PRIVATE_KEY_SIZE = SEED_SIZE + PUBLIC_KEY_SIZE


def encode_base64url(data: bytes) -> str:
    """Encode bytes as padded url-safe base64."""
    return base64.urlsafe_b64encode(data).decode("ascii")


def decode_base64url(value: str) -> bytes:
    """Decode url-safe base64, with or without padding.

    Raises ValueError if the value contains characters outside the url-safe
    alphabet or has an impossible length.
    """
    if "+" in value or "/" in value:
        raise ValueError("Invalid base64url value: standard alphabet characters")
    stripped = value.rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"Invalid base64url value: {err}") from err


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )


def _raw_seed_bytes(private_key: Ed25519PrivateKey) -> bytes:
    return private_key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )


@dataclass(frozen=True)
class KeyPair:
    """A base64url-encoded Ed25519 keypair."""

    public_key: str
    """Raw 32-byte public key."""

    private_key: str
    """64-byte private key: the 32-byte seed followed by the public key."""


def generate_keypair() -> KeyPair:
    """Generate a fresh Ed25519 keypair."""
    private_key = Ed25519PrivateKey.generate()
    public_bytes = _raw_public_bytes(private_key.public_key())
    seed = _raw_seed_bytes(private_key)
    return KeyPair(
        public_key=encode_base64url(public_bytes),
        private_key=encode_base64url(seed + public_bytes),
    )


def load_public_key(encoded: str) -> Ed25519PublicKey:
    """Load a base64url-encoded raw Ed25519 public key."""
    try:
        raw = decode_base64url(encoded)
    except ValueError as err:
        raise ConfigurationError(f"Public key is not valid base64url: {err}") from err
    if len(raw) != PUBLIC_KEY_SIZE:
        raise ConfigurationError(
            f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(raw)}"
        )
    return Ed25519PublicKey.from_public_bytes(raw)


def load_private_key(encoded: str) -> Ed25519PrivateKey:
    """Load a base64url-encoded Ed25519 private key.

    Both the bare 32-byte seed and the 64-byte seed plus public key form are
    accepted. For the long form the embedded public key must match the one
    derived from the seed.
    """
    try:
        raw = decode_base64url(encoded)
    except ValueError as err:
        raise ConfigurationError(f"Private key is not valid base64url: {err}") from err
    if len(raw) not in (SEED_SIZE, PRIVATE_KEY_SIZE):
        raise ConfigurationError(
            f"Private key must be {SEED_SIZE} or {PRIVATE_KEY_SIZE} bytes, got {len(raw)}"
        )
    private_key = Ed25519PrivateKey.from_private_bytes(raw[:SEED_SIZE])
    if len(raw) == PRIVATE_KEY_SIZE:
        if _raw_public_bytes(private_key.public_key()) != raw[SEED_SIZE:]:
            raise ConfigurationError("Private key does not match its public half")
    logger.debug("Loaded Ed25519 private key")
    return private_key
