"""Root conftest for all tests."""

import os
from pathlib import Path
from typing import Awaitable, Callable

import pytest
from aiohttp.test_utils import TestClient
from aiohttp.web import Application

from rserve.config import RserveConfig
from rserve.utils.keys import KeyPair, generate_keypair, load_private_key
from rserve.utils.url_signer import UrlSigner

# Shared test constants
TEST_HOST = "files.example.com"
TEST_REMOTE = "private"
REPORT_CONTENT = b"%PDF-1.4 quarterly report" * 100

# Type alias for the aiohttp_client fixture - shared across all tests
AiohttpClient = Callable[[Application], Awaitable[TestClient]]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep RSERVE_* variables from the outer environment out of tests."""
    for name in list(os.environ):
        if name.startswith("RSERVE_"):
            monkeypatch.delenv(name)


@pytest.fixture(name="keypair")
def keypair_fixture() -> KeyPair:
    """A fresh keypair for each test."""
    return generate_keypair()


@pytest.fixture
def storage_root(tmp_path: Path) -> Path:
    """Storage directory with a single file and a directory of two files."""
    root = tmp_path / "storage"
    docs = root / "docs"
    archive = docs / "archive"
    archive.mkdir(parents=True)
    (docs / "report.pdf").write_bytes(REPORT_CONTENT)
    (archive / "2023.pdf").write_bytes(b"2023")
    (archive / "2024.pdf").write_bytes(b"2024")
    return root


@pytest.fixture
def config(keypair: KeyPair, storage_root: Path) -> RserveConfig:
    """Configuration for both the issuer and the server."""
    return RserveConfig(
        host=TEST_HOST,
        scheme="http",
        remote=TEST_REMOTE,
        public_key=keypair.public_key,
        private_key=keypair.private_key,
        remotes={TEST_REMOTE: str(storage_root)},
    )


@pytest.fixture
def signer(keypair: KeyPair) -> UrlSigner:
    """Signer using the test keypair."""
    return UrlSigner(load_private_key(keypair.private_key), f"http://{TEST_HOST}")
