import urllib.parse

import pytest

from rserve import __version__
from rserve.cli.main import main
from rserve.cli.sign import parse_target
from rserve.exceptions import UsageError
from rserve.utils.keys import KeyPair, decode_base64url, load_private_key
from tests.conftest import TEST_HOST


@pytest.fixture
def issuer_env(monkeypatch: pytest.MonkeyPatch, keypair: KeyPair, tmp_path) -> None:
    monkeypatch.setenv("RSERVE_CONFIG_DIR", str(tmp_path))
    monkeypatch.setenv("RSERVE_HOST", TEST_HOST)
    monkeypatch.setenv("RSERVE_REMOTE", "private")
    monkeypatch.setenv("RSERVE_PRIVATE_KEY", keypair.private_key)


def test_generate(capsys: pytest.CaptureFixture[str]) -> None:
    """Test that generate prints a usable named keypair."""
    main(["generate"])

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    public_name, public_key = lines[0].split("=", 1)
    private_name, private_key = lines[1].split("=", 1)
    assert public_name == "RSERVE_PUBLIC_KEY"
    assert private_name == "RSERVE_PRIVATE_KEY"
    assert len(decode_base64url(public_key)) == 32
    load_private_key(private_key)


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    main(["version"])
    assert capsys.readouterr().out.strip() == f"rserve {__version__}"

    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])
    assert exc_info.value.code == 0


def test_no_command(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main([])
    assert exc_info.value.code == 1


@pytest.mark.usefixtures("issuer_env")
def test_sign(capsys: pytest.CaptureFixture[str]) -> None:
    """Test that sign prints one URL per path."""
    main(["sign", "--skip-check", "docs/report.pdf", "/docs/archive/2023.pdf"])

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 2
    first = urllib.parse.urlparse(lines[0])
    assert first.scheme == "https"
    assert first.netloc == TEST_HOST
    assert first.path == "/docs/report.pdf"
    assert set(urllib.parse.parse_qs(first.query)) == {"expires_at", "signature"}
    assert urllib.parse.urlparse(lines[1]).path == "/docs/archive/2023.pdf"


@pytest.mark.usefixtures("issuer_env")
def test_sign_curl(capsys: pytest.CaptureFixture[str]) -> None:
    main(["sign", "--skip-check", "--curl", "docs/report.pdf"])

    out = capsys.readouterr().out.strip()
    assert out.startswith(f"curl -o report.pdf 'https://{TEST_HOST}/docs/report.pdf?")


@pytest.mark.usefixtures("issuer_env")
def test_sign_missing_configuration(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("RSERVE_HOST")

    with pytest.raises(SystemExit) as exc_info:
        main(["sign", "--skip-check", "docs/report.pdf"])

    assert exc_info.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "Error: Missing required configuration: RSERVE_HOST" in captured.err


@pytest.mark.usefixtures("issuer_env")
def test_sign_invalid_key(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("RSERVE_PRIVATE_KEY", "not a key")

    with pytest.raises(SystemExit) as exc_info:
        main(["sign", "--skip-check", "docs/report.pdf"])

    assert exc_info.value.code == 1
    assert "Private key" in capsys.readouterr().err


@pytest.mark.usefixtures("issuer_env")
def test_sign_bound_remote_requires_compound_path(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A usage error is reported before the key is even decoded."""
    monkeypatch.setenv("RSERVE_BIND_REMOTE", "1")
    monkeypatch.setenv("RSERVE_PRIVATE_KEY", "not a key")

    with pytest.raises(SystemExit) as exc_info:
        main(["sign", "--skip-check", "private:docs/report.pdf", "docs/report.pdf"])

    assert exc_info.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "remote:path" in captured.err


@pytest.mark.usefixtures("issuer_env")
def test_sign_bound_remote(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("RSERVE_BIND_REMOTE", "1")

    main(["sign", "--skip-check", "private:docs/report.pdf"])

    url = urllib.parse.urlparse(capsys.readouterr().out.strip())
    assert url.path == "/docs/report.pdf"


@pytest.mark.usefixtures("issuer_env")
def test_sign_unreachable_server(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """The live check reports an unreachable server instead of printing links."""
    monkeypatch.setenv("RSERVE_SCHEME", "http")
    monkeypatch.setenv("RSERVE_HOST", "127.0.0.1:1")

    with pytest.raises(SystemExit) as exc_info:
        main(["sign", "docs/report.pdf"])

    assert exc_info.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "--skip-check" in captured.err


def test_parse_target() -> None:
    assert parse_target("docs/a:b.txt", bind_remote=False) == (None, "docs/a:b.txt")
    assert parse_target("private:docs/a.txt", bind_remote=True) == ("private", "docs/a.txt")
    for target in ("docs/a.txt", ":docs/a.txt", "private:"):
        with pytest.raises(UsageError):
            parse_target(target, bind_remote=True)
