from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

import httpx
import pytest

from helpers import DEPLOYMENT_URL, BinaryServer, posix_only, version_script
from wsconnect.core.exceptions import UnsignedBinaryError
from wsconnect.domain.binary import (
    BinaryDownloader,
    BinaryManager,
    GnupgVerifier,
    Invalid,
    SignatureNotFound,
    Valid,
    VerificationFailed,
    default_verifier,
    ensure_binary,
)

pytestmark = posix_only

BODY = version_script("2.19.0").encode()
SIGNATURE = b"-----BEGIN PGP SIGNATURE-----\n\n-----END PGP SIGNATURE-----\n"


class FakeVerifier:
    def __init__(self, result) -> None:
        self.result = result
        self.calls: list[tuple[Path, Path]] = []

    def verify(self, binary: Path, signature: Path):
        self.calls.append((binary, signature))
        return self.result


class Confirm:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.messages: list[str] = []

    def __call__(self, message: str) -> bool:
        self.messages.append(message)
        return self.answer


@pytest.fixture
def manager(make_settings):
    def _make(server: BinaryServer, verifier=None, confirm=None, **changes) -> BinaryManager:
        changes.setdefault("disable_signature_verification", False)
        return BinaryManager(
            make_settings(**changes),
            DEPLOYMENT_URL,
            downloader=BinaryDownloader(client=server.client()),
            verifier=verifier,
            confirm_unsigned=confirm,
        )

    return _make


def signature_paths(server: BinaryServer) -> list[str]:
    return [path for path in server.paths() if path.endswith(".asc")]


# ============================================================
# Verification of downloaded binaries
# ============================================================

def test_valid_signature_keeps_binary(manager) -> None:
    server = BinaryServer(BODY, signature=SIGNATURE)
    verifier = FakeVerifier(Valid(fingerprint="ABCD"))
    m = manager(server, verifier)

    assert m.download("2.19.0") is True

    signature = m.local_binary_path.parent / m.settings.signature_name
    assert m.local_binary_path.read_bytes() == BODY
    assert signature.read_bytes() == SIGNATURE
    assert verifier.calls == [(m.local_binary_path, signature)]
    assert signature_paths(server) == [f"/bin/{m.settings.signature_name}"]


@pytest.mark.parametrize(
    ("result", "message"),
    [
        (Invalid(reason="signature bad"), "is invalid. Reason: signature bad"),
        (Invalid(), "is invalid"),
        (SignatureNotFound(), "does not exist"),
        (VerificationFailed("gpg exploded"), "gpg exploded"),
    ],
)
def test_rejected_signature_deletes_binary(manager, result, message: str) -> None:
    m = manager(BinaryServer(BODY, signature=SIGNATURE), FakeVerifier(result))

    with pytest.raises(UnsignedBinaryError, match=message):
        m.download("2.19.0")

    assert not m.local_binary_path.exists()


def test_missing_signature_is_denied_by_default(manager) -> None:
    verifier = FakeVerifier(Valid())
    m = manager(BinaryServer(BODY), verifier)

    with pytest.raises(UnsignedBinaryError, match="was denied"):
        m.download("2.19.0")

    assert not m.local_binary_path.exists()
    assert verifier.calls == []


def test_missing_signature_allowed_without_prompt(manager) -> None:
    confirm = Confirm(False)
    m = manager(BinaryServer(BODY), FakeVerifier(Valid()), confirm, allow_unsigned_binary_without_prompt=True)

    assert m.download("2.19.0") is True
    assert m.local_binary_path.read_bytes() == BODY
    assert confirm.messages == []


@pytest.mark.parametrize("answer", [True, False])
def test_missing_signature_asks_user(manager, answer: bool) -> None:
    confirm = Confirm(answer)
    m = manager(BinaryServer(BODY), FakeVerifier(Valid()), confirm)

    if answer:
        assert m.download("2.19.0") is True
    else:
        with pytest.raises(UnsignedBinaryError):
            m.download("2.19.0")

    assert m.local_binary_path.exists() is answer
    assert len(confirm.messages) == 1
    assert "no signature was found" in confirm.messages[0]


def test_signature_server_error_counts_as_missing(make_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(".asc"):
            return httpx.Response(500)
        return httpx.Response(200, content=BODY)

    m = BinaryManager(
        make_settings(disable_signature_verification=False),
        DEPLOYMENT_URL,
        downloader=BinaryDownloader(client=httpx.Client(transport=httpx.MockTransport(handler))),
        verifier=FakeVerifier(Valid()),
        confirm_unsigned=Confirm(True),
    )

    assert m.download("2.19.0") is True


def test_without_signing_key_binary_is_unverifiable(manager) -> None:
    server = BinaryServer(BODY, signature=SIGNATURE)
    confirm = Confirm(False)
    m = manager(server, confirm=confirm)

    assert m.verifier is None
    with pytest.raises(UnsignedBinaryError):
        m.download("2.19.0")

    assert signature_paths(server) == []
    assert "no trusted signing key" in confirm.messages[0]
    assert not m.local_binary_path.exists()


def test_disabled_verification_skips_signature(manager) -> None:
    server = BinaryServer(BODY, signature=SIGNATURE)
    verifier = FakeVerifier(Invalid())
    m = manager(server, verifier, disable_signature_verification=True)

    assert m.download("2.19.0") is True
    assert signature_paths(server) == []
    assert verifier.calls == []


def test_cached_binary_is_not_verified_again(manager) -> None:
    server = BinaryServer(BODY, signature=SIGNATURE)
    verifier = FakeVerifier(Valid())
    m = manager(server, verifier)

    assert m.download("2.19.0") is True
    assert m.download("2.19.0") is False

    assert len(verifier.calls) == 1
    assert m.local_binary_path.read_bytes() == BODY


@pytest.mark.parametrize("fallback", [True, False])
def test_signature_fallback_to_releases_server(make_settings, fallback: bool) -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if request.url.host == "releases.coder.com":
            return httpx.Response(200, content=SIGNATURE)
        if request.url.path.endswith(".asc"):
            return httpx.Response(404)
        return httpx.Response(200, content=BODY)

    settings = make_settings(disable_signature_verification=False, signature_fallback=fallback)
    verifier = FakeVerifier(Valid())
    m = BinaryManager(
        settings,
        DEPLOYMENT_URL,
        downloader=BinaryDownloader(client=httpx.Client(transport=httpx.MockTransport(handler))),
        verifier=verifier,
        confirm_unsigned=Confirm(False),
    )

    release_url = f"https://releases.coder.com/coder-cli/2.19.0/{settings.signature_name}"
    if fallback:
        assert m.download("2.19.0") is True
        assert requested[-1] == release_url
        assert len(verifier.calls) == 1
    else:
        with pytest.raises(UnsignedBinaryError):
            m.download("2.19.0")
        assert release_url not in requested
        assert verifier.calls == []


def test_ensure_binary_refuses_unsigned_download(make_settings) -> None:
    settings = make_settings(disable_signature_verification=False)
    server = BinaryServer(BODY)

    with pytest.raises(UnsignedBinaryError):
        ensure_binary(
            settings,
            DEPLOYMENT_URL,
            "2.19.0",
            downloader=BinaryDownloader(client=server.client()),
            verifier=FakeVerifier(Valid()),
        )

    assert not BinaryManager(settings, DEPLOYMENT_URL).local_binary_path.exists()


# ============================================================
# GnupgVerifier
# ============================================================

def test_default_verifier(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    assert default_verifier(None) is None
    assert default_verifier("  ") is None
    verifier = default_verifier("~/keys/release.asc")
    assert isinstance(verifier, GnupgVerifier)
    assert verifier.key_file == tmp_path / "keys" / "release.asc"


def test_gnupg_missing_signature(tmp_path: Path) -> None:
    verifier = GnupgVerifier(tmp_path / "key.asc")
    assert isinstance(verifier.verify(tmp_path / "coder", tmp_path / "coder.asc"), SignatureNotFound)


def test_gnupg_missing_key_file(tmp_path: Path) -> None:
    (tmp_path / "coder.asc").write_bytes(SIGNATURE)
    verifier = GnupgVerifier(tmp_path / "key.asc")
    assert isinstance(verifier.verify(tmp_path / "coder", tmp_path / "coder.asc"), VerificationFailed)


needs_gpg = pytest.mark.skipif(shutil.which("gpg") is None, reason="gpg is not installed")


@pytest.fixture
def signed(tmp_path: Path):
    """A binary, its detached signature and the signer's public key."""
    import gnupg

    # gpg-agent sockets live in the home directory, keep its path short
    with tempfile.TemporaryDirectory(prefix="gpg", ignore_cleanup_errors=True) as home:
        gpg = gnupg.GPG(gnupghome=home)
        key = gpg.gen_key(
            gpg.gen_key_input(
                key_type="RSA",
                key_length=2048,
                name_email="release@example.com",
                no_protection=True,
            )
        )
        binary = tmp_path / "coder"
        binary.write_bytes(BODY)
        signature = tmp_path / "coder.asc"
        with open(binary, "rb") as stream:
            gpg.sign_file(stream, keyid=key.fingerprint, detach=True, output=str(signature))
        key_file = tmp_path / "release-key.asc"
        key_file.write_text(gpg.export_keys(key.fingerprint))
        yield binary, signature, key_file


@needs_gpg
def test_gnupg_valid_signature(signed) -> None:
    binary, signature, key_file = signed
    result = GnupgVerifier(key_file).verify(binary, signature)
    assert isinstance(result, Valid)
    assert result.fingerprint


@needs_gpg
def test_gnupg_tampered_binary(signed) -> None:
    binary, signature, key_file = signed
    binary.write_bytes(BODY + b"\n# extra")
    assert isinstance(GnupgVerifier(key_file).verify(binary, signature), Invalid)


@needs_gpg
def test_gnupg_key_file_without_key(signed, tmp_path: Path) -> None:
    binary, signature, _ = signed
    bogus = tmp_path / "bogus.asc"
    bogus.write_text("not a key\n")
    assert isinstance(GnupgVerifier(bogus).verify(binary, signature), VerificationFailed)
