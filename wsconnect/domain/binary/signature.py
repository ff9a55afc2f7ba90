"""
GPG verification of downloaded binaries
"""
import tempfile
from pathlib import Path
from typing import Optional

import gnupg

from ...core.interfaces import SignatureVerifier
from ...core.logging import get_logger
from ...core.utils import expand_path
from .models import Invalid, SignatureNotFound, Valid, VerificationFailed, VerificationResult

logger = get_logger(__name__)


class GnupgVerifier(SignatureVerifier):
    """
    Check a detached, armored signature against one trusted public key.

    Each check imports the key into a throwaway keyring, so the user's own
    keyring is neither read nor changed and no other key is trusted.
    """

    def __init__(self, key_file: Path, gpg_binary: str = "gpg"):
        """
        Initialize verifier.

        Args:
            key_file: Armored public key the binary must be signed with
            gpg_binary: gpg executable to run
        """
        self.key_file = Path(key_file)
        self.gpg_binary = gpg_binary

    def verify(self, binary: Path, signature: Path) -> VerificationResult:
        if not signature.exists():
            logger.warning("Signature file not found, skipping verification")
            return SignatureNotFound()

        try:
            key_data = self.key_file.read_text(encoding="utf-8")
            with tempfile.TemporaryDirectory(prefix="wsconnect-gpg-", ignore_cleanup_errors=True) as home:
                gpg = gnupg.GPG(gpgbinary=self.gpg_binary, gnupghome=home)
                imported = gpg.import_keys(key_data)
                if not imported.fingerprints:
                    return VerificationFailed(f"No public key found in {self.key_file}")
                with open(signature, "rb") as stream:
                    verified = gpg.verify_file(stream, str(binary))
        except (OSError, ValueError) as e:
            logger.error(f"GPG signature verification failed: {e}")
            return VerificationFailed(str(e))

        logger.info(f"GPG signature verification result: {bool(verified.valid)}")
        if verified.valid:
            return Valid(fingerprint=verified.fingerprint)
        return Invalid(reason=verified.status or None)


def default_verifier(key_file: Optional[str]) -> Optional[SignatureVerifier]:
    """Verifier for the configured signing key, None when no key is configured"""
    if key_file is None or not key_file.strip():
        return None
    return GnupgVerifier(expand_path(key_file.strip()))
