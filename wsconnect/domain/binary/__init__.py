"""
Binary domain module
"""
from .models import (
    BinaryDescriptor,
    CachedBinaryState,
    Downloaded,
    NotModified,
    DownloadResult,
    Valid,
    Invalid,
    SignatureNotFound,
    VerificationFailed,
    VerificationResult,
)
from .downloader import BinaryDownloader, tls_verify
from .locations import resolve, primary_is_data_dir
from .probe import hash_of, exec_binary, read_version, probe_version, matches_version, inspect_binary
from .signature import GnupgVerifier, default_verifier
from .service import BinaryManager, ensure_binary, find_binary

__all__ = [
    "BinaryDescriptor",
    "CachedBinaryState",
    "Downloaded",
    "NotModified",
    "DownloadResult",
    "Valid",
    "Invalid",
    "SignatureNotFound",
    "VerificationFailed",
    "VerificationResult",
    "BinaryDownloader",
    "tls_verify",
    "resolve",
    "primary_is_data_dir",
    "hash_of",
    "exec_binary",
    "read_version",
    "probe_version",
    "matches_version",
    "inspect_binary",
    "GnupgVerifier",
    "default_verifier",
    "BinaryManager",
    "ensure_binary",
    "find_binary",
]
