"""
Binary lifecycle domain models
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from ..version import SemanticVersion


@dataclass(frozen=True)
class BinaryDescriptor:
    """Where a deployment's binary comes from and where it lives locally"""
    remote_source_url: str
    local_path: Path
    is_fallback: bool = False


@dataclass(frozen=True)
class CachedBinaryState:
    """What is known about the binary currently on disk"""
    exists: bool
    content_hash: Optional[str] = None
    reported_version: Optional[SemanticVersion] = None


@dataclass(frozen=True)
class Downloaded:
    """The binary was fetched and written to destination"""
    source: str
    destination: Path


@dataclass(frozen=True)
class NotModified:
    """The remote binary matches the cached one, nothing was written"""
    pass


DownloadResult = Union[Downloaded, NotModified]


@dataclass(frozen=True)
class Valid:
    """The signature was made by the trusted key"""
    fingerprint: Optional[str] = None


@dataclass(frozen=True)
class Invalid:
    """The signature does not match the binary or the trusted key"""
    reason: Optional[str] = None


@dataclass(frozen=True)
class SignatureNotFound:
    pass


@dataclass(frozen=True)
class VerificationFailed:
    """Verification could not be carried out"""
    error: str


VerificationResult = Union[Valid, Invalid, SignatureNotFound, VerificationFailed]
