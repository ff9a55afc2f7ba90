"""
Inspect a cached binary: content hash and reported version
"""
import hashlib
import json
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

from ...core.constants import VERSION_COMMAND
from ...core.exceptions import BinaryExecutionError, MissingVersionError, VersionParseError
from ...core.logging import get_logger
from ...core.utils import redact_token
from ..version import SemanticVersion
from .models import CachedBinaryState

logger = get_logger(__name__)

_HASH_CHUNK_SIZE = 65536


def hash_of(path: Path) -> Optional[str]:
    """
    SHA-1 of the file, used as the validator for conditional downloads.

    Returns None when the file does not exist or cannot be read.
    """
    if not path.exists():
        return None
    digest = hashlib.sha1()
    try:
        with path.open("rb") as source:
            for chunk in iter(lambda: source.read(_HASH_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as e:
        logger.warning(f"Unable to calculate hash for {path}: {e}")
        return None
    return digest.hexdigest()


def exec_binary(
    path: Path,
    args: Sequence[str],
    env: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Run the binary and return its stdout.

    Raises:
        OSError: If the process cannot be started
        BinaryExecutionError: If the process exits with a non-zero code
    """
    argv = [str(path), *args]
    result = subprocess.run(
        argv,
        capture_output=True,
        text=True,
        env=dict(env) if env is not None else None,
        check=False,
    )
    logger.info(f"`{path} {redact_token(args)}`: {result.stdout.strip()}")
    if result.returncode != 0:
        raise BinaryExecutionError(
            f"{path} {redact_token(args)}",
            result.returncode,
            result.stderr or result.stdout,
        )
    return result.stdout


def read_version(path: Path, env: Optional[Mapping[str, str]] = None) -> SemanticVersion:
    """
    Ask the binary for its version.

    Raises:
        OSError: If the binary cannot be started
        BinaryExecutionError: If the version command fails
        json.JSONDecodeError: If the output is not JSON
        MissingVersionError: If the output carries no version
        VersionParseError: If the reported version is malformed
    """
    raw = exec_binary(path, VERSION_COMMAND, env)
    if not raw.strip():
        raise MissingVersionError(f"No version found in output of {path}")

    payload = json.loads(raw)
    version = payload.get("version") if isinstance(payload, dict) else None
    if not isinstance(version, str) or not version.strip():
        raise MissingVersionError(f"No version found in output of {path}")
    return SemanticVersion.parse(version)


def probe_version(path: Path, env: Optional[Mapping[str, str]] = None) -> Optional[SemanticVersion]:
    """Like read_version() but logs errors instead of raising them"""
    try:
        return read_version(path, env)
    except VersionParseError as e:
        logger.info(f"Got invalid version from {path}: {e}")
    except (OSError, ValueError, MissingVersionError, BinaryExecutionError) as e:
        # Most likely the binary does not exist, or it ran but printed no
        # version which suggests it is not the right binary.
        logger.info(f"Unable to determine {path} version: {e}")
    return None


def matches_version(
    path: Path,
    raw_build_version: str,
    env: Optional[Mapping[str, str]] = None,
) -> Optional[bool]:
    """
    Compare the binary's version against the deployment's build version.

    Returns:
        True or False when both versions are known, None when the binary is
        missing, its version cannot be read, or the build version is invalid
    """
    if not path.exists():
        return None
    binary_version = probe_version(path, env)
    if binary_version is None:
        return None

    build_version = SemanticVersion.try_parse(raw_build_version)
    if build_version is None:
        logger.info(f"Got invalid build version: {raw_build_version!r}")
        return None

    matches = binary_version == build_version
    logger.info(f"{path} version {binary_version} matches {build_version}: {matches}")
    return matches


def inspect_binary(path: Path, env: Optional[Mapping[str, str]] = None) -> CachedBinaryState:
    """Collect the derived cache state of a binary"""
    if not path.exists():
        return CachedBinaryState(exists=False)
    return CachedBinaryState(
        exists=True,
        content_hash=hash_of(path),
        reported_version=probe_version(path, env),
    )
